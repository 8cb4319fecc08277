"""FastAPI exception handlers for converting CheckoutError to HTTP responses.

The ErrorCode-to-HTTP status mapping:
- 400 Bad Request: validation failures and webhook signature rejection
- 401 Unauthorized: admin key missing or wrong
- 404 Not Found: unknown cart session
- 500 Internal Server Error: missing account configuration, Stripe failures

Usage:
    from checkout_api.exceptions import register_exception_handlers
    register_exception_handlers(app)
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
    HTTP_404_NOT_FOUND,
    HTTP_500_INTERNAL_SERVER_ERROR,
)

from checkout_core.models import CheckoutError, ErrorCode, ErrorResponse

logger = logging.getLogger(__name__)

# Map ErrorCode to HTTP status codes
ERROR_CODE_TO_HTTP_STATUS: dict[ErrorCode, int] = {
    # Validation errors -> 400 Bad Request
    ErrorCode.MISSING_SESSION_ID: HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_AMOUNT: HTTP_400_BAD_REQUEST,
    ErrorCode.AMOUNT_MISMATCH: HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_PAYLOAD: HTTP_400_BAD_REQUEST,
    # Webhook authentication -> 400 so Stripe does not retry a forged event
    ErrorCode.INVALID_WEBHOOK_SIGNATURE: HTTP_400_BAD_REQUEST,
    # Admin authentication -> 401 Unauthorized
    ErrorCode.UNAUTHORIZED: HTTP_401_UNAUTHORIZED,
    # Not found errors -> 404 Not Found
    ErrorCode.SESSION_NOT_FOUND: HTTP_404_NOT_FOUND,
    # Configuration and provider errors -> 500
    ErrorCode.NO_ACTIVE_ACCOUNT: HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.STRIPE_API_ERROR: HTTP_500_INTERNAL_SERVER_ERROR,
}


def get_http_status_for_error(code: ErrorCode) -> int:
    """Get HTTP status code for an ErrorCode, defaulting to 400."""
    return ERROR_CODE_TO_HTTP_STATUS.get(code, HTTP_400_BAD_REQUEST)


async def checkout_error_handler(request: Request, exc: CheckoutError) -> JSONResponse:
    """Convert a CheckoutError into an ErrorResponse body and status code."""
    status_code = get_http_status_for_error(exc.code)
    if status_code >= HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.message, exc.code.value)

    return JSONResponse(
        status_code=status_code,
        content=exc.to_error_response().model_dump(mode="json"),
    )


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report malformed request bodies as INVALID_PAYLOAD (400)."""
    fields = [".".join(str(part) for part in err.get("loc", ())) for err in exc.errors()]
    error = ErrorResponse.from_code(
        ErrorCode.INVALID_PAYLOAD,
        details={"fields": ", ".join(fields)},
    )
    return JSONResponse(status_code=HTTP_400_BAD_REQUEST, content=error.model_dump(mode="json"))


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions with a generic error response.

    Internal details are logged, never returned to the caller.
    """
    logger.exception("Unhandled exception: %s", exc)

    error_response = {
        "success": False,
        "error_code": "ERR_INTERNAL",
        "message": "An unexpected error occurred",
        "recovery": "Please try again later or contact support",
        "details": None,
    }

    return JSONResponse(
        status_code=HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app.

    Args:
        app: The FastAPI application instance.
    """
    app.add_exception_handler(CheckoutError, checkout_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, generic_exception_handler)
