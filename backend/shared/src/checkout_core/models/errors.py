"""Standard error codes for the checkout backend.

Every error surfaced to a caller carries one of these codes so the checkout
page and the operators see a consistent message and recovery hint.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class ErrorCode(str, Enum):
    """Standard checkout error codes."""

    # Validation errors (ERR_001-ERR_004)
    MISSING_SESSION_ID = "ERR_001"
    INVALID_AMOUNT = "ERR_002"
    AMOUNT_MISMATCH = "ERR_003"
    INVALID_PAYLOAD = "ERR_004"

    # Lookup errors
    SESSION_NOT_FOUND = "ERR_005"

    # Access errors
    UNAUTHORIZED = "ERR_006"

    # Configuration errors
    NO_ACTIVE_ACCOUNT = "ERR_CONFIG_001"

    # Stripe errors (ERR_STRIPE_001-ERR_STRIPE_002)
    INVALID_WEBHOOK_SIGNATURE = "ERR_STRIPE_001"
    STRIPE_API_ERROR = "ERR_STRIPE_002"


# Human-readable error messages
ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.MISSING_SESSION_ID: "sessionId is required",
    ErrorCode.INVALID_AMOUNT: "Invalid amount (minimum 50 minor units)",
    ErrorCode.AMOUNT_MISMATCH: "Amount does not match the cart total",
    ErrorCode.INVALID_PAYLOAD: "Request payload is malformed",
    ErrorCode.SESSION_NOT_FOUND: "No cart found for this session",
    ErrorCode.UNAUTHORIZED: "Unauthorized",
    ErrorCode.NO_ACTIVE_ACCOUNT: "No active Stripe account configured",
    ErrorCode.INVALID_WEBHOOK_SIGNATURE: "Invalid webhook signature",
    ErrorCode.STRIPE_API_ERROR: "Stripe API error occurred",
}

# Recovery suggestions shown to the checkout page or the operator
ERROR_RECOVERY: dict[ErrorCode, str] = {
    ErrorCode.MISSING_SESSION_ID: "Reload the checkout page to restore the cart session",
    ErrorCode.INVALID_AMOUNT: "Add items to the cart before paying",
    ErrorCode.AMOUNT_MISMATCH: "Reload the checkout page to refresh the cart total",
    ErrorCode.INVALID_PAYLOAD: "Check the request body and try again",
    ErrorCode.SESSION_NOT_FOUND: "Return to the store and start checkout again",
    ErrorCode.UNAUTHORIZED: "Provide the admin key",
    ErrorCode.NO_ACTIVE_ACCOUNT: "Activate at least one Stripe account with both API keys",
    ErrorCode.INVALID_WEBHOOK_SIGNATURE: "Verify webhook secret configuration",
    ErrorCode.STRIPE_API_ERROR: "Try again or contact support",
}


class ErrorResponse(BaseModel):
    """Standard error body for failed operations."""

    model_config = ConfigDict(strict=True)

    success: bool = False
    error_code: ErrorCode
    message: str
    recovery: str
    details: Optional[dict[str, str]] = None

    @classmethod
    def from_code(
        cls,
        code: ErrorCode,
        details: Optional[dict[str, str]] = None,
    ) -> "ErrorResponse":
        """Create an ErrorResponse from an error code.

        Args:
            code: The error code
            details: Optional additional context about the error

        Returns:
            An ErrorResponse with the message and recovery hint for the code.
        """
        return cls(
            error_code=code,
            message=ERROR_MESSAGES[code],
            recovery=ERROR_RECOVERY[code],
            details=details,
        )


class CheckoutError(Exception):
    """Exception raised by checkout operations.

    Converted to an ErrorResponse (and an HTTP status) at the API edge.
    """

    def __init__(
        self,
        code: ErrorCode,
        details: Optional[dict[str, str]] = None,
    ):
        self.code = code
        self.message = ERROR_MESSAGES[code]
        self.recovery = ERROR_RECOVERY[code]
        self.details = details
        super().__init__(self.message)

    def to_error_response(self) -> ErrorResponse:
        """Convert this exception to an ErrorResponse."""
        return ErrorResponse.from_code(self.code, self.details)
