"""Hosted checkout session endpoints.

The session is created on the account the rotation selects now; its status
is read back through the account recorded on the cart session, which may no
longer be the current one.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, Query

from checkout_api.dependencies import get_checkout_session_service
from checkout_api.models.checkout_session import (
    CheckoutSessionRequest,
    CheckoutSessionResponse,
    CheckoutSessionStatusResponse,
)
from checkout_core.models import ErrorResponse
from checkout_core.services import CheckoutSessionService

router = APIRouter(tags=["payments"])


@router.post(
    "/create-checkout-session",
    summary="Create a hosted checkout session for a cart session",
    response_model=CheckoutSessionResponse,
    responses={
        400: {"description": "Missing session id or malformed body", "model": ErrorResponse},
        404: {"description": "Unknown cart session", "model": ErrorResponse},
        500: {"description": "No active account or Stripe failure", "model": ErrorResponse},
    },
)
def create_checkout_session(
    body: CheckoutSessionRequest,
    background_tasks: BackgroundTasks,
    service: CheckoutSessionService = Depends(get_checkout_session_service),
) -> CheckoutSessionResponse:
    result = service.create_checkout_session(
        session_id=body.session_id,
        defer=background_tasks.add_task,
    )
    return CheckoutSessionResponse(
        client_secret=result.client_secret,
        checkout_session_id=result.checkout_session_id,
        account_used=result.account_label,
    )


@router.get(
    "/checkout-session-status",
    summary="Read a hosted checkout session's status",
    description="""
Read the session through the account that created it.

**Notes:**
- Pass `cart_session_id` so the owning account is known; without it every
  account in rotation is asked in turn
""",
    response_model=CheckoutSessionStatusResponse,
    responses={
        400: {"description": "Missing session id", "model": ErrorResponse},
        404: {"description": "Unknown checkout or cart session", "model": ErrorResponse},
        500: {"description": "Stripe failure", "model": ErrorResponse},
    },
)
def get_checkout_session_status(
    session_id: str | None = Query(default=None, description="Checkout Session ID (cs_...)"),
    cart_session_id: str | None = Query(default=None, description="Cart session ID"),
    service: CheckoutSessionService = Depends(get_checkout_session_service),
) -> CheckoutSessionStatusResponse:
    status = service.get_checkout_session_status(session_id, cart_session_id)
    return CheckoutSessionStatusResponse(
        status=status.status,
        payment_status=status.payment_status,
        customer_email=status.customer_email,
        cart_session_id=status.cart_session_id,
        account_used=status.account_label,
    )
