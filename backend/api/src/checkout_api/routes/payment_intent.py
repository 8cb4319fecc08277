"""Payment intent endpoint for the custom checkout page.

Creates a PaymentIntent on whichever Stripe account the rotation selects
right now and returns the publishable key of that same account; the page
must mount Stripe Elements with exactly that key.
"""

from fastapi import APIRouter, BackgroundTasks, Depends

from checkout_api.dependencies import get_payment_intent_service
from checkout_api.models.payment_intent import PaymentIntentRequest, PaymentIntentResponse
from checkout_core.models import ErrorResponse
from checkout_core.services import PaymentIntentService

router = APIRouter(tags=["payments"])


@router.post(
    "/payment-intent",
    summary="Create a PaymentIntent for a cart session",
    description="""
Create a PaymentIntent on the currently active Stripe account.

**Notes:**
- `amountCents` must be at least 50 and equal the cart's
  subtotal - discount + shipping
- The returned `publishableKey` belongs to the account in `accountUsed`
- Customer lookup failures do not fail the request
""",
    response_model=PaymentIntentResponse,
    responses={
        400: {"description": "Missing session id, invalid amount or malformed body", "model": ErrorResponse},
        404: {"description": "Unknown cart session", "model": ErrorResponse},
        500: {"description": "No active account or Stripe failure", "model": ErrorResponse},
    },
)
def create_payment_intent(
    body: PaymentIntentRequest,
    background_tasks: BackgroundTasks,
    service: PaymentIntentService = Depends(get_payment_intent_service),
) -> PaymentIntentResponse:
    result = service.create_payment_intent(
        session_id=body.session_id,
        amount_cents=body.amount_cents,
        customer=body.customer,
        defer=background_tasks.add_task,
    )
    return PaymentIntentResponse(
        client_secret=result.client_secret,
        publishable_key=result.publishable_key,
        account_used=result.account_label,
    )
