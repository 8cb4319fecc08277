"""Webhook endpoint for Stripe events from any of the rotated accounts.

Stripe does not say which account sent a delivery, so the signature is
tried against every eligible account's webhook secret. This endpoint does
NOT require authentication beyond that signature.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from starlette.concurrency import run_in_threadpool

from checkout_api.dependencies import get_webhook_handler
from checkout_api.models.webhooks import WebhookResponse
from checkout_core.models import ErrorResponse
from checkout_core.services import WebhookHandler
from checkout_core.utils.logging import get_logger, log_webhook_event

logger = get_logger(__name__)

router = APIRouter(tags=["webhooks"])


@router.post(
    "/webhooks/stripe",
    summary="Receive Stripe webhook events",
    description="""
Endpoint for Stripe webhook events. Handles:
- payment_intent.succeeded: creates the Shopify order for the cart session
- checkout.session.completed (paid): same, for hosted checkout sessions

Other event types are acknowledged and ignored.

**Idempotent**: a session gets at most one order; redeliveries return 200
with `already_processed`.
""",
    response_model=WebhookResponse,
    responses={
        200: {"description": "Event received and processed (or acknowledged)", "model": WebhookResponse},
        400: {"description": "Signature missing or matching no account", "model": ErrorResponse},
    },
)
async def handle_stripe_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    handler: WebhookHandler = Depends(get_webhook_handler),
) -> WebhookResponse:
    """Verify, then dispatch one Stripe delivery."""
    signature = request.headers.get("Stripe-Signature")
    payload = await request.body()

    verified = await run_in_threadpool(handler.authenticate, payload, signature)
    log_webhook_event(
        logger,
        verified.type,
        verified.id,
        account_label=verified.account.label,
        result="received",
    )

    outcome = await run_in_threadpool(handler.handle, verified, background_tasks.add_task)
    return WebhookResponse.from_outcome(outcome)
