"""API routes package.

Routers are organized by concern:

- payment_intent: PaymentIntent creation for the checkout page
- checkout_session: Hosted checkout session creation and status
- webhooks: Stripe webhook dispatch
- rotation: Rotation status and admin payment stats

All routers are registered in main.py with /api prefix.
"""

from checkout_api.routes.checkout_session import router as checkout_session_router
from checkout_api.routes.payment_intent import router as payment_intent_router
from checkout_api.routes.rotation import router as rotation_router
from checkout_api.routes.webhooks import router as webhooks_router

__all__ = [
    "checkout_session_router",
    "payment_intent_router",
    "rotation_router",
    "webhooks_router",
]
