"""API-specific request/response models.

Domain models (StripeAccount, CartSession, etc.) are in checkout_core.models
and are reused here where appropriate. Response bodies use camelCase keys.

Modules:
- payment_intent: Payment intent request/response
- checkout_session: Hosted checkout session request/response
- webhooks: Webhook acknowledgement
- rotation: Rotation status and admin payment stats
"""

__all__: list[str] = []
