"""Checkout services: rotation, payment intents, webhooks, storefront adapters."""

from .account_rotation import (
    LAST_USED_REFRESH_MILLIS,
    ROTATION_WINDOW_MILLIS,
    AccountRotator,
    ActiveAccount,
    eligible_accounts,
    next_rotation_at,
    select_account,
)
from .checkout_session_service import CheckoutSessionService
from .payment_intent_service import (
    PaymentIntentService,
    build_statement_descriptor_suffix,
    pick_decoy_title,
)
from .reporting import ReportingService
from .shopify_client import OrderRequest, ShopifyCartClearer, ShopifyOrderMaterializer
from .stripe_service import (
    StripeClientRegistry,
    StripeService,
    StripeServiceError,
    construct_webhook_event,
)
from .webhook_handler import AuthenticatedEvent, WebhookHandler

__all__ = [
    "LAST_USED_REFRESH_MILLIS",
    "ROTATION_WINDOW_MILLIS",
    "AccountRotator",
    "ActiveAccount",
    "eligible_accounts",
    "next_rotation_at",
    "select_account",
    "CheckoutSessionService",
    "PaymentIntentService",
    "build_statement_descriptor_suffix",
    "pick_decoy_title",
    "ReportingService",
    "OrderRequest",
    "ShopifyCartClearer",
    "ShopifyOrderMaterializer",
    "StripeClientRegistry",
    "StripeService",
    "StripeServiceError",
    "construct_webhook_event",
    "AuthenticatedEvent",
    "WebhookHandler",
]
