"""Pydantic models for the rotating Stripe checkout."""

from .account import (
    MAX_PRODUCT_TITLES,
    MerchantConfig,
    RotationStatus,
    ShopifySettings,
    StripeAccount,
)
from .enums import PaymentStatus, ThreeDSecurePolicy, WebhookResult
from .errors import (
    ERROR_MESSAGES,
    ERROR_RECOVERY,
    CheckoutError,
    ErrorCode,
    ErrorResponse,
)
from .reporting import AccountDailyStats, DailyReport
from .results import (
    CheckoutSessionResult,
    CheckoutSessionStatus,
    OrderResult,
    PaymentIntentResult,
    WebhookOutcome,
)
from .session import CartItem, CartSession, CustomerDetails
from .transaction import TransactionRecord

__all__ = [
    # Enums
    "PaymentStatus",
    "ThreeDSecurePolicy",
    "WebhookResult",
    # Configuration
    "MAX_PRODUCT_TITLES",
    "MerchantConfig",
    "RotationStatus",
    "ShopifySettings",
    "StripeAccount",
    # Sessions
    "CartItem",
    "CartSession",
    "CustomerDetails",
    # Records and results
    "AccountDailyStats",
    "CheckoutSessionResult",
    "CheckoutSessionStatus",
    "DailyReport",
    "OrderResult",
    "PaymentIntentResult",
    "TransactionRecord",
    "WebhookOutcome",
    # Errors
    "CheckoutError",
    "ErrorCode",
    "ErrorResponse",
    "ERROR_MESSAGES",
    "ERROR_RECOVERY",
]
