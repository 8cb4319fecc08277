"""Enumeration types for checkout data models."""

from enum import Enum


class PaymentStatus(str, Enum):
    """Payment status recorded on a cart session."""

    PENDING = "pending"
    PROCESSING = "processing"  # Fulfilment claimed by a webhook delivery
    PAID = "paid"
    PAID_UNFULFILLED = "paid_unfulfilled"  # Paid, but order creation failed


class WebhookResult(str, Enum):
    """Terminal outcome of a webhook delivery."""

    SUCCESS = "success"
    ALREADY_PROCESSED = "already_processed"
    IGNORED = "ignored"
    WARNING = "warning"
    ERROR = "error"


class ThreeDSecurePolicy(str, Enum):
    """Value sent as payment_method_options.card.request_three_d_secure."""

    AUTOMATIC = "automatic"
    ANY = "any"
