"""Result models returned by the checkout services."""

from pydantic import BaseModel, ConfigDict, Field

from .enums import WebhookResult


class PaymentIntentResult(BaseModel):
    """What the checkout page needs to confirm a payment.

    The publishable key always belongs to the account whose secret key
    created the intent; confirming with any other key fails.
    """

    model_config = ConfigDict(strict=True)

    payment_intent_id: str
    client_secret: str
    publishable_key: str
    account_label: str


class OrderResult(BaseModel):
    """Order created by the storefront for a paid session."""

    order_id: str
    order_number: str | None = None


class WebhookOutcome(BaseModel):
    """Outcome of one authenticated webhook delivery."""

    event_id: str | None = None
    event_type: str | None = None
    account_label: str | None = Field(
        default=None, description="Account whose signing secret verified the event"
    )
    session_id: str | None = None
    result: WebhookResult
    message: str | None = None
    order_id: str | None = None


class CheckoutSessionResult(BaseModel):
    """A hosted checkout session created on the rotated account."""

    checkout_session_id: str
    client_secret: str
    account_label: str


class CheckoutSessionStatus(BaseModel):
    """State of a hosted checkout session, read from the account that owns it."""

    checkout_session_id: str
    status: str | None = None
    payment_status: str | None = None
    customer_email: str | None = None
    cart_session_id: str | None = None
    account_label: str
