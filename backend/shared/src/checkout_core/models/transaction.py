"""Transaction record model for reporting."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class TransactionRecord(BaseModel):
    """One successfully processed payment.

    Append-only, denormalized for per-account reporting. Amounts are in
    minor units.
    """

    model_config = ConfigDict(extra="ignore")

    transaction_id: str = Field(..., description="Auto-generated record id")
    payment_intent_id: str = Field(..., description="Stripe PaymentIntent ID (pi_xxx)")
    stripe_account: str = Field(..., description="Label of the account that was paid")
    amount: int = Field(..., ge=0)
    currency: str
    status: str = Field(default="succeeded")
    email: str = ""
    customer_name: str = ""
    order_id: str | None = None
    order_number: str | None = None
    session_id: str
    date: str = Field(..., description="UTC date (YYYY-MM-DD) for daily reporting")
    created_timestamp: int = Field(..., description="Epoch millis")
    created_at: datetime
