"""API models for the hosted checkout session endpoints."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CheckoutSessionRequest(BaseModel):
    """Request to open a hosted checkout session for a cart."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={"examples": [{"sessionId": "cs_9f1c2e"}]},
    )

    session_id: str | None = Field(default=None, description="Cart session ID")


class CheckoutSessionResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    client_secret: str = Field(..., description="Checkout Session client secret")
    checkout_session_id: str
    account_used: str = Field(..., description="Label of the account that created the session")


class CheckoutSessionStatusResponse(BaseModel):
    """Status of a hosted checkout session for the return page."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    status: str | None = None
    payment_status: str | None = None
    customer_email: str | None = None
    cart_session_id: str | None = None
    account_used: str
