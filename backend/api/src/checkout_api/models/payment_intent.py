"""API models for the payment intent endpoint.

The checkout page speaks camelCase; both camelCase and snake_case keys are
accepted on input.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from checkout_core.models import CustomerDetails


class PaymentIntentRequest(BaseModel):
    """Request to create a PaymentIntent for a cart session.

    Presence and range checks are done by the service so that a missing
    session id or a sub-minimum amount get their own error codes.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {
                    "sessionId": "cs_9f1c2e",
                    "amountCents": 5090,
                    "customer": {
                        "fullName": "Mario Rossi",
                        "email": "mario@example.com",
                        "address1": "Via Roma 1",
                        "city": "Milano",
                        "postalCode": "20121",
                        "countryCode": "IT",
                    },
                }
            ]
        },
    )

    session_id: str | None = Field(default=None, description="Cart session ID")
    amount_cents: int | None = Field(default=None, description="Amount in minor units")
    customer: CustomerDetails | None = None


class PaymentIntentResponse(BaseModel):
    """What the checkout page needs to mount Stripe Elements."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    client_secret: str = Field(..., description="PaymentIntent client secret")
    publishable_key: str = Field(
        ..., description="Publishable key of the account that created the intent"
    )
    account_used: str = Field(..., description="Label of the account that created the intent")
