"""Cart session model.

A cart session is the document a shopper's checkout attempt lives in. It is
created by the storefront integration; the payment intent issuer and the
webhook dispatcher only add to it. All amounts are integer minor units.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .enums import PaymentStatus


class CartItem(BaseModel):
    """One cart line."""

    model_config = ConfigDict(extra="ignore")

    variant_id: str | None = Field(default=None, description="Storefront variant identifier")
    product_id: str | None = None
    title: str = ""
    variant_title: str | None = None
    quantity: int = Field(default=1, ge=0)
    price_cents: int = Field(default=0, ge=0, description="Unit price in minor units")
    line_price_cents: int = Field(default=0, ge=0, description="Line total in minor units")
    image: str | None = None


class CustomerDetails(BaseModel):
    """Shopper contact and shipping address.

    Accepts both camelCase (checkout form payload) and snake_case keys.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )

    full_name: str = ""
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    address1: str = ""
    address2: str = ""
    city: str = ""
    postal_code: str = ""
    province: str = ""
    country_code: str = "IT"

    @property
    def display_name(self) -> str:
        """Full name, falling back to first + last."""
        return self.full_name or f"{self.first_name} {self.last_name}".strip()

    @property
    def has_shipping_address(self) -> bool:
        """Enough address data for a Stripe shipping block."""
        return bool(self.display_name and self.address1 and self.city and self.postal_code)


class CartSession(BaseModel):
    """A persisted checkout session keyed by `session_id`."""

    model_config = ConfigDict(extra="ignore")

    session_id: str
    currency: str | None = None
    cart_id: str | None = Field(default=None, description="Storefront cart id for clearing")
    order_number: str | None = Field(default=None, description="Human order reference")
    items: list[CartItem] = Field(default_factory=list)
    subtotal_cents: int = Field(default=0, ge=0)
    discount_cents: int = Field(default=0, ge=0)
    shipping_cents: int | None = Field(default=None, ge=0)
    total_cents: int | None = Field(default=None, ge=0)
    customer: CustomerDetails | None = None

    payment_intent_id: str | None = None
    checkout_session_id: str | None = Field(
        default=None, description="Hosted checkout session (cs_...)"
    )
    stripe_customer_id: str | None = None
    stripe_account_used: str | None = None
    payment_status: PaymentStatus | None = None

    shopify_order_id: str | None = None
    shopify_order_number: str | None = None
    fulfillment_claimed_at: str | None = None
    fulfillment_event_id: str | None = None
    fulfillment_error: str | None = None
    processed_at: str | None = None
    updated_at: str | None = None

    def expected_total_cents(self, default_shipping_cents: int) -> int:
        """Amount payable: subtotal - discount + shipping."""
        shipping = (
            self.shipping_cents if self.shipping_cents is not None else default_shipping_cents
        )
        return self.subtotal_cents - self.discount_cents + shipping

    @property
    def is_fulfilled(self) -> bool:
        """True once an order has been linked to the session."""
        return bool(self.shopify_order_id)

