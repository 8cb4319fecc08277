"""Merchant configuration models: Stripe accounts and Shopify settings."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

MAX_PRODUCT_TITLES = 10


class StripeAccount(BaseModel):
    """One credentialed Stripe account taking part in rotation.

    Only `last_used_at` is ever written by the checkout backend, and only
    as an observability hint.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    label: str = Field(..., min_length=1, description="Unique human identifier")
    secret_key: str = Field(default="", description="Stripe secret key (sk_...)")
    publishable_key: str = Field(default="", description="Stripe publishable key (pk_...)")
    webhook_secret: str = Field(default="", description="Webhook signing secret (whsec_...)")
    active: bool = Field(default=False)
    order: int = Field(default=0, description="Position in the rotation sequence")
    last_used_at: int | None = Field(
        default=None, description="Epoch millis of the last recorded selection"
    )
    merchant_site: str = Field(default="", description="Merchant site URL used in metadata")
    product_titles: list[str] = Field(
        default_factory=list,
        max_length=MAX_PRODUCT_TITLES,
        description="Decoy product titles for payment metadata",
    )

    @property
    def is_rotation_eligible(self) -> bool:
        """Active and carrying both API keys."""
        return bool(self.active and self.secret_key and self.publishable_key)

    @property
    def can_verify_webhooks(self) -> bool:
        """Rotation eligible and carrying a webhook signing secret."""
        return self.is_rotation_eligible and bool(self.webhook_secret)


class ShopifySettings(BaseModel):
    """Storefront credentials used by the order and cart adapters."""

    shop_domain: str = ""
    admin_token: str = ""
    storefront_token: str = ""
    api_version: str = "2024-10"


class MerchantConfig(BaseModel):
    """The single global configuration document."""

    accounts: list[StripeAccount] = Field(default_factory=list)
    default_currency: str = Field(default="eur")
    checkout_domain: str = Field(default="")
    shopify: ShopifySettings = Field(default_factory=ShopifySettings)


class RotationStatus(BaseModel):
    """Read-only view of the rotation for dashboards."""

    model_config = ConfigDict(strict=True)

    account_label: str
    slot_number: int = Field(..., ge=1, description="1-based slot of the current account")
    total_slots: int = Field(..., ge=1)
    next_rotation: datetime
