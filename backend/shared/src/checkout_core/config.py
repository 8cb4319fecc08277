"""Runtime settings read from environment variables.

Merchant credentials (Stripe accounts, Shopify tokens) are NOT settings:
they live in the global config document and are read per request through
ConfigStore. Settings only cover deployment-level knobs.
"""

from functools import lru_cache
from typing import Annotated

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from checkout_core.models.enums import ThreeDSecurePolicy

MAX_STRIPE_ACCOUNTS = 4
MINIMUM_AMOUNT_CENTS = 50


class CheckoutSettings(BaseSettings):
    """Deployment settings for the checkout backend."""

    model_config = SettingsConfigDict(
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    environment: str = "dev"
    table_prefix: str = Field(
        default="",
        validation_alias="DYNAMODB_TABLE_PREFIX",
        description="DynamoDB table name prefix; checkout-{environment} if unset",
    )
    default_currency: str = "eur"
    flat_shipping_cents: int = Field(
        default=590, ge=0, description="Shipping applied when a session records none"
    )
    three_d_secure: ThreeDSecurePolicy = ThreeDSecurePolicy.AUTOMATIC
    http_timeout_seconds: float = Field(default=5.0, gt=0)
    stripe_timeout_seconds: float = Field(default=8.0, gt=0)
    webhook_tolerance_seconds: int = Field(default=300, gt=0)
    admin_secret_key: str = ""
    default_product_title: str = "Order"
    max_accounts: int = MAX_STRIPE_ACCOUNTS
    app_url: str = Field(
        default="http://localhost:3000",
        description="Storefront base URL for checkout returns when no checkout domain is set",
    )
    cors_origins: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://127.0.0.1:3000"]
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: object) -> object:
        # CORS_ORIGINS=https://a.example,https://b.example
        if isinstance(value, str):
            return [o.strip() for o in value.split(",") if o.strip()]
        return value

    @model_validator(mode="after")
    def _default_table_prefix(self) -> "CheckoutSettings":
        if not self.table_prefix:
            self.table_prefix = f"checkout-{self.environment}"
        return self


@lru_cache(maxsize=1)
def get_settings() -> CheckoutSettings:
    """Get the process-wide settings (read once).

    Tests call `get_settings.cache_clear()` after patching the environment.
    """
    return CheckoutSettings()
