"""FastAPI dependency injection providers for checkout services.

Each provider is wrapped in @lru_cache so a warm process (or Lambda
container) builds its services once. Merchant configuration is NOT cached:
the stores read the config document on every call, so account changes take
effect on the next request.

Service Dependency Graph:
    DynamoDBService (singleton via get_dynamodb_service)
        ├── ConfigStore
        │       ├── AccountRotator (+ StripeClientRegistry)
        │       │       ├── PaymentIntentService (+ SessionStore)
        │       │       ├── CheckoutSessionService (+ SessionStore)
        │       │       └── ReportingService (+ TransactionStore)
        │       ├── ShopifyOrderMaterializer
        │       └── ShopifyCartClearer
        └── WebhookHandler (ConfigStore, SessionStore, TransactionStore,
                            ShopifyOrderMaterializer, ShopifyCartClearer)

Testing:
    Use reset_services() to clear cached instances between tests.
"""

from functools import lru_cache

from checkout_core.config import get_settings
from checkout_core.services import (
    AccountRotator,
    CheckoutSessionService,
    PaymentIntentService,
    ReportingService,
    ShopifyCartClearer,
    ShopifyOrderMaterializer,
    StripeClientRegistry,
    WebhookHandler,
)
from checkout_core.storage import (
    ConfigStore,
    SessionStore,
    TransactionStore,
    get_dynamodb_service,
)


@lru_cache
def get_config_store() -> ConfigStore:
    return ConfigStore(get_dynamodb_service(), max_accounts=get_settings().max_accounts)


@lru_cache
def get_session_store() -> SessionStore:
    return SessionStore(get_dynamodb_service())


@lru_cache
def get_transaction_store() -> TransactionStore:
    return TransactionStore(get_dynamodb_service())


@lru_cache
def get_stripe_clients() -> StripeClientRegistry:
    """Per-account Stripe clients, rebuilt when a secret key changes."""
    return StripeClientRegistry(timeout_seconds=get_settings().stripe_timeout_seconds)


@lru_cache
def get_account_rotator() -> AccountRotator:
    return AccountRotator(get_config_store(), get_stripe_clients())


@lru_cache
def get_payment_intent_service() -> PaymentIntentService:
    """Get cached PaymentIntentService instance.

    Returns:
        PaymentIntentService bound to the session store, rotator and settings.
    """
    return PaymentIntentService(
        sessions=get_session_store(),
        rotator=get_account_rotator(),
        settings=get_settings(),
    )


@lru_cache
def get_checkout_session_service() -> CheckoutSessionService:
    return CheckoutSessionService(
        sessions=get_session_store(),
        config_store=get_config_store(),
        rotator=get_account_rotator(),
        settings=get_settings(),
    )


@lru_cache
def get_order_materializer() -> ShopifyOrderMaterializer:
    return ShopifyOrderMaterializer(
        get_config_store(), timeout_seconds=get_settings().http_timeout_seconds
    )


@lru_cache
def get_cart_clearer() -> ShopifyCartClearer:
    return ShopifyCartClearer(
        get_config_store(), timeout_seconds=get_settings().http_timeout_seconds
    )


@lru_cache
def get_webhook_handler() -> WebhookHandler:
    """Get cached WebhookHandler instance.

    Returns:
        WebhookHandler wired to the stores and Shopify adapters.
    """
    return WebhookHandler(
        config_store=get_config_store(),
        sessions=get_session_store(),
        transactions=get_transaction_store(),
        materializer=get_order_materializer(),
        cart_clearer=get_cart_clearer(),
        tolerance_seconds=get_settings().webhook_tolerance_seconds,
    )


@lru_cache
def get_reporting_service() -> ReportingService:
    return ReportingService(
        get_config_store(),
        get_transaction_store(),
        get_account_rotator(),
    )


def reset_services() -> None:
    """Clear all cached service instances.

    Call this in test fixtures to ensure clean state between tests.
    Also resets the settings and the underlying DynamoDB singleton.

    Example:
        @pytest.fixture(autouse=True)
        def reset_state():
            yield
            reset_services()
    """
    from checkout_core.storage import reset_dynamodb_service

    get_config_store.cache_clear()
    get_session_store.cache_clear()
    get_transaction_store.cache_clear()
    get_stripe_clients.cache_clear()
    get_account_rotator.cache_clear()
    get_payment_intent_service.cache_clear()
    get_checkout_session_service.cache_clear()
    get_order_materializer.cache_clear()
    get_cart_clearer.cache_clear()
    get_webhook_handler.cache_clear()
    get_reporting_service.cache_clear()

    get_settings.cache_clear()
    reset_dynamodb_service()
