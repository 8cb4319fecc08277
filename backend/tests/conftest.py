"""Pytest configuration and fixtures for the checkout backend tests.

This module provides reusable fixtures for testing:
- DynamoDB mocking with moto (config, cart-sessions, transactions tables)
- Store instances bound to the mocked tables
- Stripe account and cart session factories
- Real Stripe-style webhook signatures
"""

import os
import time
from collections.abc import Callable, Generator
from typing import Any

import boto3
import pytest
from moto import mock_aws

from tests.helpers import create_stripe_signature

# === Environment Setup ===

# Set environment variables for testing before imports
os.environ.setdefault("AWS_DEFAULT_REGION", "eu-west-1")
os.environ["DYNAMODB_TABLE_PREFIX"] = "test-checkout"
os.environ["ADMIN_SECRET_KEY"] = "test-admin-key"

if not os.environ.get("AWS_PROFILE") and not os.environ.get("AWS_ACCESS_KEY_ID"):
    os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
    os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")

TABLE_PREFIX = "test-checkout"
REGION = "eu-west-1"


# === Singleton Reset ===


@pytest.fixture(autouse=True)
def reset_singletons() -> Generator[None, None, None]:
    """Reset settings, service providers and the DynamoDB singleton.

    Tests using mock_aws then get fresh services inside the mock context
    rather than instances built in a previous test.
    """
    from checkout_api.dependencies import reset_services

    reset_services()
    yield
    reset_services()


# === DynamoDB Fixtures ===


@pytest.fixture
def aws_credentials() -> None:
    """Mocked AWS Credentials for moto."""
    if not os.environ.get("AWS_PROFILE"):
        os.environ["AWS_ACCESS_KEY_ID"] = "testing"
        os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
        os.environ["AWS_SECURITY_TOKEN"] = "testing"
        os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = REGION


@pytest.fixture
def dynamodb_tables(aws_credentials: None) -> Generator[Any, None, None]:
    """Create the checkout tables in a mocked DynamoDB and yield the resource."""
    with mock_aws():
        client = boto3.client("dynamodb", region_name=REGION)

        client.create_table(
            TableName=f"{TABLE_PREFIX}-config",
            KeySchema=[{"AttributeName": "config_id", "KeyType": "HASH"}],
            AttributeDefinitions=[{"AttributeName": "config_id", "AttributeType": "S"}],
            BillingMode="PAY_PER_REQUEST",
        )
        client.create_table(
            TableName=f"{TABLE_PREFIX}-cart-sessions",
            KeySchema=[{"AttributeName": "session_id", "KeyType": "HASH"}],
            AttributeDefinitions=[{"AttributeName": "session_id", "AttributeType": "S"}],
            BillingMode="PAY_PER_REQUEST",
        )
        client.create_table(
            TableName=f"{TABLE_PREFIX}-transactions",
            KeySchema=[{"AttributeName": "transaction_id", "KeyType": "HASH"}],
            AttributeDefinitions=[
                {"AttributeName": "transaction_id", "AttributeType": "S"},
                {"AttributeName": "date", "AttributeType": "S"},
                {"AttributeName": "created_timestamp", "AttributeType": "N"},
            ],
            GlobalSecondaryIndexes=[
                {
                    "IndexName": "date-index",
                    "KeySchema": [
                        {"AttributeName": "date", "KeyType": "HASH"},
                        {"AttributeName": "created_timestamp", "KeyType": "RANGE"},
                    ],
                    "Projection": {"ProjectionType": "ALL"},
                },
            ],
            BillingMode="PAY_PER_REQUEST",
        )

        yield boto3.resource("dynamodb", region_name=REGION)


@pytest.fixture
def db(dynamodb_tables: Any) -> Any:
    from checkout_core.storage import DynamoDBService

    return DynamoDBService(TABLE_PREFIX)


@pytest.fixture
def config_store(db: Any) -> Any:
    from checkout_core.storage import ConfigStore

    return ConfigStore(db)


@pytest.fixture
def session_store(db: Any) -> Any:
    from checkout_core.storage import SessionStore

    return SessionStore(db)


@pytest.fixture
def transaction_store(db: Any) -> Any:
    from checkout_core.storage import TransactionStore

    return TransactionStore(db)


@pytest.fixture
def transactions_in_db(dynamodb_tables: Any) -> Callable[[], list[dict[str, Any]]]:
    """Return a callable listing every stored transaction row."""
    table = dynamodb_tables.Table(f"{TABLE_PREFIX}-transactions")
    return lambda: table.scan()["Items"]


@pytest.fixture
def stored_session(dynamodb_tables: Any) -> Callable[[str], dict[str, Any] | None]:
    """Return a callable reading a raw cart session item."""
    table = dynamodb_tables.Table(f"{TABLE_PREFIX}-cart-sessions")
    return lambda session_id: table.get_item(Key={"session_id": session_id}).get("Item")


# === Sample Data Fixtures ===


def _account(label: str, order: int, **overrides: Any) -> dict[str, Any]:
    slug = label.lower().replace(" ", "_")
    account = {
        "label": label,
        "secret_key": f"sk_test_{slug}_secret",
        "publishable_key": f"pk_test_{slug}_publishable",
        "webhook_secret": f"whsec_{slug}_signing",
        "active": True,
        "order": order,
        "merchant_site": f"https://{slug}.example.com",
        "product_titles": [],
    }
    account.update(overrides)
    return account


@pytest.fixture
def make_account() -> Callable[..., dict[str, Any]]:
    """Factory for Stripe account dicts (active, fully credentialed)."""
    return _account


@pytest.fixture
def two_accounts() -> list[dict[str, Any]]:
    return [_account("Account A", 0), _account("Account B", 1)]


@pytest.fixture
def seed_config(config_store: Any) -> Callable[..., None]:
    """Store the global config document with the given accounts."""

    def _seed(accounts: list[dict[str, Any]], **fields: Any) -> None:
        config_store.write({"accounts": accounts, "default_currency": "eur", **fields})

    return _seed


@pytest.fixture
def seed_session(dynamodb_tables: Any) -> Callable[..., dict[str, Any]]:
    """Put a cart session item; keyword arguments override the defaults."""
    table = dynamodb_tables.Table(f"{TABLE_PREFIX}-cart-sessions")

    def _seed(session_id: str = "sess_test_001", **fields: Any) -> dict[str, Any]:
        item: dict[str, Any] = {
            "session_id": session_id,
            "currency": "EUR",
            "cart_id": "gid://shopify/Cart/abc123",
            "order_number": "#1042",
            "items": [
                {
                    "variant_id": "gid://shopify/ProductVariant/4411",
                    "product_id": "gid://shopify/Product/90",
                    "title": "Linen Shirt",
                    "quantity": 2,
                    "price_cents": 2500,
                    "line_price_cents": 5000,
                }
            ],
            "subtotal_cents": 5000,
            "discount_cents": 500,
            "customer": {
                "full_name": "Mario Rossi",
                "email": "mario@example.com",
                "address1": "Via Roma 1",
                "city": "Milano",
                "postal_code": "20121",
                "country_code": "IT",
            },
        }
        item.update(fields)
        table.put_item(Item=item)
        return item

    return _seed


# === Webhook Signatures ===


@pytest.fixture
def sign() -> Callable[..., str]:
    return create_stripe_signature


@pytest.fixture
def payment_succeeded_event() -> Callable[..., dict[str, Any]]:
    """Factory for payment_intent.succeeded events."""

    def _event(
        session_id: str | None = "sess_test_001",
        event_id: str = "evt_1PaymentSucceeded",
        amount: int = 5090,
    ) -> dict[str, Any]:
        metadata = {"session_id": session_id} if session_id else {}
        return {
            "id": event_id,
            "type": "payment_intent.succeeded",
            "created": int(time.time()),
            "data": {
                "object": {
                    "id": "pi_3TestIntent",
                    "object": "payment_intent",
                    "amount": amount,
                    "amount_received": amount,
                    "currency": "eur",
                    "receipt_email": "mario@example.com",
                    "metadata": metadata,
                }
            },
        }

    return _event
