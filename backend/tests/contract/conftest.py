"""Fixtures for API contract tests.

The app runs against moto DynamoDB. Services are wired with a fixed clock
(window 7: with two accounts the rotation is on Account B), a mocked
StripeClient and a mocked Shopify order materializer.
"""

from collections.abc import Generator
from types import SimpleNamespace
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from checkout_core.models import OrderResult

FIXED_NOW_MS = 7 * 6 * 60 * 60 * 1000 + 60_000


@pytest.fixture
def stripe_client() -> Generator[MagicMock, None, None]:
    """StripeClient mock shared by every account."""
    with patch("checkout_core.services.stripe_service.StripeClient") as client_cls:
        client = MagicMock()
        client.customers.list.return_value = SimpleNamespace(data=[])
        client.customers.create.return_value = SimpleNamespace(id="cus_contract")
        client.payment_intents.create.return_value = SimpleNamespace(
            id="pi_contract",
            client_secret="pi_contract_secret_abc",
            amount=5090,
        )
        client.coupons.create.return_value = SimpleNamespace(id="coupon_contract")
        client.checkout.sessions.create.return_value = SimpleNamespace(
            id="cs_contract", client_secret="cs_contract_secret_abc"
        )
        client_cls.return_value = client
        yield client


@pytest.fixture
def order_materializer() -> MagicMock:
    materializer = MagicMock()
    materializer.create_order.return_value = OrderResult(order_id="5001", order_number="#1042")
    return materializer


@pytest.fixture
def client(
    config_store: Any,
    session_store: Any,
    transaction_store: Any,
    stripe_client: MagicMock,
    order_materializer: MagicMock,
) -> Generator[TestClient, None, None]:
    """TestClient with services bound to moto tables and a fixed clock."""
    from checkout_api.dependencies import (
        get_account_rotator,
        get_checkout_session_service,
        get_payment_intent_service,
        get_reporting_service,
        get_webhook_handler,
    )
    from checkout_api.main import app
    from checkout_core.config import get_settings
    from checkout_core.services import (
        AccountRotator,
        CheckoutSessionService,
        PaymentIntentService,
        ReportingService,
        StripeClientRegistry,
        WebhookHandler,
    )

    rotator = AccountRotator(config_store, StripeClientRegistry(), clock=lambda: FIXED_NOW_MS)
    payment_intents = PaymentIntentService(session_store, rotator, get_settings())
    checkout_sessions = CheckoutSessionService(
        session_store, config_store, rotator, get_settings()
    )
    webhooks = WebhookHandler(
        config_store, session_store, transaction_store, order_materializer, MagicMock()
    )
    reporting = ReportingService(config_store, transaction_store, rotator)

    app.dependency_overrides[get_account_rotator] = lambda: rotator
    app.dependency_overrides[get_payment_intent_service] = lambda: payment_intents
    app.dependency_overrides[get_checkout_session_service] = lambda: checkout_sessions
    app.dependency_overrides[get_webhook_handler] = lambda: webhooks
    app.dependency_overrides[get_reporting_service] = lambda: reporting

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
