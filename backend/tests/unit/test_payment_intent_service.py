"""Unit tests for PaymentIntentService.

Sessions live in moto DynamoDB; the rotator returns a fixed account whose
StripeService is a MagicMock.

Test categories:
- Request validation (order and boundaries)
- Amount conservation
- Customer reuse and degradation
- Intent parameters and session persistence
- Decoy title and statement descriptor helpers
"""

import random
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from checkout_core.config import CheckoutSettings
from checkout_core.models import (
    CheckoutError,
    CustomerDetails,
    ErrorCode,
    StripeAccount,
    ThreeDSecurePolicy,
)
from checkout_core.services.account_rotation import ActiveAccount
from checkout_core.services.payment_intent_service import (
    PaymentIntentService,
    build_statement_descriptor_suffix,
    pick_decoy_title,
)
from checkout_core.services.stripe_service import StripeServiceError


@pytest.fixture
def account(make_account) -> StripeAccount:
    return StripeAccount.model_validate(
        make_account("Account B", 1, product_titles=["Desk Lamp", "Tote Bag"])
    )


@pytest.fixture
def stripe_mock() -> MagicMock:
    stripe = MagicMock()
    stripe.create_payment_intent.return_value = {
        "id": "pi_test_123",
        "client_secret": "pi_test_123_secret_xyz",
        "amount": 5090,
    }
    stripe.find_or_create_customer.return_value = ("cus_new_1", True)
    return stripe


@pytest.fixture
def rotator(account, stripe_mock) -> MagicMock:
    rotator = MagicMock()
    rotator.get_active_account.return_value = ActiveAccount(
        account=account,
        stripe=stripe_mock,
        slot_index=1,
        total_slots=2,
    )
    return rotator


@pytest.fixture
def settings() -> CheckoutSettings:
    return CheckoutSettings(table_prefix="test-checkout")


@pytest.fixture
def service(session_store, rotator, settings) -> PaymentIntentService:
    return PaymentIntentService(session_store, rotator, settings, rng=random.Random(7))


def _intent_params(stripe_mock: MagicMock) -> dict:
    return stripe_mock.create_payment_intent.call_args.args[0]


class TestValidation:

    @pytest.mark.parametrize("session_id", [None, ""])
    def test_missing_session_id(self, service, session_id):
        with pytest.raises(CheckoutError) as exc_info:
            service.create_payment_intent(session_id=session_id, amount_cents=5090)

        assert exc_info.value.code == ErrorCode.MISSING_SESSION_ID

    def test_missing_session_id_checked_before_amount(self, service):
        with pytest.raises(CheckoutError) as exc_info:
            service.create_payment_intent(session_id=None, amount_cents=0)

        assert exc_info.value.code == ErrorCode.MISSING_SESSION_ID

    @pytest.mark.parametrize("amount", [0, 1, 49, None, -100, "5090", 5090.0, True])
    def test_invalid_amount(self, service, seed_session, amount):
        seed_session()

        with pytest.raises(CheckoutError) as exc_info:
            service.create_payment_intent(session_id="sess_test_001", amount_cents=amount)

        assert exc_info.value.code == ErrorCode.INVALID_AMOUNT

    def test_minimum_amount_is_inclusive(self, service, seed_session, stripe_mock):
        seed_session(subtotal_cents=50, discount_cents=0, shipping_cents=0)

        result = service.create_payment_intent(session_id="sess_test_001", amount_cents=50)

        assert result.payment_intent_id == "pi_test_123"
        assert _intent_params(stripe_mock)["amount"] == 50

    def test_amount_checked_before_session_lookup(self, service, rotator):
        with pytest.raises(CheckoutError) as exc_info:
            service.create_payment_intent(session_id="sess_missing", amount_cents=49)

        assert exc_info.value.code == ErrorCode.INVALID_AMOUNT

    def test_unknown_session(self, service, dynamodb_tables, rotator):
        with pytest.raises(CheckoutError) as exc_info:
            service.create_payment_intent(session_id="sess_missing", amount_cents=5090)

        assert exc_info.value.code == ErrorCode.SESSION_NOT_FOUND
        rotator.get_active_account.assert_not_called()


class TestAmountConservation:

    def test_intent_amount_is_subtotal_minus_discount_plus_flat_shipping(
        self, service, seed_session, stripe_mock
    ):
        seed_session(subtotal_cents=5000, discount_cents=500)

        service.create_payment_intent(session_id="sess_test_001", amount_cents=5090)

        assert _intent_params(stripe_mock)["amount"] == 5090

    def test_recorded_shipping_overrides_flat_fee(self, service, seed_session, stripe_mock):
        seed_session(subtotal_cents=5000, discount_cents=500, shipping_cents=0)

        service.create_payment_intent(session_id="sess_test_001", amount_cents=4500)

        assert _intent_params(stripe_mock)["amount"] == 4500

    def test_mismatched_amount_rejected(self, service, seed_session, stripe_mock):
        seed_session(subtotal_cents=5000, discount_cents=500)

        with pytest.raises(CheckoutError) as exc_info:
            service.create_payment_intent(session_id="sess_test_001", amount_cents=5000)

        assert exc_info.value.code == ErrorCode.AMOUNT_MISMATCH
        assert exc_info.value.details == {"expected_cents": "5090", "received_cents": "5000"}
        stripe_mock.create_payment_intent.assert_not_called()


class TestCustomerHandling:

    def test_customer_created_on_active_account(self, service, seed_session, stripe_mock):
        seed_session()

        service.create_payment_intent(
            session_id="sess_test_001",
            amount_cents=5090,
            customer=CustomerDetails(full_name="Mario Rossi", email="mario@example.com"),
        )

        kwargs = stripe_mock.find_or_create_customer.call_args.kwargs
        assert kwargs["email"] == "mario@example.com"
        assert kwargs["metadata"]["stripe_account"] == "Account B"
        assert _intent_params(stripe_mock)["customer"] == "cus_new_1"

    def test_customer_failure_does_not_fail_intent(
        self, service, seed_session, stripe_mock, stored_session
    ):
        seed_session()
        stripe_mock.find_or_create_customer.side_effect = StripeServiceError("rate limited")

        result = service.create_payment_intent(
            session_id="sess_test_001",
            amount_cents=5090,
            customer=CustomerDetails(email="mario@example.com"),
        )

        assert result.client_secret == "pi_test_123_secret_xyz"
        assert "customer" not in _intent_params(stripe_mock)
        assert "stripe_customer_id" not in stored_session("sess_test_001")

    def test_stored_customer_reused_on_same_account(self, service, seed_session, stripe_mock):
        seed_session(stripe_customer_id="cus_existing", stripe_account_used="Account B")

        service.create_payment_intent(
            session_id="sess_test_001",
            amount_cents=5090,
            customer=CustomerDetails(email="mario@example.com"),
        )

        stripe_mock.find_or_create_customer.assert_not_called()
        assert _intent_params(stripe_mock)["customer"] == "cus_existing"

    def test_stored_customer_from_other_account_not_reused(
        self, service, seed_session, stripe_mock
    ):
        seed_session(stripe_customer_id="cus_existing", stripe_account_used="Account A")

        service.create_payment_intent(
            session_id="sess_test_001",
            amount_cents=5090,
            customer=CustomerDetails(email="mario@example.com"),
        )

        stripe_mock.find_or_create_customer.assert_called_once()
        assert _intent_params(stripe_mock)["customer"] == "cus_new_1"

    def test_stored_customer_not_reused_for_new_email(self, service, seed_session, stripe_mock):
        seed_session(stripe_customer_id="cus_existing", stripe_account_used="Account B")

        service.create_payment_intent(
            session_id="sess_test_001",
            amount_cents=5090,
            customer=CustomerDetails(email="giulia@example.com"),
        )

        assert stripe_mock.find_or_create_customer.call_args.kwargs["email"] == (
            "giulia@example.com"
        )
        params = _intent_params(stripe_mock)
        assert params["customer"] == "cus_new_1"
        assert params["receipt_email"] == "giulia@example.com"

    def test_stored_customer_reused_when_email_differs_only_in_case(
        self, service, seed_session, stripe_mock
    ):
        seed_session(stripe_customer_id="cus_existing", stripe_account_used="Account B")

        service.create_payment_intent(
            session_id="sess_test_001",
            amount_cents=5090,
            customer=CustomerDetails(email="Mario@Example.com"),
        )

        stripe_mock.find_or_create_customer.assert_not_called()
        assert _intent_params(stripe_mock)["customer"] == "cus_existing"

    def test_no_email_no_customer(self, service, seed_session, stripe_mock):
        seed_session(customer=None)

        service.create_payment_intent(session_id="sess_test_001", amount_cents=5090)

        stripe_mock.find_or_create_customer.assert_not_called()
        params = _intent_params(stripe_mock)
        assert "customer" not in params
        assert "receipt_email" not in params
        assert params["description"] == "#1042 | Guest"


class TestIntentCreation:

    def test_result_pairs_client_secret_with_same_account_key(
        self, service, seed_session, account
    ):
        seed_session()

        result = service.create_payment_intent(session_id="sess_test_001", amount_cents=5090)

        assert result.publishable_key == account.publishable_key
        assert result.account_label == "Account B"
        assert result.client_secret == "pi_test_123_secret_xyz"

    def test_intent_parameters(self, service, seed_session, stripe_mock):
        seed_session()
        customer = CustomerDetails.model_validate(
            {
                "fullName": "Mario Rossi",
                "email": "mario@example.com",
                "phone": "+39 333 1234567",
                "address1": "Via Roma 1",
                "city": "Milano",
                "postalCode": "20121",
                "countryCode": "IT",
            }
        )

        service.create_payment_intent(
            session_id="sess_test_001", amount_cents=5090, customer=customer
        )

        params = _intent_params(stripe_mock)
        assert params["currency"] == "eur"
        assert params["capture_method"] == "automatic"
        assert params["payment_method_types"] == ["card"]
        assert params["payment_method_options"] == {
            "card": {"request_three_d_secure": "automatic"}
        }
        assert params["description"] == "#1042 | Mario Rossi"
        assert params["receipt_email"] == "mario@example.com"
        assert params["statement_descriptor_suffix"] == "Account B ORDER"
        assert params["shipping"]["address"]["postal_code"] == "20121"
        assert params["shipping"]["phone"] == "+39 333 1234567"

        metadata = params["metadata"]
        assert metadata["session_id"] == "sess_test_001"
        assert metadata["stripe_account"] == "Account B"
        assert metadata["stripe_account_order"] == "1"
        assert metadata["checkout_type"] == "custom"
        assert metadata["order_id"] == "#1042"
        assert metadata["first_item_title"] in {"Desk Lamp", "Tote Bag"}

    def test_forced_three_d_secure(self, session_store, rotator, seed_session, stripe_mock):
        settings = CheckoutSettings(three_d_secure=ThreeDSecurePolicy.ANY)
        service = PaymentIntentService(session_store, rotator, settings)
        seed_session()

        service.create_payment_intent(session_id="sess_test_001", amount_cents=5090)

        assert _intent_params(stripe_mock)["payment_method_options"]["card"] == {
            "request_three_d_secure": "any"
        }

    def test_session_records_account_and_snapshot(
        self, service, seed_session, stored_session
    ):
        seed_session()

        service.create_payment_intent(
            session_id="sess_test_001",
            amount_cents=5090,
            customer=CustomerDetails(full_name="Mario Rossi", email="mario@example.com"),
        )

        item = stored_session("sess_test_001")
        assert item["stripe_account_used"] == "Account B"
        assert item["payment_intent_id"] == "pi_test_123"
        assert item["stripe_customer_id"] == "cus_new_1"
        assert item["total_cents"] == Decimal("5090")
        assert item["shipping_cents"] == Decimal("590")
        assert item["currency"] == "EUR"
        assert item["payment_status"] == "pending"
        assert item["customer"]["email"] == "mario@example.com"
        assert "updated_at" in item

    def test_stripe_failure_surfaces_as_api_error(
        self, service, seed_session, stripe_mock, stored_session
    ):
        seed_session()
        stripe_mock.create_payment_intent.side_effect = StripeServiceError(
            "card declined", stripe_error_code="card_declined"
        )

        with pytest.raises(CheckoutError) as exc_info:
            service.create_payment_intent(session_id="sess_test_001", amount_cents=5090)

        assert exc_info.value.code == ErrorCode.STRIPE_API_ERROR
        assert exc_info.value.details == {"stripe_error_code": "card_declined"}
        assert "payment_intent_id" not in stored_session("sess_test_001")

    def test_no_active_account_propagates(self, service, seed_session, rotator):
        seed_session()
        rotator.get_active_account.side_effect = CheckoutError(ErrorCode.NO_ACTIVE_ACCOUNT)

        with pytest.raises(CheckoutError) as exc_info:
            service.create_payment_intent(session_id="sess_test_001", amount_cents=5090)

        assert exc_info.value.code == ErrorCode.NO_ACTIVE_ACCOUNT

    def test_defer_is_passed_to_rotator(self, service, seed_session, rotator):
        seed_session()
        defer = MagicMock()

        service.create_payment_intent(session_id="sess_test_001", amount_cents=5090, defer=defer)

        rotator.get_active_account.assert_called_once_with(defer=defer)


class TestDecoyTitle:

    def test_seeded_random_source_is_deterministic(self, account):
        first = pick_decoy_title(account, random.Random(42))
        second = pick_decoy_title(account, random.Random(42))

        assert first == second
        assert first in account.product_titles

    def test_injected_choice_is_used(self, account):
        rng = MagicMock()
        rng.choice.side_effect = lambda titles: titles[-1]

        assert pick_decoy_title(account, rng) == "Tote Bag"

    def test_falls_back_to_default_without_titles(self, make_account):
        bare = StripeAccount.model_validate(make_account("Bare", 0))

        assert pick_decoy_title(bare, random.Random(1), default="Order") == "Order"

    def test_blank_titles_ignored(self, make_account):
        blank = StripeAccount.model_validate(make_account("Blank", 0, product_titles=["", "  "]))

        assert pick_decoy_title(blank, random.Random(1), default="Item") == "Item"


class TestStatementDescriptorSuffix:

    @pytest.mark.parametrize(
        "label,expected",
        [
            ("Account B", "Account B ORDER"),
            ("Shop #1 (EU)!", "Shop 1 EU ORDER"),
            ("A Very Long Account Label Indeed", "A Very Long Accoun ORD"),
            ("!!!", "ORDER"),
        ],
    )
    def test_suffix(self, label, expected):
        suffix = build_statement_descriptor_suffix(label)

        assert suffix == expected
        assert len(suffix) <= 22
