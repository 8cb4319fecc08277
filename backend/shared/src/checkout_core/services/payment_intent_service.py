"""Payment intent issuance against the currently rotated Stripe account.

Given a cart session and the shopper's details, creates a confirmable
PaymentIntent on the active account and records on the session everything
the webhook needs to reconcile the payment with an order later.
"""

import datetime as dt
import random
import re

from checkout_core.config import MINIMUM_AMOUNT_CENTS, CheckoutSettings
from checkout_core.models import (
    CartSession,
    CheckoutError,
    CustomerDetails,
    ErrorCode,
    PaymentIntentResult,
    PaymentStatus,
    StripeAccount,
)
from checkout_core.storage import SessionStore
from checkout_core.utils.logging import get_logger, log_payment_operation, mask_key

from .account_rotation import AccountRotator, ActiveAccount, Defer
from .stripe_service import StripeServiceError

logger = get_logger(__name__)

STATEMENT_DESCRIPTOR_SUFFIX_MAX = 22
_DESCRIPTOR_LABEL_MAX = 18
_DESCRIPTOR_DISALLOWED = re.compile(r"[^A-Za-z0-9 ]")


def pick_decoy_title(
    account: StripeAccount,
    rng: random.Random,
    default: str = "Order",
) -> str:
    """Pick one of the account's decoy product titles uniformly at random.

    Only diversifies what the payment metadata shows; no business meaning.
    """
    titles = [t.strip() for t in account.product_titles if t and t.strip()]
    if not titles:
        return default
    return rng.choice(titles)


def build_statement_descriptor_suffix(label: str) -> str:
    """Derive a Stripe statement descriptor suffix from an account label.

    Letters, digits and spaces only; label capped at 18 characters, then
    " ORDER", the whole capped at Stripe's 22 characters.
    """
    cleaned = _DESCRIPTOR_DISALLOWED.sub("", label)[:_DESCRIPTOR_LABEL_MAX]
    return f"{cleaned} ORDER"[:STATEMENT_DESCRIPTOR_SUFFIX_MAX].strip()


class PaymentIntentService:
    """Creates PaymentIntents for cart sessions."""

    def __init__(
        self,
        sessions: SessionStore,
        rotator: AccountRotator,
        settings: CheckoutSettings,
        rng: random.Random | None = None,
    ) -> None:
        self.sessions = sessions
        self.rotator = rotator
        self.settings = settings
        self.rng = rng or random.Random()

    def _validate_request(self, session_id: str | None, amount_cents: object) -> tuple[str, int]:
        """Check presence and range; returns (session_id, amount_cents)."""
        if not session_id:
            raise CheckoutError(ErrorCode.MISSING_SESSION_ID)
        if (
            not isinstance(amount_cents, int)
            or isinstance(amount_cents, bool)
            or amount_cents < MINIMUM_AMOUNT_CENTS
        ):
            raise CheckoutError(
                ErrorCode.INVALID_AMOUNT,
                details={"minimum_cents": str(MINIMUM_AMOUNT_CENTS)},
            )
        return session_id, amount_cents

    def _resolve_customer_id(
        self,
        session: CartSession,
        customer: CustomerDetails,
        active: ActiveAccount,
    ) -> str | None:
        """Customer ID on the active account, or None.

        A customer ID stored on the session is only reused if it was created
        under the same account (customer IDs are account-scoped) for the same
        email. Lookup or creation failures degrade to an intent without a
        bound customer.
        """
        stored_email = session.customer.email if session.customer else ""
        if (
            session.stripe_customer_id
            and session.stripe_account_used == active.label
            and stored_email.strip().lower() == customer.email.strip().lower()
        ):
            return session.stripe_customer_id
        if not customer.email:
            return None

        address = None
        if customer.address1:
            address = {
                "line1": customer.address1,
                "line2": customer.address2,
                "city": customer.city,
                "postal_code": customer.postal_code,
                "state": customer.province,
                "country": customer.country_code,
            }
            address = {k: v for k, v in address.items() if v}

        try:
            customer_id, _ = active.stripe.find_or_create_customer(
                email=customer.email,
                name=customer.display_name or None,
                phone=customer.phone or None,
                address=address,
                metadata={
                    "merchant_site": active.account.merchant_site,
                    "session_id": session.session_id,
                    "stripe_account": active.label,
                },
            )
            return customer_id
        except StripeServiceError as e:
            log_payment_operation(
                logger,
                "resolve_customer",
                session_id=session.session_id,
                account_label=active.label,
                error=f"continuing without customer: {e}",
            )
            return None

    def build_intent_params(
        self,
        *,
        session: CartSession,
        amount_cents: int,
        currency: str,
        customer: CustomerDetails,
        customer_id: str | None,
        account: StripeAccount,
        now: dt.datetime,
    ) -> dict:
        """PaymentIntent create parameters for a session."""
        full_name = customer.display_name
        order_ref = session.order_number or session.session_id
        decoy_title = pick_decoy_title(account, self.rng, self.settings.default_product_title)

        params: dict = {
            "amount": amount_cents,
            "currency": currency,
            "capture_method": "automatic",
            "payment_method_types": ["card"],
            "payment_method_options": {
                "card": {"request_three_d_secure": self.settings.three_d_secure.value},
            },
            "description": f"{order_ref} | {full_name or 'Guest'}",
            "statement_descriptor_suffix": build_statement_descriptor_suffix(account.label),
            "metadata": {
                "session_id": session.session_id,
                "merchant_site": account.merchant_site,
                "customer_email": customer.email,
                "customer_name": full_name,
                "customer_phone": customer.phone,
                "shipping_address": customer.address1,
                "shipping_city": customer.city,
                "shipping_postal_code": customer.postal_code,
                "shipping_country": customer.country_code,
                "order_id": order_ref,
                "first_item_title": decoy_title,
                "stripe_account": account.label,
                "stripe_account_order": str(account.order),
                "checkout_type": "custom",
                "created_at": now.isoformat(),
            },
        }
        if customer_id:
            params["customer"] = customer_id
        if customer.email:
            params["receipt_email"] = customer.email
        if customer.has_shipping_address:
            address = {
                "line1": customer.address1,
                "city": customer.city,
                "postal_code": customer.postal_code,
                "country": customer.country_code,
            }
            if customer.address2:
                address["line2"] = customer.address2
            if customer.province:
                address["state"] = customer.province
            params["shipping"] = {"name": full_name, "address": address}
            if customer.phone:
                params["shipping"]["phone"] = customer.phone
        return params

    def create_payment_intent(
        self,
        *,
        session_id: str | None,
        amount_cents: object,
        customer: CustomerDetails | None = None,
        defer: Defer | None = None,
    ) -> PaymentIntentResult:
        """Create a PaymentIntent for a cart session on the active account.

        Args:
            session_id: Cart session ID (must exist)
            amount_cents: Amount in minor units; at least 50 and equal to the
                session's subtotal - discount + shipping
            customer: Shopper details; the session's stored details if None
            defer: Scheduler for best-effort background work

        Returns:
            PaymentIntentResult with client secret and matching publishable key

        Raises:
            CheckoutError: On validation failure, unknown session, missing
                account configuration or Stripe API failure.
        """
        session_id, amount_cents = self._validate_request(session_id, amount_cents)

        session = self.sessions.get(session_id)
        if session is None:
            raise CheckoutError(ErrorCode.SESSION_NOT_FOUND, details={"session_id": session_id})

        shipping_cents = (
            session.shipping_cents
            if session.shipping_cents is not None
            else self.settings.flat_shipping_cents
        )
        expected = session.expected_total_cents(self.settings.flat_shipping_cents)
        if amount_cents != expected:
            raise CheckoutError(
                ErrorCode.AMOUNT_MISMATCH,
                details={"expected_cents": str(expected), "received_cents": str(amount_cents)},
            )

        customer = customer or session.customer or CustomerDetails()
        active = self.rotator.get_active_account(defer=defer)
        currency = (session.currency or active.default_currency or self.settings.default_currency).lower()

        customer_id = self._resolve_customer_id(session, customer, active)
        now = dt.datetime.now(dt.UTC)
        params = self.build_intent_params(
            session=session,
            amount_cents=amount_cents,
            currency=currency,
            customer=customer,
            customer_id=customer_id,
            account=active.account,
            now=now,
        )

        try:
            intent = active.stripe.create_payment_intent(params)
        except StripeServiceError as e:
            raise CheckoutError(
                ErrorCode.STRIPE_API_ERROR,
                details={"stripe_error_code": e.stripe_error_code or "unknown"},
            ) from e

        fields: dict = {
            "customer": customer.model_dump(),
            "payment_intent_id": intent["id"],
            "items": [item.model_dump() for item in session.items],
            "subtotal_cents": session.subtotal_cents,
            "discount_cents": session.discount_cents,
            "shipping_cents": shipping_cents,
            "total_cents": amount_cents,
            "currency": currency.upper(),
            "stripe_account_used": active.label,
            "payment_status": PaymentStatus.PENDING.value,
            "updated_at": now.isoformat(),
        }
        if customer_id:
            fields["stripe_customer_id"] = customer_id
        if not self.sessions.update(session.session_id, fields):
            logger.warning("Session %s vanished before intent details were saved", session_id)

        log_payment_operation(
            logger,
            "create_payment_intent",
            session_id=session.session_id,
            account_label=active.label,
            amount_cents=amount_cents,
            payment_intent_id=intent["id"],
            publishable_key=mask_key(active.account.publishable_key),
        )

        return PaymentIntentResult(
            payment_intent_id=intent["id"],
            client_secret=intent["client_secret"],
            publishable_key=active.account.publishable_key,
            account_label=active.label,
        )
