"""Hosted (custom UI) Checkout Sessions on the rotated Stripe account.

An alternative to the PaymentIntent flow: the cart is turned into a
Checkout Session on the current account, and the session's status is later
read back through the account that created it. The account label stored on
the cart session is what ties the two requests together, since rotation may
have moved on in between.
"""

import datetime as dt
import logging

from checkout_core.config import CheckoutSettings
from checkout_core.models import (
    CartSession,
    CheckoutError,
    CheckoutSessionResult,
    CheckoutSessionStatus,
    ErrorCode,
    PaymentStatus,
    StripeAccount,
)
from checkout_core.storage import ConfigStore, SessionStore
from checkout_core.utils.logging import log_payment_operation

from .account_rotation import AccountRotator, Defer, eligible_accounts
from .stripe_service import StripeServiceError

logger = logging.getLogger(__name__)

SHIPPING_LINE_NAME = "Spedizione"
SHIPPING_COUNTRIES = ["IT", "FR", "DE", "ES", "AT", "BE", "NL", "CH", "PT"]


class CheckoutSessionService:
    """Creates hosted checkout sessions and reports their status."""

    def __init__(
        self,
        sessions: SessionStore,
        config_store: ConfigStore,
        rotator: AccountRotator,
        settings: CheckoutSettings,
    ) -> None:
        self.sessions = sessions
        self.config_store = config_store
        self.rotator = rotator
        self.settings = settings

    def return_url(self, checkout_domain: str, cart_session_id: str) -> str:
        """Where Stripe sends the shopper back; Stripe fills in the session ID."""
        if checkout_domain:
            base = checkout_domain.rstrip("/")
            if "://" not in base:
                base = f"https://{base}"
        else:
            base = self.settings.app_url.rstrip("/")
        return (
            f"{base}/checkout-return?session_id={{CHECKOUT_SESSION_ID}}"
            f"&cart_session_id={cart_session_id}"
        )

    def build_line_items(self, session: CartSession, currency: str, shipping_cents: int) -> list[dict]:
        line_items = [
            {
                "price_data": {
                    "currency": currency,
                    "product_data": {"name": item.title or self.settings.default_product_title},
                    "unit_amount": item.price_cents,
                },
                "quantity": item.quantity,
            }
            for item in session.items
            if item.quantity > 0
        ]
        if shipping_cents > 0:
            line_items.append(
                {
                    "price_data": {
                        "currency": currency,
                        "product_data": {"name": SHIPPING_LINE_NAME},
                        "unit_amount": shipping_cents,
                    },
                    "quantity": 1,
                }
            )
        return line_items

    def create_checkout_session(
        self,
        *,
        session_id: str | None,
        defer: Defer | None = None,
    ) -> CheckoutSessionResult:
        """Create a custom-UI Checkout Session for a cart on the active account.

        The label of the account used is saved on the cart session so the
        status lookup and the webhook reach the same account.

        Raises:
            CheckoutError: On a missing or unknown session, no eligible
                account, or a Stripe API failure.
        """
        if not session_id:
            raise CheckoutError(ErrorCode.MISSING_SESSION_ID)

        session = self.sessions.get(session_id)
        if session is None:
            raise CheckoutError(ErrorCode.SESSION_NOT_FOUND, details={"session_id": session_id})

        config = self.config_store.read()
        active = self.rotator.get_active_account(defer=defer)
        currency = (session.currency or active.default_currency or self.settings.default_currency).lower()
        shipping_cents = (
            session.shipping_cents
            if session.shipping_cents is not None
            else self.settings.flat_shipping_cents
        )
        total_cents = session.expected_total_cents(self.settings.flat_shipping_cents)

        params: dict = {
            "ui_mode": "custom",
            "mode": "payment",
            "line_items": self.build_line_items(session, currency, shipping_cents),
            "shipping_address_collection": {"allowed_countries": SHIPPING_COUNTRIES},
            "phone_number_collection": {"enabled": True},
            "return_url": self.return_url(config.checkout_domain, session.session_id),
            "metadata": {
                "cart_session_id": session.session_id,
                "stripe_account": active.label,
                "total_amount": str(total_cents),
            },
        }
        if session.customer and session.customer.email:
            params["customer_email"] = session.customer.email

        try:
            if session.discount_cents > 0:
                coupon_id = active.stripe.create_coupon(session.discount_cents, currency)
                params["discounts"] = [{"coupon": coupon_id}]
            checkout = active.stripe.create_checkout_session(params)
        except StripeServiceError as e:
            raise CheckoutError(
                ErrorCode.STRIPE_API_ERROR,
                details={"stripe_error_code": e.stripe_error_code or "unknown"},
            ) from e

        fields = {
            "checkout_session_id": checkout["id"],
            "stripe_account_used": active.label,
            "subtotal_cents": session.subtotal_cents,
            "discount_cents": session.discount_cents,
            "shipping_cents": shipping_cents,
            "total_cents": total_cents,
            "currency": currency.upper(),
            "payment_status": PaymentStatus.PENDING.value,
            "updated_at": dt.datetime.now(dt.UTC).isoformat(),
        }
        if not self.sessions.update(session.session_id, fields):
            logger.warning("Session %s vanished before checkout details were saved", session_id)

        log_payment_operation(
            logger,
            "create_checkout_session",
            session_id=session.session_id,
            account_label=active.label,
            amount_cents=total_cents,
        )

        return CheckoutSessionResult(
            checkout_session_id=checkout["id"],
            client_secret=checkout["client_secret"],
            account_label=active.label,
        )

    def _candidate_accounts(self, cart_session_id: str | None) -> list[StripeAccount]:
        """Accounts to ask for a checkout session, owner first.

        With a known cart session, only the account recorded on it is asked,
        whether or not it is still in rotation. Without one, every
        rotation-eligible account is asked in rotation order.
        """
        accounts = self.config_store.read().accounts
        if cart_session_id:
            session = self.sessions.get(cart_session_id)
            if session is None:
                raise CheckoutError(
                    ErrorCode.SESSION_NOT_FOUND, details={"session_id": cart_session_id}
                )
            owner = [
                a for a in accounts if a.label == session.stripe_account_used and a.secret_key
            ]
            if not owner:
                logger.warning(
                    "Session %s has no usable account recorded (%r)",
                    cart_session_id,
                    session.stripe_account_used,
                )
            return owner
        return eligible_accounts(accounts)

    def get_checkout_session_status(
        self,
        checkout_session_id: str | None,
        cart_session_id: str | None = None,
    ) -> CheckoutSessionStatus:
        """Read a Checkout Session through the account that created it.

        Raises:
            CheckoutError: MISSING_SESSION_ID without an ID, SESSION_NOT_FOUND
                if no candidate account has the session, STRIPE_API_ERROR on
                any other Stripe failure.
        """
        if not checkout_session_id:
            raise CheckoutError(ErrorCode.MISSING_SESSION_ID)

        for account in self._candidate_accounts(cart_session_id):
            try:
                found = self.rotator.clients.get(account).retrieve_checkout_session(
                    checkout_session_id
                )
            except StripeServiceError as e:
                raise CheckoutError(
                    ErrorCode.STRIPE_API_ERROR,
                    details={"stripe_error_code": e.stripe_error_code or "unknown"},
                ) from e
            if found is None:
                continue
            return CheckoutSessionStatus(
                checkout_session_id=found["id"],
                status=found["status"],
                payment_status=found["payment_status"],
                customer_email=found["customer_email"],
                cart_session_id=found["metadata"].get("cart_session_id"),
                account_label=account.label,
            )

        raise CheckoutError(
            ErrorCode.SESSION_NOT_FOUND, details={"session_id": checkout_session_id}
        )
