"""Stripe webhook dispatcher for multi-account checkout.

Flow per delivery:

    authenticate -> signature tried against every eligible account's
                    webhook secret, first match wins; no match is a hard
                    rejection and nothing is written
    handle       -> ignored | warning | already_processed | error | success

Everything after authentication is acknowledged to Stripe: the failure
modes left (unknown session, duplicate delivery, order creation failure)
are not transient and a redelivery would not fix them.

The only guard against redelivery is SessionStore.claim_for_fulfillment, a
conditional update that exactly one delivery per session can win.
"""

import logging
from dataclasses import dataclass
from typing import Any

from checkout_core.models import (
    CartSession,
    CheckoutError,
    ErrorCode,
    StripeAccount,
    WebhookOutcome,
    WebhookResult,
)
from checkout_core.storage import ConfigStore, SessionStore, TransactionStore
from checkout_core.utils.logging import log_webhook_event

from .account_rotation import Defer, eligible_accounts
from .shopify_client import OrderRequest, ShopifyCartClearer, ShopifyOrderMaterializer
from .stripe_service import StripeServiceError, construct_webhook_event

logger = logging.getLogger(__name__)

# Event type -> metadata key carrying the cart session id
SESSION_ID_METADATA_KEYS = {
    "payment_intent.succeeded": "session_id",
    "checkout.session.completed": "cart_session_id",
}


@dataclass(frozen=True)
class AuthenticatedEvent:
    """A verified event and the account whose secret verified it."""

    event: dict[str, Any]
    account: StripeAccount

    @property
    def id(self) -> str | None:
        return self.event.get("id")

    @property
    def type(self) -> str | None:
        return self.event.get("type")

    @property
    def data_object(self) -> dict[str, Any]:
        return (self.event.get("data") or {}).get("object") or {}


class WebhookHandler:
    """Authenticates Stripe deliveries and materializes orders exactly once."""

    def __init__(
        self,
        config_store: ConfigStore,
        sessions: SessionStore,
        transactions: TransactionStore,
        materializer: ShopifyOrderMaterializer,
        cart_clearer: ShopifyCartClearer,
        tolerance_seconds: int = 300,
    ) -> None:
        self.config_store = config_store
        self.sessions = sessions
        self.transactions = transactions
        self.materializer = materializer
        self.cart_clearer = cart_clearer
        self.tolerance_seconds = tolerance_seconds

    def authenticate(self, payload: bytes, signature: str | None) -> AuthenticatedEvent:
        """Find the account whose webhook secret signed `payload`.

        Accounts are tried in rotation order; only active accounts with both
        API keys and a webhook secret take part.

        Raises:
            CheckoutError: INVALID_WEBHOOK_SIGNATURE if the header is missing
                or no account's secret verifies the payload.
        """
        if not signature:
            logger.warning("Webhook request missing Stripe-Signature header")
            raise CheckoutError(
                ErrorCode.INVALID_WEBHOOK_SIGNATURE,
                details={"message": "Missing Stripe-Signature header"},
            )

        config = self.config_store.read()
        candidates = [a for a in eligible_accounts(config.accounts) if a.can_verify_webhooks]

        for account in candidates:
            try:
                event = construct_webhook_event(
                    payload, signature, account.webhook_secret, self.tolerance_seconds
                )
            except StripeServiceError:
                continue
            logger.info("Webhook signature verified with account %s", account.label)
            return AuthenticatedEvent(event=event, account=account)

        logger.warning(
            "Webhook signature matched none of %d candidate accounts", len(candidates)
        )
        raise CheckoutError(
            ErrorCode.INVALID_WEBHOOK_SIGNATURE,
            details={"accounts_tried": str(len(candidates))},
        )

    def handle(self, verified: AuthenticatedEvent, defer: Defer | None = None) -> WebhookOutcome:
        """Drive one authenticated event to a terminal outcome.

        Args:
            verified: Output of `authenticate`
            defer: Scheduler for the best-effort cart clear; inline if None

        Returns:
            WebhookOutcome; every result is acknowledged with HTTP 200.
        """
        obj = verified.data_object
        metadata_key = SESSION_ID_METADATA_KEYS.get(verified.type or "")

        if metadata_key is None:
            return self._outcome(
                verified, WebhookResult.IGNORED, message=f"Event type '{verified.type}' not handled"
            )

        if verified.type == "checkout.session.completed" and obj.get("payment_status") != "paid":
            return self._outcome(
                verified,
                WebhookResult.IGNORED,
                message=f"Payment status is '{obj.get('payment_status')}', not 'paid'",
            )

        session_id = (obj.get("metadata") or {}).get(metadata_key)
        if not session_id:
            return self._outcome(
                verified, WebhookResult.WARNING, message=f"No {metadata_key} in metadata"
            )

        session = self.sessions.get(session_id)
        if session is None:
            return self._outcome(
                verified, WebhookResult.WARNING, session_id=session_id, message="Session not found"
            )

        if session.is_fulfilled:
            return self._outcome(
                verified,
                WebhookResult.ALREADY_PROCESSED,
                session_id=session_id,
                message="Order already created",
                order_id=session.shopify_order_id,
            )

        if not self.sessions.claim_for_fulfillment(session_id, verified.id or ""):
            return self._outcome(
                verified,
                WebhookResult.ALREADY_PROCESSED,
                session_id=session_id,
                message="Order creation already claimed by another delivery",
            )

        return self._materialize(verified, session, defer)

    def _materialize(
        self,
        verified: AuthenticatedEvent,
        session: CartSession,
        defer: Defer | None,
    ) -> WebhookOutcome:
        """Create the order for a claimed session and record it."""
        obj = verified.data_object
        session_id = session.session_id
        amount = _payment_amount(obj, session)
        currency = (obj.get("currency") or session.currency or "eur").lower()
        payment_reference = _payment_reference(verified.type, obj) or session.payment_intent_id or ""

        request = OrderRequest(
            session=session,
            payment_amount_cents=amount,
            payment_reference=payment_reference,
            account_label=verified.account.label,
        )
        try:
            order = self.materializer.create_order(request)
        except Exception as e:
            self.sessions.release_claim(session_id, f"Order creation raised: {e}")
            raise

        if order is None:
            self.sessions.release_claim(session_id, "Order creation failed")
            return self._outcome(
                verified,
                WebhookResult.ERROR,
                session_id=session_id,
                message="Order creation failed; session left for reconciliation",
            )

        if not self.sessions.record_order(
            session_id,
            order_id=order.order_id,
            order_number=order.order_number,
            payment_intent_id=payment_reference or None,
        ):
            logger.error(
                "Order %s created but session %s could not be linked",
                order.order_id,
                session_id,
            )

        customer = session.customer
        metadata = obj.get("metadata") or {}
        self.transactions.append(
            payment_intent_id=payment_reference,
            stripe_account=verified.account.label,
            amount=amount,
            currency=currency,
            session_id=session_id,
            email=(customer.email if customer else "") or obj.get("receipt_email") or "",
            customer_name=(customer.display_name if customer else "")
            or metadata.get("customer_name", ""),
            order_id=order.order_id,
            order_number=order.order_number,
        )

        if session.cart_id:
            if defer is not None:
                defer(self.clear_cart, session.cart_id)
            else:
                self.clear_cart(session.cart_id)

        return self._outcome(
            verified,
            WebhookResult.SUCCESS,
            session_id=session_id,
            message=f"Order {order.order_number or order.order_id} created",
            order_id=order.order_id,
        )

    def clear_cart(self, cart_id: str) -> None:
        """Best-effort cart clear. Never raises."""
        try:
            self.cart_clearer.clear_cart(cart_id)
        except Exception:
            logger.exception("Cart clear failed for cart %s", cart_id)

    def _outcome(
        self,
        verified: AuthenticatedEvent,
        result: WebhookResult,
        *,
        session_id: str | None = None,
        message: str | None = None,
        order_id: str | None = None,
    ) -> WebhookOutcome:
        log_webhook_event(
            logger,
            verified.type,
            verified.id,
            session_id=session_id,
            account_label=verified.account.label,
            result=result.value,
            error=message if result == WebhookResult.ERROR else None,
        )
        return WebhookOutcome(
            event_id=verified.id,
            event_type=verified.type,
            account_label=verified.account.label,
            session_id=session_id,
            result=result,
            message=message,
            order_id=order_id,
        )


def _payment_amount(obj: dict[str, Any], session: CartSession) -> int:
    """Amount actually paid, in minor units."""
    for key in ("amount_received", "amount", "amount_total"):
        value = obj.get(key)
        if isinstance(value, int) and value > 0:
            return value
    return session.total_cents or 0


def _payment_reference(event_type: str | None, obj: dict[str, Any]) -> str | None:
    if event_type == "checkout.session.completed":
        return obj.get("payment_intent") or obj.get("id")
    return obj.get("id")
