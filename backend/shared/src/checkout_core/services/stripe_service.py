"""Stripe payment service, one instance per Stripe account.

Provides integration with Stripe using the v8+ StripeClient pattern. Unlike
a single-tenant setup there is no process-wide client: each configured
account gets its own StripeService, handed out by StripeClientRegistry.
"""

import hashlib
import json
import logging

import stripe
from stripe import StripeClient

from checkout_core.models import StripeAccount

logger = logging.getLogger(__name__)


class StripeServiceError(Exception):
    """Raised when a Stripe operation fails."""

    def __init__(self, message: str, stripe_error_code: str | None = None) -> None:
        """Initialize with message and optional Stripe error code.

        Args:
            message: Human-readable error message.
            stripe_error_code: Stripe-specific error code if available.
        """
        super().__init__(message)
        self.stripe_error_code = stripe_error_code


class StripeService:
    """Stripe operations bound to one account's secret key.

    Handles:
    - Customer lookup-or-create by email
    - PaymentIntent creation
    - Checkout Session create/retrieve and one-off coupons
    """

    def __init__(
        self,
        secret_key: str,
        *,
        account_label: str,
        timeout_seconds: float = 8.0,
    ) -> None:
        """Initialize the service for one account.

        Args:
            secret_key: The account's Stripe secret key.
            account_label: Account label, used in logs and idempotency keys.
            timeout_seconds: Outbound request timeout.
        """
        self._secret_key = secret_key
        self.account_label = account_label
        self._timeout_seconds = timeout_seconds
        self._client: StripeClient | None = None

    def uses_key(self, secret_key: str) -> bool:
        return self._secret_key == secret_key

    def _get_client(self) -> StripeClient:
        """Get or create the Stripe client (lazy initialization)."""
        if self._client is None:
            self._client = StripeClient(
                self._secret_key,
                http_client=stripe.RequestsClient(timeout=self._timeout_seconds),
            )
            logger.info("Stripe client initialized for account: %s", self.account_label)
        return self._client

    def customer_idempotency_key(self, email: str) -> str:
        """Idempotency key for creating the customer of `email` on this account."""
        digest = hashlib.sha256(
            f"{self.account_label}:{email.strip().lower()}".encode()
        ).hexdigest()
        return f"customer_{digest[:40]}"

    def find_or_create_customer(
        self,
        *,
        email: str,
        name: str | None = None,
        phone: str | None = None,
        address: dict[str, str] | None = None,
        metadata: dict[str, str] | None = None,
    ) -> tuple[str, bool]:
        """Return the customer ID for `email`, creating the customer if needed.

        Lookup is by email under this account; creation carries an
        idempotency key derived from (account, email), so two concurrent
        calls for the same email cannot create two customers.

        Returns:
            Tuple of (customer_id, created)

        Raises:
            StripeServiceError: If the lookup or creation fails.
        """
        client = self._get_client()

        try:
            existing = client.customers.list(params={"email": email, "limit": 1})
            if existing.data:
                customer_id = existing.data[0].id
                logger.info("Reusing Stripe customer %s on %s", customer_id, self.account_label)
                return customer_id, False

            params: dict = {"email": email}
            if name:
                params["name"] = name
            if phone:
                params["phone"] = phone
            if address:
                params["address"] = address
            if metadata:
                params["metadata"] = metadata

            # The key covers (account, email) only: a concurrent create with
            # different details is refused by Stripe, and the customer the
            # other call created is looked up instead.
            try:
                customer = client.customers.create(
                    params=params,
                    options={"idempotency_key": self.customer_idempotency_key(email)},
                )
            except stripe.IdempotencyError:
                existing = client.customers.list(params={"email": email, "limit": 1})
                if not existing.data:
                    raise
                logger.info(
                    "Concurrent customer create on %s, reusing %s",
                    self.account_label,
                    existing.data[0].id,
                )
                return existing.data[0].id, False

            logger.info("Created Stripe customer %s on %s", customer.id, self.account_label)
            return customer.id, True

        except stripe.StripeError as e:
            error_code = getattr(e, "code", None)
            logger.error(
                "Stripe customer lookup/create failed on %s: %s (code: %s)",
                self.account_label,
                str(e),
                error_code,
            )
            raise StripeServiceError(
                f"Failed to find or create customer: {e}",
                stripe_error_code=error_code,
            ) from e

    def create_payment_intent(self, params: dict) -> dict:
        """Create a PaymentIntent.

        Args:
            params: PaymentIntent create parameters.

        Returns:
            Dict with `id`, `client_secret` and `amount`.

        Raises:
            StripeServiceError: If creation fails.
        """
        client = self._get_client()

        try:
            intent = client.payment_intents.create(params=params)
        except stripe.StripeError as e:
            error_code = getattr(e, "code", None)
            logger.error(
                "Stripe PaymentIntent creation failed on %s: %s (code: %s)",
                self.account_label,
                str(e),
                error_code,
            )
            raise StripeServiceError(
                f"Failed to create payment intent: {e}",
                stripe_error_code=error_code,
            ) from e

        logger.info("PaymentIntent %s created on %s", intent.id, self.account_label)
        return {
            "id": intent.id,
            "client_secret": intent.client_secret,
            "amount": intent.amount,
        }

    def create_coupon(self, amount_off: int, currency: str) -> str:
        """Create a single-use fixed-amount coupon and return its ID.

        Raises:
            StripeServiceError: If creation fails.
        """
        client = self._get_client()

        try:
            coupon = client.coupons.create(
                params={"amount_off": amount_off, "currency": currency, "duration": "once"}
            )
        except stripe.StripeError as e:
            raise self._wrap_error("coupon creation", e) from e
        return coupon.id

    def create_checkout_session(self, params: dict) -> dict:
        """Create a Checkout Session.

        Returns:
            Dict with `id` and `client_secret`.

        Raises:
            StripeServiceError: If creation fails.
        """
        client = self._get_client()

        try:
            session = client.checkout.sessions.create(params=params)
        except stripe.StripeError as e:
            raise self._wrap_error("Checkout Session creation", e) from e

        logger.info("Checkout Session %s created on %s", session.id, self.account_label)
        return {"id": session.id, "client_secret": session.client_secret}

    def retrieve_checkout_session(self, checkout_session_id: str) -> dict | None:
        """Read a Checkout Session, or None if this account does not have it.

        Raises:
            StripeServiceError: On any other failure.
        """
        client = self._get_client()

        try:
            session = client.checkout.sessions.retrieve(checkout_session_id)
        except stripe.InvalidRequestError as e:
            if e.code == "resource_missing":
                return None
            raise self._wrap_error("Checkout Session retrieval", e) from e
        except stripe.StripeError as e:
            raise self._wrap_error("Checkout Session retrieval", e) from e

        details = session.customer_details
        return {
            "id": session.id,
            "status": session.status,
            "payment_status": session.payment_status,
            "customer_email": details.email if details else None,
            "metadata": dict(session.metadata or {}),
        }

    def _wrap_error(self, action: str, e: stripe.StripeError) -> StripeServiceError:
        error_code = getattr(e, "code", None)
        logger.error(
            "Stripe %s failed on %s: %s (code: %s)",
            action,
            self.account_label,
            str(e),
            error_code,
        )
        return StripeServiceError(f"Stripe {action} failed: {e}", stripe_error_code=error_code)


class StripeClientRegistry:
    """Per-account StripeService cache, keyed by account label.

    A service is rebuilt when the account's secret key changes in config.
    """

    def __init__(self, timeout_seconds: float = 8.0) -> None:
        self._timeout_seconds = timeout_seconds
        self._services: dict[str, StripeService] = {}

    def get(self, account: StripeAccount) -> StripeService:
        service = self._services.get(account.label)
        if service is None or not service.uses_key(account.secret_key):
            service = StripeService(
                account.secret_key,
                account_label=account.label,
                timeout_seconds=self._timeout_seconds,
            )
            self._services[account.label] = service
        return service

    def clear(self) -> None:
        self._services.clear()


def construct_webhook_event(
    payload: bytes,
    signature: str,
    webhook_secret: str,
    tolerance: int = 300,
) -> dict:
    """Verify a webhook signature against one secret and parse the event.

    Args:
        payload: Raw request body bytes.
        signature: Stripe-Signature header value.
        webhook_secret: Candidate signing secret.
        tolerance: Maximum age of the signed timestamp, in seconds.

    Returns:
        Parsed event dictionary.

    Raises:
        StripeServiceError: If the signature does not verify with this secret.
    """
    try:
        stripe.WebhookSignature.verify_header(
            payload.decode("utf-8"), signature, webhook_secret, tolerance
        )
        return json.loads(payload)
    except stripe.SignatureVerificationError as e:
        raise StripeServiceError("Invalid webhook signature") from e
    except ValueError as e:
        raise StripeServiceError("Invalid webhook payload") from e
