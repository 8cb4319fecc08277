"""Store for cart session documents.

Besides plain reads and merges, the store exposes conditional updates. The
webhook path relies on them: the only guard against a redelivered
"payment succeeded" event is a compare-and-set on the session item, never a
read followed by an unconditional write.
"""

import datetime as dt
import logging
from typing import Any

from checkout_core.models import CartSession, PaymentStatus

from .dynamodb import DynamoDBService, build_set_expression

logger = logging.getLogger(__name__)


class SessionStore:
    """Access to the `cart-sessions` table."""

    SESSIONS_TABLE = "cart-sessions"

    def __init__(self, db: DynamoDBService) -> None:
        self.db = db

    def get(self, session_id: str) -> CartSession | None:
        """Get a session by ID.

        Args:
            session_id: Session identifier

        Returns:
            CartSession if found, None otherwise
        """
        item = self.db.get_item(self.SESSIONS_TABLE, {"session_id": session_id})
        if item is None:
            return None
        return CartSession.model_validate(item)

    def update(self, session_id: str, fields: dict[str, Any]) -> bool:
        """Merge `fields` into an existing session.

        Returns:
            False if the session does not exist
        """
        return self.compare_and_update(session_id, fields)

    def compare_and_update(
        self,
        session_id: str,
        fields: dict[str, Any],
        require_absent: list[str] | None = None,
    ) -> bool:
        """Merge `fields` only if the session exists and none of
        `require_absent` attributes are set.

        An attribute stored as NULL counts as absent.

        Args:
            session_id: Session identifier
            fields: Attributes to set
            require_absent: Attribute names that must not exist on the item

        Returns:
            True if the write happened, False if the condition failed
        """
        expression, names, values = build_set_expression(fields)

        conditions = ["attribute_exists(session_id)"]
        if require_absent:
            values[":null_type"] = "NULL"
        for i, attr in enumerate(require_absent or []):
            names[f"#c{i}"] = attr
            conditions.append(
                f"(attribute_not_exists(#c{i}) OR attribute_type(#c{i}, :null_type))"
            )

        result = self.db.update_item(
            self.SESSIONS_TABLE,
            {"session_id": session_id},
            expression,
            expression_attribute_values=values,
            expression_attribute_names=names,
            condition_expression=" AND ".join(conditions),
        )
        return result is not None

    def claim_for_fulfillment(self, session_id: str, event_id: str) -> bool:
        """Atomically claim a paid session for order creation.

        Succeeds for exactly one caller: the claim is refused once an order
        is linked or another delivery holds the claim.
        """
        claimed = self.compare_and_update(
            session_id,
            {
                "fulfillment_claimed_at": _now_iso(),
                "fulfillment_event_id": event_id,
                "payment_status": PaymentStatus.PROCESSING.value,
            },
            require_absent=["shopify_order_id", "fulfillment_claimed_at"],
        )
        if not claimed:
            logger.info("Session %s already fulfilled or claimed", session_id)
        return claimed

    def record_order(
        self,
        session_id: str,
        *,
        order_id: str,
        order_number: str | None,
        payment_intent_id: str | None,
    ) -> bool:
        """Link the materialized order to a session (only once)."""
        now = _now_iso()
        return self.compare_and_update(
            session_id,
            {
                "shopify_order_id": order_id,
                "shopify_order_number": order_number,
                "payment_intent_id": payment_intent_id,
                "payment_status": PaymentStatus.PAID.value,
                "processed_at": now,
                "updated_at": now,
            },
            require_absent=["shopify_order_id"],
        )

    def release_claim(self, session_id: str, error_message: str) -> None:
        """Drop the fulfilment claim after a failed order creation.

        Order fields stay unset so reconciliation can spot the session
        (payment_status == paid_unfulfilled) and retry out-of-band.
        """
        self.db.update_item(
            self.SESSIONS_TABLE,
            {"session_id": session_id},
            "SET payment_status = :status, fulfillment_error = :error, updated_at = :now "
            "REMOVE fulfillment_claimed_at, fulfillment_event_id",
            expression_attribute_values={
                ":status": PaymentStatus.PAID_UNFULFILLED.value,
                ":error": error_message,
                ":now": _now_iso(),
            },
            condition_expression="attribute_exists(session_id)",
        )


def _now_iso() -> str:
    return dt.datetime.now(dt.UTC).isoformat()
