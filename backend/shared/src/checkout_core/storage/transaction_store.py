"""Append-only store for processed payment transactions."""

import datetime as dt
import uuid

from checkout_core.models import TransactionRecord

from .dynamodb import DynamoDBService


class TransactionStore:
    """Access to the `transactions` table.

    Rows are never updated; the `date-index` GSI (date + created_timestamp)
    serves the daily per-account report.
    """

    TRANSACTIONS_TABLE = "transactions"
    DATE_INDEX = "date-index"

    def __init__(self, db: DynamoDBService) -> None:
        self.db = db

    @staticmethod
    def _generate_transaction_id() -> str:
        return f"TXN-{uuid.uuid4().hex[:16].upper()}"

    def append(
        self,
        *,
        payment_intent_id: str,
        stripe_account: str,
        amount: int,
        currency: str,
        session_id: str,
        email: str = "",
        customer_name: str = "",
        order_id: str | None = None,
        order_number: str | None = None,
        status: str = "succeeded",
        now: dt.datetime | None = None,
    ) -> TransactionRecord:
        """Append one transaction row.

        Returns:
            The stored TransactionRecord
        """
        created = now or dt.datetime.now(dt.UTC)
        record = TransactionRecord(
            transaction_id=self._generate_transaction_id(),
            payment_intent_id=payment_intent_id,
            stripe_account=stripe_account,
            amount=amount,
            currency=currency.upper(),
            status=status,
            email=email,
            customer_name=customer_name,
            order_id=order_id,
            order_number=order_number,
            session_id=session_id,
            date=created.date().isoformat(),
            created_timestamp=int(created.timestamp() * 1000),
            created_at=created,
        )
        self.db.put_item(
            self.TRANSACTIONS_TABLE,
            record.model_dump(mode="json"),
            condition_expression="attribute_not_exists(transaction_id)",
        )
        return record

    def list_for_date(self, date: str, limit: int = 100) -> list[TransactionRecord]:
        """Transactions of one UTC day, newest first."""
        items = self.db.query_by_gsi(
            self.TRANSACTIONS_TABLE,
            self.DATE_INDEX,
            "date",
            date,
            limit=limit,
            scan_index_forward=False,
        )
        return [TransactionRecord.model_validate(item) for item in items]
