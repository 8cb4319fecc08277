"""API models for rotation status and the admin payment stats."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from checkout_core.models import DailyReport, RotationStatus, TransactionRecord


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RotationStatusResponse(_CamelModel):
    """Currently active account and when the next rotation happens."""

    current_account: str
    slot_number: int = Field(..., description="1-based slot of the current account")
    total_slots: int
    next_rotation: datetime

    @classmethod
    def from_status(cls, status: RotationStatus) -> "RotationStatusResponse":
        return cls(
            current_account=status.account_label,
            slot_number=status.slot_number,
            total_slots=status.total_slots,
            next_rotation=status.next_rotation,
        )


class AccountStats(_CamelModel):
    total_cents: int
    transaction_count: int
    currency: str


class AccountStatsEntry(_CamelModel):
    label: str
    order: int
    active: bool
    is_currently_active: bool
    stats: AccountStats


class TransactionEntry(_CamelModel):
    id: str = Field(..., description="PaymentIntent ID")
    amount: int
    currency: str
    status: str
    created: int = Field(..., description="Epoch millis")
    email: str
    customer_name: str
    order_number: str | None = None
    account: str

    @classmethod
    def from_record(cls, record: TransactionRecord) -> "TransactionEntry":
        return cls(
            id=record.payment_intent_id,
            amount=record.amount,
            currency=record.currency,
            status=record.status,
            created=record.created_timestamp,
            email=record.email,
            customer_name=record.customer_name,
            order_number=record.order_number,
            account=record.stripe_account,
        )


class StatsTotals(_CamelModel):
    total_cents: int
    transaction_count: int
    currency: str


class StripeStatsResponse(_CamelModel):
    """Today's payments per account plus the rotation state."""

    date: str
    rotation: RotationStatusResponse | None = None
    accounts: list[AccountStatsEntry]
    totals: StatsTotals
    transactions: list[TransactionEntry]

    @classmethod
    def from_report(cls, report: DailyReport) -> "StripeStatsResponse":
        return cls(
            date=report.date,
            rotation=RotationStatusResponse.from_status(report.rotation)
            if report.rotation
            else None,
            accounts=[
                AccountStatsEntry(
                    label=a.label,
                    order=a.order,
                    active=a.active,
                    is_currently_active=a.is_currently_active,
                    stats=AccountStats(
                        total_cents=a.total_cents,
                        transaction_count=a.transaction_count,
                        currency=report.currency,
                    ),
                )
                for a in report.accounts
            ],
            totals=StatsTotals(
                total_cents=report.total_cents,
                transaction_count=report.transaction_count,
                currency=report.currency,
            ),
            transactions=[TransactionEntry.from_record(r) for r in report.transactions],
        )
