"""Daily per-account payment report models."""

from pydantic import BaseModel, Field

from .account import RotationStatus
from .transaction import TransactionRecord


class AccountDailyStats(BaseModel):
    """Today's totals for one rotation-eligible account."""

    label: str
    order: int
    active: bool
    is_currently_active: bool = Field(
        default=False, description="True for the account the rotation selects right now"
    )
    total_cents: int = 0
    transaction_count: int = 0


class DailyReport(BaseModel):
    """Per-account totals for one UTC day plus the rotation state."""

    date: str = Field(..., description="UTC date (YYYY-MM-DD)")
    currency: str
    rotation: RotationStatus | None = None
    accounts: list[AccountDailyStats] = Field(default_factory=list)
    total_cents: int = 0
    transaction_count: int = 0
    transactions: list[TransactionRecord] = Field(default_factory=list)
