"""Daily payment totals per Stripe account for the admin dashboard."""

import datetime as dt
import logging

from checkout_core.models import (
    AccountDailyStats,
    CheckoutError,
    DailyReport,
    ErrorCode,
)
from checkout_core.storage import ConfigStore, TransactionStore

from .account_rotation import AccountRotator, eligible_accounts

logger = logging.getLogger(__name__)

REPORT_TRANSACTION_LIMIT = 100


class ReportingService:
    """Aggregates the transactions table by account."""

    def __init__(
        self,
        config_store: ConfigStore,
        transactions: TransactionStore,
        rotator: AccountRotator,
    ) -> None:
        self.config_store = config_store
        self.transactions = transactions
        self.rotator = rotator

    def daily_report(self, now: dt.datetime | None = None) -> DailyReport:
        """Today's (UTC) transactions grouped by the accounts in rotation.

        Only the newest 100 transactions of the day are considered.
        """
        now = now or dt.datetime.now(dt.UTC)
        date = now.date().isoformat()
        config = self.config_store.read()

        try:
            rotation = self.rotator.get_rotation_status()
        except CheckoutError as e:
            if e.code != ErrorCode.NO_ACTIVE_ACCOUNT:
                raise
            rotation = None

        records = self.transactions.list_for_date(date, limit=REPORT_TRANSACTION_LIMIT)
        logger.info("Loaded %d transactions for %s", len(records), date)

        accounts = []
        for account in eligible_accounts(config.accounts):
            mine = [r for r in records if r.stripe_account == account.label]
            accounts.append(
                AccountDailyStats(
                    label=account.label,
                    order=account.order,
                    active=account.active,
                    is_currently_active=rotation is not None
                    and rotation.account_label == account.label,
                    total_cents=sum(r.amount for r in mine),
                    transaction_count=len(mine),
                )
            )

        return DailyReport(
            date=date,
            currency=config.default_currency.upper(),
            rotation=rotation,
            accounts=accounts,
            total_cents=sum(a.total_cents for a in accounts),
            transaction_count=sum(a.transaction_count for a in accounts),
            transactions=records,
        )
