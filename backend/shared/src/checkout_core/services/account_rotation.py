"""Time-slot rotation across the configured Stripe accounts.

The current account is a pure function of wall-clock time and config:

    pool  = active accounts with both keys, sorted by `order`
    index = floor(now_ms / ROTATION_WINDOW_MILLIS) % len(pool)

Any two processes reading the same config at the same moment pick the same
account without talking to each other, so there is no shared counter, lock
or leader. Rotation is by time slot, not by request count or revenue.

Changing the size of the pool shifts the slot mapping of every window. That
is inherent to modulo assignment and accepted.
"""

import datetime as dt
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from checkout_core.models import (
    CheckoutError,
    ErrorCode,
    RotationStatus,
    StripeAccount,
)
from checkout_core.storage import ConfigStore
from checkout_core.utils.logging import mask_key

from .stripe_service import StripeClientRegistry, StripeService

logger = logging.getLogger(__name__)

ROTATION_WINDOW_MILLIS = 6 * 60 * 60 * 1000
LAST_USED_REFRESH_MILLIS = 60 * 60 * 1000

Clock = Callable[[], int]
Defer = Callable[..., Any]


def now_millis() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def eligible_accounts(accounts: list[StripeAccount]) -> list[StripeAccount]:
    """Active, fully credentialed accounts in rotation order.

    The sort is stable, so accounts sharing an `order` keep config order.
    """
    pool = [a for a in accounts if a.is_rotation_eligible]
    return sorted(pool, key=lambda a: a.order)


def window_index(now_ms: int) -> int:
    return now_ms // ROTATION_WINDOW_MILLIS


def next_rotation_at(now_ms: int) -> dt.datetime:
    """Start of the next rotation window, as an aware UTC datetime."""
    boundary_ms = (window_index(now_ms) + 1) * ROTATION_WINDOW_MILLIS
    return dt.datetime.fromtimestamp(boundary_ms / 1000, tz=dt.UTC)


def select_account(
    accounts: list[StripeAccount], now_ms: int
) -> tuple[StripeAccount, int, int]:
    """Pick the account owning the window that contains `now_ms`.

    Returns:
        Tuple of (account, 0-based slot index, pool size)

    Raises:
        CheckoutError: NO_ACTIVE_ACCOUNT if the pool is empty.
    """
    pool = eligible_accounts(accounts)
    if not pool:
        raise CheckoutError(ErrorCode.NO_ACTIVE_ACCOUNT)

    index = window_index(now_ms) % len(pool)
    return pool[index], index, len(pool)


@dataclass(frozen=True)
class ActiveAccount:
    """The selected account plus a Stripe service bound to its secret key."""

    account: StripeAccount
    stripe: StripeService
    slot_index: int
    total_slots: int
    default_currency: str = "eur"

    @property
    def label(self) -> str:
        return self.account.label


class AccountRotator:
    """Resolves the current Stripe account from config and the clock."""

    def __init__(
        self,
        config_store: ConfigStore,
        clients: StripeClientRegistry,
        clock: Clock = now_millis,
    ) -> None:
        self.config_store = config_store
        self.clients = clients
        self.clock = clock

    def get_active_account(self, defer: Defer | None = None) -> ActiveAccount:
        """Select the current account and bind a Stripe service to it.

        If the account's `last_used_at` is more than an hour old it is
        refreshed, best-effort: through `defer` (e.g. FastAPI's
        BackgroundTasks.add_task) when given, inline otherwise. The refresh
        never fails the selection.

        Raises:
            CheckoutError: NO_ACTIVE_ACCOUNT if no account is eligible.
        """
        config = self.config_store.read()
        now_ms = self.clock()
        account, index, total = select_account(config.accounts, now_ms)

        logger.info(
            "Active Stripe account %s (slot %d/%d, window %d, key %s)",
            account.label,
            index + 1,
            total,
            window_index(now_ms),
            mask_key(account.secret_key),
        )

        if now_ms - (account.last_used_at or 0) > LAST_USED_REFRESH_MILLIS:
            if defer is not None:
                defer(self.record_last_used, account.label, now_ms)
            else:
                self.record_last_used(account.label, now_ms)

        return ActiveAccount(
            account=account,
            stripe=self.clients.get(account),
            slot_index=index,
            total_slots=total,
            default_currency=config.default_currency,
        )

    def record_last_used(self, label: str, now_ms: int) -> None:
        """Write `last_used_at` for observability. Never raises."""
        try:
            self.config_store.touch_account(label, now_ms)
        except Exception:
            logger.exception("Failed to record last_used_at for account %s", label)

    def get_rotation_status(self) -> RotationStatus:
        """Current account, slot and next rotation, without side effects.

        Raises:
            CheckoutError: NO_ACTIVE_ACCOUNT if no account is eligible.
        """
        config = self.config_store.read()
        now_ms = self.clock()
        account, index, total = select_account(config.accounts, now_ms)
        return RotationStatus(
            account_label=account.label,
            slot_number=index + 1,
            total_slots=total,
            next_rotation=next_rotation_at(now_ms),
        )
