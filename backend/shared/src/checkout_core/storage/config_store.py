"""Store for the global merchant configuration document."""

import logging
from typing import Any

from pydantic import ValidationError

from checkout_core.config import MAX_STRIPE_ACCOUNTS
from checkout_core.models import MerchantConfig, StripeAccount

from .dynamodb import DynamoDBService, build_set_expression

logger = logging.getLogger(__name__)


class ConfigStore:
    """Read/write access to the single `global` config item.

    Writes merge: attributes not present in the partial are retained.
    """

    CONFIG_TABLE = "config"
    CONFIG_ID = "global"

    def __init__(self, db: DynamoDBService, max_accounts: int = MAX_STRIPE_ACCOUNTS) -> None:
        self.db = db
        self.max_accounts = max_accounts

    def _key(self) -> dict[str, str]:
        return {"config_id": self.CONFIG_ID}

    def read(self) -> MerchantConfig:
        """Read the merchant config, or an empty one if none was saved yet."""
        item = self.db.get_item(self.CONFIG_TABLE, self._key())
        if item is None:
            logger.warning("No merchant config stored, using empty defaults")
            return MerchantConfig()
        item.pop("config_id", None)
        raw_accounts = item.pop("accounts", None) or []
        config = MerchantConfig.model_validate(item)
        config.accounts = self._parse_accounts(raw_accounts)
        return config

    @staticmethod
    def _parse_accounts(raw_accounts: list[Any]) -> list[StripeAccount]:
        """Validate accounts one by one; an invalid entry is skipped, not fatal."""
        accounts = []
        for position, raw in enumerate(raw_accounts):
            try:
                accounts.append(StripeAccount.model_validate(raw))
            except ValidationError as e:
                label = raw.get("label") if isinstance(raw, dict) else None
                logger.warning(
                    "Skipping invalid Stripe account at position %d (%r): %s",
                    position,
                    label,
                    e.errors(include_url=False),
                )
        return accounts

    def write(self, partial: dict[str, Any]) -> None:
        """Merge `partial` into the stored config.

        Account lists longer than the configured ceiling are truncated.

        Args:
            partial: Top-level config attributes to overwrite
        """
        if not partial:
            return

        fields = dict(partial)
        accounts = fields.get("accounts")
        if accounts is not None:
            if len(accounts) > self.max_accounts:
                logger.warning(
                    "Config write with %d Stripe accounts, keeping the first %d",
                    len(accounts),
                    self.max_accounts,
                )
            fields["accounts"] = [
                StripeAccount.model_validate(a).model_dump(mode="json")
                for a in accounts[: self.max_accounts]
            ]

        expression, names, values = build_set_expression(fields)
        self.db.update_item(
            self.CONFIG_TABLE,
            self._key(),
            expression,
            expression_attribute_values=values,
            expression_attribute_names=names,
        )

    def touch_account(self, label: str, now_ms: int) -> None:
        """Set `last_used_at` on the account with the given label.

        Read-modify-write of the raw accounts list, so entries that do not
        validate are written back untouched. Only used for observability,
        so a lost update against a concurrent config edit is tolerated.
        """
        item = self.db.get_item(self.CONFIG_TABLE, self._key())
        if item is None:
            return
        accounts = [
            {**raw, "last_used_at": now_ms}
            if isinstance(raw, dict) and raw.get("label") == label
            else raw
            for raw in item.get("accounts") or []
        ]
        self.db.update_item(
            self.CONFIG_TABLE,
            self._key(),
            "SET #accounts = :accounts",
            expression_attribute_values={":accounts": accounts},
            expression_attribute_names={"#accounts": "accounts"},
        )
