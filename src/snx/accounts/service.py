"""Account repository: creation, lookups, balance changes and login streaks.

Every write to an account document goes through this service (or through
the engines that call it), never through ad hoc store calls.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from datetime import date, datetime, timedelta, timezone
from typing import Any
from uuid import NAMESPACE_URL, uuid5

from snx.accounts.schemas import Account, AccountStats, DemoProgress
from snx.catalog.badges import WELCOME_EXPLORER
from snx.catalog.demos import initial_demo_progress
from snx.catalog.levels import compute_level, level_for_experience
from snx.config import Settings, get_settings
from snx.exceptions import (
    AccountCreationTimeout,
    AccountExists,
    AccountNotFound,
    DocumentNotFound,
    InvalidWallet,
)
from snx.ledger.schemas import TransactionType
from snx.ledger.service import get_ledger_total, log_points_transaction
from snx.notifications.push import LEVEL_UP, publish_event
from snx.store import ACCOUNTS, DocumentStore, Increment

logger = logging.getLogger(__name__)

ACCOUNT_CREATION_BONUS = 100

_ACCOUNT_NAMESPACE = uuid5(NAMESPACE_URL, "snx:accounts")


def account_id_for_wallet(wallet_address: str) -> str:
    """Stable account id for a wallet; one wallet can only ever claim one id."""
    return str(uuid5(_ACCOUNT_NAMESPACE, wallet_address))


def default_display_name(wallet_address: str) -> str:
    """Short, recognisable name derived from the wallet."""
    wallet = wallet_address.upper()
    if len(wallet) <= 8:
        return f"Explorer {wallet}"
    return f"Explorer {wallet[:4]}...{wallet[-4:]}"


class AccountService:
    """Owns the ``accounts`` collection."""

    def __init__(
        self,
        store: DocumentStore,
        redis: object | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.store = store
        self.redis = redis
        self.settings = settings or get_settings()

    # --- Lookups ---

    async def find_account(self, account_id: str) -> Account | None:
        data = await self.store.get_by_id(ACCOUNTS, account_id)
        return Account.model_validate(data) if data else None

    async def get_account(self, account_id: str) -> Account:
        """Load an account or raise AccountNotFound."""
        account = await self.find_account(account_id)
        if account is None:
            raise AccountNotFound(f"Account {account_id} not found")
        return account

    async def get_account_by_wallet(self, wallet_address: str) -> Account | None:
        data = await self.store.get_by_field(ACCOUNTS, "wallet_address", wallet_address.strip())
        return Account.model_validate(data) if data else None

    # --- Creation ---

    async def create_account(self, wallet_address: str, display_name: str | None = None) -> Account:
        """Create a new account with the welcome bonus and badge.

        Raises:
            InvalidWallet: Empty wallet address.
            AccountExists: The wallet already has an account.
            AccountCreationTimeout: The store did not confirm the write in time.
        """
        wallet = (wallet_address or "").strip()
        if not wallet:
            raise InvalidWallet()

        if await self.get_account_by_wallet(wallet) is not None:
            raise AccountExists()

        now = datetime.now(timezone.utc)
        account = Account(
            id=account_id_for_wallet(wallet),
            wallet_address=wallet,
            display_name=(display_name or "").strip() or default_display_name(wallet),
            created_at=now,
            updated_at=now,
            last_login_at=now,
            demos={k: DemoProgress(**v) for k, v in initial_demo_progress().items()},
            stats=AccountStats(last_active_date=now.date()),
        )

        try:
            created = await asyncio.wait_for(
                self.store.create_if_absent(
                    ACCOUNTS, account.id, account.model_dump(mode="json")
                ),
                timeout=self.settings.account_creation_timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            logger.error("Account creation timed out for wallet %s", wallet)
            raise AccountCreationTimeout() from exc
        if not created:
            raise AccountExists()

        await self.award_points(account.id, ACCOUNT_CREATION_BONUS, "bonus", "Account Creation Bonus")

        from snx.progression.badges import BadgeService

        await BadgeService(self.store, self, self.redis).grant_badge(account.id, WELCOME_EXPLORER)

        logger.info("Created account %s for wallet %s", account.id, wallet)
        return await self.get_account(account.id)

    async def get_or_create_account(
        self,
        wallet_address: str,
        display_name: str | None = None,
    ) -> tuple[Account, bool]:
        """Return ``(account, created)`` for a wallet connection."""
        existing = await self.get_account_by_wallet(wallet_address or "")
        if existing is not None:
            return existing, False
        try:
            return await self.create_account(wallet_address, display_name), True
        except AccountExists:
            # Another session created it between the lookup and the write
            account = await self.get_account_by_wallet(wallet_address)
            if account is None:
                raise
            return account, False

    # --- Writes ---

    async def update_fields(self, account_id: str, updates: Mapping[str, Any]) -> None:
        """Apply dotted-path updates to one account in a single write."""
        try:
            await self.store.partial_update(
                ACCOUNTS,
                account_id,
                {**updates, "updated_at": datetime.now(timezone.utc)},
            )
        except DocumentNotFound as exc:
            raise AccountNotFound(f"Account {account_id} not found") from exc

    async def claim(
        self,
        account_id: str,
        path: str,
        value: Any,
        key: str | None = None,
        updates: Mapping[str, Any] | None = None,
    ) -> bool:
        """Append ``value`` to an array field unless present, applying ``updates`` with it."""
        try:
            return await self.store.append_if_absent(
                ACCOUNTS,
                account_id,
                path,
                value,
                key=key,
                updates={**(updates or {}), "updated_at": datetime.now(timezone.utc)},
            )
        except DocumentNotFound as exc:
            raise AccountNotFound(f"Account {account_id} not found") from exc

    async def update_if(
        self,
        account_id: str,
        conditions: Mapping[str, Any],
        updates: Mapping[str, Any],
    ) -> bool:
        try:
            return await self.store.update_if(
                ACCOUNTS,
                account_id,
                conditions,
                {**updates, "updated_at": datetime.now(timezone.utc)},
            )
        except DocumentNotFound as exc:
            raise AccountNotFound(f"Account {account_id} not found") from exc

    async def award_points(
        self,
        account_id: str,
        amount: int,
        type_: TransactionType,
        reason: str,
        demo_id: str | None = None,
        experience: int | None = None,
        extra_updates: Mapping[str, Any] | None = None,
    ) -> None:
        """Change the balance and record the matching ledger row.

        1. Increment profile.total_points and profile.experience
           (plus ``extra_updates``) in one write
        2. Append the ledger row
        3. Recompute the level
        """
        gained = amount if experience is None else experience
        updates: dict[str, Any] = {
            "profile.total_points": Increment(amount),
            "profile.experience": Increment(gained),
        }
        if extra_updates:
            updates.update(extra_updates)
        await self.update_fields(account_id, updates)

        await log_points_transaction(self.store, account_id, type_, amount, reason, demo_id=demo_id)

        if gained:
            await self.refresh_level(account_id)

    async def refresh_level(self, account_id: str) -> int:
        """Recompute profile.level from experience. Returns the current level."""
        account = await self.get_account(account_id)
        old_level = account.profile.level
        new_level = level_for_experience(account.profile.experience)
        if new_level == old_level:
            return old_level

        await self.update_fields(account_id, {"profile.level": new_level})
        if new_level > old_level:
            level_info = compute_level(account.profile.experience)
            logger.info("Account %s levelled up %d -> %d", account_id, old_level, new_level)
            await publish_event(self.redis, LEVEL_UP, {
                "account_id": account_id,
                "old_level": old_level,
                "new_level": new_level,
                "title": level_info["title"],
            })
        return new_level

    async def update_last_login(self, account_id: str, today: date | None = None) -> Account:
        """Stamp the login and maintain the daily activity streak."""
        account = await self.get_account(account_id)
        if today is None:
            today = datetime.now(timezone.utc).date()

        last_active = account.stats.last_active_date
        streak = account.stats.streak_days
        if last_active is None:
            streak = 1
        elif last_active == today - timedelta(days=1):
            streak += 1
        elif last_active != today:
            streak = 1

        await self.update_fields(account_id, {
            "last_login_at": datetime.now(timezone.utc),
            "stats.streak_days": streak,
            "stats.last_active_date": today.isoformat(),
        })
        return await self.get_account(account_id)

    async def check_balance(self, account_id: str) -> tuple[int, int, int]:
        """Compare the stored balance against the ledger sum.

        Returns ``(balance, ledger_total, drift)``; drift is zero when they agree.
        """
        account = await self.get_account(account_id)
        ledger_total = await get_ledger_total(self.store, account_id)
        balance = account.profile.total_points
        drift = balance - ledger_total
        if drift:
            logger.warning("Balance drift for %s: balance=%d ledger=%d", account_id, balance, ledger_total)
        return balance, ledger_total, drift
