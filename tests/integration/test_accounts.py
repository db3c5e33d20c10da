"""Account creation, balance changes, levels and login streaks."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from snx.accounts.service import (
    ACCOUNT_CREATION_BONUS,
    AccountService,
    account_id_for_wallet,
    default_display_name,
)
from snx.config import Settings
from snx.exceptions import AccountCreationTimeout, AccountExists, AccountNotFound, InvalidWallet
from snx.ledger.service import get_ledger_total, get_points_transactions
from snx.store import ACCOUNTS
from tests.conftest import WALLET_A, WALLET_B


class TestCreateAccount:
    @pytest.mark.asyncio
    async def test_new_account_shape(self, make_account):
        account = await make_account(WALLET_A, "Alice")

        assert account.wallet_address == WALLET_A
        assert account.display_name == "Alice"
        assert account.demos["hello-milestone"].status == "available"
        assert account.demos["milestone-voting"].status == "locked"
        assert account.stats.total_demos_completed == 0
        assert account.stats.streak_days == 1
        assert account.completed_quests == []
        assert account.referrals.referred_by is None

    @pytest.mark.asyncio
    async def test_welcome_bonus_and_badge(self, make_account):
        account = await make_account(WALLET_A)

        assert [b.badge_id for b in account.badges] == ["welcome_explorer"]
        # 100 creation bonus + 10 for the welcome badge
        assert account.profile.total_points == ACCOUNT_CREATION_BONUS + 10
        # bonus experience 1:1, badge experience 2x
        assert account.profile.experience == 120
        assert account.profile.level == 1

    @pytest.mark.asyncio
    async def test_ledger_matches_balance(self, make_account, accounts, store):
        account = await make_account(WALLET_A)

        rows = await get_points_transactions(store, account.id)
        assert sorted((r.type, r.amount, r.reason) for r in rows) == [
            ("bonus", 100, "Account Creation Bonus"),
            ("earn", 10, "Badge: Welcome Explorer"),
        ]
        assert await accounts.check_balance(account.id) == (110, 110, 0)

    @pytest.mark.asyncio
    async def test_default_display_name(self, make_account):
        account = await make_account(WALLET_A)
        assert account.display_name == default_display_name(WALLET_A)
        assert account.display_name.startswith("Explorer ")

    @pytest.mark.asyncio
    async def test_blank_wallet_rejected(self, accounts):
        with pytest.raises(InvalidWallet):
            await accounts.create_account("   ")

    @pytest.mark.asyncio
    async def test_duplicate_wallet_rejected(self, make_account, accounts):
        await make_account(WALLET_A)
        with pytest.raises(AccountExists):
            await accounts.create_account(WALLET_A)

    @pytest.mark.asyncio
    async def test_creation_timeout(self):
        store = MagicMock()
        store.get_by_field = AsyncMock(return_value=None)

        async def _slow_write(*_args, **_kwargs):
            await asyncio.sleep(1)

        store.create_if_absent = _slow_write
        service = AccountService(store, settings=Settings(account_creation_timeout_seconds=0.01))

        with pytest.raises(AccountCreationTimeout):
            await service.create_account(WALLET_A)

    @pytest.mark.asyncio
    async def test_lost_write_race_rejected(self):
        store = MagicMock()
        store.get_by_field = AsyncMock(return_value=None)
        store.create_if_absent = AsyncMock(return_value=False)
        service = AccountService(store)

        with pytest.raises(AccountExists):
            await service.create_account(WALLET_A)
        store.create_if_absent.assert_awaited_once()
        assert store.create_if_absent.await_args.args[1] == account_id_for_wallet(WALLET_A)

    def test_account_id_is_stable_per_wallet(self):
        assert account_id_for_wallet(WALLET_A) == account_id_for_wallet(WALLET_A)
        assert account_id_for_wallet(WALLET_A) != account_id_for_wallet(WALLET_B)


class TestLookups:
    @pytest.mark.asyncio
    async def test_get_account_missing(self, accounts):
        with pytest.raises(AccountNotFound):
            await accounts.get_account("nope")
        assert await accounts.find_account("nope") is None

    @pytest.mark.asyncio
    async def test_by_wallet(self, make_account, accounts):
        account = await make_account(WALLET_A)
        found = await accounts.get_account_by_wallet(WALLET_A)
        assert found is not None and found.id == account.id
        assert await accounts.get_account_by_wallet(WALLET_B) is None

    @pytest.mark.asyncio
    async def test_get_or_create(self, accounts):
        first, created = await accounts.get_or_create_account(WALLET_A)
        again, created_again = await accounts.get_or_create_account(WALLET_A)
        assert created is True
        assert created_again is False
        assert again.id == first.id

    @pytest.mark.asyncio
    async def test_concurrent_connects_share_one_account(self, accounts, store):
        results = await asyncio.gather(
            accounts.get_or_create_account(WALLET_A),
            accounts.get_or_create_account(WALLET_A),
        )

        assert await store.count(ACCOUNTS, {"wallet_address": WALLET_A}) == 1
        assert len({account.id for account, _ in results}) == 1
        assert [created for _, created in results].count(True) == 1
        rows = await get_points_transactions(store, results[0][0].id)
        assert len(rows) == 2


class TestAwardPoints:
    @pytest.mark.asyncio
    async def test_award_updates_balance_and_ledger(self, make_account, accounts, store):
        account = await make_account(WALLET_A)
        await accounts.award_points(account.id, 40, "bonus", "Test bonus")

        refreshed = await accounts.get_account(account.id)
        assert refreshed.profile.total_points == 150
        assert await get_ledger_total(store, account.id) == 150

    @pytest.mark.asyncio
    async def test_level_up_published(self, store):
        redis = MagicMock()
        redis.publish = AsyncMock()
        service = AccountService(store, redis=redis)
        account = await service.create_account(WALLET_A)
        redis.publish.reset_mock()

        await service.award_points(account.id, 10, "bonus", "Big XP", experience=2000)

        refreshed = await service.get_account(account.id)
        assert refreshed.profile.level == 3
        channels = [c.args[0] for c in redis.publish.await_args_list]
        assert "pubsub:level_up" in channels

    @pytest.mark.asyncio
    async def test_award_to_missing_account(self, accounts):
        with pytest.raises(AccountNotFound):
            await accounts.award_points("nope", 5, "bonus", "x")

    @pytest.mark.asyncio
    async def test_drift_detected(self, make_account, accounts):
        account = await make_account(WALLET_A)
        # Balance change that bypasses the ledger
        from snx.store import Increment

        await accounts.update_fields(account.id, {"profile.total_points": Increment(7)})
        assert await accounts.check_balance(account.id) == (117, 110, 7)


class TestLoginStreak:
    @pytest.mark.asyncio
    async def test_streak_progression(self, make_account, accounts):
        account = await make_account(WALLET_A)
        today = datetime.now(timezone.utc).date()

        same_day = await accounts.update_last_login(account.id, today=today)
        assert same_day.stats.streak_days == 1

        next_day = await accounts.update_last_login(account.id, today=today + timedelta(days=1))
        assert next_day.stats.streak_days == 2
        assert next_day.stats.last_active_date == today + timedelta(days=1)

        after_gap = await accounts.update_last_login(account.id, today=today + timedelta(days=4))
        assert after_gap.stats.streak_days == 1
        assert after_gap.last_login_at is not None
