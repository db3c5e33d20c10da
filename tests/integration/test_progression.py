"""Demo completion: rewards, replays, unlocks and concurrency."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from snx.exceptions import AccountNotFound, DemoLocked, InvalidScore, StoreUnavailable
from snx.ledger.service import get_points_transactions
from snx.progression.demo_stats import get_demo_stats
from snx.progression.engine import ProgressionEngine
from snx.progression.guard import CompletionGuard
from snx.store import DEMO_STATS
from tests.conftest import WALLET_A

BASE_POINTS = {
    "hello-milestone": 100,
    "milestone-voting": 150,
    "dispute-resolution": 200,
    "micro-marketplace": 250,
}


async def _demo_ledger(store, account_id: str, demo_id: str):
    rows = await get_points_transactions(store, account_id, limit=200)
    return [r for r in rows if r.demo_id == demo_id]


class TestFirstCompletion:
    @pytest.mark.asyncio
    async def test_score_80_then_replay_100(self, make_account, engine, accounts, store):
        account = await make_account(WALLET_A)

        first = await engine.complete_demo(account.id, "hello-milestone", 80)
        assert first.points_earned == 80
        assert first.experience_gained == 160
        assert first.first_completion is True
        assert first.account.stats.total_demos_completed == 1
        assert first.account.demos["hello-milestone"].points_earned == 80
        ledger = await _demo_ledger(store, account.id, "hello-milestone")
        assert [(r.type, r.amount, r.reason) for r in ledger] == [("earn", 80, "Completed hello-milestone")]

        replay = await engine.complete_demo(account.id, "hello-milestone", 100)
        assert replay.points_earned == 25
        assert replay.first_completion is False
        assert replay.badges_awarded == []
        assert replay.unlocked_demo is None

        final = await accounts.get_account(account.id)
        assert final.stats.total_demos_completed == 1
        assert final.demos["hello-milestone"].score == 100
        # replays never overwrite the first-completion record
        assert final.demos["hello-milestone"].points_earned == 80
        assert final.stats.total_points_earned == 105
        # 110 welcome + 80 + 30 escrow expert badge + 25 replay
        assert final.profile.total_points == 245
        ledger = await _demo_ledger(store, account.id, "hello-milestone")
        assert sorted(r.amount for r in ledger) == [25, 80]
        assert await accounts.check_balance(account.id) == (245, 245, 0)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("demo_id,base", BASE_POINTS.items())
    @pytest.mark.parametrize("score,expected_ratio", [(100, 1.0), (50, 0.5), (0, 0.5)])
    async def test_points_by_score(self, make_account, engine, demo_id, base, score, expected_ratio):
        account = await make_account(WALLET_A)
        result = await engine.complete_demo(account.id, demo_id, score)
        assert result.points_earned == int(base * expected_ratio)

    @pytest.mark.asyncio
    async def test_experience_and_status(self, make_account, engine):
        account = await make_account(WALLET_A)
        result = await engine.complete_demo(account.id, "hello-milestone", 100)

        progress = result.account.demos["hello-milestone"]
        assert progress.status == "completed"
        assert progress.completed_at is not None
        assert "hello-milestone" in result.account.demos_completed
        # 120 at creation + 200 demo + 60 badge
        assert result.account.profile.experience == 380

    @pytest.mark.asyncio
    async def test_alias_is_resolved(self, make_account, engine):
        account = await make_account(WALLET_A)
        result = await engine.complete_demo(account.id, "demo1", 100)
        assert result.demo_id == "hello-milestone"
        assert result.account.demos["hello-milestone"].status == "completed"
        assert "demo1" not in result.account.demos

    @pytest.mark.asyncio
    async def test_unknown_demo_earns_default(self, make_account, engine):
        account = await make_account(WALLET_A)
        result = await engine.complete_demo(account.id, "bonus-demo", 100)
        assert result.points_earned == 100
        assert result.badges_awarded == []
        assert result.unlocked_demo is None
        assert result.account.demos["bonus-demo"].demo_name == "Unknown Demo"

    @pytest.mark.asyncio
    async def test_replay_counts_demo_once(self, make_account, engine, accounts):
        account = await make_account(WALLET_A)
        for _ in range(4):
            await engine.complete_demo(account.id, "hello-milestone", 90)
        final = await accounts.get_account(account.id)
        assert final.stats.total_demos_completed == 1
        assert final.demos_completed == ["hello-milestone"]


class TestUnlocks:
    @pytest.mark.asyncio
    async def test_successor_unlocked(self, make_account, engine):
        account = await make_account(WALLET_A)
        result = await engine.complete_demo(account.id, "hello-milestone", 100)
        assert result.unlocked_demo == "milestone-voting"
        assert result.account.demos["milestone-voting"].status == "available"
        assert result.account.demos["dispute-resolution"].status == "locked"

    @pytest.mark.asyncio
    async def test_chain(self, make_account, engine, accounts):
        account = await make_account(WALLET_A)
        await engine.complete_demo(account.id, "hello-milestone", 100)
        second = await engine.complete_demo(account.id, "milestone-voting", 100)
        assert second.unlocked_demo == "dispute-resolution"
        third = await engine.complete_demo(account.id, "dispute-resolution", 100)
        assert third.unlocked_demo == "micro-marketplace"
        last = await engine.complete_demo(account.id, "micro-marketplace", 100)
        assert last.unlocked_demo is None

    @pytest.mark.asyncio
    async def test_already_available_successor_not_reported(self, make_account, engine):
        account = await make_account(WALLET_A)
        await engine.complete_demo(account.id, "hello-milestone", 100)
        assert await engine.unlock_next_demo(account.id, "hello-milestone") is None


class TestStartDemo:
    @pytest.mark.asyncio
    async def test_available_demo(self, make_account, engine, accounts):
        account = await make_account(WALLET_A)
        await engine.start_demo(account.id, "hello-milestone")
        progress = (await accounts.get_account(account.id)).demos["hello-milestone"]
        assert progress.status == "in_progress"
        assert progress.attempts == 1
        assert progress.last_attempted_at is not None

    @pytest.mark.asyncio
    async def test_in_progress_again(self, make_account, engine, accounts):
        account = await make_account(WALLET_A)
        await engine.start_demo(account.id, "hello-milestone")
        await engine.start_demo(account.id, "hello-milestone")
        progress = (await accounts.get_account(account.id)).demos["hello-milestone"]
        assert progress.attempts == 2

    @pytest.mark.asyncio
    async def test_locked_demo(self, make_account, engine, accounts):
        account = await make_account(WALLET_A)
        with pytest.raises(DemoLocked):
            await engine.start_demo(account.id, "dispute-resolution")
        progress = (await accounts.get_account(account.id)).demos["dispute-resolution"]
        assert progress.attempts == 0

    @pytest.mark.asyncio
    async def test_completed_demo_replay_attempt(self, make_account, engine, accounts):
        account = await make_account(WALLET_A)
        await engine.complete_demo(account.id, "hello-milestone", 100)
        await engine.start_demo(account.id, "hello-milestone")
        progress = (await accounts.get_account(account.id)).demos["hello-milestone"]
        assert progress.status == "completed"
        assert progress.attempts == 1

    @pytest.mark.asyncio
    async def test_no_reward_side_effects(self, make_account, engine, accounts):
        account = await make_account(WALLET_A)
        await engine.start_demo(account.id, "hello-milestone")
        assert (await accounts.get_account(account.id)).profile.total_points == 110

    @pytest.mark.asyncio
    async def test_unknown_account(self, engine):
        with pytest.raises(AccountNotFound):
            await engine.start_demo("nope", "hello-milestone")


class TestFailures:
    @pytest.mark.asyncio
    async def test_invalid_score_writes_nothing(self, make_account, engine, accounts, store):
        account = await make_account(WALLET_A)
        with pytest.raises(InvalidScore):
            await engine.complete_demo(account.id, "hello-milestone", 101)
        after = await accounts.get_account(account.id)
        assert after.demos["hello-milestone"].status == "available"
        assert len(await get_points_transactions(store, account.id)) == 2

    @pytest.mark.asyncio
    async def test_unknown_account(self, engine):
        with pytest.raises(AccountNotFound):
            await engine.complete_demo("nope", "hello-milestone", 100)
        assert engine.guard.acquire("nope", "hello-milestone") is True

    @pytest.mark.asyncio
    async def test_badge_failure_still_returns_reward(self, make_account, engine, accounts):
        account = await make_account(WALLET_A)
        engine.badges.evaluate_demo_badges = AsyncMock(side_effect=StoreUnavailable())

        result = await engine.complete_demo(account.id, "hello-milestone", 100)
        assert result.points_earned == 100
        assert result.badges_awarded == []
        assert result.unlocked_demo == "milestone-voting"
        assert "escrow_expert" not in (await accounts.get_account(account.id)).badge_ids()

    @pytest.mark.asyncio
    async def test_reconcile_heals_missing_badge(self, make_account, engine, store, accounts):
        account = await make_account(WALLET_A)
        failing = ProgressionEngine(store, accounts=accounts)
        failing.badges.evaluate_demo_badges = AsyncMock(side_effect=StoreUnavailable())
        failing.unlock_next_demo = AsyncMock(side_effect=StoreUnavailable())
        await failing.complete_demo(account.id, "hello-milestone", 100)

        result = await engine.reconcile_progress(account.id)
        assert result.badges_awarded == ["escrow_expert"]
        assert result.unlocked_demos == ["milestone-voting"]

        again = await engine.reconcile_progress(account.id)
        assert again.badges_awarded == []
        assert again.unlocked_demos == []


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_overlapping_calls_in_one_process(self, make_account, engine, accounts):
        account = await make_account(WALLET_A)
        results = await asyncio.gather(
            engine.complete_demo(account.id, "hello-milestone", 100),
            engine.complete_demo(account.id, "hello-milestone", 100),
        )
        assert sum(r is None for r in results) == 1
        assert engine.guard.acquire(account.id, "hello-milestone") is True
        final = await accounts.get_account(account.id)
        assert final.stats.total_demos_completed == 1

    @pytest.mark.asyncio
    async def test_two_sessions_single_first_completion(self, make_account, store, accounts):
        account = await make_account(WALLET_A)
        session_one = ProgressionEngine(store, accounts=accounts, guard=CompletionGuard())
        session_two = ProgressionEngine(store, accounts=accounts, guard=CompletionGuard())

        results = await asyncio.gather(
            session_one.complete_demo(account.id, "hello-milestone", 100),
            session_two.complete_demo(account.id, "hello-milestone", 100),
        )

        assert sorted(r.first_completion for r in results) == [False, True]
        assert sorted(r.points_earned for r in results) == [25, 100]
        final = await accounts.get_account(account.id)
        assert final.stats.total_demos_completed == 1
        assert [b.badge_id for b in final.badges].count("escrow_expert") == 1
        # 110 + 100 + 25 + 30
        assert final.profile.total_points == 265


class TestDemoStats:
    @pytest.mark.asyncio
    async def test_counters(self, make_account, engine, store):
        account = await make_account(WALLET_A)
        await engine.complete_demo(account.id, "hello-milestone", 100, completion_time=30)
        await engine.complete_demo(account.id, "hello-milestone", 100, completion_time=50)

        stats = await get_demo_stats(store, "hello-milestone")
        assert stats["total_completions"] == 2
        assert stats["total_completion_time"] == 80
        assert stats["average_completion_time"] == 40.0

    @pytest.mark.asyncio
    async def test_stats_failure_is_not_fatal(self, make_account, accounts, store):
        account = await make_account(WALLET_A)
        real_create = store.create_if_absent

        async def create_if_absent(collection, doc_id, document):
            if collection == DEMO_STATS:
                raise StoreUnavailable()
            return await real_create(collection, doc_id, document)

        engine = ProgressionEngine(store, accounts=accounts)
        engine.store = MagicMock(wraps=store)
        engine.store.create_if_absent = AsyncMock(side_effect=create_if_absent)

        result = await engine.complete_demo(account.id, "hello-milestone", 100)
        assert result.points_earned == 100
        assert (await get_demo_stats(store, "hello-milestone"))["total_completions"] == 0

    @pytest.mark.asyncio
    async def test_empty_stats(self, store):
        stats = await get_demo_stats(store, "hello-milestone")
        assert stats["total_completions"] == 0
        assert stats["average_completion_time"] == 0.0
