"""Badge grants: idempotence, rewards and composite badges."""

from __future__ import annotations

import asyncio

import pytest

from snx.exceptions import AccountNotFound
from snx.progression.badges import BadgeService
from tests.conftest import WALLET_A


@pytest.fixture
def badges(store, accounts) -> BadgeService:
    return BadgeService(store, accounts)


@pytest.mark.asyncio
async def test_grant_pays_points_and_double_experience(make_account, badges, accounts):
    account = await make_account(WALLET_A)

    assert await badges.grant_badge(account.id, "trust_guardian") is True

    after = await accounts.get_account(account.id)
    assert after.profile.total_points == 160
    assert after.profile.experience == 220
    badge = next(b for b in after.badges if b.badge_id == "trust_guardian")
    assert badge.name == "Trust Guardian"
    assert badge.rarity == "epic"
    assert badge.points_value == 50


@pytest.mark.asyncio
async def test_grant_is_idempotent(make_account, badges, accounts):
    account = await make_account(WALLET_A)

    assert await badges.grant_badge(account.id, "escrow_expert") is True
    assert await badges.grant_badge(account.id, "escrow_expert") is False

    after = await accounts.get_account(account.id)
    assert [b.badge_id for b in after.badges].count("escrow_expert") == 1
    assert after.profile.total_points == 140


@pytest.mark.asyncio
async def test_concurrent_grants_award_once(make_account, badges, accounts):
    account = await make_account(WALLET_A)

    results = await asyncio.gather(*(badges.grant_badge(account.id, "escrow_expert") for _ in range(5)))

    assert results.count(True) == 1
    assert (await accounts.check_balance(account.id))[2] == 0


@pytest.mark.asyncio
async def test_welcome_badge_not_granted_twice(make_account, badges):
    account = await make_account(WALLET_A)
    assert await badges.grant_badge(account.id, "welcome_explorer") is False


@pytest.mark.asyncio
async def test_unknown_badge(make_account, badges):
    account = await make_account(WALLET_A)
    assert await badges.grant_badge(account.id, "golden_goose") is False


@pytest.mark.asyncio
async def test_unknown_account(badges):
    with pytest.raises(AccountNotFound):
        await badges.grant_badge("missing", "escrow_expert")


class TestCompositeBadge:
    @pytest.mark.asyncio
    async def test_not_awarded_with_two_of_three(self, make_account, engine, accounts):
        account = await make_account(WALLET_A)
        await engine.complete_demo(account.id, "hello-milestone", 100)
        await engine.complete_demo(account.id, "dispute-resolution", 100)

        held = (await accounts.get_account(account.id)).badge_ids()
        assert "nexus_master" not in held
        assert {"escrow_expert", "trust_guardian"} <= held

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "order",
        [
            ["hello-milestone", "dispute-resolution", "micro-marketplace"],
            ["micro-marketplace", "hello-milestone", "dispute-resolution"],
        ],
    )
    async def test_awarded_in_any_order(self, make_account, engine, accounts, order):
        account = await make_account(WALLET_A)
        results = [await engine.complete_demo(account.id, demo, 100) for demo in order]

        assert "nexus_master" in results[-1].badges_awarded
        assert all("nexus_master" not in r.badges_awarded for r in results[:-1])
        held = (await accounts.get_account(account.id)).badge_ids()
        assert {"escrow_expert", "trust_guardian", "stellar_champion", "nexus_master"} <= held

    @pytest.mark.asyncio
    async def test_voting_demo_has_no_badge(self, make_account, engine):
        account = await make_account(WALLET_A)
        await engine.complete_demo(account.id, "hello-milestone", 100)
        result = await engine.complete_demo(account.id, "milestone-voting", 100)
        assert result.badges_awarded == []
