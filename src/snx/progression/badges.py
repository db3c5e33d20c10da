"""Badge granting and evaluation.

A grant is a single atomic append to ``badges`` keyed by badge name, so an
account can never hold two entries with the same name.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING
from uuid import uuid4

from snx.accounts.schemas import Account, EarnedBadge
from snx.catalog.badges import BADGE_CATALOG, COMPOSITE_BADGES, get_badge, get_badge_for_demo
from snx.notifications.push import BADGE_EARNED, publish_event
from snx.store import DocumentStore

if TYPE_CHECKING:
    from snx.accounts.service import AccountService

logger = logging.getLogger(__name__)

BADGE_EXPERIENCE_MULTIPLIER = 2


class BadgeService:
    def __init__(
        self,
        store: DocumentStore,
        accounts: AccountService,
        redis: object | None = None,
    ) -> None:
        self.store = store
        self.accounts = accounts
        self.redis = redis

    async def grant_badge(
        self,
        account_id: str,
        badge_id: str,
        demo_id: str | None = None,
        experience: int | None = None,
        reason: str | None = None,
    ) -> bool:
        """Award a badge to an account.

        Returns True if awarded, False if the account already holds a badge
        with the same name or the badge id is unknown.
        Handles:
        1. Atomic append to ``badges`` (deduplicated by name)
        2. Points and experience increments with a ledger row
        3. Badge-earned push
        """
        badge = get_badge(badge_id)
        if badge is None:
            logger.warning("Badge not found: %s", badge_id)
            return False

        entry = EarnedBadge(
            id=str(uuid4()),
            badge_id=badge_id,
            name=badge["name"],
            rarity=badge["rarity"],
            points_value=badge["points_value"],
            earned_at=datetime.now(timezone.utc),
            demo_id=demo_id,
        )
        claimed = await self.accounts.claim(
            account_id,
            "badges",
            entry.model_dump(mode="json", exclude_none=True),
            key="name",
        )
        if not claimed:
            return False

        points = badge["points_value"]
        if experience is None:
            experience = points * BADGE_EXPERIENCE_MULTIPLIER
        await self.accounts.award_points(
            account_id,
            points,
            "earn",
            reason or f"Badge: {badge['name']}",
            experience=experience,
        )

        logger.info("Awarded badge %s to %s", badge_id, account_id)
        await publish_event(self.redis, BADGE_EARNED, {
            "account_id": account_id,
            "badge_id": badge_id,
            "badge_name": badge["name"],
            "rarity": badge["rarity"],
            "points_value": points,
        })
        return True

    async def evaluate_demo_badges(self, account_id: str, demo_id: str) -> list[str]:
        """Grant the demo's own badge, then any composite badge now satisfied.

        Re-reads the account so the check sees the completion just written.
        Returns the badge ids granted by this call.
        """
        account = await self.accounts.get_account(account_id)
        awarded: list[str] = []

        badge_id = get_badge_for_demo(demo_id)
        if badge_id and account.has_completed(demo_id):
            if await self.grant_badge(account_id, badge_id, demo_id=demo_id):
                awarded.append(badge_id)

        awarded.extend(await self.evaluate_composite_badges(account))
        return awarded

    async def evaluate_composite_badges(self, account: Account) -> list[str]:
        held = account.badge_names()
        awarded: list[str] = []
        for badge_id in COMPOSITE_BADGES:
            badge = BADGE_CATALOG[badge_id]
            if badge["name"] in held:
                continue
            if all(account.has_completed(d) for d in badge["requires_demos"]):
                if await self.grant_badge(account.id, badge_id):
                    awarded.append(badge_id)
        return awarded
