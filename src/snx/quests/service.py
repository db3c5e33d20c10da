"""Quest completion: manual social quests, referral thresholds and the meta quest."""

from __future__ import annotations

import logging

from snx.accounts.service import AccountService
from snx.catalog.quests import (
    QUEST_MASTER_ID,
    QUEST_MASTER_REQUIREMENTS,
    REFERRAL_QUESTS,
    get_quest,
    is_manual_quest,
)
from snx.exceptions import InvalidInput, QuestLocked, UnknownQuest
from snx.progression.badges import BadgeService
from snx.quests.schemas import QuestCompletionResult
from snx.store import DocumentStore

logger = logging.getLogger(__name__)


class QuestService:
    def __init__(
        self,
        store: DocumentStore,
        redis: object | None = None,
        accounts: AccountService | None = None,
    ) -> None:
        self.store = store
        self.accounts = accounts or AccountService(store, redis)
        self.badges = BadgeService(store, self.accounts, redis)

    async def _award_quest(self, account_id: str, quest_id: str) -> bool:
        """Claim the quest id once, then grant its badge with the quest reward."""
        quest = get_quest(quest_id)
        if quest is None:
            return False

        claimed = await self.accounts.claim(account_id, "completed_quests", quest_id)
        if not claimed:
            return False

        granted = await self.badges.grant_badge(
            account_id,
            quest["badge_id"],
            experience=quest["reward_experience"],
            reason=f"Quest: {quest['title']}",
        )
        if not granted:
            logger.warning("Quest %s completed for %s but badge was already held", quest_id, account_id)
        logger.info("Account %s completed quest %s", account_id, quest_id)
        return True

    async def complete_quest(self, account_id: str, quest_id: str) -> QuestCompletionResult:
        """Complete a manually verified quest.

        Raises:
            UnknownQuest: No quest with this id.
            InvalidInput: The quest is completed automatically.
            QuestLocked: The account lacks the badges that unlock the quest.
        """
        quest = get_quest(quest_id)
        if quest is None:
            raise UnknownQuest(f"Quest {quest_id} not found")
        if not is_manual_quest(quest_id):
            raise InvalidInput(f"Quest {quest_id} is completed automatically")

        account = await self.accounts.get_account(account_id)
        missing = [b for b in quest.get("unlock_requirements", []) if b not in account.badge_ids()]
        if missing:
            raise QuestLocked(f"Quest {quest_id} requires badges: {', '.join(missing)}")

        awarded = await self._award_quest(account_id, quest_id)
        master_awarded = await self.check_quest_master(account_id) if awarded else False
        return QuestCompletionResult(
            quest_id=quest_id,
            awarded=awarded,
            reward_points=quest["reward_points"] if awarded else 0,
            reward_experience=quest["reward_experience"] if awarded else 0,
            badge_id=quest["badge_id"],
            quest_master_awarded=master_awarded,
        )

    async def check_referral_quests(self, account_id: str) -> list[str]:
        """Grant every referral threshold quest the account has reached.

        Thresholds are checked in ascending order, so the 5-friend quest is
        never granted without the 1-friend quest. Returns the quest ids
        granted by this call.
        """
        account = await self.accounts.get_account(account_id)
        successful = account.referrals.successful_referrals
        granted: list[str] = []
        for quest_id in REFERRAL_QUESTS:
            if quest_id in account.completed_quests:
                continue
            if successful >= get_quest(quest_id)["threshold"]:
                if await self._award_quest(account_id, quest_id):
                    granted.append(quest_id)

        if await self.check_quest_master(account_id):
            granted.append(QUEST_MASTER_ID)
        return granted

    async def check_quest_master(self, account_id: str) -> bool:
        """Grant the meta quest once every other quest is complete."""
        account = await self.accounts.get_account(account_id)
        if QUEST_MASTER_ID in account.completed_quests:
            return False
        if not all(q in account.completed_quests for q in QUEST_MASTER_REQUIREMENTS):
            return False
        return await self._award_quest(account_id, QUEST_MASTER_ID)
