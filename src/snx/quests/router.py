"""Quest API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from snx.catalog.quests import QUEST_CATALOG
from snx.dependencies import get_quest_service
from snx.quests.schemas import QuestCompletionResult
from snx.quests.service import QuestService

router = APIRouter(prefix="/api/v1", tags=["Quests"])


@router.get("/quests")
async def list_quests() -> list[dict]:
    return [{"id": quest_id, **quest} for quest_id, quest in QUEST_CATALOG.items()]


@router.post("/accounts/{account_id}/quests/{quest_id}/complete", response_model=QuestCompletionResult)
async def complete_quest(
    account_id: str,
    quest_id: str,
    quests: QuestService = Depends(get_quest_service),  # noqa: B008
):
    """Complete a manually verified social quest."""
    return await quests.complete_quest(account_id, quest_id)
