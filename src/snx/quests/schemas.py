"""Quest models."""

from __future__ import annotations

from pydantic import BaseModel


class QuestCompletionResult(BaseModel):
    quest_id: str
    awarded: bool
    reward_points: int = 0
    reward_experience: int = 0
    badge_id: str | None = None
    quest_master_awarded: bool = False
