"""Progression result models."""

from __future__ import annotations

from pydantic import BaseModel, Field

from snx.accounts.schemas import Account


class CompletionResult(BaseModel):
    demo_id: str
    score: int
    points_earned: int
    experience_gained: int
    first_completion: bool
    badges_awarded: list[str] = Field(default_factory=list)
    unlocked_demo: str | None = None
    account: Account


class ReconcileResult(BaseModel):
    badges_awarded: list[str] = Field(default_factory=list)
    unlocked_demos: list[str] = Field(default_factory=list)


class CompleteDemoRequest(BaseModel):
    score: int
    completion_time: int = 0
