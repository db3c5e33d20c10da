"""Leaderboard models."""

from __future__ import annotations

from pydantic import BaseModel, Field


class LeaderboardEntry(BaseModel):
    rank: int
    account_id: str
    wallet_address: str
    display_name: str
    total_points: int
    level: int
    badges_count: int
    is_current_user: bool = False


class Leaderboard(BaseModel):
    total_users: int
    current_user_rank: int | None = None
    entries: list[LeaderboardEntry] = Field(default_factory=list)
