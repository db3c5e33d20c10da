"""Leaderboard API endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from snx.dependencies import get_store
from snx.leaderboard.schemas import Leaderboard
from snx.leaderboard.service import get_leaderboard
from snx.store import DocumentStore

router = APIRouter(prefix="/api/v1", tags=["Leaderboard"])


@router.get("/leaderboard", response_model=Leaderboard)
async def leaderboard(
    wallet: str | None = Query(None),
    limit: int = Query(10, ge=1, le=100),
    store: DocumentStore = Depends(get_store),  # noqa: B008
):
    return await get_leaderboard(store, wallet_address=wallet, limit=limit)
