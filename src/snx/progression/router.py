"""Demo progression API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response

from snx.dependencies import get_progression_engine, get_store
from snx.progression.demo_stats import get_demo_stats
from snx.progression.engine import ProgressionEngine, normalize_demo_id
from snx.progression.schemas import CompleteDemoRequest, CompletionResult, ReconcileResult
from snx.store import DocumentStore

router = APIRouter(prefix="/api/v1", tags=["Demos"])


@router.post("/accounts/{account_id}/demos/{demo_id}/start", status_code=204)
async def start_demo(
    account_id: str,
    demo_id: str,
    engine: ProgressionEngine = Depends(get_progression_engine),  # noqa: B008
) -> Response:
    await engine.start_demo(account_id, demo_id)
    return Response(status_code=204)


@router.post("/accounts/{account_id}/demos/{demo_id}/complete", response_model=CompletionResult)
async def complete_demo(
    account_id: str,
    demo_id: str,
    body: CompleteDemoRequest,
    engine: ProgressionEngine = Depends(get_progression_engine),  # noqa: B008
):
    """Complete a demo and return the reward summary."""
    result = await engine.complete_demo(account_id, demo_id, body.score, body.completion_time)
    if result is None:
        raise HTTPException(status_code=409, detail="Completion already in progress")
    return result


@router.post("/accounts/{account_id}/progress/reconcile", response_model=ReconcileResult)
async def reconcile_progress(
    account_id: str,
    engine: ProgressionEngine = Depends(get_progression_engine),  # noqa: B008
):
    return await engine.reconcile_progress(account_id)


@router.get("/demos/{demo_id}/stats")
async def demo_stats(
    demo_id: str,
    store: DocumentStore = Depends(get_store),  # noqa: B008
) -> dict:
    return await get_demo_stats(store, normalize_demo_id(demo_id))
