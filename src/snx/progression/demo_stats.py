"""Global per-demo completion counters."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from snx.store import DEMO_STATS, DocumentStore, Increment

logger = logging.getLogger(__name__)


async def record_demo_completion(
    store: DocumentStore,
    demo_id: str,
    completion_time: int = 0,
) -> None:
    """Bump the global counters for a demo. Failures are logged, never raised."""
    try:
        await store.create_if_absent(DEMO_STATS, demo_id, {
            "demo_id": demo_id,
            "total_completions": 0,
            "total_completion_time": 0,
        })
        await store.partial_update(DEMO_STATS, demo_id, {
            "total_completions": Increment(1),
            "total_completion_time": Increment(max(completion_time, 0)),
            "last_completed_at": datetime.now(timezone.utc),
        })
    except Exception:
        logger.warning("Failed to update demo stats for %s", demo_id, exc_info=True)


async def get_demo_stats(store: DocumentStore, demo_id: str) -> dict:
    """Counters for a demo, with the average completion time in seconds."""
    data = await store.get_by_id(DEMO_STATS, demo_id) or {}
    completions = int(data.get("total_completions", 0))
    total_time = int(data.get("total_completion_time", 0))
    return {
        "demo_id": demo_id,
        "total_completions": completions,
        "total_completion_time": total_time,
        "average_completion_time": round(total_time / completions, 1) if completions else 0.0,
        "last_completed_at": data.get("last_completed_at"),
    }
