"""Best-effort event pushes over Redis pub/sub."""

from __future__ import annotations

import json
import logging
from typing import Any

logger = logging.getLogger(__name__)

BADGE_EARNED = "pubsub:badge_earned"
DEMO_COMPLETED = "pubsub:demo_completed"
LEVEL_UP = "pubsub:level_up"
REFERRAL_COMPLETED = "pubsub:referral_completed"


async def publish_event(redis: object | None, channel: str, payload: dict[str, Any]) -> None:
    """Publish a JSON payload. A missing Redis client or a publish error is not fatal."""
    if redis is None:
        return
    try:
        await redis.publish(channel, json.dumps(payload, default=str))  # type: ignore[union-attr]
    except Exception:
        logger.warning("Failed to publish %s event", channel, exc_info=True)
