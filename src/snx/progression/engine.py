"""Demo progression: attempts, completions, rewards and unlocks.

First completion vs replay is settled by an atomic claim on the account's
``demos_completed`` array. The claim carries every first-completion field
update in the same write, so two sessions completing the same demo at once
cannot both be paid as first completions.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Any

from snx.accounts.service import AccountService
from snx.catalog.demos import get_base_points, get_demo, get_demo_name, get_next_demo, resolve_demo_id
from snx.exceptions import DemoLocked, InvalidInput, InvalidScore
from snx.ledger.service import log_points_transaction
from snx.notifications.push import DEMO_COMPLETED, publish_event
from snx.progression.badges import BadgeService
from snx.progression.demo_stats import record_demo_completion
from snx.progression.guard import CompletionGuard
from snx.progression.schemas import CompletionResult, ReconcileResult
from snx.store import DocumentStore, Increment

logger = logging.getLogger(__name__)

MIN_SCORE_MULTIPLIER = 0.5
REPLAY_FACTOR = 0.25
EXPERIENCE_PER_POINT = 2


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_demo_points(demo_id: str, score: int, is_first_completion: bool = True) -> int:
    """Points for completing a demo with a score.

    Scores under 50 still earn half the base points. Replays earn a quarter
    of what the same score would earn on a first completion.
    """
    multiplier = max(MIN_SCORE_MULTIPLIER, score / 100)
    points = round_half_up(get_base_points(demo_id) * multiplier)
    if not is_first_completion:
        points = round_half_up(points * REPLAY_FACTOR)
    return points


def validate_score(score: Any) -> int:
    if isinstance(score, bool) or not isinstance(score, int):
        raise InvalidScore()
    if not 0 <= score <= 100:
        raise InvalidScore()
    return score


def normalize_demo_id(demo_id: str) -> str:
    demo_key = resolve_demo_id(demo_id or "")
    if not demo_key or "." in demo_key:
        raise InvalidInput("A valid demo id is required")
    return demo_key


class ProgressionEngine:
    """Drives demo attempts and completions for one account at a time."""

    def __init__(
        self,
        store: DocumentStore,
        redis: object | None = None,
        guard: CompletionGuard | None = None,
        accounts: AccountService | None = None,
    ) -> None:
        self.store = store
        self.redis = redis
        self.guard = guard or CompletionGuard()
        self.accounts = accounts or AccountService(store, redis)
        self.badges = BadgeService(store, self.accounts, redis)

    async def start_demo(self, account_id: str, demo_id: str) -> None:
        """Record an attempt.

        A completed demo may be started again for a replay; its status stays
        ``completed``. Raises DemoLocked for a locked demo.
        """
        demo_key = normalize_demo_id(demo_id)
        account = await self.accounts.get_account(account_id)

        progress = account.demos.get(demo_key)
        if progress is not None:
            status = progress.status
        else:
            catalog_entry = get_demo(demo_key)
            status = catalog_entry["initial_status"] if catalog_entry else "available"

        if status == "locked":
            raise DemoLocked(f"Demo {demo_key} is locked")

        prefix = f"demos.{demo_key}"
        updates: dict[str, Any] = {
            f"{prefix}.attempts": Increment(1),
            f"{prefix}.last_attempted_at": datetime.now(timezone.utc),
        }
        if progress is None:
            updates[f"{prefix}.demo_id"] = demo_key
            updates[f"{prefix}.demo_name"] = get_demo_name(demo_key)
        if status != "completed":
            updates[f"{prefix}.status"] = "in_progress"

        await self.accounts.update_fields(account_id, updates)
        logger.debug("Account %s started %s (status was %s)", account_id, demo_key, status)

    async def complete_demo(
        self,
        account_id: str,
        demo_id: str,
        score: int,
        completion_time: int = 0,
    ) -> CompletionResult | None:
        """Complete a demo and pay the reward.

        Returns None without any effect when a completion for the same
        account and demo is already running in this process.
        """
        score = validate_score(score)
        demo_key = normalize_demo_id(demo_id)

        if not self.guard.acquire(account_id, demo_key):
            logger.info("Completion of %s for %s already in flight, ignoring", demo_key, account_id)
            return None
        try:
            return await self._complete(account_id, demo_key, score, completion_time)
        finally:
            self.guard.release(account_id, demo_key)

    async def _complete(
        self,
        account_id: str,
        demo_key: str,
        score: int,
        completion_time: int,
    ) -> CompletionResult:
        account = await self.accounts.get_account(account_id)
        progress = account.demos.get(demo_key)
        is_first = progress is None or progress.status != "completed"

        now = datetime.now(timezone.utc)
        prefix = f"demos.{demo_key}"
        common: dict[str, Any] = {
            f"{prefix}.demo_id": demo_key,
            f"{prefix}.demo_name": get_demo_name(demo_key),
            f"{prefix}.status": "completed",
            f"{prefix}.completed_at": now,
            f"{prefix}.score": score,
        }

        if is_first:
            points = calculate_demo_points(demo_key, score, True)
            claimed = await self.accounts.claim(
                account_id,
                "demos_completed",
                demo_key,
                updates={
                    **common,
                    f"{prefix}.points_earned": points,
                    "stats.total_demos_completed": Increment(1),
                    "stats.total_points_earned": Increment(points),
                    "profile.total_points": Increment(points),
                    "profile.experience": Increment(points * EXPERIENCE_PER_POINT),
                },
            )
            if not claimed:
                logger.warning(
                    "First completion of %s for %s already claimed, scoring as replay",
                    demo_key, account_id,
                )
                is_first = False

        if not is_first:
            points = calculate_demo_points(demo_key, score, False)
            await self.accounts.update_fields(account_id, {
                **common,
                "stats.total_points_earned": Increment(points),
                "profile.total_points": Increment(points),
                "profile.experience": Increment(points * EXPERIENCE_PER_POINT),
            })

        reason = f"Completed {demo_key}" if is_first else f"Replay bonus for {demo_key}"
        await log_points_transaction(self.store, account_id, "earn", points, reason, demo_id=demo_key)
        await self.accounts.refresh_level(account_id)

        await record_demo_completion(self.store, demo_key, completion_time)

        badges_awarded: list[str] = []
        unlocked: str | None = None
        if is_first:
            try:
                badges_awarded = await self.badges.evaluate_demo_badges(account_id, demo_key)
            except Exception:
                logger.warning("Badge evaluation failed for %s/%s", account_id, demo_key, exc_info=True)
            try:
                unlocked = await self.unlock_next_demo(account_id, demo_key)
            except Exception:
                logger.warning("Unlock after %s failed for %s", demo_key, account_id, exc_info=True)

        logger.info(
            "Account %s completed %s (score=%d, points=%d, first=%s)",
            account_id, demo_key, score, points, is_first,
        )
        await publish_event(self.redis, DEMO_COMPLETED, {
            "account_id": account_id,
            "demo_id": demo_key,
            "score": score,
            "points": points,
            "first_completion": is_first,
        })

        return CompletionResult(
            demo_id=demo_key,
            score=score,
            points_earned=points,
            experience_gained=points * EXPERIENCE_PER_POINT,
            first_completion=is_first,
            badges_awarded=badges_awarded,
            unlocked_demo=unlocked,
            account=await self.accounts.get_account(account_id),
        )

    async def unlock_next_demo(self, account_id: str, demo_id: str) -> str | None:
        """Move the successor demo from ``locked`` to ``available``.

        Returns the unlocked demo id, or None if there is no successor or it
        was already unlocked.
        """
        next_id = get_next_demo(demo_id)
        if next_id is None:
            return None

        account = await self.accounts.get_account(account_id)
        prefix = f"demos.{next_id}"
        if next_id not in account.demos:
            await self.accounts.update_fields(account_id, {
                f"{prefix}.demo_id": next_id,
                f"{prefix}.demo_name": get_demo_name(next_id),
                f"{prefix}.status": "available",
                f"{prefix}.attempts": 0,
                f"{prefix}.score": 0,
                f"{prefix}.points_earned": 0,
            })
            return next_id

        unlocked = await self.accounts.update_if(
            account_id,
            {f"{prefix}.status": "locked"},
            {f"{prefix}.status": "available"},
        )
        if unlocked:
            logger.info("Unlocked %s for %s", next_id, account_id)
            return next_id
        return None

    async def reconcile_progress(self, account_id: str) -> ReconcileResult:
        """Re-run badge evaluation and unlocks for every completed demo."""
        account = await self.accounts.get_account(account_id)
        result = ReconcileResult()
        for demo_key, progress in account.demos.items():
            if progress.status != "completed":
                continue
            result.badges_awarded.extend(await self.badges.evaluate_demo_badges(account_id, demo_key))
            unlocked = await self.unlock_next_demo(account_id, demo_key)
            if unlocked:
                result.unlocked_demos.append(unlocked)
        if result.badges_awarded or result.unlocked_demos:
            logger.info(
                "Reconciled %s: badges=%s unlocked=%s",
                account_id, result.badges_awarded, result.unlocked_demos,
            )
        return result
