"""Shared FastAPI dependencies."""

from collections.abc import AsyncGenerator

from fastapi import Depends

from snx.accounts.service import AccountService
from snx.config import get_settings
from snx.database import get_session_factory
from snx.progression.engine import ProgressionEngine
from snx.progression.guard import CompletionGuard
from snx.quests.service import QuestService
from snx.redis_client import get_redis_or_none
from snx.referrals.service import ReferralEngine
from snx.store import DocumentStore
from snx.store.sql import SqlDocumentStore

# One guard and one store per process: both hold in-process state.
_guard = CompletionGuard()
_store: SqlDocumentStore | None = None


def get_store() -> DocumentStore:
    """Get the process-wide document store."""
    global _store  # noqa: PLW0603
    if _store is None:
        _store = SqlDocumentStore(
            get_session_factory(),
            timeout=get_settings().store_timeout_seconds,
        )
    return _store


def reset_store() -> None:
    """Drop the cached store (on shutdown and in tests)."""
    global _store  # noqa: PLW0603
    _store = None


def get_completion_guard() -> CompletionGuard:
    return _guard


async def get_redis_dep() -> AsyncGenerator[object | None, None]:
    """Yield the Redis client (or None) as a FastAPI dependency."""
    yield get_redis_or_none()


def get_account_service(
    store: DocumentStore = Depends(get_store),  # noqa: B008
    redis: object | None = Depends(get_redis_dep),  # noqa: B008
) -> AccountService:
    return AccountService(store, redis)


def get_progression_engine(
    store: DocumentStore = Depends(get_store),  # noqa: B008
    redis: object | None = Depends(get_redis_dep),  # noqa: B008
    accounts: AccountService = Depends(get_account_service),  # noqa: B008
) -> ProgressionEngine:
    return ProgressionEngine(store, redis, guard=get_completion_guard(), accounts=accounts)


def get_quest_service(
    store: DocumentStore = Depends(get_store),  # noqa: B008
    redis: object | None = Depends(get_redis_dep),  # noqa: B008
    accounts: AccountService = Depends(get_account_service),  # noqa: B008
) -> QuestService:
    return QuestService(store, redis, accounts=accounts)


def get_referral_engine(
    store: DocumentStore = Depends(get_store),  # noqa: B008
    redis: object | None = Depends(get_redis_dep),  # noqa: B008
    accounts: AccountService = Depends(get_account_service),  # noqa: B008
    quests: QuestService = Depends(get_quest_service),  # noqa: B008
) -> ReferralEngine:
    return ReferralEngine(store, redis, accounts=accounts, quests=quests)
