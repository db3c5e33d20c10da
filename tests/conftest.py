"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Awaitable, Callable
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from snx.accounts.schemas import Account
from snx.accounts.service import AccountService
from snx.config import get_settings
from snx.database import close_db, create_tables, get_session_factory, init_db
from snx.dependencies import reset_store
from snx.notifications.email import reset_email_service
from snx.progression.engine import ProgressionEngine
from snx.quests.service import QuestService
from snx.referrals.service import ReferralEngine
from snx.store.sql import SqlDocumentStore

WALLET_A = "GAXKQ7Z3ALICEWALLET00000000000000000000000000000000000001"
WALLET_B = "GBYRM4P2BOBWALLET000000000000000000000000000000000000002"
WALLET_C = "GCZTN5Q1CAROLWALLET0000000000000000000000000000000000003"


@pytest.fixture(autouse=True)
def _test_settings(monkeypatch, tmp_path):
    """Point every test at its own SQLite file with Redis disabled."""
    monkeypatch.setenv("SNX_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path}/snx_test.db")
    monkeypatch.setenv("SNX_REDIS_ENABLED", "false")
    monkeypatch.setenv("SNX_EMAIL_PROVIDER", "stub")
    monkeypatch.setenv("SNX_LOG_FORMAT", "console")
    get_settings.cache_clear()
    reset_email_service()
    reset_store()
    yield
    reset_store()
    reset_email_service()
    get_settings.cache_clear()


@pytest_asyncio.fixture
async def store() -> AsyncGenerator[SqlDocumentStore, None]:
    """Document store over a fresh SQLite database."""
    await init_db(get_settings().database_url)
    await create_tables()
    yield SqlDocumentStore(get_session_factory())
    await close_db()


@pytest.fixture
def mock_email_service():
    """Email service double that reports successful delivery."""
    service = MagicMock()
    service.send_template = AsyncMock(return_value=True)
    service.send_email = AsyncMock(return_value=True)
    return service


@pytest.fixture
def accounts(store) -> AccountService:
    return AccountService(store)


@pytest.fixture
def engine(store, accounts) -> ProgressionEngine:
    return ProgressionEngine(store, accounts=accounts)


@pytest.fixture
def quests(store, accounts) -> QuestService:
    return QuestService(store, accounts=accounts)


@pytest.fixture
def referrals(store, accounts, quests, mock_email_service) -> ReferralEngine:
    return ReferralEngine(store, accounts=accounts, quests=quests, email_service=mock_email_service)


@pytest.fixture
def make_account(accounts) -> Callable[..., Awaitable[Account]]:
    """Factory creating accounts with the welcome bonus applied."""

    async def _make(wallet: str, display_name: str | None = None) -> Account:
        return await accounts.create_account(wallet, display_name)

    return _make


@pytest_asyncio.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP test client over a fresh SQLite database."""
    from snx.main import create_app

    app = create_app()
    await init_db(get_settings().database_url)
    await create_tables()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    reset_store()
    await close_db()
