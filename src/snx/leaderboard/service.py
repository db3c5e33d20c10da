"""Points leaderboard over the accounts collection."""

from __future__ import annotations

import logging

from snx.accounts.schemas import Account
from snx.leaderboard.schemas import Leaderboard, LeaderboardEntry
from snx.store import ACCOUNTS, DocumentStore, GreaterThan, get_path

logger = logging.getLogger(__name__)

POINTS_PATH = "profile.total_points"


def _points(document: dict) -> int:
    return int(get_path(document, POINTS_PATH, 0) or 0)


async def get_top_accounts(store: DocumentStore, limit: int = 10) -> list[Account]:
    """Accounts with the most points, highest first."""
    rows = await store.query(ACCOUNTS, order_by=POINTS_PATH, descending=True, limit=limit)
    return [Account.model_validate(r) for r in rows]


async def get_account_rank(store: DocumentStore, wallet_address: str) -> int | None:
    """1 + the number of accounts with strictly more points. None if unknown wallet."""
    account = await store.get_by_field(ACCOUNTS, "wallet_address", wallet_address)
    if account is None:
        return None
    ahead = await store.count(ACCOUNTS, {POINTS_PATH: GreaterThan(_points(account))})
    return ahead + 1


async def get_leaderboard(
    store: DocumentStore,
    wallet_address: str | None = None,
    limit: int = 10,
) -> Leaderboard:
    """Top entries plus the caller's own rank when a wallet is given."""
    rows = await store.query(ACCOUNTS, order_by=POINTS_PATH, descending=True, limit=limit)

    entries: list[LeaderboardEntry] = []
    rank = 0
    previous: int | None = None
    for position, row in enumerate(rows, start=1):
        account = Account.model_validate(row)
        points = account.profile.total_points
        if points != previous:
            rank = position
            previous = points
        entries.append(LeaderboardEntry(
            rank=rank,
            account_id=account.id,
            wallet_address=account.wallet_address,
            display_name=account.display_name,
            total_points=points,
            level=account.profile.level,
            badges_count=len(account.badges),
            is_current_user=wallet_address is not None and account.wallet_address == wallet_address,
        ))

    current_rank = await get_account_rank(store, wallet_address) if wallet_address else None
    total_users = await store.count(ACCOUNTS)
    return Leaderboard(total_users=total_users, current_user_rank=current_rank, entries=entries)
