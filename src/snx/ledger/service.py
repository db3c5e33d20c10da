"""Points ledger: append-only audit trail for every balance change."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from uuid import uuid4

from snx.ledger.schemas import PointsTransaction, TransactionType
from snx.store import POINTS_TRANSACTIONS, DocumentStore

logger = logging.getLogger(__name__)

VALID_TYPES = {"earn", "spend", "bonus", "penalty"}


async def log_points_transaction(
    store: DocumentStore,
    account_id: str,
    type_: TransactionType,
    amount: int,
    reason: str,
    demo_id: str | None = None,
) -> PointsTransaction:
    """Append one immutable ledger row."""
    if type_ not in VALID_TYPES:
        msg = f"Invalid transaction type: {type_}"
        raise ValueError(msg)

    entry = PointsTransaction(
        id=str(uuid4()),
        account_id=account_id,
        type=type_,
        amount=amount,
        reason=reason,
        timestamp=datetime.now(timezone.utc),
        demo_id=demo_id,
    )
    await store.create_if_absent(
        POINTS_TRANSACTIONS,
        entry.id,
        entry.model_dump(mode="json", exclude_none=True),
    )
    logger.debug("Ledger %s %+d for %s: %s", type_, amount, account_id, reason)
    return entry


async def get_points_transactions(
    store: DocumentStore,
    account_id: str,
    limit: int = 50,
) -> list[PointsTransaction]:
    """Most recent ledger rows for an account, newest first."""
    rows = await store.query(
        POINTS_TRANSACTIONS,
        filters={"account_id": account_id},
        order_by="timestamp",
        descending=True,
        limit=limit,
    )
    return [PointsTransaction.model_validate(r) for r in rows]


async def get_ledger_total(store: DocumentStore, account_id: str) -> int:
    """Sum of every ledger amount for an account."""
    rows = await store.query(POINTS_TRANSACTIONS, filters={"account_id": account_id})
    return sum(int(r.get("amount", 0)) for r in rows)
