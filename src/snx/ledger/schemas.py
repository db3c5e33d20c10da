"""Points ledger rows."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel

TransactionType = Literal["earn", "spend", "bonus", "penalty"]


class PointsTransaction(BaseModel):
    id: str
    account_id: str
    type: TransactionType
    amount: int
    reason: str
    timestamp: datetime
    demo_id: str | None = None
