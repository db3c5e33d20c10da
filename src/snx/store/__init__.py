"""Document store abstraction and implementations."""

from snx.store.base import ArrayUnion, DocumentStore, GreaterThan, Increment, apply_updates, get_path
from snx.store.collections import (
    ACCOUNTS,
    DEMO_STATS,
    NUMERIC_FIELDS,
    POINTS_TRANSACTIONS,
    REFERRAL_INVITATIONS,
)

__all__ = [
    "ACCOUNTS",
    "DEMO_STATS",
    "NUMERIC_FIELDS",
    "POINTS_TRANSACTIONS",
    "REFERRAL_INVITATIONS",
    "ArrayUnion",
    "DocumentStore",
    "GreaterThan",
    "Increment",
    "apply_updates",
    "get_path",
]
