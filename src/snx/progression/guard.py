"""In-process guard against overlapping completion calls."""

from __future__ import annotations


class CompletionGuard:
    """Set of ``"{account}:{demo}"`` keys with a completion in flight.

    Only protects callers sharing this process; cross-session races are
    handled by the store-level first-completion claim.
    """

    def __init__(self) -> None:
        self._in_flight: set[str] = set()

    @staticmethod
    def key(account_id: str, demo_id: str) -> str:
        return f"{account_id}:{demo_id}"

    def acquire(self, account_id: str, demo_id: str) -> bool:
        """Mark a completion as in flight. False if one already is."""
        key = self.key(account_id, demo_id)
        if key in self._in_flight:
            return False
        self._in_flight.add(key)
        return True

    def release(self, account_id: str, demo_id: str) -> None:
        self._in_flight.discard(self.key(account_id, demo_id))
