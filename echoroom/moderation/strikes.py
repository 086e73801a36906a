"""Per-connection profanity strike counting.

Counting only. What happens at the threshold (ejection) is the engine's
decision, not the ledger's.
"""

from __future__ import annotations

STRIKE_THRESHOLD = 3


class StrikeLedger:
    """Maps connection id → number of profanity violations, in [0, threshold].

    Records are created lazily on the first violation and dropped on
    disconnect, so a reconnect starts from zero.
    """

    def __init__(self, threshold: int = STRIKE_THRESHOLD) -> None:
        if threshold < 1:
            raise ValueError("threshold must be >= 1")
        self.threshold = threshold
        self._counts: dict[str, int] = {}

    def increment(self, connection_id: str) -> int:
        """Add one strike and return the new count (capped at the threshold)."""
        count = min(self._counts.get(connection_id, 0) + 1, self.threshold)
        self._counts[connection_id] = count
        return count

    def count(self, connection_id: str) -> int:
        return self._counts.get(connection_id, 0)

    def reached(self, connection_id: str) -> bool:
        """True once the connection has hit the ejection threshold."""
        return self._counts.get(connection_id, 0) >= self.threshold

    def clear(self, connection_id: str) -> None:
        self._counts.pop(connection_id, None)

    def __len__(self) -> int:
        return len(self._counts)
