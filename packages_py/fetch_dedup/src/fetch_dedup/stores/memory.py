"""
Memory store implementation for fetch_dedup.
"""
from typing import Dict, Iterator, Optional, Tuple

from ..types import PendingRequestEntry, PendingStore


class MemoryPendingStore(PendingStore):
    """
    In-memory store for tracking in-flight requests.
    """

    def __init__(self) -> None:
        self._in_flight: Dict[str, PendingRequestEntry] = {}

    def get(self, key: str) -> Optional[PendingRequestEntry]:
        """Get an in-flight entry by key."""
        return self._in_flight.get(key)

    def set(self, key: str, entry: PendingRequestEntry) -> None:
        """Register an in-flight entry."""
        self._in_flight[key] = entry

    def delete(self, key: str) -> bool:
        """Remove an in-flight entry."""
        if key in self._in_flight:
            del self._in_flight[key]
            return True
        return False

    def has(self, key: str) -> bool:
        """Check if a key is in-flight."""
        return key in self._in_flight

    def size(self) -> int:
        """Get current number of in-flight entries."""
        return len(self._in_flight)

    def items(self) -> Iterator[Tuple[str, PendingRequestEntry]]:
        """Iterate over a snapshot of (key, entry) pairs."""
        return iter(list(self._in_flight.items()))

    def clear(self) -> None:
        """Clear all in-flight entries."""
        self._in_flight.clear()


def create_memory_pending_store() -> MemoryPendingStore:
    """Create a memory pending-request store."""
    return MemoryPendingStore()
