"""
Types for fetch_dedup package.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Tuple
import asyncio


RequestConfigLike = Mapping[str, Any]
"""Any request configuration mapping (method, url, params, data, headers)."""


@dataclass
class DedupConfig:
    """Configuration for in-flight request deduplication."""

    enabled: bool = True
    """Whether deduplication is applied at all."""

    max_age_seconds: float = 60.0
    """How long an in-flight entry may be joined after it started."""

    include_headers: List[str] = field(default_factory=list)
    """Headers that take part in the signature. Empty by default."""

    key_generator: Optional[Callable[[RequestConfigLike], str]] = None
    """Custom signature key generator."""

    should_dedupe: Optional[Callable[[RequestConfigLike], bool]] = None
    """Custom eligibility predicate. Default: GET, HEAD and OPTIONS."""

    max_entries: int = 1000
    """Upper bound on tracked in-flight entries."""

    def __post_init__(self) -> None:
        if self.max_age_seconds < 0:
            raise ValueError("max_age_seconds must be >= 0")
        if self.max_entries <= 0:
            raise ValueError("max_entries must be > 0")


@dataclass(frozen=True)
class RequestSignature:
    """Canonical components identifying the same logical request."""

    method: str
    url: str
    params_hash: str
    data_hash: str
    headers_hash: str


@dataclass
class PendingRequestEntry:
    """In-flight request shared by every caller with the same signature."""

    key: str
    """Signature key."""

    task: "asyncio.Task[Any]"
    """Task running the shared request."""

    started_at: float
    """When the request was started (monotonic seconds)."""

    subscribers: int = 1
    """Number of callers currently waiting on the task."""


class PendingStore(ABC):
    """Store interface for tracking in-flight requests."""

    @abstractmethod
    def get(self, key: str) -> Optional[PendingRequestEntry]:
        """Get an in-flight entry by key."""
        pass

    @abstractmethod
    def set(self, key: str, entry: PendingRequestEntry) -> None:
        """Register an in-flight entry."""
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove an in-flight entry."""
        pass

    @abstractmethod
    def has(self, key: str) -> bool:
        """Check if a key is in-flight."""
        pass

    @abstractmethod
    def size(self) -> int:
        """Get current number of in-flight entries."""
        pass

    @abstractmethod
    def items(self) -> Iterator[Tuple[str, PendingRequestEntry]]:
        """Iterate over a snapshot of (key, entry) pairs."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Clear all in-flight entries."""
        pass


class DedupEventType(str, Enum):
    """Event types for deduplication."""

    LEAD = "dedupe:lead"
    JOIN = "dedupe:join"
    COMPLETE = "dedupe:complete"
    ERROR = "dedupe:error"
    EVICT = "dedupe:evict"


@dataclass
class DedupEvent:
    """Deduplication event."""

    type: DedupEventType
    key: str
    timestamp: float
    metadata: Optional[Dict[str, Any]] = None


DedupEventListener = Callable[[DedupEvent], None]
"""Event listener type."""
