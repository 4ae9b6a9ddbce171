"""
In-flight request deduplication.

When several identical requests are issued concurrently, only the first
one runs; every later caller joins it and receives the very same result
object (or the very same exception).
"""
import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, List, Optional, Set, TypeVar

from .types import (
    DedupConfig,
    DedupEvent,
    DedupEventListener,
    DedupEventType,
    PendingRequestEntry,
    PendingStore,
    RequestConfigLike,
)
from .signature import generate_signature, signature_key
from .stores.memory import MemoryPendingStore

T = TypeVar("T")

logger = logging.getLogger("fetch_dedup.deduplicator")

DEFAULT_DEDUPE_METHODS = ("GET", "HEAD", "OPTIONS")

# Share of the capacity evicted when a sweep of expired entries is not enough
EVICTION_RATIO = 0.25


def _default_should_dedupe(config: RequestConfigLike) -> bool:
    """Only safe methods are deduplicated by default."""
    method = str(config.get("method") or "GET").upper()
    return method in DEFAULT_DEDUPE_METHODS


DEFAULT_DEDUP_CONFIG = DedupConfig(
    enabled=True,
    max_age_seconds=60.0,
    include_headers=[],
    key_generator=None,
    should_dedupe=_default_should_dedupe,
    max_entries=1000,
)


def merge_dedup_config(config: Optional[DedupConfig] = None) -> DedupConfig:
    """Merge user config with defaults."""
    if config is None:
        return DedupConfig(
            enabled=DEFAULT_DEDUP_CONFIG.enabled,
            max_age_seconds=DEFAULT_DEDUP_CONFIG.max_age_seconds,
            include_headers=list(DEFAULT_DEDUP_CONFIG.include_headers),
            key_generator=DEFAULT_DEDUP_CONFIG.key_generator,
            should_dedupe=DEFAULT_DEDUP_CONFIG.should_dedupe,
            max_entries=DEFAULT_DEDUP_CONFIG.max_entries,
        )

    return DedupConfig(
        enabled=config.enabled,
        max_age_seconds=config.max_age_seconds,
        include_headers=list(config.include_headers),
        key_generator=config.key_generator,
        should_dedupe=config.should_dedupe or DEFAULT_DEDUP_CONFIG.should_dedupe,
        max_entries=config.max_entries,
    )


class RequestDeduplicator:
    """
    Collapses concurrent identical requests into one executor call.

    Each caller gets its own cancelable view of the shared request: a
    cancelled caller simply stops waiting, and the shared request itself is
    only cancelled once its last caller has left.

    Example:
        dedup = RequestDeduplicator()

        async def load():
            return await dedup.dedupe(
                {"method": "GET", "url": "https://api.example.com/users"},
                lambda: adapter(config),
            )

        first, second = await asyncio.gather(load(), load())
        assert first is second
    """

    def __init__(
        self,
        config: Optional[DedupConfig] = None,
        store: Optional[PendingStore] = None,
    ) -> None:
        self._config = merge_dedup_config(config)
        self._store = store or MemoryPendingStore()
        self._listeners: Set[DedupEventListener] = set()
        self._disposed = False

    def should_dedupe(self, config: RequestConfigLike) -> bool:
        """Check whether a request takes part in deduplication."""
        if self._disposed or not self._config.enabled:
            return False
        predicate = self._config.should_dedupe or _default_should_dedupe
        return bool(predicate(config))

    def generate_key(self, config: RequestConfigLike) -> str:
        """Generate the signature key for a request."""
        if self._config.key_generator is not None:
            return self._config.key_generator(config)
        return signature_key(
            generate_signature(config, self._config.include_headers)
        )

    async def dedupe(
        self,
        config: RequestConfigLike,
        executor: Callable[[], Awaitable[T]],
    ) -> T:
        """
        Run ``executor`` unless an identical request is already in flight.

        Args:
            config: Request configuration used to build the signature
            executor: Starts the actual request

        Returns:
            The shared result
        """
        if not self.should_dedupe(config):
            return await executor()

        key = self.generate_key(config)
        now = time.monotonic()
        entry = self._store.get(key)

        if entry is not None and self._is_live(entry, now):
            entry.subscribers += 1
            logger.debug(f"dedupe: joining in-flight request {key} ({entry.subscribers} subscribers)")
            self._emit(DedupEventType.JOIN, key, {"subscribers": entry.subscribers})
        else:
            if entry is not None:
                self._store.delete(key)
            if self._store.size() >= self._config.max_entries:
                self._sweep(now)
            entry = self._start(key, executor, now)

        return await self._subscribe(entry)

    def _is_live(self, entry: PendingRequestEntry, now: float) -> bool:
        return (
            not entry.task.done()
            and now - entry.started_at <= self._config.max_age_seconds
        )

    def _start(
        self,
        key: str,
        executor: Callable[[], Awaitable[Any]],
        now: float,
    ) -> PendingRequestEntry:
        task = asyncio.ensure_future(executor())
        entry = PendingRequestEntry(key=key, task=task, started_at=now)
        # Registered before the task can run, so concurrent callers find it.
        self._store.set(key, entry)
        task.add_done_callback(lambda _: self._settle(entry))

        logger.debug(f"dedupe: leading new request {key}")
        self._emit(DedupEventType.LEAD, key)
        return entry

    async def _subscribe(self, entry: PendingRequestEntry) -> Any:
        try:
            return await asyncio.shield(entry.task)
        except asyncio.CancelledError:
            if not entry.task.done():
                entry.subscribers -= 1
                if entry.subscribers <= 0:
                    logger.debug(f"dedupe: last subscriber left, cancelling {entry.key}")
                    entry.task.cancel()
                    self._drop(entry)
            raise

    def _drop(self, entry: PendingRequestEntry) -> None:
        if self._store.get(entry.key) is entry:
            self._store.delete(entry.key)

    def _settle(self, entry: PendingRequestEntry) -> None:
        if entry.task.cancelled():
            self._drop(entry)
            return
        error = entry.task.exception()
        if self._disposed:
            return
        self._drop(entry)

        duration = time.monotonic() - entry.started_at
        if error is None:
            self._emit(
                DedupEventType.COMPLETE,
                entry.key,
                {"subscribers": entry.subscribers, "duration_seconds": duration},
            )
        else:
            self._emit(DedupEventType.ERROR, entry.key, {"error": str(error)})

    def _sweep(self, now: float) -> None:
        """Make room: drop expired entries, then the oldest quarter."""
        max_age = self._config.max_age_seconds
        for key, entry in self._store.items():
            if now - entry.started_at > max_age:
                self._store.delete(key)
                self._emit(DedupEventType.EVICT, key, {"reason": "expired"})

        capacity = self._config.max_entries
        if self._store.size() < capacity:
            return

        to_remove = max(1, int(capacity * EVICTION_RATIO))
        oldest = sorted(self._store.items(), key=lambda item: item[1].started_at)
        for key, _ in oldest[:to_remove]:
            self._store.delete(key)
            self._emit(DedupEventType.EVICT, key, {"reason": "capacity"})
        logger.warning(
            f"dedupe: pending map at capacity ({capacity}), evicted {min(to_remove, len(oldest))} oldest entries"
        )

    def is_pending(self, config: RequestConfigLike) -> bool:
        """Check whether an identical request is currently in flight."""
        if not self.should_dedupe(config):
            return False
        entry = self._store.get(self.generate_key(config))
        return entry is not None and self._is_live(entry, time.monotonic())

    def forget(self, config: RequestConfigLike) -> bool:
        """Stop tracking a request so the next identical call starts afresh."""
        if not self.should_dedupe(config):
            return False
        return self._store.delete(self.generate_key(config))

    def pending_count(self) -> int:
        """Get number of tracked in-flight requests."""
        return self._store.size()

    def pending_keys(self) -> List[str]:
        """Get tracked signature keys."""
        return [key for key, _ in self._store.items()]

    def get_config(self) -> DedupConfig:
        """Get configuration."""
        return self._config

    def on(self, listener: DedupEventListener) -> Callable[[], None]:
        """Add event listener."""
        self._listeners.add(listener)
        return lambda: self._listeners.discard(listener)

    def off(self, listener: DedupEventListener) -> None:
        """Remove event listener."""
        self._listeners.discard(listener)

    def _emit(
        self,
        event_type: DedupEventType,
        key: str,
        metadata: Optional[dict] = None,
    ) -> None:
        event = DedupEvent(type=event_type, key=key, timestamp=time.time(), metadata=metadata)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception(f"dedupe: listener failed on {event_type.value}")

    def clear(self) -> None:
        """Stop tracking every in-flight request."""
        self._store.clear()

    def dispose(self) -> None:
        """Release resources; afterwards every call bypasses deduplication."""
        if self._disposed:
            return
        self._disposed = True
        self._store.clear()
        self._listeners.clear()

    @property
    def is_disposed(self) -> bool:
        return self._disposed


def create_deduplicator(
    config: Optional[DedupConfig] = None,
    store: Optional[PendingStore] = None,
) -> RequestDeduplicator:
    """Create a request deduplicator."""
    return RequestDeduplicator(config, store)
