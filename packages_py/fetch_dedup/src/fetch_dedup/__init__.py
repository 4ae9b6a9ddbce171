"""
In-flight request deduplication: concurrent identical requests share one
execution and one result.
"""
from .types import (
    RequestConfigLike,
    DedupConfig,
    RequestSignature,
    PendingRequestEntry,
    PendingStore,
    DedupEventType,
    DedupEvent,
    DedupEventListener,
)
from .signature import (
    generate_signature,
    signature_key,
    hash_params,
    hash_data,
    hash_headers,
)
from .deduplicator import (
    RequestDeduplicator,
    create_deduplicator,
    DEFAULT_DEDUP_CONFIG,
    DEFAULT_DEDUPE_METHODS,
    merge_dedup_config,
)
from .stores import (
    MemoryPendingStore,
    create_memory_pending_store,
)


__all__ = [
    # Types
    "RequestConfigLike",
    "DedupConfig",
    "RequestSignature",
    "PendingRequestEntry",
    "PendingStore",
    "DedupEventType",
    "DedupEvent",
    "DedupEventListener",
    # Signature
    "generate_signature",
    "signature_key",
    "hash_params",
    "hash_data",
    "hash_headers",
    # Deduplicator
    "RequestDeduplicator",
    "create_deduplicator",
    "DEFAULT_DEDUP_CONFIG",
    "DEFAULT_DEDUPE_METHODS",
    "merge_dedup_config",
    # Stores
    "MemoryPendingStore",
    "create_memory_pending_store",
]

__version__ = "1.0.0"
