"""
Store implementations for fetch_dedup.
"""
from .memory import MemoryPendingStore, create_memory_pending_store

__all__ = [
    "MemoryPendingStore",
    "create_memory_pending_store",
]
