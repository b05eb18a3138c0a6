"""Core data structures for kubecache."""

from kubecache.models.config import KubeCacheConfig
from kubecache.models.resources import ListResult, SyncState, WatchEvent, WatchEventType
from kubecache.models.selectors import Selector, SelectorKind

__all__ = [
    "KubeCacheConfig",
    "ListResult",
    "Selector",
    "SelectorKind",
    "SyncState",
    "WatchEvent",
    "WatchEventType",
]
