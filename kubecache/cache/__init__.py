"""Cache layer for kubecache.

Provides in-memory resource caching backed by Kubernetes list/watch streams.

Submodules:
    kinds           -- Registry of cacheable kinds and how to list them.
    source          -- Cluster client protocols and the kubernetes-asyncio implementation.
    store           -- Per-kind object store keyed by namespace/name.
    synchronizer    -- List + watch + periodic resync into one store.
    resource_cache  -- One synchronizer per configured kind; filtered reads.
    snapshot        -- Periodic JSON serialization of every store.
"""

from kubecache.cache.resource_cache import (
    CacheConfigError,
    CacheError,
    CacheSyncTimeoutError,
    ResourceCache,
    UnknownKindError,
)
from kubecache.cache.snapshot import SnapshotPublisher

__all__ = [
    "CacheConfigError",
    "CacheError",
    "CacheSyncTimeoutError",
    "ResourceCache",
    "SnapshotPublisher",
    "UnknownKindError",
]
