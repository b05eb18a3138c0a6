"""In-memory resource cache: one synchronized store per configured kind.

The kind -> synchronizer map is written once, by ``ResourceCache.create``, and
only read afterwards.  Queries never touch the network; they read a snapshot of
one store and evaluate selectors against it.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Sequence
from typing import Any

import structlog

from kubecache.cache.kinds import UnsupportedKindError, lookup_kind
from kubecache.cache.source import ClusterClient
from kubecache.cache.synchronizer import DEFAULT_RESYNC_INTERVAL, ResourceSynchronizer
from kubecache.models.resources import SyncState
from kubecache.models.selectors import Selector
from kubecache.observability.metrics import queries_total
from kubecache.selector.filter import SelectorError, filter_objects

_log = structlog.get_logger(component="cache.resource_cache")


class CacheError(Exception):
    """Base class for resource cache errors."""


class CacheConfigError(CacheError):
    """The cache was asked to start with an unusable configuration."""


class CacheSyncTimeoutError(CacheError):
    """A kind did not complete its initial listing within the sync timeout."""

    def __init__(self, kind: str, timeout: float | None) -> None:
        super().__init__(f"Timed out after {timeout}s waiting for {kind} store to sync")
        self.kind = kind
        self.timeout = timeout


class UnknownKindError(CacheError, LookupError):
    """A query named a kind that was not configured at construction."""

    def __init__(self, kind: str, configured: Iterable[str]) -> None:
        super().__init__(f"Kind {kind!r} is not cached; configured kinds: {sorted(configured)}")
        self.kind = kind


class ResourceCache:
    """Read access to continuously synchronized resource stores.

    Build with ``await ResourceCache.create(client, kinds)``; the constructor
    only accepts already-started synchronizers.
    """

    def __init__(self, synchronizers: dict[str, ResourceSynchronizer]) -> None:
        self._synchronizers = dict(synchronizers)
        # Coarse lock over the kind map; the map itself never changes after construction.
        self._lock = threading.Lock()

    @classmethod
    async def create(
        cls,
        client: ClusterClient | None,
        kinds: Iterable[str],
        *,
        resync_interval: float = DEFAULT_RESYNC_INTERVAL,
        sync_timeout: float | None = None,
        **synchronizer_options: Any,
    ) -> ResourceCache:
        """Start one synchronizer per kind and wait for each to sync, in order.

        Raises:
            CacheConfigError:      *client* is None or a kind is unsupported.
            CacheSyncTimeoutError: a kind did not sync within *sync_timeout*.
        """
        if client is None:
            raise CacheConfigError("cluster client is None")

        ordered = list(dict.fromkeys(kinds))
        try:
            for kind in ordered:
                lookup_kind(kind)
        except UnsupportedKindError as exc:
            raise CacheConfigError(str(exc)) from exc

        synchronizers: dict[str, ResourceSynchronizer] = {}
        for kind in ordered:
            sync = ResourceSynchronizer(
                kind,
                client.source(kind),
                resync_interval=resync_interval,
                **synchronizer_options,
            )
            synchronizers[kind] = sync
            await sync.start()
            try:
                await sync.wait_for_sync(sync_timeout)
            except TimeoutError:
                _log.error("store failed to sync", kind=kind, timeout=sync_timeout, failures=sync.failures)
                for started in synchronizers.values():
                    await started.stop()
                raise CacheSyncTimeoutError(kind, sync_timeout) from None
            _log.info("store synced and ready", kind=kind, count=len(sync.store))

        return cls(synchronizers)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def kinds(self) -> list[str]:
        with self._lock:
            return list(self._synchronizers)

    def _synchronizer(self, kind: str) -> ResourceSynchronizer:
        with self._lock:
            sync = self._synchronizers.get(kind)
        if sync is None:
            raise UnknownKindError(kind, self._synchronizers)
        return sync

    def has_synced(self, kind: str) -> bool:
        return self._synchronizer(kind).has_synced()

    def sync_states(self) -> dict[str, SyncState]:
        with self._lock:
            return {kind: sync.state for kind, sync in self._synchronizers.items()}

    def is_ready(self) -> bool:
        return all(state == SyncState.READY for state in self.sync_states().values())

    def get_all(self, kind: str) -> list[Any]:
        """Return the current objects of *kind*, in no particular order.

        Raises UnknownKindError if *kind* was not configured.
        """
        return self._synchronizer(kind).list()

    def get_filtered(self, kind: str, selectors: Sequence[Selector]) -> list[Any]:
        """Return the objects of *kind* that satisfy every selector.

        Evaluation runs against one snapshot of the store and stops at the first
        selector error, which is re-raised.

        Raises:
            UnknownKindError: *kind* was not configured.
            SelectorError:    a constraint is malformed or a selector kind is unknown.
        """
        objects = self.get_all(kind)
        try:
            matched = filter_objects(objects, selectors)
        except SelectorError:
            queries_total.labels(kind=kind, outcome="invalid_selector").inc()
            raise
        queries_total.labels(kind=kind, outcome="ok").inc()
        return matched

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    async def stop(self) -> None:
        """Stop every synchronizer.  Stores keep their last content."""
        with self._lock:
            synchronizers = list(self._synchronizers.values())
        for sync in synchronizers:
            await sync.stop()
        _log.info("resource cache stopped", kinds=len(synchronizers))
