"""Resource synchronizer: keeps one ResourceStore in step with the cluster.

Two owned asyncio tasks cooperate through a bounded queue:

    producer -- full list, then watch from the list's resourceVersion until the
                resync interval expires, then list again.  Failures, streams
                the server closes early and repeated 410 Gone responses are
                retried with exponential back-off.
    consumer -- applies deltas to the store in arrival order.

A relist travels as a single REPLACE delta, so it supersedes every watch
delta queued before it.
"""

from __future__ import annotations

import asyncio
import contextlib
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

import structlog

from kubecache.cache.source import ResourceSource, WatchExpiredError
from kubecache.cache.store import ResourceStore
from kubecache.models.resources import SyncState, WatchEvent, WatchEventType
from kubecache.observability.metrics import (
    cache_objects,
    relists_total,
    sync_failures_total,
    watch_events_total,
)

_log = structlog.get_logger(component="cache.synchronizer")

DEFAULT_RESYNC_INTERVAL = 30.0
_DEFAULT_QUEUE_SIZE = 1024
_INITIAL_BACKOFF = 1.0
_MAX_BACKOFF = 30.0


class _DeltaOp(StrEnum):
    REPLACE = "replace"
    UPSERT = "upsert"
    DELETE = "delete"


@dataclass(frozen=True)
class _Delta:
    op: _DeltaOp
    payload: Any


class ResourceSynchronizer:
    """Maintains a continuously refreshed local copy of one resource kind."""

    def __init__(
        self,
        kind: str,
        source: ResourceSource,
        *,
        resync_interval: float = DEFAULT_RESYNC_INTERVAL,
        queue_size: int = _DEFAULT_QUEUE_SIZE,
        initial_backoff: float = _INITIAL_BACKOFF,
        max_backoff: float = _MAX_BACKOFF,
    ) -> None:
        if resync_interval <= 0:
            raise ValueError(f"resync_interval must be positive, got {resync_interval}")
        self.kind = kind
        self.store = ResourceStore(kind)
        self._source = source
        self._resync_interval = resync_interval
        self._initial_backoff = initial_backoff
        self._max_backoff = max_backoff
        self._queue: asyncio.Queue[_Delta] = asyncio.Queue(maxsize=queue_size)
        self._synced = asyncio.Event()
        self._state = SyncState.INITIALIZING
        self._producer: asyncio.Task[None] | None = None
        self._consumer: asyncio.Task[None] | None = None
        self.failures = 0
        self._watch_events = 0

    @property
    def state(self) -> SyncState:
        return self._state

    def has_synced(self) -> bool:
        """True once the first full listing has been applied to the store."""
        return self._synced.is_set()

    def list(self) -> list[Any]:
        return self.store.list()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Launch the producer and consumer tasks.  Calling twice is a no-op."""
        if self._producer is not None:
            return
        self._state = SyncState.SYNCING
        self._consumer = asyncio.create_task(self._consume(), name=f"sync-apply-{self.kind}")
        self._producer = asyncio.create_task(self._produce(), name=f"sync-watch-{self.kind}")
        _log.debug("synchronizer started", kind=self.kind, resync_interval=self._resync_interval)

    async def wait_for_sync(self, timeout: float | None = None) -> None:
        """Block until the first full listing is in the store.

        Raises TimeoutError if *timeout* seconds pass first.
        """
        await asyncio.wait_for(self._synced.wait(), timeout)

    async def stop(self) -> None:
        tasks = [task for task in (self._producer, self._consumer) if task is not None]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._state = SyncState.STOPPED
        _log.debug("synchronizer stopped", kind=self.kind)

    # ------------------------------------------------------------------
    # Producer
    # ------------------------------------------------------------------

    async def _produce(self) -> None:
        backoff = self._initial_backoff
        delay = 0.0
        # Whether the previous list/watch cycle got anywhere; a 410 right after
        # an unproductive cycle waits like any other failure.
        previous_productive = True
        while True:
            if delay:
                await asyncio.sleep(delay)
            delay = backoff
            productive = False
            try:
                resource_version = await self._relist()
                if await self._watch(resource_version):
                    productive = True
                    delay = 0.0
                else:
                    productive = self._watch_events > 0
                    _log.warning(
                        "watch closed before resync deadline",
                        kind=self.kind,
                        events=self._watch_events,
                        retry_in=delay,
                    )
            except WatchExpiredError as exc:
                productive = self._watch_events > 0
                if productive or previous_productive:
                    delay = 0.0
                _log.info("watch expired; relisting", kind=self.kind, reason=str(exc), retry_in=delay)
            except Exception as exc:
                self.failures += 1
                sync_failures_total.labels(kind=self.kind).inc()
                _log.error(
                    "list/watch failed",
                    kind=self.kind,
                    error=str(exc),
                    failures=self.failures,
                    retry_in=delay,
                    synced=self.has_synced(),
                )
            if productive:
                backoff = self._initial_backoff
            elif delay:
                backoff = min(backoff * 2, self._max_backoff)
            previous_productive = productive

    async def _relist(self) -> str:
        result = await self._source.list_all()
        await self._queue.put(_Delta(_DeltaOp.REPLACE, result.items))
        relists_total.labels(kind=self.kind).inc()
        _log.debug("relisted", kind=self.kind, count=len(result.items), resource_version=result.resource_version)
        return result.resource_version

    async def _watch(self, resource_version: str) -> bool:
        """Apply watch events until the resync interval expires or the stream ends.

        Returns True when the resync deadline was reached, False when the
        server closed the stream first.
        """
        self._watch_events = 0
        deadline = asyncio.timeout(self._resync_interval)
        try:
            async with deadline:
                events = self._source.watch(resource_version, max(1, int(self._resync_interval)))
                async with contextlib.aclosing(events):
                    async for event in events:
                        self._watch_events += 1
                        await self._enqueue(event)
        except TimeoutError:
            if not deadline.expired():
                raise
            return True
        return False

    async def _enqueue(self, event: WatchEvent) -> None:
        watch_events_total.labels(kind=self.kind, type=str(event.type)).inc()
        if event.type in (WatchEventType.ADDED, WatchEventType.MODIFIED):
            await self._queue.put(_Delta(_DeltaOp.UPSERT, event.object))
        elif event.type == WatchEventType.DELETED:
            await self._queue.put(_Delta(_DeltaOp.DELETE, event.object))

    # ------------------------------------------------------------------
    # Consumer
    # ------------------------------------------------------------------

    async def _consume(self) -> None:
        while True:
            delta = await self._queue.get()
            try:
                self._apply(delta)
            except ValueError as exc:
                _log.warning("delta skipped", kind=self.kind, op=str(delta.op), error=str(exc))
            finally:
                self._queue.task_done()

    def _apply(self, delta: _Delta) -> None:
        if delta.op == _DeltaOp.REPLACE:
            self.store.replace(delta.payload)
            if not self._synced.is_set():
                self._synced.set()
                self._state = SyncState.READY
                _log.info("store synced", kind=self.kind, count=len(self.store))
        elif delta.op == _DeltaOp.UPSERT:
            self.store.upsert(delta.payload)
        else:
            self.store.delete(delta.payload)
        cache_objects.labels(kind=self.kind).set(len(self.store))
