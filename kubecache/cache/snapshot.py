"""Periodically republished JSON snapshots of every store.

Unfiltered queries can be answered with a pre-serialized string instead of
re-encoding the whole store on every request.  A published snapshot lags the
store by at most one refresh interval.
"""

from __future__ import annotations

import asyncio
import json
import threading
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

import structlog

from kubecache.observability.metrics import snapshot_refresh_seconds

if TYPE_CHECKING:
    from kubecache.cache.resource_cache import ResourceCache

_log = structlog.get_logger(component="cache.snapshot")

DEFAULT_SNAPSHOT_INTERVAL = 30.0


def serialize_objects(api_client: Any, objects: Iterable[Any]) -> str:
    """Encode *objects* as a JSON array string.

    Kubernetes model objects go through the client's own serializer, so they
    carry their API field names and leave out unset fields as the API server
    does.  Plain mappings pass through unchanged.
    """
    return json.dumps(api_client.sanitize_for_serialization(list(objects)))


class SnapshotPublisher:
    """Keeps a serialized JSON array per cached kind, refreshed on an interval."""

    def __init__(self, cache: ResourceCache, api_client: Any, interval: float = DEFAULT_SNAPSHOT_INTERVAL) -> None:
        self._cache = cache
        self._api_client = api_client
        self._interval = interval
        self._outputs: dict[str, str] = {}
        self._lock = threading.Lock()
        self._task: asyncio.Task[None] | None = None

    def get(self, kind: str) -> str | None:
        """Last published JSON array for *kind*, or None before the first refresh."""
        with self._lock:
            return self._outputs.get(kind)

    def refresh(self) -> None:
        """Serialize every store now and publish the results."""
        with snapshot_refresh_seconds.time():
            fresh = {
                kind: serialize_objects(self._api_client, self._cache.get_all(kind)) for kind in self._cache.kinds()
            }
        with self._lock:
            self._outputs = fresh
        _log.debug("snapshots refreshed", kinds=len(fresh))

    async def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._run(), name="snapshot-publisher")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        await asyncio.gather(self._task, return_exceptions=True)
        self._task = None

    async def _run(self) -> None:
        while True:
            try:
                self.refresh()
            except Exception as exc:
                _log.warning("snapshot refresh failed", error=str(exc))
            await asyncio.sleep(self._interval)
