"""Per-kind in-memory object store."""

from __future__ import annotations

import threading
from collections.abc import Iterable
from typing import Any

import structlog

from kubecache.selector.fields import MISSING, resolve_path

_log = structlog.get_logger(component="cache.store")


def object_key(obj: Any) -> str:
    """Return the ``namespace/name`` key of *obj* (``name`` when cluster-scoped).

    Raises ValueError if the object has no ``metadata.name``.
    """
    name = resolve_path(obj, ("metadata", "name"))
    if name is MISSING or not name:
        raise ValueError("object has no metadata.name")
    namespace = resolve_path(obj, ("metadata", "namespace"))
    if namespace is MISSING or not namespace:
        return str(name)
    return f"{namespace}/{name}"


class ResourceStore:
    """Unordered set of cached objects of one kind.

    Only the owning ResourceSynchronizer mutates a store; every reader gets a
    copy, so a caller iterating a snapshot never observes a later update.
    """

    def __init__(self, kind: str) -> None:
        self.kind = kind
        self._items: dict[str, Any] = {}
        self._lock = threading.Lock()

    def replace(self, items: Iterable[Any]) -> None:
        """Swap the whole content for *items* in one step.

        Items without a name are logged and left out; the rest still go in.
        """
        fresh: dict[str, Any] = {}
        skipped = 0
        for obj in items:
            try:
                fresh[object_key(obj)] = obj
            except ValueError:
                skipped += 1
        if skipped:
            _log.warning("listed objects skipped", kind=self.kind, skipped=skipped, reason="no metadata.name")
        with self._lock:
            self._items = fresh

    def upsert(self, obj: Any) -> None:
        key = object_key(obj)
        with self._lock:
            self._items[key] = obj

    def delete(self, obj: Any) -> None:
        key = object_key(obj)
        with self._lock:
            self._items.pop(key, None)

    def get(self, key: str) -> Any | None:
        with self._lock:
            return self._items.get(key)

    def list(self) -> list[Any]:
        with self._lock:
            return list(self._items.values())

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._items)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
