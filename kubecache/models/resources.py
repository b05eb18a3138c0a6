"""Watch-stream and synchronization data structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class SyncState(StrEnum):
    """Lifecycle state of a resource synchronizer."""

    INITIALIZING = "initializing"
    SYNCING = "syncing"
    READY = "ready"
    STOPPED = "stopped"


class WatchEventType(StrEnum):
    """Type of a Kubernetes watch event."""

    ADDED = "ADDED"
    MODIFIED = "MODIFIED"
    DELETED = "DELETED"
    BOOKMARK = "BOOKMARK"
    ERROR = "ERROR"


@dataclass(frozen=True)
class WatchEvent:
    """A single change delivered by a watch stream."""

    type: WatchEventType
    object: Any


@dataclass(frozen=True)
class ListResult:
    """Outcome of a full list call: the objects plus the list's resourceVersion.

    The resourceVersion is where the following watch resumes from.
    """

    items: list[Any] = field(default_factory=list)
    resource_version: str = ""
