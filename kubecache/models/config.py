"""Configuration data structures."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class KubeConfig:
    """Cluster connection configuration."""

    context: str = ""


@dataclass
class CacheConfig:
    """Resource cache configuration."""

    kinds: list[str] = field(default_factory=lambda: ["namespaces", "ingresses"])
    resync_interval: float = 30.0
    # None means the sync barrier waits indefinitely.
    sync_timeout: float | None = 120.0


@dataclass
class SnapshotConfig:
    """Serialized JSON snapshot publisher configuration."""

    enabled: bool = True
    interval: float = 30.0


@dataclass
class APIConfig:
    """REST API configuration."""

    port: int = 8090


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"


@dataclass
class KubeCacheConfig:
    """Top-level kubecache configuration."""

    cluster_id: str = ""
    kube: KubeConfig = field(default_factory=KubeConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    snapshot: SnapshotConfig = field(default_factory=SnapshotConfig)
    api: APIConfig = field(default_factory=APIConfig)
    log: LogConfig = field(default_factory=LogConfig)
