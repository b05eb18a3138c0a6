"""Configuration loading from environment variables."""

from __future__ import annotations

import os

from kubecache.cache.kinds import lookup_kind
from kubecache.models.config import (
    APIConfig,
    CacheConfig,
    KubeCacheConfig,
    KubeConfig,
    LogConfig,
    SnapshotConfig,
)


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"KUBECACHE_{key}", default)


def _env_bool(key: str, default: bool = False) -> bool:
    val = _env(key, str(default).lower())
    return val.lower() in ("true", "1", "yes")


def _env_int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    val = int(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _env_float(key: str, default: float, min_val: float | None = None, max_val: float | None = None) -> float:
    val = float(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def parse_kinds(value: str) -> list[str]:
    """Split a comma-delimited kind list, rejecting unsupported kinds."""
    kinds = [kind.strip() for kind in value.split(",") if kind.strip()]
    if not kinds:
        raise ValueError("At least one resource kind must be cached")
    for kind in kinds:
        lookup_kind(kind)
    return kinds


def validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log level: {value}. Must be one of {valid}")
    return value.lower()


def _sync_timeout(value: float) -> float | None:
    # 0 disables the timeout on the initial sync barrier.
    return value if value > 0 else None


def load_config() -> KubeCacheConfig:
    """Load configuration from KUBECACHE_* environment variables."""
    return KubeCacheConfig(
        cluster_id=_env("CLUSTER_ID", ""),
        kube=KubeConfig(
            context=_env("KUBE_CONTEXT", ""),
        ),
        cache=CacheConfig(
            kinds=parse_kinds(_env("CACHE_KINDS", "namespaces,ingresses")),
            resync_interval=_env_float("RESYNC_INTERVAL", 30.0, min_val=1.0, max_val=3600.0),
            sync_timeout=_sync_timeout(_env_float("SYNC_TIMEOUT", 120.0, min_val=0.0)),
        ),
        snapshot=SnapshotConfig(
            enabled=_env_bool("SNAPSHOT_ENABLED", True),
            interval=_env_float("SNAPSHOT_INTERVAL", 30.0, min_val=1.0),
        ),
        api=APIConfig(
            port=_env_int("API_PORT", 8090, min_val=1024, max_val=65535),
        ),
        log=LogConfig(
            level=validate_log_level(_env("LOG_LEVEL", "info")),
        ),
    )
