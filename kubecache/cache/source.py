"""Cluster client capability: list-all and watch for one resource kind.

The cache depends only on the ``ClusterClient`` / ``ResourceSource``
protocols; ``KubernetesClusterClient`` is the production implementation on
top of kubernetes-asyncio.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any, Protocol

import structlog

from kubecache.cache.kinds import KindSpec, lookup_kind
from kubecache.models.resources import ListResult, WatchEvent, WatchEventType

_log = structlog.get_logger(component="cache.source")

_HTTP_GONE = 410


class WatchExpiredError(Exception):
    """The watch's resourceVersion is too old; a full relist is required."""


class WatchError(Exception):
    """The server ended a watch with an ERROR event other than 410 Gone."""


class ResourceSource(Protocol):
    """List and watch one kind cluster-wide."""

    async def list_all(self) -> ListResult: ...

    def watch(self, resource_version: str, timeout_seconds: int) -> AsyncIterator[WatchEvent]: ...


class ClusterClient(Protocol):
    """Hands out one ResourceSource per kind.

    ``api_client`` is the kubernetes-asyncio ApiClient whose serializer turns
    cached objects into JSON.
    """

    api_client: Any

    def source(self, kind: str) -> ResourceSource: ...


class KubernetesSource:
    """ResourceSource backed by a kubernetes-asyncio list function."""

    def __init__(self, api_client: Any, spec: KindSpec) -> None:
        from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]

        self.spec = spec
        api = getattr(k8s_client, spec.api_class)(api_client)
        self._list_fn = getattr(api, spec.list_method)

    async def list_all(self) -> ListResult:
        result = await self._list_fn()
        resource_version = ""
        if result.metadata is not None:
            resource_version = result.metadata.resource_version or ""
        return ListResult(items=list(result.items or []), resource_version=resource_version)

    async def watch(self, resource_version: str, timeout_seconds: int) -> AsyncIterator[WatchEvent]:
        from kubernetes_asyncio import watch  # type: ignore[import-untyped]
        from kubernetes_asyncio.client.exceptions import ApiException  # type: ignore[import-untyped]

        w = watch.Watch()
        try:
            async with w.stream(
                self._list_fn,
                resource_version=resource_version,
                timeout_seconds=timeout_seconds,
            ) as stream:
                async for raw in stream:
                    event_type = WatchEventType(raw["type"])
                    if event_type == WatchEventType.ERROR:
                        obj = raw.get("raw_object") or raw.get("object") or {}
                        code = obj.get("code") if isinstance(obj, dict) else None
                        _log.info("watch_error_event", kind=self.spec.kind, code=code)
                        if code == _HTTP_GONE:
                            raise WatchExpiredError(f"resourceVersion {resource_version} expired for {self.spec.kind}")
                        raise WatchError(f"watch for {self.spec.kind} ended with error event (code={code})")
                    yield WatchEvent(type=event_type, object=raw["object"])
        except ApiException as exc:
            if exc.status == _HTTP_GONE:
                raise WatchExpiredError(f"resourceVersion {resource_version} expired for {self.spec.kind}") from exc
            raise
        finally:
            w.stop()


class KubernetesClusterClient:
    """ClusterClient over an authenticated kubernetes-asyncio ApiClient."""

    def __init__(self, api_client: Any) -> None:
        self.api_client = api_client

    def source(self, kind: str) -> KubernetesSource:
        return KubernetesSource(self.api_client, lookup_kind(kind))

    async def close(self) -> None:
        await self.api_client.close()


async def load_cluster_client(context: str = "") -> KubernetesClusterClient:
    """Build a cluster client from in-cluster config, falling back to kubeconfig."""
    from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]
    from kubernetes_asyncio import config as k8s_config  # type: ignore[import-untyped]

    try:
        # load_incluster_config() is synchronous in kubernetes-asyncio
        k8s_config.load_incluster_config()
        _log.info("k8s client configured from in-cluster service account")
    except k8s_config.ConfigException:
        await k8s_config.load_kube_config(context=context or None)
        _log.info("k8s client configured from kubeconfig", context=context or "<current>")
    return KubernetesClusterClient(k8s_client.ApiClient())
