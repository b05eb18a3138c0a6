"""Tests for the kind registry and the kubernetes-asyncio backed source."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fakes import make_namespace
from kubernetes_asyncio.client import (  # type: ignore[import-untyped]
    CoreV1Api,
    NetworkingV1Api,
    V1ListMeta,
    V1NamespaceList,
)
from kubernetes_asyncio.client.exceptions import ApiException  # type: ignore[import-untyped]

from kubecache.cache.kinds import UnsupportedKindError, lookup_kind, supported_kinds
from kubecache.cache.source import KubernetesClusterClient, WatchError, WatchExpiredError
from kubecache.models.resources import WatchEventType


class _FakeStream:
    """Stands in for kubernetes_asyncio.watch.Watch().stream(...)."""

    def __init__(self, events: list[dict] | None = None, error: Exception | None = None) -> None:
        self._events = list(events or [])
        self._error = error

    async def __aenter__(self) -> _FakeStream:
        return self

    async def __aexit__(self, *exc_info: object) -> bool:
        return False

    def __aiter__(self) -> _FakeStream:
        return self

    async def __anext__(self) -> dict:
        if self._events:
            return self._events.pop(0)
        if self._error is not None:
            raise self._error
        raise StopAsyncIteration


def _patched_watch(stream: _FakeStream) -> MagicMock:
    watcher = MagicMock()
    watcher.stream.return_value = stream
    return watcher


class TestKindRegistry:
    def test_supported_kinds(self) -> None:
        assert supported_kinds() == ["namespaces", "pods", "ingresses", "networkpolicies"]

    def test_lookup(self) -> None:
        spec = lookup_kind("networkpolicies")
        assert spec.api_class == "NetworkingV1Api"
        assert spec.list_method == "list_network_policy_for_all_namespaces"

    def test_namespaces_use_cluster_wide_list(self) -> None:
        assert lookup_kind("namespaces").list_method == "list_namespace"

    def test_unknown_kind(self) -> None:
        with pytest.raises(UnsupportedKindError, match="deployments"):
            lookup_kind("deployments")


class TestKubernetesSource:
    def test_source_binds_list_method(self) -> None:
        client = KubernetesClusterClient(MagicMock())
        source = client.source("pods")
        assert isinstance(source._list_fn.__self__, CoreV1Api)
        assert source._list_fn.__name__ == "list_pod_for_all_namespaces"

    def test_networking_kinds_use_networking_api(self) -> None:
        source = KubernetesClusterClient(MagicMock()).source("ingresses")
        assert isinstance(source._list_fn.__self__, NetworkingV1Api)

    async def test_list_all_returns_items_and_resource_version(self) -> None:
        source = KubernetesClusterClient(MagicMock()).source("namespaces")
        source._list_fn = AsyncMock(
            return_value=V1NamespaceList(
                items=[make_namespace("a"), make_namespace("b")],
                metadata=V1ListMeta(resource_version="42"),
            )
        )
        result = await source.list_all()
        assert [ns.metadata.name for ns in result.items] == ["a", "b"]
        assert result.resource_version == "42"

    async def test_watch_yields_typed_events(self) -> None:
        source = KubernetesClusterClient(MagicMock()).source("namespaces")
        ns = make_namespace("a")
        stream = _FakeStream([{"type": "ADDED", "object": ns}, {"type": "DELETED", "object": ns}])
        with patch("kubernetes_asyncio.watch.Watch", return_value=_patched_watch(stream)):
            events = [event async for event in source.watch("42", 30)]
        assert [e.type for e in events] == [WatchEventType.ADDED, WatchEventType.DELETED]
        assert events[0].object is ns

    async def test_watch_passes_resource_version_and_timeout(self) -> None:
        source = KubernetesClusterClient(MagicMock()).source("pods")
        watcher = _patched_watch(_FakeStream())
        with patch("kubernetes_asyncio.watch.Watch", return_value=watcher):
            _ = [event async for event in source.watch("7", 30)]
        _, kwargs = watcher.stream.call_args
        assert kwargs == {"resource_version": "7", "timeout_seconds": 30}
        watcher.stop.assert_called_once()

    async def test_gone_error_event_forces_relist(self) -> None:
        source = KubernetesClusterClient(MagicMock()).source("pods")
        error = {"type": "ERROR", "object": {"code": 410}, "raw_object": {"code": 410}}
        with patch("kubernetes_asyncio.watch.Watch", return_value=_patched_watch(_FakeStream([error]))):
            with pytest.raises(WatchExpiredError, match="resourceVersion 7 expired"):
                _ = [event async for event in source.watch("7", 30)]

    async def test_other_error_events_are_failures(self) -> None:
        source = KubernetesClusterClient(MagicMock()).source("pods")
        error = {"type": "ERROR", "object": {"code": 500}, "raw_object": {"code": 500}}
        with patch("kubernetes_asyncio.watch.Watch", return_value=_patched_watch(_FakeStream([error]))):
            with pytest.raises(WatchError, match="code=500"):
                _ = [event async for event in source.watch("7", 30)]

    async def test_gone_status_forces_relist(self) -> None:
        source = KubernetesClusterClient(MagicMock()).source("pods")
        stream = _FakeStream(error=ApiException(status=410, reason="Gone"))
        with patch("kubernetes_asyncio.watch.Watch", return_value=_patched_watch(stream)):
            with pytest.raises(WatchExpiredError):
                _ = [event async for event in source.watch("7", 30)]

    async def test_other_api_errors_propagate(self) -> None:
        source = KubernetesClusterClient(MagicMock()).source("pods")
        stream = _FakeStream(error=ApiException(status=403, reason="Forbidden"))
        with patch("kubernetes_asyncio.watch.Watch", return_value=_patched_watch(stream)):
            with pytest.raises(ApiException):
                _ = [event async for event in source.watch("7", 30)]
