"""Tests for kubecache.cache.resource_cache.ResourceCache."""

from __future__ import annotations

import asyncio

import pytest
from fakes import FakeClusterClient, make_namespace, make_pod, wait_until

from kubecache.cache.resource_cache import (
    CacheConfigError,
    CacheSyncTimeoutError,
    ResourceCache,
    UnknownKindError,
)
from kubecache.models.resources import SyncState
from kubecache.models.selectors import Selector
from kubecache.selector.filter import MalformedConstraintError, UnknownSelectorKindError

_FAST = {"initial_backoff": 0.01, "max_backoff": 0.05}


async def _cache(cluster: FakeClusterClient, kinds: list[str], **kwargs) -> ResourceCache:
    kwargs.setdefault("sync_timeout", 2.0)
    return await ResourceCache.create(cluster, kinds, **_FAST, **kwargs)


class TestCreate:
    async def test_none_client_is_a_configuration_error(self) -> None:
        with pytest.raises(CacheConfigError, match="None"):
            await ResourceCache.create(None, ["pods"])

    async def test_unsupported_kind_is_a_configuration_error(self, fake_cluster: FakeClusterClient) -> None:
        with pytest.raises(CacheConfigError, match="deployments"):
            await ResourceCache.create(fake_cluster, ["pods", "deployments"])
        # Nothing was started for the valid kind either.
        assert fake_cluster.sources == {}

    async def test_every_kind_synced_on_return(self, fake_cluster: FakeClusterClient) -> None:
        fake_cluster.seed("pods", [make_pod("a")])
        fake_cluster.seed("namespaces", [make_namespace("default")])
        cache = await _cache(fake_cluster, ["pods", "namespaces"])
        try:
            assert cache.kinds() == ["pods", "namespaces"]
            assert cache.has_synced("pods") and cache.has_synced("namespaces")
            assert cache.is_ready() is True
            assert cache.sync_states() == {"pods": SyncState.READY, "namespaces": SyncState.READY}
        finally:
            await cache.stop()

    async def test_duplicate_kinds_collapse(self, fake_cluster: FakeClusterClient) -> None:
        cache = await _cache(fake_cluster, ["pods", "pods"])
        try:
            assert cache.kinds() == ["pods"]
            assert fake_cluster.sources["pods"].list_calls == 1
        finally:
            await cache.stop()

    async def test_kinds_sync_sequentially(self, fake_cluster: FakeClusterClient) -> None:
        fake_cluster.source("namespaces").always_fail = True
        with pytest.raises(CacheSyncTimeoutError) as excinfo:
            await _cache(fake_cluster, ["namespaces", "pods"], sync_timeout=0.2)
        assert excinfo.value.kind == "namespaces"
        # The second kind is never started while the first is blocked.
        assert "pods" not in fake_cluster.sources

    async def test_sync_timeout_stops_started_synchronizers(self, fake_cluster: FakeClusterClient) -> None:
        pods = fake_cluster.seed("pods", [make_pod("a")])
        fake_cluster.source("ingresses").always_fail = True
        with pytest.raises(CacheSyncTimeoutError, match="ingresses"):
            await _cache(fake_cluster, ["pods", "ingresses"], sync_timeout=0.2)
        calls = fake_cluster.sources["ingresses"].list_calls
        pod_calls = pods.list_calls
        await asyncio.sleep(0.1)
        assert fake_cluster.sources["ingresses"].list_calls == calls
        assert pods.list_calls == pod_calls


class TestGetAll:
    async def test_returns_live_snapshot(self, fake_cluster: FakeClusterClient) -> None:
        source = fake_cluster.seed("pods", [make_pod("a")])
        cache = await _cache(fake_cluster, ["pods"])
        try:
            assert [p.metadata.name for p in cache.get_all("pods")] == ["a"]
            source.emit("ADDED", make_pod("b"))
            await wait_until(lambda: len(cache.get_all("pods")) == 2)
        finally:
            await cache.stop()

    async def test_unconfigured_kind_raises(self, fake_cluster: FakeClusterClient) -> None:
        cache = await _cache(fake_cluster, ["pods"])
        try:
            with pytest.raises(UnknownKindError, match="ingresses"):
                cache.get_all("ingresses")
            with pytest.raises(LookupError):
                cache.has_synced("ingresses")
        finally:
            await cache.stop()


class TestGetFiltered:
    async def test_empty_store_never_errors(self, fake_cluster: FakeClusterClient) -> None:
        cache = await _cache(fake_cluster, ["pods"])
        try:
            selectors = [Selector("labelSelector", "appx"), Selector("bogus", "x")]
            assert cache.get_filtered("pods", selectors) == []
        finally:
            await cache.stop()

    async def test_filters_by_all_selectors(self, fake_cluster: FakeClusterClient) -> None:
        fake_cluster.seed(
            "pods",
            [
                make_pod("a", namespace="default", labels={"app": "x"}),
                make_pod("b", namespace="prod", labels={"app": "x"}),
                make_pod("c", namespace="default", labels={"app": "y"}),
            ],
        )
        cache = await _cache(fake_cluster, ["pods"])
        try:
            matched = cache.get_filtered("pods", [Selector("labelSelector", "app=x"), Selector("namespace", "default")])
            assert [p.metadata.name for p in matched] == ["a"]
        finally:
            await cache.stop()

    async def test_no_selectors_returns_everything(self, fake_cluster: FakeClusterClient) -> None:
        fake_cluster.seed("pods", [make_pod("a"), make_pod("b")])
        cache = await _cache(fake_cluster, ["pods"])
        try:
            assert len(cache.get_filtered("pods", [])) == 2
        finally:
            await cache.stop()

    async def test_malformed_constraint_propagates(self, fake_cluster: FakeClusterClient) -> None:
        fake_cluster.seed("pods", [make_pod("a", labels={"app": "x"})])
        cache = await _cache(fake_cluster, ["pods"])
        try:
            with pytest.raises(MalformedConstraintError):
                cache.get_filtered("pods", [Selector("labelSelector", "appx")])
        finally:
            await cache.stop()

    async def test_unknown_selector_kind_propagates(self, fake_cluster: FakeClusterClient) -> None:
        fake_cluster.seed("pods", [make_pod("a")])
        cache = await _cache(fake_cluster, ["pods"])
        try:
            with pytest.raises(UnknownSelectorKindError):
                cache.get_filtered("pods", [Selector("annotationSelector", "a=b")])
        finally:
            await cache.stop()

    async def test_unconfigured_kind_raises(self, fake_cluster: FakeClusterClient) -> None:
        cache = await _cache(fake_cluster, ["pods"])
        try:
            with pytest.raises(UnknownKindError):
                cache.get_filtered("networkpolicies", [Selector("namespace", "default")])
        finally:
            await cache.stop()


class TestStop:
    async def test_stop_marks_every_kind_stopped(self, fake_cluster: FakeClusterClient) -> None:
        fake_cluster.seed("pods", [make_pod("a")])
        cache = await _cache(fake_cluster, ["pods", "namespaces"])
        await cache.stop()
        assert set(cache.sync_states().values()) == {SyncState.STOPPED}
        assert cache.is_ready() is False
        assert len(cache.get_all("pods")) == 1
