"""Shared fixtures for kubecache integration tests.

Wires a real ResourceCache, SnapshotPublisher and FastAPI app together on top
of FakeClusterClient, so the full read path runs without a Kubernetes cluster.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

import httpx
import pytest
from fakes import FakeClusterClient, make_namespace, make_network_policy, make_pod

from kubecache.api.app import create_app
from kubecache.cache import ResourceCache, SnapshotPublisher

FAST = {"initial_backoff": 0.01, "max_backoff": 0.05}


@pytest.fixture
def seeded_cluster(api_client: Any) -> FakeClusterClient:
    cluster = FakeClusterClient(api_client)
    cluster.seed("namespaces", [make_namespace("a"), make_namespace("b", labels={"team": "core"})])
    cluster.seed(
        "pods",
        [
            make_pod("web-1", namespace="a", labels={"app": "web"}),
            make_pod("web-2", namespace="b", labels={"app": "web"}, node_name="node-2"),
            make_pod("db-1", namespace="b", labels={"app": "db"}, phase="Pending"),
        ],
    )
    cluster.seed("networkpolicies", [make_network_policy("deny-all", namespace="b")])
    return cluster


@pytest.fixture
async def live_cache(seeded_cluster: FakeClusterClient) -> AsyncIterator[ResourceCache]:
    cache = await ResourceCache.create(
        seeded_cluster,
        ["namespaces", "pods", "networkpolicies"],
        resync_interval=30.0,
        sync_timeout=2.0,
        **FAST,
    )
    yield cache
    await cache.stop()


@pytest.fixture
async def publisher(seeded_cluster: FakeClusterClient, live_cache: ResourceCache) -> AsyncIterator[SnapshotPublisher]:
    snapshots = SnapshotPublisher(live_cache, seeded_cluster.api_client, interval=0.05)
    await snapshots.start()
    yield snapshots
    await snapshots.stop()


@pytest.fixture
async def api(
    seeded_cluster: FakeClusterClient, live_cache: ResourceCache, publisher: SnapshotPublisher
) -> AsyncIterator[httpx.AsyncClient]:
    app = create_app(cache=live_cache, api_client=seeded_cluster.api_client, snapshots=publisher)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://kubecache") as client:
        yield client
