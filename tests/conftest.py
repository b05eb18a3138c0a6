"""Shared fixtures for kubecache tests."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterator

import pytest
from fakes import FakeClusterClient, FakeSource, wait_until
from kubernetes_asyncio.client import ApiClient  # type: ignore[import-untyped]


async def _new_api_client() -> ApiClient:
    # ApiClient opens an aiohttp session, which needs a running loop.
    return ApiClient()


@pytest.fixture(scope="session")
def api_client() -> Iterator[ApiClient]:
    """A real kubernetes-asyncio ApiClient; tests only use its serializer."""
    loop = asyncio.new_event_loop()
    client = loop.run_until_complete(_new_api_client())
    yield client
    loop.run_until_complete(client.close())
    loop.close()


@pytest.fixture
def fake_cluster(api_client: ApiClient) -> FakeClusterClient:
    return FakeClusterClient(api_client)


@pytest.fixture
def fake_source() -> FakeSource:
    return FakeSource()


@pytest.fixture
def eventually() -> Callable[..., Awaitable[None]]:
    return wait_until
