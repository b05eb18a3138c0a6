"""FastAPI application factory for kubecache.

Usage::

    from kubecache.api.app import create_app

    app = create_app(cache=cache, api_client=api_client, snapshots=publisher, config=config)

The factory is used by both the production bootstrap (``kubecache.app``) and
unit tests.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app

from kubecache.api.routes import router
from kubecache.api.schemas import ErrorResponse

_log = structlog.get_logger(component="api.app")

_API_PREFIX = "/api/v1"


def create_app(
    cache: Any,
    api_client: Any,
    snapshots: Any = None,
    config: Any = None,
) -> FastAPI:
    """Create and configure the kubecache FastAPI application.

    Args:
        cache:      ResourceCache instance.
        api_client: kubernetes-asyncio ApiClient; serializes cached objects.
        snapshots:  Optional SnapshotPublisher; unfiltered reads use it when set.
        config:     KubeCacheConfig.  Used for cluster_id metadata.

    Returns:
        Configured FastAPI application, ready to be served by uvicorn.
    """
    from kubecache import __version__

    cluster_id: str = ""
    if config is not None and hasattr(config, "cluster_id"):
        cluster_id = config.cluster_id or ""

    app = FastAPI(
        title="kubecache",
        summary="Cached, queryable Kubernetes resources",
        version=__version__,
        description=(
            "kubecache serves namespaces, pods, ingresses and network policies "
            "from a continuously synchronized local cache, filtered by label, "
            "field path or namespace."
        ),
        docs_url="/api/v1/docs",
        redoc_url="/api/v1/redoc",
        openapi_url="/api/v1/openapi.json",
    )

    app.state.cache = cache
    app.state.api_client = api_client
    app.state.snapshots = snapshots
    app.state.config = config
    app.state.cluster_id = cluster_id

    app.include_router(router, prefix=_API_PREFIX)
    app.mount("/metrics", make_asgi_app())

    @app.exception_handler(Exception)
    async def generic_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        """Catch-all for unhandled exceptions; never expose stack traces."""
        _log.error(
            "unhandled_exception",
            path=str(request.url.path),
            method=request.method,
            error=str(exc),
        )
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error="INTERNAL_ERROR",
                detail="An unexpected error occurred.",
            ).model_dump(),
        )

    return app
