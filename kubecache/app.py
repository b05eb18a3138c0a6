"""Application bootstrap for kubecache.

Wires all components in dependency order and manages the asyncio lifecycle.
Startup order: config → logging → K8s client → cache → snapshot publisher → REST

Shutdown is graceful: components are stopped in reverse startup order, and
each component's stop error is caught and logged independently.
"""

from __future__ import annotations

import asyncio
import signal
from typing import TYPE_CHECKING

from kubecache.config import load_config
from kubecache.models.config import KubeCacheConfig
from kubecache.observability.logging import get_logger, setup_logging

if TYPE_CHECKING:
    import structlog

_SHUTDOWN_GRACE_SECONDS = 15


class _ComponentError(Exception):
    """Raised when a mandatory component fails to start."""

    def __init__(self, component: str, cause: Exception) -> None:
        super().__init__(f"Component '{component}' failed to start: {cause}")
        self.component = component
        self.cause = cause


class KubeCacheApp:
    """Application root.  Owns every component and coordinates their lifecycle.

    ``stop()`` is safe on an app that was never started or is already stopped.
    """

    def __init__(self, config: KubeCacheConfig | None = None) -> None:
        self.config: KubeCacheConfig | None = config

        self._cluster_client: object | None = None
        self._cache: object | None = None
        self._snapshots: object | None = None
        self._rest_server: object | None = None

        self._background_tasks: list[asyncio.Task[None]] = []

        self._running = False
        self._log: structlog.stdlib.BoundLogger | None = None

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start all components in dependency order.

        Raises _ComponentError if a mandatory component cannot start.
        """
        # --- 1. Configuration -------------------------------------------
        if self.config is None:
            self.config = load_config()

        # --- 2. Logging -------------------------------------------------
        setup_logging(self.config.log.level, cluster_id=self.config.cluster_id)
        self._log = get_logger("app")
        self._log.info(
            "kubecache starting",
            version=_kubecache_version(),
            kinds=self.config.cache.kinds,
        )

        # --- 3. Kubernetes client ----------------------------------------
        await self._start_cluster_client()

        # --- 4. Resource cache (blocks on each kind's sync barrier) -------
        await self._start_cache()

        # --- 5. Snapshot publisher (optional) ----------------------------
        await self._start_snapshots()

        # --- 6. REST API ------------------------------------------------
        await self._start_rest()

        self._running = True
        self._log.info("kubecache started", port=self.config.api.port)

    async def _start_cluster_client(self) -> None:
        """Load in-cluster config or kubeconfig and build the cluster client."""
        assert self._log is not None
        assert self.config is not None
        self._log.debug("starting k8s client")
        try:
            from kubecache.cache.source import load_cluster_client

            self._cluster_client = await load_cluster_client(self.config.kube.context)
        except Exception as exc:
            raise _ComponentError("k8s_client", exc) from exc

    async def _start_cache(self) -> None:
        """Create the ResourceCache; returns once every kind has synced."""
        assert self._log is not None
        assert self.config is not None
        self._log.debug("starting resource cache", kinds=self.config.cache.kinds)
        try:
            from kubecache.cache import ResourceCache

            self._cache = await ResourceCache.create(
                self._cluster_client,  # type: ignore[arg-type]
                self.config.cache.kinds,
                resync_interval=self.config.cache.resync_interval,
                sync_timeout=self.config.cache.sync_timeout,
            )
            self._log.info("resource cache started")
        except Exception as exc:
            raise _ComponentError("cache", exc) from exc

    async def _start_snapshots(self) -> None:
        """Start periodic JSON snapshots; non-fatal when it fails."""
        assert self._log is not None
        assert self.config is not None
        if not self.config.snapshot.enabled:
            self._log.info("snapshot publisher disabled (snapshot.enabled=false)")
            return
        try:
            from kubecache.cache import SnapshotPublisher

            publisher = SnapshotPublisher(
                self._cache,  # type: ignore[arg-type]
                self._cluster_client.api_client,  # type: ignore[attr-defined]
                interval=self.config.snapshot.interval,
            )
            await publisher.start()
            self._snapshots = publisher
            self._log.info("snapshot publisher started", interval=self.config.snapshot.interval)
        except Exception as exc:
            # Unfiltered reads fall back to serializing the live store
            self._log.warning("snapshot publisher failed to start; serving live data", error=str(exc))
            self._snapshots = None

    async def _start_rest(self) -> None:
        """Start the uvicorn REST server."""
        assert self._log is not None
        assert self.config is not None
        self._log.debug("starting rest api")
        try:
            import uvicorn  # type: ignore[import-untyped]

            from kubecache.api import create_app

            fastapi_app = create_app(
                cache=self._cache,
                api_client=self._cluster_client.api_client,  # type: ignore[attr-defined]
                snapshots=self._snapshots,
                config=self.config,
            )
            uv_config = uvicorn.Config(
                app=fastapi_app,
                host="0.0.0.0",
                port=self.config.api.port,
                log_config=None,  # structlog handles all logging
                access_log=False,
            )
            server = uvicorn.Server(uv_config)
            task = asyncio.create_task(server.serve(), name="rest-server")
            self._background_tasks.append(task)
            self._rest_server = server
            self._log.info("rest api started", port=self.config.api.port)
        except Exception as exc:
            raise _ComponentError("rest", exc) from exc

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def stop(self) -> None:
        """Stop all components in reverse startup order."""
        if not self._running and self._log is None:
            return

        log = self._log or get_logger("app")
        log.info("kubecache shutting down")

        self._running = False

        if self._rest_server is not None:
            self._rest_server.should_exit = True  # type: ignore[attr-defined]

        for task in reversed(self._background_tasks):
            if not task.done():
                task.cancel()
        if self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)
        self._background_tasks.clear()
        self._rest_server = None

        await self._stop_component("snapshots", self._snapshots)
        await self._stop_component("cache", self._cache)
        await self._stop_component("k8s_client", self._cluster_client, method="close")
        self._snapshots = None
        self._cache = None
        self._cluster_client = None

        log.info("kubecache stopped")

    async def _stop_component(self, name: str, component: object | None, method: str = "stop") -> None:
        """Call *method* on a component if it has one, catching all errors."""
        if component is None:
            return
        log = self._log or get_logger("app")
        stop_fn = getattr(component, method, None)
        if stop_fn is None:
            return
        try:
            result = stop_fn()
            if asyncio.iscoroutine(result):
                await asyncio.wait_for(result, timeout=_SHUTDOWN_GRACE_SECONDS)
        except TimeoutError:
            log.warning("component stop timed out", component=name, timeout=_SHUTDOWN_GRACE_SECONDS)
        except Exception as exc:
            log.error("component stop raised an error", component=name, error=str(exc))


def _kubecache_version() -> str:
    from kubecache import __version__

    return __version__


# ---------------------------------------------------------------------------
# Async entrypoint
# ---------------------------------------------------------------------------


async def main(config: KubeCacheConfig | None = None) -> None:
    """Create the app, register OS signals, run until shutdown is requested."""
    app = KubeCacheApp(config)
    loop = asyncio.get_running_loop()

    shutdown_triggered = False

    def _request_shutdown() -> None:
        nonlocal shutdown_triggered
        if shutdown_triggered:
            return
        shutdown_triggered = True
        asyncio.create_task(app.stop(), name="shutdown")

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, _request_shutdown)

    try:
        await app.start()
        while app._running:
            await asyncio.sleep(1)
    except _ComponentError as exc:
        log = get_logger("app")
        log.critical(
            "fatal startup error",
            component=exc.component,
            error=str(exc.cause),
        )
        await app.stop()
        raise SystemExit(1) from exc
    finally:
        if app._running:
            await app.stop()
