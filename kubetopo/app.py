"""Application bootstrap for the kubetopo REST server.

Startup order: config -> logging -> layout cache -> REST.  Shutdown stops
the uvicorn server and waits for it to drain within a grace period.
"""

from __future__ import annotations

import asyncio
import signal
from typing import TYPE_CHECKING

from kubetopo.config import load_config
from kubetopo.layout.cache import LayoutCache
from kubetopo.models.config import TopologyConfig
from kubetopo.observability.logging import get_logger, setup_logging

if TYPE_CHECKING:
    import structlog
    import uvicorn

_SHUTDOWN_GRACE_SECONDS = 15


class _ComponentError(Exception):
    """Raised when a mandatory component fails to start."""

    def __init__(self, component: str, cause: Exception) -> None:
        super().__init__(f"Component '{component}' failed to start: {cause}")
        self.component = component
        self.cause = cause


class TopologyApp:
    """Application root.  Owns the layout cache and the REST server.

    ``stop()`` on an app that was never started (or already stopped) is safe.
    """

    def __init__(self, config: TopologyConfig | None = None) -> None:
        self.config = config
        self.layout_cache: LayoutCache | None = None
        self._rest_server: uvicorn.Server | None = None
        self._rest_task: asyncio.Task[None] | None = None
        self._running = False
        self._log: structlog.stdlib.BoundLogger | None = None

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Load configuration, configure logging and start serving.

        Raises _ComponentError if the REST server cannot start.
        """
        if self.config is None:
            self.config = load_config()

        setup_logging(self.config.log.level)
        self._log = get_logger("app")
        self._log.info("kubetopo starting", version=_kubetopo_version(), cluster=self.config.cluster_name)

        self.layout_cache = LayoutCache(self.config.api.layout_cache_size)
        await self._start_rest()

        self._running = True
        self._log.info("kubetopo started", port=self.config.api.port)

    async def _start_rest(self) -> None:
        """Start the uvicorn REST server."""
        assert self._log is not None
        assert self.config is not None
        self._log.debug("starting rest api")
        try:
            import uvicorn

            from kubetopo.api import build_app

            fastapi_app = build_app(config=self.config, layout_cache=self.layout_cache)
            uv_config = uvicorn.Config(
                app=fastapi_app,
                host="0.0.0.0",
                port=self.config.api.port,
                log_config=None,  # structlog handles all logging
                access_log=False,
            )
            server = uvicorn.Server(uv_config)
            self._rest_task = asyncio.create_task(server.serve(), name="rest-server")
            self._rest_server = server
            self._log.info("rest api started", port=self.config.api.port)
        except Exception as exc:
            raise _ComponentError("rest", exc) from exc

    async def stop(self) -> None:
        """Stop the REST server, waiting up to the grace period for it to exit."""
        if not self._running and self._log is None:
            return

        log = self._log or get_logger("app")
        log.info("kubetopo shutting down")
        self._running = False

        if self._rest_server is not None:
            self._rest_server.should_exit = True
        if self._rest_task is not None and not self._rest_task.done():
            try:
                await asyncio.wait_for(self._rest_task, timeout=_SHUTDOWN_GRACE_SECONDS)
            except TimeoutError:
                log.warning("rest server stop timed out", timeout=_SHUTDOWN_GRACE_SECONDS)
                self._rest_task.cancel()
        self._rest_server = None
        self._rest_task = None

        if self.layout_cache is not None:
            self.layout_cache.clear()

        log.info("kubetopo stopped")


def _kubetopo_version() -> str:
    from kubetopo import __version__

    return __version__


# ---------------------------------------------------------------------------
# Async entrypoint
# ---------------------------------------------------------------------------


async def main(config: TopologyConfig | None = None) -> None:
    """Create the app, register OS signals, run until shutdown is requested."""
    app = TopologyApp(config)
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
        while app.running:
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
        if app.running:
            await app.stop()
