"""HTTP control server for process health, metrics and drain.

Endpoints:
    GET  /health  - Liveness/readiness probe
    GET  /metrics - Prometheus metrics
    POST /drain   - Initiate graceful shutdown

Shared by the API, the Temporal worker and the billing job consumer; each
runs it on its own port.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Callable, Coroutine

from aiohttp import web

from ledgerflow.core.logging import logger
from ledgerflow.core.protocols import MetricsRenderer


@dataclass
class ProcessState:
    """Mutable process state shared between the runtime and the control server."""

    running: bool = False
    draining: bool = False
    on_drain_requested: Callable[[], Coroutine[Any, Any, None]] | None = field(default=None)


class ControlServer:
    """aiohttp server exposing health, metrics and drain."""

    def __init__(
        self,
        state: ProcessState,
        renderer: MetricsRenderer,
        host: str = "0.0.0.0",
        port: int = 9091,
    ) -> None:
        """Initialize the control server."""
        self._state = state
        self._renderer = renderer
        self._host = host
        self._port = port
        self._runner: web.AppRunner | None = None

    def build_app(self) -> web.Application:
        """The aiohttp application, without binding a port."""
        app = web.Application()
        app.router.add_get("/health", self._handle_health)
        app.router.add_get("/metrics", self._handle_metrics)
        app.router.add_post("/drain", self._handle_drain)
        return app

    async def start(self) -> None:
        """Start serving."""
        self._runner = web.AppRunner(self.build_app())
        await self._runner.setup()
        site = web.TCPSite(self._runner, self._host, self._port)
        await site.start()
        logger.info(f"Control server started on {self._host}:{self._port}")

    async def stop(self) -> None:
        """Stop serving."""
        if self._runner:
            try:
                await self._runner.cleanup()
            except Exception as e:
                logger.warning(f"Control server cleanup error: {e}")
            self._runner = None

    # -------------------------------------------------------------------------
    # Handlers
    # -------------------------------------------------------------------------

    async def _handle_health(self, request: web.Request) -> web.Response:
        if not self._state.running:
            return web.Response(text="NOT_RUNNING", status=503)
        if self._state.draining:
            return web.Response(text="DRAINING", status=503)
        return web.Response(text="OK", status=200)

    async def _handle_metrics(self, request: web.Request) -> web.Response:
        try:
            body = self._renderer.generate()
        except Exception as e:
            logger.error(f"Error generating Prometheus metrics: {e}", exc_info=True)
            return web.Response(text=f"Error: {e}", status=500)
        return web.Response(
            body=body,
            content_type=self._renderer.content_type,
            charset=self._renderer.charset,
        )

    async def _handle_drain(self, request: web.Request) -> web.Response:
        logger.warning("DRAIN: Initiating graceful shutdown")
        self._state.draining = True
        if self._state.on_drain_requested:
            asyncio.create_task(self._state.on_drain_requested())
        return web.Response(text="Drain initiated")
