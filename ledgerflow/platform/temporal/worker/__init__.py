"""Temporal worker for ledgerflow.

Package structure:
    config.py   - WorkerConfig dataclass
    wiring.py   - Activity and workflow registration (DI wiring)
    __init__.py - TemporalWorker class and main() entry point
"""

import asyncio
import signal
from datetime import timedelta
from typing import Any

from temporalio.worker import Worker

from ledgerflow.core.config import settings
from ledgerflow.core.logging import logger
from ledgerflow.core.protocols import MetricsRenderer
from ledgerflow.platform.control_server import ControlServer, ProcessState

from .config import WorkerConfig
from .wiring import create_activities, get_workflows

__all__ = ["TemporalWorker", "WorkerConfig", "main"]


class TemporalWorker:
    """Temporal worker lifecycle management.

    Responsibilities:
        - Start/stop the Temporal worker
        - Manage the control server for health/metrics/drain
        - Ensure the billing schedules exist
    """

    def __init__(self, config: WorkerConfig, renderer: MetricsRenderer) -> None:
        """Initialize the Temporal worker."""
        self._config = config
        self._worker: Worker | None = None
        self._state = ProcessState()
        self._control_server = ControlServer(
            state=self._state, renderer=renderer, port=config.metrics_port
        )

    async def start(self) -> None:
        """Start the control server, then run the worker until shutdown."""
        try:
            await self._control_server.start()
        except Exception as e:
            logger.warning(f"Failed to start control server (metrics unavailable): {e}")

        from ledgerflow.platform.temporal.client import temporal_client

        client = await temporal_client.get_client()

        if self._config.ensure_schedules:
            from ledgerflow.platform.temporal.schedules import BillingScheduleService

            schedules = BillingScheduleService(settings, client_factory=temporal_client.get_client)
            await schedules.ensure_schedules()

        logger.info(f"Starting Temporal worker on task queue: {self._config.task_queue}")
        self._worker = Worker(
            client,
            task_queue=self._config.task_queue,
            workflows=get_workflows(),
            activities=create_activities(),
            workflow_runner=self._get_sandbox_runner(),
            max_concurrent_activities=self._config.max_concurrent_activities,
            graceful_shutdown_timeout=timedelta(
                seconds=self._config.graceful_shutdown_timeout_seconds
            ),
        )

        self._state.on_drain_requested = self._on_drain
        self._state.running = True
        await self._worker.run()

    async def stop(self) -> None:
        """Stop the worker and control server."""
        if self._worker and self._state.running:
            logger.info("Stopping worker gracefully")
            self._state.running = False
            await self._worker.shutdown()

        await self._control_server.stop()

        from ledgerflow.platform.temporal.client import temporal_client

        await temporal_client.close()

    async def _on_drain(self) -> None:
        try:
            if self._worker:
                await self._worker.shutdown()
            logger.info("Worker shutdown complete - process will exit")
        except Exception as e:
            logger.error(f"Error during worker shutdown: {e}")

    def _get_sandbox_runner(self):
        if self._config.disable_sandbox:
            from temporalio.worker import UnsandboxedWorkflowRunner

            logger.warning("TEMPORAL SANDBOX DISABLED - Use only for debugging!")
            return UnsandboxedWorkflowRunner()

        from temporalio.worker.workflow_sandbox import SandboxedWorkflowRunner

        return SandboxedWorkflowRunner()


async def main() -> None:
    """Main entry point for the worker process."""
    from ledgerflow.core import container as container_mod
    from ledgerflow.core.container import initialize_container

    logger.info("Initializing dependency injection container...")
    initialize_container(settings)

    worker = TemporalWorker(
        WorkerConfig.from_settings(), renderer=container_mod.container.renderer
    )

    def signal_handler(signum: int, frame: Any) -> None:
        logger.info(f"Received signal {signum}, shutting down...")
        asyncio.create_task(worker.stop())

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        await worker.start()
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, shutting down...")
    finally:
        await worker.stop()


if __name__ == "__main__":
    asyncio.run(main())
