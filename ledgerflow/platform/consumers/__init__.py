"""Queue consumers for ledgerflow.

``python -m ledgerflow.platform.consumers`` runs the billing job consumer
with a control server for health and metrics.
"""

import asyncio
import signal

from ledgerflow.core.config import settings
from ledgerflow.core.logging import logger
from ledgerflow.platform.consumers.billing_jobs import BillingJobsConsumer
from ledgerflow.platform.control_server import ControlServer, ProcessState

__all__ = ["BillingJobsConsumer", "main"]


async def main() -> None:
    """Main entry point for the consumer process."""
    from ledgerflow.core import container as container_mod
    from ledgerflow.core.container import initialize_container
    from ledgerflow.core.redis_client import redis_client

    initialize_container(settings)
    container = container_mod.container

    ensure_group = getattr(container.job_queue, "ensure_group", None)
    if ensure_group is not None:
        await ensure_group()

    stop_event = asyncio.Event()
    state = ProcessState(running=True)

    async def _drain() -> None:
        stop_event.set()

    state.on_drain_requested = _drain
    control_server = ControlServer(
        state=state, renderer=container.renderer, port=settings.METRICS_PORT
    )

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    consumer = BillingJobsConsumer(
        queue=container.job_queue,
        settler=container.settler,
        batch_size=settings.BILLING_CONSUMER_BATCH_SIZE,
        block_ms=settings.BILLING_CONSUMER_BLOCK_MS,
    )

    try:
        await control_server.start()
    except Exception as e:
        logger.warning(f"Failed to start control server (metrics unavailable): {e}")

    try:
        await consumer.run(stop_event)
    finally:
        state.running = False
        await control_server.stop()
        await redis_client.close()
