"""Worker configuration."""

from dataclasses import dataclass

from ledgerflow.core.config import settings


@dataclass(frozen=True)
class WorkerConfig:
    """Worker configuration - all tunables in one place.

    Attributes:
        task_queue: Temporal task queue name
        metrics_port: Port for the control server (health, metrics, drain)
        graceful_shutdown_timeout_seconds: How long to wait for activities to complete
        disable_sandbox: Disable the Temporal sandbox (debugging only)
        ensure_schedules: Create or update the billing cron schedules at startup
    """

    task_queue: str
    metrics_port: int
    graceful_shutdown_timeout_seconds: int
    max_concurrent_activities: int = 4
    disable_sandbox: bool = False
    ensure_schedules: bool = True

    @classmethod
    def from_settings(cls) -> "WorkerConfig":
        """Build config from environment settings."""
        return cls(
            task_queue=settings.TEMPORAL_TASK_QUEUE,
            metrics_port=settings.METRICS_PORT,
            graceful_shutdown_timeout_seconds=settings.TEMPORAL_GRACEFUL_SHUTDOWN_TIMEOUT,
            disable_sandbox=settings.TEMPORAL_DISABLE_SANDBOX,
        )
