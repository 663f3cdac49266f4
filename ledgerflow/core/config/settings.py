"""Application settings loaded from the environment.

All tunables live here. Values are read from environment variables (and a
local ``.env`` file when present) through pydantic-settings.
"""

from typing import Optional

from pydantic import Field, PostgresDsn, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ledgerflow.core.config.enums import Environment, JobQueueBackend


class Settings(BaseSettings):
    """Runtime configuration for the API, Temporal worker and job consumer."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Environment
    # ------------------------------------------------------------------

    ENVIRONMENT: Environment = Environment.LOCAL
    LOG_LEVEL: str = "INFO"
    TESTING: bool = False

    # ------------------------------------------------------------------
    # PostgreSQL (ledger + usage events)
    # ------------------------------------------------------------------

    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "ledgerflow"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DB: str = "ledgerflow"
    POSTGRES_SSLMODE: str = "prefer"

    db_pool_size: int = Field(default=20, alias="DB_POOL_SIZE")
    db_pool_max_overflow: int = Field(default=40, alias="DB_POOL_MAX_OVERFLOW")

    # ------------------------------------------------------------------
    # Redis (billing job stream)
    # ------------------------------------------------------------------

    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_PASSWORD: Optional[str] = None
    REDIS_DB: int = 0

    # ------------------------------------------------------------------
    # Temporal (periodic orchestration)
    # ------------------------------------------------------------------

    TEMPORAL_HOST: str = "localhost"
    TEMPORAL_PORT: int = 7233
    TEMPORAL_NAMESPACE: str = "default"
    TEMPORAL_TASK_QUEUE: str = "ledgerflow-billing"
    TEMPORAL_GRACEFUL_SHUTDOWN_TIMEOUT: int = 60
    TEMPORAL_DISABLE_SANDBOX: bool = False

    # ------------------------------------------------------------------
    # Billing pipeline
    # ------------------------------------------------------------------

    BILLING_CLAIM_BATCH_SIZE: int = 1000
    BILLING_PUBLISH_CHUNK_SIZE: int = 100
    BILLING_STALE_CLAIM_MINUTES: int = 15
    BILLING_ORCHESTRATION_CRON: str = "*/5 * * * *"
    BILLING_RECLAIM_CRON: str = "*/10 * * * *"
    BILLING_JOB_QUEUE_BACKEND: JobQueueBackend = JobQueueBackend.REDIS
    BILLING_JOBS_STREAM: str = "billing:jobs"
    BILLING_JOBS_DEAD_LETTER_STREAM: str = "billing:jobs:dead"
    BILLING_JOBS_CONSUMER_GROUP: str = "billing-balance"
    BILLING_JOB_MAX_ATTEMPTS: int = 5
    BILLING_CONSUMER_BATCH_SIZE: int = 50
    BILLING_CONSUMER_BLOCK_MS: int = 5000
    BILLING_COST_UNITS_PER_USD: int = 100

    # ------------------------------------------------------------------
    # Metrics
    # ------------------------------------------------------------------

    METRICS_PORT: int = 9091

    @field_validator("BILLING_CLAIM_BATCH_SIZE", "BILLING_PUBLISH_CHUNK_SIZE")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be a positive integer")
        return value

    @computed_field  # type: ignore[prop-decorator]
    @property
    def SQLALCHEMY_ASYNC_DATABASE_URI(self) -> str:
        """Async SQLAlchemy URI for the asyncpg driver."""
        return str(
            PostgresDsn.build(
                scheme="postgresql+asyncpg",
                username=self.POSTGRES_USER,
                password=self.POSTGRES_PASSWORD or None,
                host=self.POSTGRES_HOST,
                port=self.POSTGRES_PORT,
                path=self.POSTGRES_DB,
            )
        )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def temporal_address(self) -> str:
        """Temporal frontend address as ``host:port``."""
        return f"{self.TEMPORAL_HOST}:{self.TEMPORAL_PORT}"

    @property
    def is_local(self) -> bool:
        """Whether log output should be human-readable rather than JSON."""
        return self.ENVIRONMENT in (Environment.LOCAL, Environment.TEST)
