"""Temporal client configuration and utilities."""

from typing import Optional

from temporalio.client import Client

from ledgerflow.core.config import settings
from ledgerflow.core.logging import logger


class TemporalClient:
    """Temporal client wrapper."""

    _client: Optional[Client] = None

    @classmethod
    async def get_client(cls) -> Client:
        """Get or create the Temporal client."""
        if cls._client is None:
            logger.info(
                f"Connecting to Temporal at {settings.temporal_address}, "
                f"namespace: {settings.TEMPORAL_NAMESPACE}"
            )
            cls._client = await Client.connect(
                target_host=settings.temporal_address,
                namespace=settings.TEMPORAL_NAMESPACE,
            )
        return cls._client

    @classmethod
    async def close(cls) -> None:
        """Drop the cached client; the SDK client has no close method."""
        cls._client = None


# Singleton instance
temporal_client = TemporalClient()
