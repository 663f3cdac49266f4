"""Configuration module for ledgerflow.

Provides centralized configuration management with type-safe enums.

Usage:
    from ledgerflow.core.config import settings, Environment

    # Access settings
    if settings.BILLING_CLAIM_BATCH_SIZE > 1000:
        ...

    # Use enums for type safety
    if settings.ENVIRONMENT == Environment.PRD:
        ...
"""

from ledgerflow.core.config.enums import Environment, JobQueueBackend
from ledgerflow.core.config.settings import Settings

__all__ = [
    "Settings",
    "Environment",
    "JobQueueBackend",
    "settings",
]

# Singleton settings instance
settings = Settings()
