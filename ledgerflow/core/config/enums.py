"""Configuration enums for type-safe settings.

These enums provide type safety and IDE autocomplete for configuration values.
They inherit from str to maintain JSON serialization compatibility.
"""

from enum import Enum


class Environment(str, Enum):
    """Deployment environments.

    Controls environment-specific behavior like log formatting and
    which job queue adapter the container wires.
    """

    LOCAL = "local"
    TEST = "test"
    DEV = "dev"
    PRD = "prd"


class JobQueueBackend(str, Enum):
    """Billing job queue backends.

    Determines where aggregated billing jobs are handed off after a claim.
    """

    REDIS = "redis"
    MEMORY = "memory"
