"""Tests for Settings validation and derived values."""

import pytest
from pydantic import ValidationError

from ledgerflow.core.config import Environment, JobQueueBackend, Settings


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


def test_database_uri_uses_asyncpg():
    settings = _settings(
        POSTGRES_HOST="db", POSTGRES_PORT=5433, POSTGRES_USER="u", POSTGRES_PASSWORD="p"
    )

    assert settings.SQLALCHEMY_ASYNC_DATABASE_URI.startswith("postgresql+asyncpg://u:p@db:5433/")


def test_temporal_address():
    assert _settings(TEMPORAL_HOST="temporal", TEMPORAL_PORT=7000).temporal_address == (
        "temporal:7000"
    )


@pytest.mark.parametrize("field", ["BILLING_CLAIM_BATCH_SIZE", "BILLING_PUBLISH_CHUNK_SIZE"])
def test_batch_sizes_must_be_positive(field):
    with pytest.raises(ValidationError):
        _settings(**{field: 0})


def test_enums_parse_from_strings():
    settings = _settings(ENVIRONMENT="prd", BILLING_JOB_QUEUE_BACKEND="memory")

    assert settings.ENVIRONMENT == Environment.PRD
    assert settings.BILLING_JOB_QUEUE_BACKEND == JobQueueBackend.MEMORY
    assert settings.is_local is False
