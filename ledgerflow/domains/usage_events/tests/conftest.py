"""Usage events domain test fixtures and helpers."""

import pytest

from ledgerflow.domains.usage_events.fakes.repository import FakeUsageEventRepository
from ledgerflow.domains.usage_events.service import UsageEventService
from ledgerflow.schemas.usage_event import UsageEventCreate

ORG_A = "org-a"
ORG_B = "org-b"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_event(
    organization_id: str = ORG_A, cost_units: int = 100, key: str = "key-1"
) -> UsageEventCreate:
    return UsageEventCreate(
        idempotency_key=key, organization_id=organization_id, cost_units=cost_units
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def fake_db(fake_db_context):
    yield


@pytest.fixture
def repo():
    return FakeUsageEventRepository()


@pytest.fixture
def service(repo):
    return UsageEventService(repository=repo, claim_batch_size=1000)
