"""Billing domain types and pure business logic.

Job ids, chunking and settlement decisions. No IO; everything here is
deterministic.
"""

from enum import Enum
from typing import Iterator, Sequence, TypeVar
from uuid import UUID, uuid5

from ledgerflow.schemas.billing import BillingJob
from ledgerflow.schemas.usage_event import OrganizationCost

T = TypeVar("T")

# Fixed namespace: changing it would give already-published jobs new ids.
BILLING_JOB_NAMESPACE = UUID("6f1c2d3e-8a4b-5c6d-9e0f-1a2b3c4d5e6f")


class SettlementDecision(str, Enum):
    """What a consumer does with a delivered job."""

    ACK = "ack"
    RETRY = "retry"


class SettlementOutcome(str, Enum):
    """Why a job was acked or retried; used as the debit metric label."""

    DEBITED = "debited"
    DUPLICATE = "duplicate"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    STALE = "stale"
    ERROR = "error"


def derive_job_id(batch_id: UUID, organization_id: str) -> UUID:
    """Deterministic job id for one organization's share of one batch."""
    return uuid5(BILLING_JOB_NAMESPACE, f"{batch_id}:{organization_id}")


def build_jobs(batch_id: UUID, costs: Sequence[OrganizationCost]) -> list[BillingJob]:
    """One billing job per organization in the aggregate."""
    return [
        BillingJob(
            job_id=derive_job_id(batch_id, cost.organization_id),
            batch_id=batch_id,
            organization_id=cost.organization_id,
            total_cost_in_units=cost.total_cost_in_units,
        )
        for cost in costs
    ]


def chunked(items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    """Yield consecutive slices of at most ``size`` items."""
    if size <= 0:
        raise ValueError("Chunk size must be positive")
    for start in range(0, len(items), size):
        yield items[start : start + size]
