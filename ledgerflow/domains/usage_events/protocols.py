"""Usage events domain protocols.

UsageEventStoreProtocol is the contract the orchestrator and reconciler
depend on. Implementations own their DB sessions; callers never pass one.
"""

from datetime import timedelta
from typing import Optional, Protocol, Sequence, runtime_checkable
from uuid import UUID

from ledgerflow.schemas.usage_event import ClaimResult, OrganizationCost, UsageEventCreate


@runtime_checkable
class UsageEventStoreProtocol(Protocol):
    """Durable usage events with a claim-based batch lifecycle."""

    async def ingest(self, events: Sequence[UsageEventCreate]) -> int:
        """Append events as PENDING; duplicate idempotency keys are ignored.

        Returns the number of events actually stored.
        """
        ...

    async def claim_pending_batch(self, max_size: Optional[int] = None) -> ClaimResult:
        """Atomically move up to max_size PENDING events to QUEUING under a new batch."""
        ...

    async def aggregate(self, batch_id: UUID) -> list[OrganizationCost]:
        """Sum cost per organization over the QUEUING events of one batch."""
        ...

    async def confirm_enqueued(self, batch_id: UUID) -> int:
        """QUEUING -> QUEUED for one batch."""
        ...

    async def rollback_claim(self, batch_id: UUID) -> int:
        """QUEUING -> PENDING for one batch, detaching its events."""
        ...

    async def get_queued_batches(self) -> list[UUID]:
        """Batches awaiting settlement."""
        ...

    async def get_organizations_count_for_batch(self, batch_id: UUID) -> int:
        """Distinct organizations implicated in a batch."""
        ...

    async def get_organization_costs_for_batch(self, batch_id: UUID) -> list[OrganizationCost]:
        """Per-organization cost of a batch, whatever its events' status."""
        ...

    async def batch_includes_organization(self, batch_id: UUID, organization_id: str) -> bool:
        """Whether the organization still has events assigned to the batch.

        False once the batch was rolled back, which makes its jobs stale.
        """
        ...

    async def finalize_batch(self, batch_id: UUID) -> int:
        """QUEUED -> PROCESSED for one batch."""
        ...

    async def get_stale_claims(self, older_than: timedelta) -> list[UUID]:
        """QUEUING batches claimed longer ago than the given age."""
        ...
