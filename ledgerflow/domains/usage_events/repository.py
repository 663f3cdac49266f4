"""Usage events repository wrapping crud.usage_event."""

from datetime import datetime
from typing import Protocol, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ledgerflow import crud
from ledgerflow.schemas.usage_event import UsageEventCreate, UsageEventStatus


class UsageEventRepositoryProtocol(Protocol):
    """Data access for usage events."""

    async def insert_ignore_duplicates(
        self, db: AsyncSession, *, events: Sequence[UsageEventCreate]
    ) -> int:
        """Insert events, skipping existing idempotency keys. Returns rows inserted."""
        ...

    async def claim_pending(
        self, db: AsyncSession, *, batch_id: UUID, max_size: int, claimed_at: datetime
    ) -> int:
        """Move up to max_size PENDING events under batch_id. Returns rows claimed."""
        ...

    async def transition_batch(
        self,
        db: AsyncSession,
        *,
        batch_id: UUID,
        from_status: UsageEventStatus,
        to_status: UsageEventStatus,
    ) -> int:
        """Move a batch's events between statuses. Returns rows moved."""
        ...

    async def release_batch(self, db: AsyncSession, *, batch_id: UUID) -> int:
        """Return a batch's QUEUING events to PENDING. Returns rows released."""
        ...

    async def sum_cost_by_organization(
        self, db: AsyncSession, *, batch_id: UUID
    ) -> list[tuple[str, int]]:
        """Per-organization cost over a batch's QUEUING events."""
        ...

    async def get_batch_ids_by_status(
        self, db: AsyncSession, *, status: UsageEventStatus
    ) -> list[UUID]:
        """Distinct batch ids with events in status."""
        ...

    async def get_stale_claim_batch_ids(
        self, db: AsyncSession, *, claimed_before: datetime
    ) -> list[UUID]:
        """QUEUING batches claimed before the cutoff."""
        ...

    async def has_organization_in_batch(
        self, db: AsyncSession, *, batch_id: UUID, organization_id: str
    ) -> bool:
        """Whether the organization still has events in the batch."""
        ...

    async def count_organizations_for_batch(self, db: AsyncSession, *, batch_id: UUID) -> int:
        """Distinct organizations in a batch."""
        ...

    async def get_organization_costs_for_batch(
        self, db: AsyncSession, *, batch_id: UUID
    ) -> list[tuple[str, int]]:
        """Per-organization cost over every event of a batch."""
        ...


class UsageEventRepository(UsageEventRepositoryProtocol):
    """Delegates to the crud.usage_event singleton."""

    async def insert_ignore_duplicates(
        self, db: AsyncSession, *, events: Sequence[UsageEventCreate]
    ) -> int:
        """Insert events, skipping existing idempotency keys."""
        return await crud.usage_event.bulk_insert_ignore_duplicates(db, events)

    async def claim_pending(
        self, db: AsyncSession, *, batch_id: UUID, max_size: int, claimed_at: datetime
    ) -> int:
        """Claim PENDING events under batch_id."""
        return await crud.usage_event.claim_pending(
            db, batch_id=batch_id, max_size=max_size, claimed_at=claimed_at
        )

    async def transition_batch(
        self,
        db: AsyncSession,
        *,
        batch_id: UUID,
        from_status: UsageEventStatus,
        to_status: UsageEventStatus,
    ) -> int:
        """Move a batch's events between statuses."""
        return await crud.usage_event.transition_batch(
            db, batch_id=batch_id, from_status=from_status, to_status=to_status
        )

    async def release_batch(self, db: AsyncSession, *, batch_id: UUID) -> int:
        """Return a batch's QUEUING events to PENDING."""
        return await crud.usage_event.release_batch(db, batch_id=batch_id)

    async def sum_cost_by_organization(
        self, db: AsyncSession, *, batch_id: UUID
    ) -> list[tuple[str, int]]:
        """Per-organization cost over a batch's QUEUING events."""
        return await crud.usage_event.sum_cost_by_organization(db, batch_id=batch_id)

    async def get_batch_ids_by_status(
        self, db: AsyncSession, *, status: UsageEventStatus
    ) -> list[UUID]:
        """Distinct batch ids with events in status."""
        return await crud.usage_event.get_batch_ids_by_status(db, status=status)

    async def get_stale_claim_batch_ids(
        self, db: AsyncSession, *, claimed_before: datetime
    ) -> list[UUID]:
        """QUEUING batches claimed before the cutoff."""
        return await crud.usage_event.get_stale_claim_batch_ids(db, claimed_before=claimed_before)

    async def has_organization_in_batch(
        self, db: AsyncSession, *, batch_id: UUID, organization_id: str
    ) -> bool:
        """Whether the organization still has events in the batch."""
        return await crud.usage_event.has_organization_in_batch(
            db, batch_id=batch_id, organization_id=organization_id
        )

    async def count_organizations_for_batch(self, db: AsyncSession, *, batch_id: UUID) -> int:
        """Distinct organizations in a batch."""
        return await crud.usage_event.count_organizations_for_batch(db, batch_id=batch_id)

    async def get_organization_costs_for_batch(
        self, db: AsyncSession, *, batch_id: UUID
    ) -> list[tuple[str, int]]:
        """Per-organization cost over every event of a batch."""
        return await crud.usage_event.get_organization_costs_for_batch(db, batch_id=batch_id)
