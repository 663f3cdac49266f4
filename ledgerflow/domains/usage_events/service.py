"""Usage event store backed by PostgreSQL.

Each operation runs in its own short transaction. Concurrency control is
the status predicate on every UPDATE: a claim only takes PENDING rows, a
confirm only QUEUING rows, and so on, so overlapping orchestrator runs
never move the same row twice.
"""

import logging
from datetime import timedelta
from typing import Optional, Sequence
from uuid import UUID, uuid4

from ledgerflow.core.datetime_utils import utc_now_naive
from ledgerflow.db.unit_of_work import UnitOfWork
from ledgerflow.domains.usage_events.repository import UsageEventRepositoryProtocol
from ledgerflow.domains.usage_events.types import dedupe_by_idempotency_key, ensure_transition
from ledgerflow.schemas.usage_event import (
    ClaimResult,
    OrganizationCost,
    UsageEventCreate,
    UsageEventStatus,
)

logger = logging.getLogger(__name__)


class UsageEventService:
    """Implements UsageEventStoreProtocol on top of a usage event repository.

    Owns its DB sessions through ``get_db_context``.
    """

    def __init__(
        self,
        repository: UsageEventRepositoryProtocol,
        claim_batch_size: int = 1000,
    ) -> None:
        """Initialize with a repository and the default claim size."""
        if claim_batch_size <= 0:
            raise ValueError("claim_batch_size must be positive")
        self._repo = repository
        self._claim_batch_size = claim_batch_size

    async def ingest(self, events: Sequence[UsageEventCreate]) -> int:
        """Append events as PENDING, ignoring idempotency keys already stored."""
        unique = dedupe_by_idempotency_key(events)
        if not unique:
            return 0

        from ledgerflow.db.session import get_db_context

        async with get_db_context() as db:
            async with UnitOfWork(db) as uow:
                inserted = await self._repo.insert_ignore_duplicates(db, events=unique)
                await uow.commit()

        logger.info(
            "Ingested %d usage events (%d received, %d duplicates)",
            inserted,
            len(events),
            len(events) - inserted,
        )
        return inserted

    async def claim_pending_batch(self, max_size: Optional[int] = None) -> ClaimResult:
        """Move up to ``max_size`` PENDING events to QUEUING under a fresh batch id.

        Claiming nothing is a normal outcome and returns ``claimed == 0``.
        """
        size = max_size if max_size is not None else self._claim_batch_size
        if size <= 0:
            raise ValueError("max_size must be positive")
        ensure_transition(UsageEventStatus.PENDING, UsageEventStatus.QUEUING)

        batch_id = uuid4()

        from ledgerflow.db.session import get_db_context

        async with get_db_context() as db:
            async with UnitOfWork(db) as uow:
                claimed = await self._repo.claim_pending(
                    db, batch_id=batch_id, max_size=size, claimed_at=utc_now_naive()
                )
                await uow.commit()

        if claimed:
            logger.info("Claimed %d usage events into batch %s", claimed, batch_id)
        else:
            logger.debug("No pending usage events to claim")
        return ClaimResult(batch_id=batch_id, claimed=claimed)

    async def aggregate(self, batch_id: UUID) -> list[OrganizationCost]:
        """Sum cost per organization over the QUEUING events of ``batch_id`` only."""
        from ledgerflow.db.session import get_db_context

        async with get_db_context() as db:
            rows = await self._repo.sum_cost_by_organization(db, batch_id=batch_id)
        return [
            OrganizationCost(organization_id=organization_id, total_cost_in_units=total)
            for organization_id, total in rows
        ]

    async def confirm_enqueued(self, batch_id: UUID) -> int:
        """Mark a batch QUEUED once its jobs have been handed to the queue."""
        moved = await self._transition(batch_id, UsageEventStatus.QUEUING, UsageEventStatus.QUEUED)
        logger.info("Confirmed batch %s as enqueued (%d events)", batch_id, moved)
        return moved

    async def rollback_claim(self, batch_id: UUID) -> int:
        """Return a claimed batch to PENDING and clear its batch id."""
        ensure_transition(UsageEventStatus.QUEUING, UsageEventStatus.PENDING)

        from ledgerflow.db.session import get_db_context

        async with get_db_context() as db:
            async with UnitOfWork(db) as uow:
                released = await self._repo.release_batch(db, batch_id=batch_id)
                await uow.commit()

        logger.warning("Rolled back claim of batch %s (%d events)", batch_id, released)
        return released

    async def get_queued_batches(self) -> list[UUID]:
        """Batches whose jobs were published and await settlement."""
        from ledgerflow.db.session import get_db_context

        async with get_db_context() as db:
            return await self._repo.get_batch_ids_by_status(db, status=UsageEventStatus.QUEUED)

    async def get_organizations_count_for_batch(self, batch_id: UUID) -> int:
        """Number of distinct organizations with events in ``batch_id``."""
        from ledgerflow.db.session import get_db_context

        async with get_db_context() as db:
            return await self._repo.count_organizations_for_batch(db, batch_id=batch_id)

    async def get_organization_costs_for_batch(self, batch_id: UUID) -> list[OrganizationCost]:
        """Per-organization cost of a batch, whatever its events' status."""
        from ledgerflow.db.session import get_db_context

        async with get_db_context() as db:
            rows = await self._repo.get_organization_costs_for_batch(db, batch_id=batch_id)
        return [
            OrganizationCost(organization_id=organization_id, total_cost_in_units=total)
            for organization_id, total in rows
        ]

    async def batch_includes_organization(self, batch_id: UUID, organization_id: str) -> bool:
        """Whether the organization still has events assigned to the batch."""
        from ledgerflow.db.session import get_db_context

        async with get_db_context() as db:
            return await self._repo.has_organization_in_batch(
                db, batch_id=batch_id, organization_id=organization_id
            )

    async def finalize_batch(self, batch_id: UUID) -> int:
        """Mark a fully settled batch PROCESSED.

        The caller is responsible for proving settlement first.
        """
        moved = await self._transition(
            batch_id, UsageEventStatus.QUEUED, UsageEventStatus.PROCESSED
        )
        logger.info("Finalized batch %s (%d events)", batch_id, moved)
        return moved

    async def get_stale_claims(self, older_than: timedelta) -> list[UUID]:
        """QUEUING batches whose claim is older than ``older_than``."""
        cutoff = utc_now_naive() - older_than

        from ledgerflow.db.session import get_db_context

        async with get_db_context() as db:
            return await self._repo.get_stale_claim_batch_ids(db, claimed_before=cutoff)

    async def _transition(
        self, batch_id: UUID, from_status: UsageEventStatus, to_status: UsageEventStatus
    ) -> int:
        ensure_transition(from_status, to_status)

        from ledgerflow.db.session import get_db_context

        async with get_db_context() as db:
            async with UnitOfWork(db) as uow:
                moved = await self._repo.transition_batch(
                    db, batch_id=batch_id, from_status=from_status, to_status=to_status
                )
                await uow.commit()
        return moved
