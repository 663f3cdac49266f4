"""CRUD operations for usage events.

Every status change is a single ``UPDATE`` guarded by the source status, so
two overlapping callers can never both move the same row.
"""

from datetime import datetime
from typing import List, Sequence
from uuid import UUID, uuid4

from sqlalchemy import exists, func, select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from ledgerflow.core.datetime_utils import utc_now_naive
from ledgerflow.crud._base import CRUDBase
from ledgerflow.models.usage_event import UsageEvent
from ledgerflow.schemas.usage_event import UsageEventCreate, UsageEventStatus

# Keeps one multi-row INSERT well under the driver's bind-parameter limit
INSERT_CHUNK_SIZE = 1000


class CRUDUsageEvent(CRUDBase[UsageEvent]):
    """CRUD operations for the usage_event table."""

    async def bulk_insert_ignore_duplicates(
        self, db: AsyncSession, events: Sequence[UsageEventCreate]
    ) -> int:
        """Insert events, silently skipping idempotency keys that already exist.

        Args:
            db: Database session
            events: Events to append, all stored as PENDING

        Returns:
            Number of rows actually inserted
        """
        if not events:
            return 0

        now = utc_now_naive()
        inserted = 0
        for start in range(0, len(events), INSERT_CHUNK_SIZE):
            rows = [
                {
                    "id": uuid4(),
                    "idempotency_key": event.idempotency_key,
                    "organization_id": event.organization_id,
                    "cost_units": event.cost_units,
                    "status": UsageEventStatus.PENDING.value,
                    "batch_id": None,
                    "claimed_at": None,
                    "created_at": event.created_at or now,
                    "modified_at": now,
                    "model": event.model,
                    "input_tokens": event.input_tokens,
                    "output_tokens": event.output_tokens,
                    "connection_type": event.connection_type,
                    "event_metadata": event.event_metadata,
                }
                for event in events[start : start + INSERT_CHUNK_SIZE]
            ]
            stmt = (
                insert(UsageEvent)
                .values(rows)
                .on_conflict_do_nothing(index_elements=["idempotency_key"])
                .returning(UsageEvent.id)
            )
            result = await db.execute(stmt)
            inserted += len(result.scalars().all())
        return inserted

    async def claim_pending(
        self,
        db: AsyncSession,
        *,
        batch_id: UUID,
        max_size: int,
        claimed_at: datetime,
    ) -> int:
        """Move up to ``max_size`` PENDING events, oldest first, under ``batch_id``.

        Rows locked by a concurrent claim are skipped rather than waited on;
        the outer ``status = PENDING`` predicate guarantees a row is claimed
        by at most one batch.

        Returns:
            Number of events claimed
        """
        pending = (
            select(UsageEvent.id)
            .where(UsageEvent.status == UsageEventStatus.PENDING.value)
            .order_by(UsageEvent.created_at)
            .limit(max_size)
            .with_for_update(skip_locked=True)
        )
        stmt = (
            update(UsageEvent)
            .where(
                UsageEvent.id.in_(pending),
                UsageEvent.status == UsageEventStatus.PENDING.value,
            )
            .values(
                status=UsageEventStatus.QUEUING.value,
                batch_id=batch_id,
                claimed_at=claimed_at,
                modified_at=claimed_at,
            )
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        return result.rowcount

    async def transition_batch(
        self,
        db: AsyncSession,
        *,
        batch_id: UUID,
        from_status: UsageEventStatus,
        to_status: UsageEventStatus,
    ) -> int:
        """Move every event of a batch from ``from_status`` to ``to_status``.

        Returns:
            Number of events moved
        """
        stmt = (
            update(UsageEvent)
            .where(
                UsageEvent.batch_id == batch_id,
                UsageEvent.status == from_status.value,
            )
            .values(status=to_status.value, modified_at=utc_now_naive())
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        return result.rowcount

    async def release_batch(self, db: AsyncSession, *, batch_id: UUID) -> int:
        """Return the QUEUING events of a batch to PENDING and detach them.

        Returns:
            Number of events released
        """
        stmt = (
            update(UsageEvent)
            .where(
                UsageEvent.batch_id == batch_id,
                UsageEvent.status == UsageEventStatus.QUEUING.value,
            )
            .values(
                status=UsageEventStatus.PENDING.value,
                batch_id=None,
                claimed_at=None,
                modified_at=utc_now_naive(),
            )
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        return result.rowcount

    async def sum_cost_by_organization(
        self, db: AsyncSession, *, batch_id: UUID
    ) -> List[tuple[str, int]]:
        """Sum ``cost_units`` per organization over the QUEUING events of one batch."""
        stmt = (
            select(UsageEvent.organization_id, func.sum(UsageEvent.cost_units))
            .where(
                UsageEvent.batch_id == batch_id,
                UsageEvent.status == UsageEventStatus.QUEUING.value,
            )
            .group_by(UsageEvent.organization_id)
            .order_by(UsageEvent.organization_id)
        )
        result = await db.execute(stmt)
        return [(organization_id, int(total)) for organization_id, total in result.all()]

    async def get_batch_ids_by_status(
        self, db: AsyncSession, *, status: UsageEventStatus
    ) -> List[UUID]:
        """Get the distinct batch ids that have events in ``status``."""
        stmt = (
            select(UsageEvent.batch_id)
            .where(UsageEvent.status == status.value, UsageEvent.batch_id.is_not(None))
            .group_by(UsageEvent.batch_id)
            .order_by(func.min(UsageEvent.created_at))
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def get_stale_claim_batch_ids(
        self, db: AsyncSession, *, claimed_before: datetime
    ) -> List[UUID]:
        """Get batches still QUEUING whose claim is older than ``claimed_before``."""
        stmt = (
            select(UsageEvent.batch_id)
            .where(
                UsageEvent.status == UsageEventStatus.QUEUING.value,
                UsageEvent.claimed_at < claimed_before,
            )
            .distinct()
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def has_organization_in_batch(
        self, db: AsyncSession, *, batch_id: UUID, organization_id: str
    ) -> bool:
        """Whether any event of ``organization_id`` is still assigned to ``batch_id``."""
        stmt = select(
            exists().where(
                UsageEvent.batch_id == batch_id,
                UsageEvent.organization_id == organization_id,
            )
        )
        result = await db.execute(stmt)
        return bool(result.scalar())

    async def count_organizations_for_batch(self, db: AsyncSession, *, batch_id: UUID) -> int:
        """Count the distinct organizations with events in a batch."""
        stmt = select(func.count(func.distinct(UsageEvent.organization_id))).where(
            UsageEvent.batch_id == batch_id
        )
        result = await db.execute(stmt)
        return int(result.scalar_one())

    async def get_organization_costs_for_batch(
        self, db: AsyncSession, *, batch_id: UUID
    ) -> List[tuple[str, int]]:
        """Sum cost per organization over every event of a batch, whatever its status."""
        stmt = (
            select(UsageEvent.organization_id, func.sum(UsageEvent.cost_units))
            .where(UsageEvent.batch_id == batch_id)
            .group_by(UsageEvent.organization_id)
            .order_by(UsageEvent.organization_id)
        )
        result = await db.execute(stmt)
        return [(organization_id, int(total)) for organization_id, total in result.all()]


usage_event = CRUDUsageEvent(UsageEvent)
