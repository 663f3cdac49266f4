"""Fake usage event repository for testing."""

from datetime import datetime
from typing import Optional, Sequence
from uuid import UUID, uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from ledgerflow.core.datetime_utils import utc_now_naive
from ledgerflow.domains.usage_events.types import ensure_transition
from ledgerflow.models.usage_event import UsageEvent
from ledgerflow.schemas.usage_event import UsageEventCreate, UsageEventStatus


class FakeUsageEventRepository:
    """In-memory fake for UsageEventRepositoryProtocol.

    Every status change goes through ``ensure_transition`` so a test that
    drives the fake along a forbidden edge fails loudly.
    """

    def __init__(self) -> None:
        """Initialize empty in-memory stores."""
        self._events: dict[str, UsageEvent] = {}  # idempotency_key -> event
        self._calls: list[tuple] = []
        self._fail_on: dict[str, Exception] = {}

    # ------------------------------------------------------------------
    # Test helpers
    # ------------------------------------------------------------------

    def seed(
        self,
        organization_id: str,
        cost_units: int,
        *,
        status: UsageEventStatus = UsageEventStatus.PENDING,
        batch_id: Optional[UUID] = None,
        claimed_at: Optional[datetime] = None,
        created_at: Optional[datetime] = None,
        idempotency_key: Optional[str] = None,
    ) -> UsageEvent:
        """Insert an event directly, bypassing idempotency handling."""
        now = utc_now_naive()
        event = UsageEvent(
            id=uuid4(),
            idempotency_key=idempotency_key or str(uuid4()),
            organization_id=organization_id,
            cost_units=cost_units,
            status=status.value,
            batch_id=batch_id,
            claimed_at=claimed_at,
            created_at=created_at or now,
            modified_at=now,
        )
        self._events[event.idempotency_key] = event
        return event

    def fail_on(self, method: str, error: Exception) -> None:
        """Make the next call to ``method`` raise ``error``."""
        self._fail_on[method] = error

    def call_count(self, method: str) -> int:
        """Return the number of times a method was called."""
        return sum(1 for name, *_ in self._calls if name == method)

    def all(self) -> list[UsageEvent]:
        """Every stored event, in insertion order."""
        return list(self._events.values())

    def by_status(self, status: UsageEventStatus) -> list[UsageEvent]:
        """Stored events in ``status``."""
        return [e for e in self._events.values() if e.status == status.value]

    def _record(self, method: str, *args) -> None:
        self._calls.append((method, *args))
        error = self._fail_on.pop(method, None)
        if error is not None:
            raise error

    @staticmethod
    def _move(event: UsageEvent, to_status: UsageEventStatus) -> None:
        ensure_transition(UsageEventStatus(event.status), to_status)
        event.status = to_status.value
        event.modified_at = utc_now_naive()

    # ------------------------------------------------------------------
    # Protocol
    # ------------------------------------------------------------------

    async def insert_ignore_duplicates(
        self, db: AsyncSession, *, events: Sequence[UsageEventCreate]
    ) -> int:
        """Insert events whose key is not stored yet."""
        self._record("insert_ignore_duplicates", len(events))
        inserted = 0
        for event in events:
            if event.idempotency_key in self._events:
                continue
            stored = self.seed(
                event.organization_id,
                event.cost_units,
                created_at=event.created_at,
                idempotency_key=event.idempotency_key,
            )
            stored.model = event.model
            stored.input_tokens = event.input_tokens
            stored.output_tokens = event.output_tokens
            stored.connection_type = event.connection_type
            stored.event_metadata = event.event_metadata
            inserted += 1
        return inserted

    async def claim_pending(
        self, db: AsyncSession, *, batch_id: UUID, max_size: int, claimed_at: datetime
    ) -> int:
        """Claim the oldest PENDING events."""
        self._record("claim_pending", batch_id, max_size)
        pending = sorted(self.by_status(UsageEventStatus.PENDING), key=lambda e: e.created_at)
        for event in pending[:max_size]:
            self._move(event, UsageEventStatus.QUEUING)
            event.batch_id = batch_id
            event.claimed_at = claimed_at
        return len(pending[:max_size])

    async def transition_batch(
        self,
        db: AsyncSession,
        *,
        batch_id: UUID,
        from_status: UsageEventStatus,
        to_status: UsageEventStatus,
    ) -> int:
        """Move a batch's events in ``from_status`` to ``to_status``."""
        self._record("transition_batch", batch_id, from_status, to_status)
        moved = 0
        for event in self._events.values():
            if event.batch_id == batch_id and event.status == from_status.value:
                self._move(event, to_status)
                moved += 1
        return moved

    async def release_batch(self, db: AsyncSession, *, batch_id: UUID) -> int:
        """Return a batch's QUEUING events to PENDING."""
        self._record("release_batch", batch_id)
        released = 0
        for event in self._events.values():
            if event.batch_id == batch_id and event.status == UsageEventStatus.QUEUING.value:
                self._move(event, UsageEventStatus.PENDING)
                event.batch_id = None
                event.claimed_at = None
                released += 1
        return released

    async def sum_cost_by_organization(
        self, db: AsyncSession, *, batch_id: UUID
    ) -> list[tuple[str, int]]:
        """Per-organization cost over a batch's QUEUING events."""
        self._record("sum_cost_by_organization", batch_id)
        return self._sum(
            e
            for e in self._events.values()
            if e.batch_id == batch_id and e.status == UsageEventStatus.QUEUING.value
        )

    async def get_batch_ids_by_status(
        self, db: AsyncSession, *, status: UsageEventStatus
    ) -> list[UUID]:
        """Distinct batch ids with events in ``status``, oldest first."""
        self._record("get_batch_ids_by_status", status)
        ordered: list[UUID] = []
        for event in sorted(self.by_status(status), key=lambda e: e.created_at):
            if event.batch_id is not None and event.batch_id not in ordered:
                ordered.append(event.batch_id)
        return ordered

    async def get_stale_claim_batch_ids(
        self, db: AsyncSession, *, claimed_before: datetime
    ) -> list[UUID]:
        """QUEUING batches claimed before the cutoff."""
        self._record("get_stale_claim_batch_ids", claimed_before)
        stale: list[UUID] = []
        for event in self.by_status(UsageEventStatus.QUEUING):
            if event.claimed_at is not None and event.claimed_at < claimed_before:
                if event.batch_id not in stale:
                    stale.append(event.batch_id)
        return stale

    async def has_organization_in_batch(
        self, db: AsyncSession, *, batch_id: UUID, organization_id: str
    ) -> bool:
        """Whether the organization still has events in the batch."""
        self._record("has_organization_in_batch", batch_id, organization_id)
        return any(
            e.batch_id == batch_id and e.organization_id == organization_id
            for e in self._events.values()
        )

    async def count_organizations_for_batch(self, db: AsyncSession, *, batch_id: UUID) -> int:
        """Distinct organizations in a batch."""
        self._record("count_organizations_for_batch", batch_id)
        return len({e.organization_id for e in self._events.values() if e.batch_id == batch_id})

    async def get_organization_costs_for_batch(
        self, db: AsyncSession, *, batch_id: UUID
    ) -> list[tuple[str, int]]:
        """Per-organization cost over every event of a batch."""
        self._record("get_organization_costs_for_batch", batch_id)
        return self._sum(e for e in self._events.values() if e.batch_id == batch_id)

    @staticmethod
    def _sum(events) -> list[tuple[str, int]]:
        totals: dict[str, int] = {}
        for event in events:
            totals[event.organization_id] = totals.get(event.organization_id, 0) + event.cost_units
        return sorted(totals.items())
