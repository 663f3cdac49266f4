"""Usage events domain types and pure business logic.

The event lifecycle is encoded here once; the repository predicates and the
in-memory fakes both follow it. No IO.
"""

from typing import Iterable

from ledgerflow.domains.usage_events.exceptions import InvalidStatusTransitionError
from ledgerflow.schemas.usage_event import UsageEventCreate, UsageEventStatus

# PENDING -> QUEUING -> QUEUED -> PROCESSED; QUEUING -> PENDING is the only back-edge.
ALLOWED_TRANSITIONS: dict[UsageEventStatus, frozenset[UsageEventStatus]] = {
    UsageEventStatus.PENDING: frozenset({UsageEventStatus.QUEUING}),
    UsageEventStatus.QUEUING: frozenset({UsageEventStatus.QUEUED, UsageEventStatus.PENDING}),
    UsageEventStatus.QUEUED: frozenset({UsageEventStatus.PROCESSED}),
    UsageEventStatus.PROCESSED: frozenset(),
}


def is_valid_transition(from_status: UsageEventStatus, to_status: UsageEventStatus) -> bool:
    """Whether the lifecycle allows moving from ``from_status`` to ``to_status``."""
    return to_status in ALLOWED_TRANSITIONS[from_status]


def ensure_transition(from_status: UsageEventStatus, to_status: UsageEventStatus) -> None:
    """Raise InvalidStatusTransitionError unless the edge is allowed."""
    if not is_valid_transition(from_status, to_status):
        raise InvalidStatusTransitionError(from_status.value, to_status.value)


def dedupe_by_idempotency_key(events: Iterable[UsageEventCreate]) -> list[UsageEventCreate]:
    """Keep the first event for each idempotency key, preserving order."""
    seen: set[str] = set()
    unique: list[UsageEventCreate] = []
    for event in events:
        if event.idempotency_key in seen:
            continue
        seen.add(event.idempotency_key)
        unique.append(event)
    return unique
