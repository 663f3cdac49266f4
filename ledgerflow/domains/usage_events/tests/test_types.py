"""Tests for the usage event lifecycle."""

import pytest

from ledgerflow.domains.usage_events.exceptions import InvalidStatusTransitionError
from ledgerflow.domains.usage_events.types import (
    dedupe_by_idempotency_key,
    ensure_transition,
    is_valid_transition,
)
from ledgerflow.domains.usage_events.tests.conftest import _make_event
from ledgerflow.schemas.usage_event import UsageEventStatus as S


@pytest.mark.parametrize(
    "from_status,to_status",
    [
        (S.PENDING, S.QUEUING),
        (S.QUEUING, S.QUEUED),
        (S.QUEUING, S.PENDING),
        (S.QUEUED, S.PROCESSED),
    ],
)
def test_allowed_edges(from_status, to_status):
    assert is_valid_transition(from_status, to_status)


@pytest.mark.parametrize(
    "from_status,to_status",
    [
        (S.PENDING, S.QUEUED),
        (S.PENDING, S.PROCESSED),
        (S.QUEUED, S.PENDING),
        (S.QUEUED, S.QUEUING),
        (S.PROCESSED, S.PENDING),
        (S.PROCESSED, S.QUEUED),
    ],
)
def test_forbidden_edges(from_status, to_status):
    assert not is_valid_transition(from_status, to_status)
    with pytest.raises(InvalidStatusTransitionError):
        ensure_transition(from_status, to_status)


def test_processed_is_terminal():
    assert not any(is_valid_transition(S.PROCESSED, target) for target in S)


def test_dedupe_keeps_first_occurrence():
    events = [
        _make_event(cost_units=1, key="a"),
        _make_event(cost_units=2, key="b"),
        _make_event(cost_units=3, key="a"),
    ]

    unique = dedupe_by_idempotency_key(events)

    assert [(e.idempotency_key, e.cost_units) for e in unique] == [("a", 1), ("b", 2)]
