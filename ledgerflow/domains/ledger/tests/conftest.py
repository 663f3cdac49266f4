"""Ledger domain test fixtures and helpers."""

import pytest

from ledgerflow.domains.ledger.debit_engine import LedgerDebitEngine
from ledgerflow.domains.ledger.fakes.repository import FakeLedgerRepository

ORG_A = "org-a"
ORG_B = "org-b"


@pytest.fixture(autouse=True)
def fake_db(fake_db_context):
    yield


@pytest.fixture
def repo():
    return FakeLedgerRepository()


@pytest.fixture
def engine(repo):
    return LedgerDebitEngine(repository=repo)
