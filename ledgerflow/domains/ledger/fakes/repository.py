"""Fake ledger repository for testing."""

from datetime import datetime, timedelta
from typing import Iterable, Optional
from uuid import UUID, uuid4

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ledgerflow.core.datetime_utils import utc_now_naive
from ledgerflow.models.balance import Balance
from ledgerflow.models.balance_transaction import BalanceTransaction
from ledgerflow.schemas.ledger import CREDIT_LAYER_TYPES, TransactionType

_LAYER_TYPES = {t.value for t in CREDIT_LAYER_TYPES}


class FakeLedgerRepository:
    """In-memory fake for LedgerRepositoryProtocol.

    Enforces the same constraints as the database: one debit record per
    job_id and ``0 <= remaining <= amount`` on every credit layer.
    """

    def __init__(self) -> None:
        """Initialize empty in-memory stores."""
        self._balances: dict[str, Balance] = {}
        self._entries: list[BalanceTransaction] = []
        self._calls: list[tuple] = []
        self._clock = utc_now_naive()

    # ------------------------------------------------------------------
    # Test helpers
    # ------------------------------------------------------------------

    def seed_account(self, organization_id: str, balance: int = 0) -> Balance:
        """Create a balance row directly."""
        now = utc_now_naive()
        row = Balance(
            id=uuid4(),
            organization_id=organization_id,
            balance_in_usd_cents=balance,
            created_at=now,
            modified_at=now,
        )
        self._balances[organization_id] = row
        return row

    def seed_layer(
        self,
        organization_id: str,
        amount: int,
        *,
        remaining: Optional[int] = None,
        type: TransactionType = TransactionType.RECHARGE,
        created_at: Optional[datetime] = None,
        adjust_balance: bool = True,
    ) -> BalanceTransaction:
        """Create a credit layer directly, keeping the balance in step by default."""
        layer = self._new_entry(
            organization_id=organization_id,
            type=type,
            amount_in_usd_cents=amount,
            remaining_in_usd_cents=amount if remaining is None else remaining,
            created_at=created_at,
        )
        if adjust_balance:
            account = self._balances.get(organization_id) or self.seed_account(organization_id)
            account.balance_in_usd_cents += layer.remaining_in_usd_cents
        return layer

    def call_count(self, method: str) -> int:
        """Return the number of times a method was called."""
        return sum(1 for name, *_ in self._calls if name == method)

    def balance_of(self, organization_id: str) -> Optional[int]:
        """Current balance, or None when there is no account."""
        row = self._balances.get(organization_id)
        return None if row is None else row.balance_in_usd_cents

    def debits(self, organization_id: Optional[str] = None) -> list[BalanceTransaction]:
        """Usage fee records, optionally for one organization."""
        return [
            e
            for e in self._entries
            if e.type == TransactionType.USAGE_FEE.value
            and (organization_id is None or e.organization_id == organization_id)
        ]

    def layers(self, organization_id: str) -> list[BalanceTransaction]:
        """Credit layers of an organization, oldest first."""
        return sorted(
            (
                e
                for e in self._entries
                if e.organization_id == organization_id and e.type in _LAYER_TYPES
            ),
            key=lambda e: (e.created_at, str(e.id)),
        )

    def ledger_sum(self, organization_id: str) -> int:
        """Algebraic sum of an organization's entries, net of consumed credit."""
        credits = sum(layer.amount_in_usd_cents for layer in self.layers(organization_id))
        fees = sum(d.amount_in_usd_cents for d in self.debits(organization_id))
        return credits + fees

    def _new_entry(self, *, created_at: Optional[datetime] = None, **fields) -> BalanceTransaction:
        # Strictly increasing timestamps keep FIFO order equal to insertion order
        self._clock += timedelta(microseconds=1)
        entry = BalanceTransaction(
            id=uuid4(),
            fee_in_usd_cents=0,
            created_at=created_at or self._clock,
            modified_at=self._clock,
            **{k: (v.value if isinstance(v, TransactionType) else v) for k, v in fields.items()},
        )
        self._entries.append(entry)
        return entry

    # ------------------------------------------------------------------
    # Protocol
    # ------------------------------------------------------------------

    async def get_balance(
        self, db: AsyncSession, *, organization_id: str, for_update: bool = False
    ) -> Optional[Balance]:
        """Balance row of an organization."""
        self._calls.append(("get_balance", organization_id, for_update))
        return self._balances.get(organization_id)

    async def create_balance_if_absent(self, db: AsyncSession, *, organization_id: str) -> bool:
        """Create a zero balance row."""
        self._calls.append(("create_balance_if_absent", organization_id))
        if organization_id in self._balances:
            return False
        self.seed_account(organization_id)
        return True

    async def adjust_balance(self, db: AsyncSession, *, organization_id: str, delta: int) -> int:
        """Add delta to the balance."""
        self._calls.append(("adjust_balance", organization_id, delta))
        row = self._balances[organization_id]
        row.balance_in_usd_cents += delta
        return row.balance_in_usd_cents

    async def get_debit_by_job_id(
        self, db: AsyncSession, *, job_id: UUID
    ) -> Optional[BalanceTransaction]:
        """Debit record of a job."""
        self._calls.append(("get_debit_by_job_id", job_id))
        return next((e for e in self._entries if e.job_id == job_id), None)

    async def lock_open_layers(
        self, db: AsyncSession, *, organization_id: str
    ) -> list[BalanceTransaction]:
        """Credit layers with remaining funds, oldest first."""
        self._calls.append(("lock_open_layers", organization_id))
        return [e for e in self.layers(organization_id) if e.remaining_in_usd_cents > 0]

    async def list_layers(
        self, db: AsyncSession, *, organization_id: str
    ) -> list[BalanceTransaction]:
        """All credit layers, oldest first."""
        self._calls.append(("list_layers", organization_id))
        return self.layers(organization_id)

    async def count_layers(self, db: AsyncSession, *, organization_id: str) -> int:
        """Number of credit layers."""
        self._calls.append(("count_layers", organization_id))
        return len(self.layers(organization_id))

    async def set_layer_remaining(
        self, db: AsyncSession, *, layer_id: UUID, remaining: int
    ) -> None:
        """Write a layer's remaining amount."""
        self._calls.append(("set_layer_remaining", layer_id, remaining))
        layer = next(e for e in self._entries if e.id == layer_id)
        if not 0 <= remaining <= layer.amount_in_usd_cents:
            raise IntegrityError("remaining out of range", params=None, orig=ValueError(remaining))
        layer.remaining_in_usd_cents = remaining

    async def add_entry(
        self,
        db: AsyncSession,
        *,
        organization_id: str,
        type: TransactionType,
        amount_in_usd_cents: int,
        remaining_in_usd_cents: int = 0,
        description: Optional[str] = None,
        job_id: Optional[UUID] = None,
        batch_id: Optional[UUID] = None,
    ) -> BalanceTransaction:
        """Insert one ledger entry."""
        self._calls.append(("add_entry", organization_id, type, amount_in_usd_cents, job_id))
        if job_id is not None and any(e.job_id == job_id for e in self._entries):
            raise IntegrityError("duplicate job_id", params=None, orig=ValueError(job_id))
        return self._new_entry(
            organization_id=organization_id,
            type=type,
            amount_in_usd_cents=amount_in_usd_cents,
            remaining_in_usd_cents=remaining_in_usd_cents,
            description=description,
            job_id=job_id,
            batch_id=batch_id,
        )

    async def count_settled_organizations(
        self, db: AsyncSession, *, batch_ids: Iterable[UUID]
    ) -> dict[UUID, int]:
        """Distinct organizations with a usage fee, per batch."""
        ids = set(batch_ids)
        self._calls.append(("count_settled_organizations", ids))
        settled: dict[UUID, set[str]] = {}
        for debit in self.debits():
            if debit.batch_id in ids:
                settled.setdefault(debit.batch_id, set()).add(debit.organization_id)
        return {batch_id: len(orgs) for batch_id, orgs in settled.items()}

    async def get_settled_organization_ids(
        self, db: AsyncSession, *, batch_id: UUID
    ) -> set[str]:
        """Organizations that already paid for a batch."""
        self._calls.append(("get_settled_organization_ids", batch_id))
        return {d.organization_id for d in self.debits() if d.batch_id == batch_id}
