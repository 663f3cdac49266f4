"""Ledger repository wrapping crud.balance and crud.balance_transaction."""

from typing import Iterable, Optional, Protocol
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ledgerflow import crud
from ledgerflow.models.balance import Balance
from ledgerflow.models.balance_transaction import BalanceTransaction
from ledgerflow.schemas.ledger import TransactionType


class LedgerRepositoryProtocol(Protocol):
    """Data access for balances and ledger entries."""

    async def get_balance(
        self, db: AsyncSession, *, organization_id: str, for_update: bool = False
    ) -> Optional[Balance]:
        """Balance row of an organization, optionally locked."""
        ...

    async def create_balance_if_absent(self, db: AsyncSession, *, organization_id: str) -> bool:
        """Create a zero balance row. Returns True if created."""
        ...

    async def adjust_balance(self, db: AsyncSession, *, organization_id: str, delta: int) -> int:
        """Add delta to the balance. Returns the new balance."""
        ...

    async def get_debit_by_job_id(
        self, db: AsyncSession, *, job_id: UUID
    ) -> Optional[BalanceTransaction]:
        """Debit record of a job, if any."""
        ...

    async def lock_open_layers(
        self, db: AsyncSession, *, organization_id: str
    ) -> list[BalanceTransaction]:
        """Lock credit layers with remaining funds, oldest first."""
        ...

    async def list_layers(
        self, db: AsyncSession, *, organization_id: str
    ) -> list[BalanceTransaction]:
        """All credit layers, oldest first."""
        ...

    async def count_layers(self, db: AsyncSession, *, organization_id: str) -> int:
        """Number of credit layers ever granted."""
        ...

    async def set_layer_remaining(
        self, db: AsyncSession, *, layer_id: UUID, remaining: int
    ) -> None:
        """Write a layer's remaining amount."""
        ...

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
        ...

    async def count_settled_organizations(
        self, db: AsyncSession, *, batch_ids: Iterable[UUID]
    ) -> dict[UUID, int]:
        """Distinct organizations with a usage fee, per batch."""
        ...

    async def get_settled_organization_ids(
        self, db: AsyncSession, *, batch_id: UUID
    ) -> set[str]:
        """Organizations that already paid for a batch."""
        ...


class LedgerRepository(LedgerRepositoryProtocol):
    """Delegates to the crud.balance and crud.balance_transaction singletons."""

    async def get_balance(
        self, db: AsyncSession, *, organization_id: str, for_update: bool = False
    ) -> Optional[Balance]:
        """Balance row of an organization."""
        return await crud.balance.get_by_organization(
            db, organization_id=organization_id, for_update=for_update
        )

    async def create_balance_if_absent(self, db: AsyncSession, *, organization_id: str) -> bool:
        """Create a zero balance row."""
        return await crud.balance.create_if_absent(db, organization_id=organization_id)

    async def adjust_balance(self, db: AsyncSession, *, organization_id: str, delta: int) -> int:
        """Add delta to the balance."""
        return await crud.balance.adjust(db, organization_id=organization_id, delta=delta)

    async def get_debit_by_job_id(
        self, db: AsyncSession, *, job_id: UUID
    ) -> Optional[BalanceTransaction]:
        """Debit record of a job."""
        return await crud.balance_transaction.get_by_job_id(db, job_id=job_id)

    async def lock_open_layers(
        self, db: AsyncSession, *, organization_id: str
    ) -> list[BalanceTransaction]:
        """Lock credit layers with remaining funds."""
        return await crud.balance_transaction.lock_open_layers(db, organization_id=organization_id)

    async def list_layers(
        self, db: AsyncSession, *, organization_id: str
    ) -> list[BalanceTransaction]:
        """All credit layers."""
        return await crud.balance_transaction.list_layers(db, organization_id=organization_id)

    async def count_layers(self, db: AsyncSession, *, organization_id: str) -> int:
        """Number of credit layers."""
        return await crud.balance_transaction.count_layers(db, organization_id=organization_id)

    async def set_layer_remaining(
        self, db: AsyncSession, *, layer_id: UUID, remaining: int
    ) -> None:
        """Write a layer's remaining amount."""
        await crud.balance_transaction.set_remaining(db, layer_id=layer_id, remaining=remaining)

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
        return await crud.balance_transaction.add_entry(
            db,
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
        return await crud.balance_transaction.count_settled_organizations(db, batch_ids=batch_ids)

    async def get_settled_organization_ids(
        self, db: AsyncSession, *, batch_id: UUID
    ) -> set[str]:
        """Organizations that already paid for a batch."""
        return await crud.balance_transaction.get_settled_organization_ids(db, batch_id=batch_id)
