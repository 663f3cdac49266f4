"""CRUD operations for ledger entries (credit layers and debit records)."""

from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ledgerflow.core.datetime_utils import utc_now_naive
from ledgerflow.crud._base import CRUDBase
from ledgerflow.models.balance_transaction import BalanceTransaction
from ledgerflow.schemas.ledger import CREDIT_LAYER_TYPES, TransactionType

_LAYER_TYPE_VALUES = [t.value for t in CREDIT_LAYER_TYPES]


class CRUDBalanceTransaction(CRUDBase[BalanceTransaction]):
    """CRUD operations for the balance_transaction table."""

    async def get_by_job_id(self, db: AsyncSession, *, job_id: UUID) -> Optional[BalanceTransaction]:
        """Get the debit record of a billing job, if it was settled."""
        result = await db.execute(
            select(BalanceTransaction).where(BalanceTransaction.job_id == job_id)
        )
        return result.scalar_one_or_none()

    async def lock_open_layers(
        self, db: AsyncSession, *, organization_id: str
    ) -> List[BalanceTransaction]:
        """Lock an organization's credit layers that still have funds, oldest first.

        Ties on ``created_at`` are broken by id so every caller sees the
        same order.
        """
        stmt = (
            select(BalanceTransaction)
            .where(
                BalanceTransaction.organization_id == organization_id,
                BalanceTransaction.type.in_(_LAYER_TYPE_VALUES),
                BalanceTransaction.remaining_in_usd_cents > 0,
            )
            .order_by(BalanceTransaction.created_at, BalanceTransaction.id)
            .with_for_update()
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def count_layers(self, db: AsyncSession, *, organization_id: str) -> int:
        """Count every credit layer ever granted to an organization."""
        stmt = select(func.count()).where(
            BalanceTransaction.organization_id == organization_id,
            BalanceTransaction.type.in_(_LAYER_TYPE_VALUES),
        )
        result = await db.execute(stmt)
        return int(result.scalar_one())

    async def list_layers(
        self, db: AsyncSession, *, organization_id: str
    ) -> List[BalanceTransaction]:
        """Get an organization's credit layers in FIFO order, without locking."""
        stmt = (
            select(BalanceTransaction)
            .where(
                BalanceTransaction.organization_id == organization_id,
                BalanceTransaction.type.in_(_LAYER_TYPE_VALUES),
            )
            .order_by(BalanceTransaction.created_at, BalanceTransaction.id)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def set_remaining(self, db: AsyncSession, *, layer_id: UUID, remaining: int) -> None:
        """Write a credit layer's new remaining amount."""
        stmt = (
            update(BalanceTransaction)
            .where(BalanceTransaction.id == layer_id)
            .values(remaining_in_usd_cents=remaining, modified_at=utc_now_naive())
            .execution_options(synchronize_session=False)
        )
        await db.execute(stmt)

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
        """Insert one ledger entry and flush it."""
        now = utc_now_naive()
        entry = BalanceTransaction(
            organization_id=organization_id,
            type=type.value,
            amount_in_usd_cents=amount_in_usd_cents,
            remaining_in_usd_cents=remaining_in_usd_cents,
            fee_in_usd_cents=0,
            description=description,
            job_id=job_id,
            batch_id=batch_id,
            created_at=now,
            modified_at=now,
        )
        db.add(entry)
        await db.flush()
        return entry

    async def count_settled_organizations(
        self, db: AsyncSession, *, batch_ids: Iterable[UUID]
    ) -> dict[UUID, int]:
        """Count distinct organizations with a usage fee recorded, per batch."""
        ids = list(batch_ids)
        if not ids:
            return {}
        stmt = (
            select(
                BalanceTransaction.batch_id,
                func.count(func.distinct(BalanceTransaction.organization_id)),
            )
            .where(
                BalanceTransaction.type == TransactionType.USAGE_FEE.value,
                BalanceTransaction.batch_id.in_(ids),
            )
            .group_by(BalanceTransaction.batch_id)
        )
        result = await db.execute(stmt)
        return {batch_id: int(count) for batch_id, count in result.all()}

    async def get_settled_organization_ids(
        self, db: AsyncSession, *, batch_id: UUID
    ) -> set[str]:
        """Get the organizations that already paid for a batch."""
        stmt = (
            select(BalanceTransaction.organization_id)
            .where(
                BalanceTransaction.type == TransactionType.USAGE_FEE.value,
                BalanceTransaction.batch_id == batch_id,
            )
            .distinct()
        )
        result = await db.execute(stmt)
        return set(result.scalars().all())


balance_transaction = CRUDBalanceTransaction(BalanceTransaction)
