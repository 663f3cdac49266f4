"""CRUD operations for organization balances."""

from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from ledgerflow.core.datetime_utils import utc_now_naive
from ledgerflow.crud._base import CRUDBase
from ledgerflow.models.balance import Balance


class CRUDBalance(CRUDBase[Balance]):
    """CRUD operations for the balance table."""

    async def get_by_organization(
        self, db: AsyncSession, *, organization_id: str, for_update: bool = False
    ) -> Optional[Balance]:
        """Get an organization's balance row.

        Args:
            db: Database session
            organization_id: Organization ID
            for_update: Lock the row until the transaction ends

        Returns:
            The balance row, or None if the organization has no account
        """
        stmt = select(Balance).where(Balance.organization_id == organization_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def create_if_absent(self, db: AsyncSession, *, organization_id: str) -> bool:
        """Create a zero balance row unless one exists.

        Returns:
            True if a row was created
        """
        now = utc_now_naive()
        stmt = (
            insert(Balance)
            .values(
                organization_id=organization_id,
                balance_in_usd_cents=0,
                created_at=now,
                modified_at=now,
            )
            .on_conflict_do_nothing(index_elements=["organization_id"])
            .returning(Balance.id)
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def adjust(self, db: AsyncSession, *, organization_id: str, delta: int) -> int:
        """Add ``delta`` (may be negative) to a balance.

        Returns:
            The new balance
        """
        stmt = (
            update(Balance)
            .where(Balance.organization_id == organization_id)
            .values(
                balance_in_usd_cents=Balance.balance_in_usd_cents + delta,
                modified_at=utc_now_naive(),
            )
            .returning(Balance.balance_in_usd_cents)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        return int(result.scalar_one())


balance = CRUDBalance(Balance)
