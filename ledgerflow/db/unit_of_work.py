"""Unit of work: one transaction scope over an AsyncSession.

Usage:
    async with UnitOfWork(db) as uow:
        await repo.create(uow.session, ...)
        await uow.commit()

Leaving the block without ``commit()``, or through an exception, rolls
the transaction back, so nothing written inside it persists.
"""

from sqlalchemy.ext.asyncio import AsyncSession


class UnitOfWork:
    """Async context manager committing or rolling back a session."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self._committed = False

    async def __aenter__(self) -> "UnitOfWork":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        if exc_type is not None or not self._committed:
            await self.rollback()
        return False

    async def commit(self) -> None:
        """Commit the transaction."""
        await self.session.commit()
        self._committed = True

    async def rollback(self) -> None:
        """Roll back anything not yet committed."""
        await self.session.rollback()
