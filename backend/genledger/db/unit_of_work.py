"""Unit of work: one database transaction spanning several repository calls."""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy.ext.asyncio import AsyncSession


class UnitOfWork:
    """Transaction boundary around an AsyncSession.

    Usage::

        async with UnitOfWork(db) as uow:
            await crud.account.increment_balance(db, account_id=..., amount=5, uow=uow)
            await uow.commit()

    Leaving the block without ``commit()`` (or through an exception) rolls back
    everything written inside it.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Bind to *session*."""
        self.session = session
        self._committed = False

    async def __aenter__(self) -> "UnitOfWork":
        """Enter the transaction."""
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        """Roll back unless the block committed cleanly."""
        if exc_type is not None or not self._committed:
            await self.rollback()

    @property
    def committed(self) -> bool:
        """Whether ``commit()`` has run."""
        return self._committed

    async def commit(self) -> None:
        """Commit the transaction."""
        await self.session.commit()
        self._committed = True

    async def rollback(self) -> None:
        """Roll back the transaction."""
        await self.session.rollback()

    async def flush(self) -> None:
        """Flush pending ORM changes without committing."""
        await self.session.flush()


@asynccontextmanager
async def transaction(
    db: AsyncSession, uow: Optional[UnitOfWork] = None
) -> AsyncIterator[UnitOfWork]:
    """Join the caller's unit of work, or run the block in a fresh one.

    A fresh unit of work is committed when the block exits normally. A joined
    one is left for its owner to commit.
    """
    if uow is not None:
        yield uow
        return
    async with UnitOfWork(db) as own:
        yield own
        await own.commit()
