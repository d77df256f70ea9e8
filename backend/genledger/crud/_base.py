"""Shared helpers for CRUD modules."""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from genledger.db.unit_of_work import UnitOfWork


async def finish(db: AsyncSession, uow: Optional[UnitOfWork]) -> None:
    """Commit right away unless a unit of work owns the transaction."""
    if uow is None:
        await db.commit()
    else:
        await uow.flush()
