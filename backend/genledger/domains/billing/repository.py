"""Processed billing event repository and protocol."""

from datetime import datetime
from typing import Optional, Protocol
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from genledger import crud
from genledger.db.unit_of_work import UnitOfWork
from genledger.models.processed_event import ProcessedEvent


class ProcessedEventRepositoryProtocol(Protocol):
    """Uniqueness-enforcing record of applied provider events."""

    async def get(self, db: AsyncSession, *, event_id: str) -> Optional[ProcessedEvent]:
        """Get a processed event record."""
        ...

    async def insert_unique(
        self,
        db: AsyncSession,
        *,
        event_id: str,
        event_type: str,
        account_id: Optional[UUID],
        at: datetime,
        uow: Optional[UnitOfWork] = None,
    ) -> bool:
        """Record the event. False if it was already recorded."""
        ...


class ProcessedEventRepository(ProcessedEventRepositoryProtocol):
    """Delegates to the crud.processed_event singleton."""

    async def get(self, db: AsyncSession, *, event_id: str) -> Optional[ProcessedEvent]:
        """Get a processed event record."""
        return await crud.processed_event.get(db, event_id=event_id)

    async def insert_unique(
        self,
        db: AsyncSession,
        *,
        event_id: str,
        event_type: str,
        account_id: Optional[UUID],
        at: datetime,
        uow: Optional[UnitOfWork] = None,
    ) -> bool:
        """Record the event. False if it was already recorded."""
        return await crud.processed_event.insert_unique(
            db,
            event_id=event_id,
            event_type=event_type,
            account_id=account_id,
            at=at,
            uow=uow,
        )
