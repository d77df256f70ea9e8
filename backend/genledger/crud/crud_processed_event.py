"""CRUD operations for the ProcessedEvent model."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from genledger.crud._base import finish
from genledger.db.unit_of_work import UnitOfWork
from genledger.models.processed_event import ProcessedEvent


class CRUDProcessedEvent:
    """CRUD operations for the ProcessedEvent model."""

    def __init__(self) -> None:
        """Bind to the ProcessedEvent model."""
        self.model = ProcessedEvent

    async def get(self, db: AsyncSession, *, event_id: str) -> Optional[ProcessedEvent]:
        """Get a processed event record by provider event ID."""
        result = await db.execute(select(self.model).where(self.model.event_id == event_id))
        return result.scalar_one_or_none()

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
        """Insert the record unless *event_id* is already present.

        Returns False when the event was recorded before.
        """
        stmt = (
            pg_insert(self.model)
            .values(
                event_id=event_id,
                event_type=event_type,
                account_id=account_id,
                applied_at=at,
            )
            .on_conflict_do_nothing(index_elements=[self.model.event_id])
            .returning(self.model.event_id)
        )
        result = await db.execute(stmt)
        inserted = result.scalar_one_or_none() is not None
        await finish(db, uow)
        return inserted


processed_event = CRUDProcessedEvent()
