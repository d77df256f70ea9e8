"""Fake processed event repository for testing."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from genledger.db.fake_session import record_write
from genledger.db.unit_of_work import UnitOfWork
from genledger.models.processed_event import ProcessedEvent


class FakeProcessedEventRepository:
    """In-memory fake for ProcessedEventRepositoryProtocol."""

    def __init__(self) -> None:
        """Initialize empty store."""
        self._store: dict[str, ProcessedEvent] = {}
        self._calls: list[tuple] = []

    def seed(self, event_id: str, event_type: str = "test.event") -> None:
        """Mark an event as already processed."""
        self._store[event_id] = ProcessedEvent(event_id=event_id, event_type=event_type)

    def has(self, event_id: str) -> bool:
        """Whether the event is recorded."""
        return event_id in self._store

    def call_count(self, method: str) -> int:
        """Return the number of times a method was called."""
        return sum(1 for name, *_ in self._calls if name == method)

    def clear(self) -> None:
        """Reset all state."""
        self._store.clear()
        self._calls.clear()

    async def get(self, db: AsyncSession, *, event_id: str) -> Optional[ProcessedEvent]:
        """Get a processed event record."""
        self._calls.append(("get", event_id))
        return self._store.get(event_id)

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
        """Record the event unless already present."""
        self._calls.append(("insert_unique", event_id, event_type, account_id))
        if event_id in self._store:
            return False
        self._store[event_id] = ProcessedEvent(
            event_id=event_id,
            event_type=event_type,
            account_id=account_id,
            applied_at=at,
        )
        await record_write(db, lambda: self._store.pop(event_id, None), uow)
        return True
