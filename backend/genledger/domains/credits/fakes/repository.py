"""Fake reservation repository for testing."""

import asyncio
from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from genledger.db.fake_session import record_write
from genledger.db.unit_of_work import UnitOfWork
from genledger.models.usage_reservation import UsageReservation
from genledger.schemas.usage_reservation import ReservationStatus, UsageReservationCreate


class FakeReservationRepository:
    """In-memory fake for ReservationRepositoryProtocol."""

    def __init__(self) -> None:
        """Initialize empty store."""
        self._store: dict[UUID, UsageReservation] = {}
        self._calls: list[tuple] = []

    def seed(self, reservation: UsageReservation) -> None:
        """Insert a reservation directly."""
        self._store[reservation.id] = reservation

    def status_of(self, reservation_id: UUID) -> Optional[ReservationStatus]:
        """Current status of a stored reservation."""
        row = self._store.get(reservation_id)
        return ReservationStatus(row.status) if row else None

    def call_count(self, method: str) -> int:
        """Return the number of times a method was called."""
        return sum(1 for name, *_ in self._calls if name == method)

    def clear(self) -> None:
        """Reset all state."""
        self._store.clear()
        self._calls.clear()

    async def get(self, db: AsyncSession, *, reservation_id: UUID) -> Optional[UsageReservation]:
        """Get a reservation by ID."""
        self._calls.append(("get", reservation_id))
        return self._store.get(reservation_id)

    async def create(
        self,
        db: AsyncSession,
        *,
        obj_in: UsageReservationCreate,
        at: datetime,
        uow: Optional[UnitOfWork] = None,
    ) -> UsageReservation:
        """Persist a new reservation in memory."""
        self._calls.append(("create", obj_in))
        row = UsageReservation(
            id=uuid4(),
            account_id=obj_in.account_id,
            amount=obj_in.amount,
            status=ReservationStatus.RESERVED.value,
            expires_at=obj_in.expires_at,
            settled_at=None,
            created_at=at,
            modified_at=at,
        )
        self._store[row.id] = row
        await record_write(db, lambda: self._store.pop(row.id, None), uow)
        return row

    async def transition(
        self,
        db: AsyncSession,
        *,
        reservation_id: UUID,
        from_status: ReservationStatus,
        to_status: ReservationStatus,
        at: datetime,
        uow: Optional[UnitOfWork] = None,
    ) -> Optional[int]:
        """Compare-and-set the reservation status. Returns the stored amount, or None."""
        self._calls.append(("transition", reservation_id, from_status, to_status))
        await asyncio.sleep(0)
        row = self._store.get(reservation_id)
        if row is None or row.status != from_status.value:
            return None
        previous = (row.status, row.settled_at)
        row.status = to_status.value
        row.settled_at = at

        def undo() -> None:
            row.status, row.settled_at = previous

        await record_write(db, undo, uow)
        return row.amount

    async def list_expired(
        self, db: AsyncSession, *, at: datetime, limit: int = 100
    ) -> list[UsageReservation]:
        """Reservations still held after their deadline, oldest first."""
        self._calls.append(("list_expired", at, limit))
        expired = [
            r
            for r in self._store.values()
            if r.status == ReservationStatus.RESERVED.value and r.expires_at <= at
        ]
        return sorted(expired, key=lambda r: r.expires_at)[:limit]
