"""Usage reservation repository and protocol."""

from datetime import datetime
from typing import Optional, Protocol
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from genledger import crud
from genledger.db.unit_of_work import UnitOfWork
from genledger.models.usage_reservation import UsageReservation
from genledger.schemas.usage_reservation import ReservationStatus, UsageReservationCreate


class ReservationRepositoryProtocol(Protocol):
    """Persistence for usage reservations."""

    async def get(self, db: AsyncSession, *, reservation_id: UUID) -> Optional[UsageReservation]:
        """Get a reservation by ID."""
        ...

    async def create(
        self,
        db: AsyncSession,
        *,
        obj_in: UsageReservationCreate,
        at: datetime,
        uow: Optional[UnitOfWork] = None,
    ) -> UsageReservation:
        """Persist a new reservation."""
        ...

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
        ...

    async def list_expired(
        self, db: AsyncSession, *, at: datetime, limit: int = 100
    ) -> list[UsageReservation]:
        """Reservations still held after their deadline."""
        ...


class ReservationRepository(ReservationRepositoryProtocol):
    """Delegates to the crud.usage_reservation singleton."""

    async def get(self, db: AsyncSession, *, reservation_id: UUID) -> Optional[UsageReservation]:
        """Get a reservation by ID."""
        return await crud.usage_reservation.get(db, reservation_id=reservation_id)

    async def create(
        self,
        db: AsyncSession,
        *,
        obj_in: UsageReservationCreate,
        at: datetime,
        uow: Optional[UnitOfWork] = None,
    ) -> UsageReservation:
        """Persist a new reservation."""
        return await crud.usage_reservation.create(db, obj_in=obj_in, at=at, uow=uow)

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
        return await crud.usage_reservation.transition(
            db,
            reservation_id=reservation_id,
            from_status=from_status,
            to_status=to_status,
            at=at,
            uow=uow,
        )

    async def list_expired(
        self, db: AsyncSession, *, at: datetime, limit: int = 100
    ) -> list[UsageReservation]:
        """Reservations still held after their deadline."""
        return await crud.usage_reservation.list_expired(db, at=at, limit=limit)
