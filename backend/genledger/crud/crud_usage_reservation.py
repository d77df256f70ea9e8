"""CRUD operations for the UsageReservation model."""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import and_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from genledger.crud._base import finish
from genledger.db.unit_of_work import UnitOfWork
from genledger.models.usage_reservation import UsageReservation
from genledger.schemas.usage_reservation import ReservationStatus, UsageReservationCreate


class CRUDUsageReservation:
    """CRUD operations for the UsageReservation model."""

    def __init__(self) -> None:
        """Bind to the UsageReservation model."""
        self.model = UsageReservation

    async def get(self, db: AsyncSession, *, reservation_id: UUID) -> Optional[UsageReservation]:
        """Get a reservation by ID."""
        query = (
            select(self.model)
            .where(self.model.id == reservation_id)
            .execution_options(populate_existing=True)
        )
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def create(
        self,
        db: AsyncSession,
        *,
        obj_in: UsageReservationCreate,
        at: datetime,
        uow: Optional[UnitOfWork] = None,
    ) -> UsageReservation:
        """Persist a new reservation in the reserved state."""
        db_obj = self.model(
            id=uuid4(),
            account_id=obj_in.account_id,
            amount=obj_in.amount,
            status=ReservationStatus.RESERVED.value,
            expires_at=obj_in.expires_at,
            created_at=at,
            modified_at=at,
        )
        db.add(db_obj)
        await finish(db, uow)
        return db_obj

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
        """Move a reservation between states if it is still in *from_status*.

        Returns the amount stored on the reservation, or None when another
        writer got there first.
        """
        stmt = (
            update(self.model)
            .where(
                and_(
                    self.model.id == reservation_id,
                    self.model.status == from_status.value,
                )
            )
            .values(status=to_status.value, settled_at=at)
            .returning(self.model.amount)
        )
        result = await db.execute(stmt)
        amount = result.scalar_one_or_none()
        await finish(db, uow)
        return amount

    async def list_expired(
        self, db: AsyncSession, *, at: datetime, limit: int = 100
    ) -> list[UsageReservation]:
        """Reservations still held after their deadline, oldest first."""
        query = (
            select(self.model)
            .where(
                and_(
                    self.model.status == ReservationStatus.RESERVED.value,
                    self.model.expires_at <= at,
                )
            )
            .order_by(self.model.expires_at)
            .limit(limit)
        )
        result = await db.execute(query)
        return list(result.scalars().all())


usage_reservation = CRUDUsageReservation()
