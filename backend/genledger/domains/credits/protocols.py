"""Credits domain protocols."""

from datetime import datetime
from typing import Optional, Protocol, runtime_checkable
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from genledger.db.unit_of_work import UnitOfWork
from genledger.domains.credits.types import Reservation


@runtime_checkable
class CreditLedgerProtocol(Protocol):
    """Sole mutator of account credit balances."""

    async def reserve(
        self,
        db: AsyncSession,
        account_id: UUID,
        amount: int = 1,
        *,
        at: Optional[datetime] = None,
        uow: Optional[UnitOfWork] = None,
    ) -> Reservation:
        """Withhold credits. Raises InsufficientCreditError when the balance is short."""
        ...

    async def commit(
        self,
        db: AsyncSession,
        reservation: Reservation,
        *,
        at: Optional[datetime] = None,
        uow: Optional[UnitOfWork] = None,
    ) -> bool:
        """Finalize a reservation. False if it was already settled."""
        ...

    async def refund(
        self,
        db: AsyncSession,
        reservation: Reservation,
        *,
        at: Optional[datetime] = None,
        uow: Optional[UnitOfWork] = None,
    ) -> bool:
        """Return reserved credits. False if it was already settled."""
        ...

    async def grant(
        self,
        db: AsyncSession,
        account_id: UUID,
        amount: int,
        *,
        uow: Optional[UnitOfWork] = None,
    ) -> int:
        """Add credits. Returns the new balance."""
        ...

    async def balance(self, db: AsyncSession, account_id: UUID) -> int:
        """Current balance, for display only."""
        ...
