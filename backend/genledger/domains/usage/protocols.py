"""Usage domain protocols.

UsageAdmissionProtocol: admit, then settle, each metered action.
ReservationSweeperProtocol: background refund of reservations never settled.
"""

from datetime import datetime
from typing import AsyncContextManager, Optional, Protocol, runtime_checkable
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from genledger.domains.credits.types import Reservation
from genledger.domains.usage.types import Outcome


@runtime_checkable
class UsageAdmissionProtocol(Protocol):
    """Gate in front of the metered external action."""

    async def admit(
        self, db: AsyncSession, account_id: UUID, *, at: Optional[datetime] = None
    ) -> Reservation:
        """Apply the daily limit, then reserve one credit.

        Raises RateLimitExceededError, InsufficientCreditError or
        AccountNotFoundError when the action may not start.
        """
        ...

    async def settle(
        self,
        db: AsyncSession,
        reservation: Reservation,
        outcome: Outcome,
        *,
        at: Optional[datetime] = None,
    ) -> bool:
        """Commit on success, refund on failure. False if already settled."""
        ...

    def metered(
        self, db: AsyncSession, account_id: UUID
    ) -> AsyncContextManager[Reservation]:
        """Admit on enter, settle on exit (failure if the block raised)."""
        ...


@runtime_checkable
class ReservationSweeperProtocol(Protocol):
    """Refunds reservations whose deadline passed without a settle."""

    async def sweep(
        self, db: AsyncSession, *, at: Optional[datetime] = None, limit: int = 100
    ) -> int:
        """Refund expired reservations once. Returns how many were refunded."""
        ...

    def start(self) -> None:
        """Start the periodic background sweep."""
        ...

    async def stop(self) -> None:
        """Stop the background sweep after a final pass."""
        ...
