"""Accounts domain protocols."""

from datetime import datetime
from typing import Optional, Protocol, runtime_checkable
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from genledger import schemas


@runtime_checkable
class AccountServiceProtocol(Protocol):
    """Account lifecycle and read views."""

    async def create_account(
        self, db: AsyncSession, *, email: str, at: Optional[datetime] = None
    ) -> schemas.Account:
        """Open a free-tier account with the signup grant."""
        ...

    async def deactivate(self, db: AsyncSession, *, account_id: UUID) -> None:
        """Deactivate an account; admission refuses it afterwards."""
        ...

    async def get_balance(self, db: AsyncSession, *, account_id: UUID) -> schemas.CreditBalance:
        """Current credit balance."""
        ...

    async def get_subscription_status(
        self, db: AsyncSession, *, account_id: UUID, at: Optional[datetime] = None
    ) -> schemas.SubscriptionStatus:
        """Subscription details with the derived state."""
        ...
