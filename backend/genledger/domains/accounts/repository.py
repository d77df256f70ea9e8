"""Account repository and protocol."""

from datetime import date, datetime, timedelta
from typing import Optional, Protocol
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from genledger import crud
from genledger.db.unit_of_work import UnitOfWork
from genledger.models.account import Account
from genledger.schemas.account import AccountCreate, SubscriptionTier


class AccountRepositoryProtocol(Protocol):
    """Atomic reads and guarded writes on account rows."""

    async def get(self, db: AsyncSession, *, account_id: UUID) -> Optional[Account]:
        """Get an account by ID."""
        ...

    async def get_by_customer_ref(
        self, db: AsyncSession, *, customer_ref: str
    ) -> Optional[Account]:
        """Get the account linked to a payment provider customer."""
        ...

    async def create(
        self, db: AsyncSession, *, obj_in: AccountCreate, uow: Optional[UnitOfWork] = None
    ) -> Account:
        """Create an account."""
        ...

    async def increment_balance(
        self, db: AsyncSession, *, account_id: UUID, amount: int, uow: Optional[UnitOfWork] = None
    ) -> Optional[int]:
        """Add credits. Returns the new balance, or None if the account is missing."""
        ...

    async def decrement_balance_if_sufficient(
        self, db: AsyncSession, *, account_id: UUID, amount: int, uow: Optional[UnitOfWork] = None
    ) -> Optional[int]:
        """Subtract credits iff the balance covers them. None when the guard failed."""
        ...

    async def record_generation(
        self, db: AsyncSession, *, account_id: UUID, count: int = 1, uow: Optional[UnitOfWork] = None
    ) -> None:
        """Bump the lifetime count of committed actions."""
        ...

    async def activate_subscription(
        self,
        db: AsyncSession,
        *,
        account_id: UUID,
        tier: SubscriptionTier,
        period: timedelta,
        at: datetime,
        customer_ref: Optional[str] = None,
        uow: Optional[UnitOfWork] = None,
    ) -> Optional[datetime]:
        """Activate a tier; expiry becomes at + period."""
        ...

    async def extend_subscription(
        self,
        db: AsyncSession,
        *,
        account_id: UUID,
        tier: SubscriptionTier,
        period: timedelta,
        at: datetime,
        uow: Optional[UnitOfWork] = None,
    ) -> Optional[datetime]:
        """Extend the expiry by one period without discarding remaining time."""
        ...

    async def deactivate_subscription(
        self, db: AsyncSession, *, account_id: UUID, uow: Optional[UnitOfWork] = None
    ) -> bool:
        """Mark the subscription cancelled."""
        ...

    async def set_customer_ref(
        self,
        db: AsyncSession,
        *,
        account_id: UUID,
        customer_ref: str,
        uow: Optional[UnitOfWork] = None,
    ) -> None:
        """Link the account to a payment provider customer."""
        ...

    async def claim_daily_usage(
        self, db: AsyncSession, *, account_id: UUID, day: date, uow: Optional[UnitOfWork] = None
    ) -> Optional[int]:
        """Take a slot of the daily allowance. None when exhausted or inactive."""
        ...

    async def deactivate(
        self, db: AsyncSession, *, account_id: UUID, uow: Optional[UnitOfWork] = None
    ) -> bool:
        """Deactivate the account."""
        ...


class AccountRepository(AccountRepositoryProtocol):
    """Delegates to the crud.account singleton."""

    async def get(self, db: AsyncSession, *, account_id: UUID) -> Optional[Account]:
        """Get an account by ID."""
        return await crud.account.get(db, account_id=account_id)

    async def get_by_customer_ref(
        self, db: AsyncSession, *, customer_ref: str
    ) -> Optional[Account]:
        """Get the account linked to a payment provider customer."""
        return await crud.account.get_by_customer_ref(db, customer_ref=customer_ref)

    async def create(
        self, db: AsyncSession, *, obj_in: AccountCreate, uow: Optional[UnitOfWork] = None
    ) -> Account:
        """Create an account."""
        return await crud.account.create(db, obj_in=obj_in, uow=uow)

    async def increment_balance(
        self, db: AsyncSession, *, account_id: UUID, amount: int, uow: Optional[UnitOfWork] = None
    ) -> Optional[int]:
        """Add credits."""
        return await crud.account.increment_balance(
            db, account_id=account_id, amount=amount, uow=uow
        )

    async def decrement_balance_if_sufficient(
        self, db: AsyncSession, *, account_id: UUID, amount: int, uow: Optional[UnitOfWork] = None
    ) -> Optional[int]:
        """Subtract credits iff the balance covers them."""
        return await crud.account.decrement_balance_if_sufficient(
            db, account_id=account_id, amount=amount, uow=uow
        )

    async def record_generation(
        self, db: AsyncSession, *, account_id: UUID, count: int = 1, uow: Optional[UnitOfWork] = None
    ) -> None:
        """Bump the lifetime count of committed actions."""
        await crud.account.record_generation(db, account_id=account_id, count=count, uow=uow)

    async def activate_subscription(
        self,
        db: AsyncSession,
        *,
        account_id: UUID,
        tier: SubscriptionTier,
        period: timedelta,
        at: datetime,
        customer_ref: Optional[str] = None,
        uow: Optional[UnitOfWork] = None,
    ) -> Optional[datetime]:
        """Activate a tier."""
        return await crud.account.activate_subscription(
            db,
            account_id=account_id,
            tier=tier,
            period=period,
            at=at,
            customer_ref=customer_ref,
            uow=uow,
        )

    async def extend_subscription(
        self,
        db: AsyncSession,
        *,
        account_id: UUID,
        tier: SubscriptionTier,
        period: timedelta,
        at: datetime,
        uow: Optional[UnitOfWork] = None,
    ) -> Optional[datetime]:
        """Extend the expiry by one period."""
        return await crud.account.extend_subscription(
            db, account_id=account_id, tier=tier, period=period, at=at, uow=uow
        )

    async def deactivate_subscription(
        self, db: AsyncSession, *, account_id: UUID, uow: Optional[UnitOfWork] = None
    ) -> bool:
        """Mark the subscription cancelled."""
        return await crud.account.deactivate_subscription(db, account_id=account_id, uow=uow)

    async def set_customer_ref(
        self,
        db: AsyncSession,
        *,
        account_id: UUID,
        customer_ref: str,
        uow: Optional[UnitOfWork] = None,
    ) -> None:
        """Link the account to a payment provider customer."""
        await crud.account.set_customer_ref(
            db, account_id=account_id, customer_ref=customer_ref, uow=uow
        )

    async def claim_daily_usage(
        self, db: AsyncSession, *, account_id: UUID, day: date, uow: Optional[UnitOfWork] = None
    ) -> Optional[int]:
        """Take a slot of the daily allowance."""
        return await crud.account.claim_daily_usage(db, account_id=account_id, day=day, uow=uow)

    async def deactivate(
        self, db: AsyncSession, *, account_id: UUID, uow: Optional[UnitOfWork] = None
    ) -> bool:
        """Deactivate the account."""
        return await crud.account.deactivate(db, account_id=account_id, uow=uow)
