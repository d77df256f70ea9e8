"""CRUD operations for the Account model.

Every balance and subscription mutation is a single UPDATE statement whose
WHERE clause carries the guard, so concurrent writers never need a lock held
in application memory.
"""

from datetime import date, datetime, timedelta
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import and_, case, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from genledger.crud._base import finish
from genledger.db.unit_of_work import UnitOfWork
from genledger.models.account import Account
from genledger.schemas.account import AccountCreate, SubscriptionTier


class CRUDAccount:
    """CRUD operations for the Account model."""

    def __init__(self) -> None:
        """Bind to the Account model."""
        self.model = Account

    async def get(self, db: AsyncSession, *, account_id: UUID) -> Optional[Account]:
        """Get an account by ID, always re-reading the row."""
        query = (
            select(self.model)
            .where(self.model.id == account_id)
            .execution_options(populate_existing=True)
        )
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def get_by_customer_ref(
        self, db: AsyncSession, *, customer_ref: str
    ) -> Optional[Account]:
        """Get the account linked to a payment provider customer."""
        query = (
            select(self.model)
            .where(self.model.external_customer_ref == customer_ref)
            .execution_options(populate_existing=True)
        )
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def create(
        self,
        db: AsyncSession,
        *,
        obj_in: AccountCreate,
        uow: Optional[UnitOfWork] = None,
    ) -> Account:
        """Create a new account."""
        db_obj = self.model(
            id=uuid4(),
            email=obj_in.email,
            credit_balance=obj_in.credit_balance,
            daily_limit=obj_in.daily_limit,
            tier=obj_in.tier.value,
            subscription_active=True,
            valid_until=obj_in.valid_until,
            subscription_started_at=obj_in.subscription_started_at,
            is_active=True,
            images_generated=0,
            daily_usage_count=0,
        )
        db.add(db_obj)
        await finish(db, uow)
        return db_obj

    # ------------------------------------------------------------------
    # Balance
    # ------------------------------------------------------------------

    async def increment_balance(
        self,
        db: AsyncSession,
        *,
        account_id: UUID,
        amount: int,
        uow: Optional[UnitOfWork] = None,
    ) -> Optional[int]:
        """Add *amount* credits. Returns the new balance, or None if no such account."""
        stmt = (
            update(self.model)
            .where(self.model.id == account_id)
            .values(credit_balance=self.model.credit_balance + amount)
            .returning(self.model.credit_balance)
        )
        result = await db.execute(stmt)
        new_balance = result.scalar_one_or_none()
        await finish(db, uow)
        return new_balance

    async def decrement_balance_if_sufficient(
        self,
        db: AsyncSession,
        *,
        account_id: UUID,
        amount: int,
        uow: Optional[UnitOfWork] = None,
    ) -> Optional[int]:
        """Subtract *amount* only if the balance covers it.

        Returns the new balance, or None when the guard failed (or the account
        does not exist).
        """
        stmt = (
            update(self.model)
            .where(
                and_(
                    self.model.id == account_id,
                    self.model.credit_balance >= amount,
                )
            )
            .values(credit_balance=self.model.credit_balance - amount)
            .returning(self.model.credit_balance)
        )
        result = await db.execute(stmt)
        new_balance = result.scalar_one_or_none()
        await finish(db, uow)
        return new_balance

    async def record_generation(
        self,
        db: AsyncSession,
        *,
        account_id: UUID,
        count: int = 1,
        uow: Optional[UnitOfWork] = None,
    ) -> None:
        """Bump the lifetime count of committed actions."""
        stmt = (
            update(self.model)
            .where(self.model.id == account_id)
            .values(images_generated=self.model.images_generated + count)
        )
        await db.execute(stmt)
        await finish(db, uow)

    # ------------------------------------------------------------------
    # Subscription
    # ------------------------------------------------------------------

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
        """Activate *tier* with a fresh period starting at *at*."""
        values = dict(
            tier=tier.value,
            subscription_active=True,
            valid_until=at + period,
        )
        if customer_ref:
            values["external_customer_ref"] = customer_ref
        stmt = (
            update(self.model)
            .where(self.model.id == account_id)
            .values(**values)
            .returning(self.model.valid_until)
        )
        result = await db.execute(stmt)
        valid_until = result.scalar_one_or_none()
        await finish(db, uow)
        return valid_until

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
        """Extend the expiry by one period.

        Time still left on the subscription is kept: a future expiry moves out
        by *period*, a lapsed one restarts from *at*.
        """
        stmt = (
            update(self.model)
            .where(self.model.id == account_id)
            .values(
                tier=tier.value,
                subscription_active=True,
                valid_until=case(
                    (self.model.valid_until > at, self.model.valid_until + period),
                    else_=at + period,
                ),
            )
            .returning(self.model.valid_until)
        )
        result = await db.execute(stmt)
        valid_until = result.scalar_one_or_none()
        await finish(db, uow)
        return valid_until

    async def deactivate_subscription(
        self,
        db: AsyncSession,
        *,
        account_id: UUID,
        uow: Optional[UnitOfWork] = None,
    ) -> bool:
        """Mark the subscription cancelled. Tier and expiry are left untouched."""
        stmt = (
            update(self.model)
            .where(self.model.id == account_id)
            .values(subscription_active=False)
            .returning(self.model.id)
        )
        result = await db.execute(stmt)
        found = result.scalar_one_or_none() is not None
        await finish(db, uow)
        return found

    async def set_customer_ref(
        self,
        db: AsyncSession,
        *,
        account_id: UUID,
        customer_ref: str,
        uow: Optional[UnitOfWork] = None,
    ) -> None:
        """Link the account to a payment provider customer."""
        stmt = (
            update(self.model)
            .where(self.model.id == account_id)
            .values(external_customer_ref=customer_ref)
        )
        await db.execute(stmt)
        await finish(db, uow)

    # ------------------------------------------------------------------
    # Daily usage window
    # ------------------------------------------------------------------

    async def claim_daily_usage(
        self,
        db: AsyncSession,
        *,
        account_id: UUID,
        day: date,
        uow: Optional[UnitOfWork] = None,
    ) -> Optional[int]:
        """Take one slot of today's allowance.

        A window that started on another day is reset before counting. Returns
        the count after the claim, or None if the allowance is used up or the
        account is inactive.
        """
        in_window = self.model.daily_usage_window_start == day
        stmt = (
            update(self.model)
            .where(
                and_(
                    self.model.id == account_id,
                    self.model.is_active.is_(True),
                    self.model.daily_limit > 0,
                    or_(
                        self.model.daily_usage_window_start.is_distinct_from(day),
                        self.model.daily_usage_count < self.model.daily_limit,
                    ),
                )
            )
            .values(
                daily_usage_count=case(
                    (in_window, self.model.daily_usage_count + 1),
                    else_=1,
                ),
                daily_usage_window_start=day,
            )
            .returning(self.model.daily_usage_count)
        )
        result = await db.execute(stmt)
        count = result.scalar_one_or_none()
        await finish(db, uow)
        return count

    async def deactivate(
        self,
        db: AsyncSession,
        *,
        account_id: UUID,
        uow: Optional[UnitOfWork] = None,
    ) -> bool:
        """Deactivate the account. Rows are never deleted."""
        stmt = (
            update(self.model)
            .where(self.model.id == account_id)
            .values(is_active=False)
            .returning(self.model.id)
        )
        result = await db.execute(stmt)
        found = result.scalar_one_or_none() is not None
        await finish(db, uow)
        return found


account = CRUDAccount()
