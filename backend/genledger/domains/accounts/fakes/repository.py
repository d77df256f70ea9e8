"""Fake account repository for testing.

Rows live in memory. Each guarded write yields to the event loop before its
check-and-set, so concurrent callers interleave the way they would against a
real database, while the check-and-set itself stays atomic.
"""

import asyncio
from datetime import date, datetime, timedelta
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from genledger.db.fake_session import record_write
from genledger.db.unit_of_work import UnitOfWork
from genledger.models.account import Account
from genledger.schemas.account import AccountCreate, SubscriptionTier


class FakeAccountRepository:
    """In-memory fake for AccountRepositoryProtocol."""

    def __init__(self, should_raise: Optional[Exception] = None) -> None:
        """Initialize empty store, optionally failing every write."""
        self._store: dict[UUID, Account] = {}
        self._calls: list[tuple] = []
        self._should_raise = should_raise

    # ---- Test helpers ----

    def seed(self, account: Account) -> None:
        """Insert an account directly."""
        self._store[account.id] = account

    def call_count(self, method: str) -> int:
        """Return the number of times a method was called."""
        return sum(1 for name, *_ in self._calls if name == method)

    def fail_with(self, exc: Optional[Exception]) -> None:
        """Make subsequent writes raise *exc* (None to stop failing)."""
        self._should_raise = exc

    def clear(self) -> None:
        """Reset all state."""
        self._store.clear()
        self._calls.clear()
        self._should_raise = None

    def _write(self, method: str, *args) -> None:
        self._calls.append((method, *args))
        if self._should_raise:
            raise self._should_raise

    # ---- Reads ----

    async def get(self, db: AsyncSession, *, account_id: UUID) -> Optional[Account]:
        """Get an account by ID."""
        self._calls.append(("get", account_id))
        return self._store.get(account_id)

    async def get_by_customer_ref(
        self, db: AsyncSession, *, customer_ref: str
    ) -> Optional[Account]:
        """Get the account linked to a provider customer."""
        self._calls.append(("get_by_customer_ref", customer_ref))
        for acc in self._store.values():
            if acc.external_customer_ref == customer_ref:
                return acc
        return None

    # ---- Writes ----

    async def create(
        self, db: AsyncSession, *, obj_in: AccountCreate, uow: Optional[UnitOfWork] = None
    ) -> Account:
        """Create an account in memory."""
        self._write("create", obj_in)
        now = obj_in.subscription_started_at
        acc = Account(
            id=uuid4(),
            email=obj_in.email,
            is_active=True,
            credit_balance=obj_in.credit_balance,
            images_generated=0,
            daily_limit=obj_in.daily_limit,
            daily_usage_count=0,
            daily_usage_window_start=None,
            tier=obj_in.tier.value,
            subscription_active=True,
            valid_until=obj_in.valid_until,
            subscription_started_at=obj_in.subscription_started_at,
            external_customer_ref=None,
            created_at=now,
            modified_at=now,
        )
        self._store[acc.id] = acc
        await record_write(db, lambda: self._store.pop(acc.id, None), uow)
        return acc

    async def increment_balance(
        self, db: AsyncSession, *, account_id: UUID, amount: int, uow: Optional[UnitOfWork] = None
    ) -> Optional[int]:
        """Add credits."""
        self._write("increment_balance", account_id, amount)
        await asyncio.sleep(0)
        acc = self._store.get(account_id)
        if acc is None:
            return None
        acc.credit_balance += amount
        await record_write(db, lambda: _add(acc, "credit_balance", -amount), uow)
        return acc.credit_balance

    async def decrement_balance_if_sufficient(
        self, db: AsyncSession, *, account_id: UUID, amount: int, uow: Optional[UnitOfWork] = None
    ) -> Optional[int]:
        """Subtract credits iff the balance covers them."""
        self._write("decrement_balance_if_sufficient", account_id, amount)
        await asyncio.sleep(0)
        acc = self._store.get(account_id)
        if acc is None or acc.credit_balance < amount:
            return None
        acc.credit_balance -= amount
        await record_write(db, lambda: _add(acc, "credit_balance", amount), uow)
        return acc.credit_balance

    async def record_generation(
        self, db: AsyncSession, *, account_id: UUID, count: int = 1, uow: Optional[UnitOfWork] = None
    ) -> None:
        """Bump the lifetime action count."""
        self._write("record_generation", account_id, count)
        acc = self._store.get(account_id)
        if acc is None:
            return
        acc.images_generated += count
        await record_write(db, lambda: _add(acc, "images_generated", -count), uow)

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
        self._write("activate_subscription", account_id, tier, period, at, customer_ref)
        await asyncio.sleep(0)
        acc = self._store.get(account_id)
        if acc is None:
            return None
        restore = _snapshot(acc, "tier", "subscription_active", "valid_until", "external_customer_ref")
        acc.tier = tier.value
        acc.subscription_active = True
        acc.valid_until = at + period
        if customer_ref:
            acc.external_customer_ref = customer_ref
        await record_write(db, restore, uow)
        return acc.valid_until

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
        self._write("extend_subscription", account_id, tier, period, at)
        await asyncio.sleep(0)
        acc = self._store.get(account_id)
        if acc is None:
            return None
        restore = _snapshot(acc, "tier", "subscription_active", "valid_until")
        acc.tier = tier.value
        acc.subscription_active = True
        if acc.valid_until > at:
            acc.valid_until = acc.valid_until + period
        else:
            acc.valid_until = at + period
        await record_write(db, restore, uow)
        return acc.valid_until

    async def deactivate_subscription(
        self, db: AsyncSession, *, account_id: UUID, uow: Optional[UnitOfWork] = None
    ) -> bool:
        """Mark the subscription cancelled."""
        self._write("deactivate_subscription", account_id)
        acc = self._store.get(account_id)
        if acc is None:
            return False
        restore = _snapshot(acc, "subscription_active")
        acc.subscription_active = False
        await record_write(db, restore, uow)
        return True

    async def set_customer_ref(
        self,
        db: AsyncSession,
        *,
        account_id: UUID,
        customer_ref: str,
        uow: Optional[UnitOfWork] = None,
    ) -> None:
        """Link the account to a provider customer."""
        self._write("set_customer_ref", account_id, customer_ref)
        acc = self._store.get(account_id)
        if acc is None:
            return
        restore = _snapshot(acc, "external_customer_ref")
        acc.external_customer_ref = customer_ref
        await record_write(db, restore, uow)

    async def claim_daily_usage(
        self, db: AsyncSession, *, account_id: UUID, day: date, uow: Optional[UnitOfWork] = None
    ) -> Optional[int]:
        """Take a slot of the daily allowance."""
        self._write("claim_daily_usage", account_id, day)
        await asyncio.sleep(0)
        acc = self._store.get(account_id)
        if acc is None or not acc.is_active or acc.daily_limit <= 0:
            return None
        in_window = acc.daily_usage_window_start == day
        if in_window and acc.daily_usage_count >= acc.daily_limit:
            return None
        restore = _snapshot(acc, "daily_usage_count", "daily_usage_window_start")
        acc.daily_usage_count = acc.daily_usage_count + 1 if in_window else 1
        acc.daily_usage_window_start = day
        await record_write(db, restore, uow)
        return acc.daily_usage_count

    async def deactivate(
        self, db: AsyncSession, *, account_id: UUID, uow: Optional[UnitOfWork] = None
    ) -> bool:
        """Deactivate the account."""
        self._write("deactivate", account_id)
        acc = self._store.get(account_id)
        if acc is None:
            return False
        restore = _snapshot(acc, "is_active")
        acc.is_active = False
        await record_write(db, restore, uow)
        return True


def _add(acc: Account, field: str, delta: int) -> None:
    setattr(acc, field, getattr(acc, field) + delta)


def _snapshot(acc: Account, *fields: str):
    saved = {f: getattr(acc, f) for f in fields}

    def restore() -> None:
        for f, v in saved.items():
            setattr(acc, f, v)

    return restore
