"""Account service: signup, deactivation and read views."""

from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from genledger import schemas
from genledger.core.logging import logger
from genledger.domains.accounts.exceptions import AccountNotFoundError
from genledger.domains.accounts.protocols import AccountServiceProtocol
from genledger.domains.accounts.repository import AccountRepositoryProtocol
from genledger.domains.billing.state_machine import derive_state
from genledger.models.account import Account
from genledger.schemas.account import SubscriptionTier


class AccountService(AccountServiceProtocol):
    """Service for the account lifecycle."""

    def __init__(
        self,
        account_repo: AccountRepositoryProtocol,
        signup_credit_grant: int = 100,
        signup_validity_days: int = 180,
        default_daily_limit: int = 100,
    ) -> None:
        """Initialize with the repository and signup defaults."""
        self._account_repo = account_repo
        self._signup_credit_grant = signup_credit_grant
        self._signup_validity = timedelta(days=signup_validity_days)
        self._default_daily_limit = default_daily_limit

    async def create_account(
        self, db: AsyncSession, *, email: str, at: Optional[datetime] = None
    ) -> schemas.Account:
        """Open a free-tier account.

        The account starts active with the signup credit grant and a free
        validity window; paid tiers only arrive through checkout webhooks.
        """
        at = at or datetime.now(timezone.utc)
        account = await self._account_repo.create(
            db,
            obj_in=schemas.AccountCreate(
                email=email,
                credit_balance=self._signup_credit_grant,
                daily_limit=self._default_daily_limit,
                tier=SubscriptionTier.FREE,
                valid_until=at + self._signup_validity,
                subscription_started_at=at,
            ),
        )
        logger.with_context(account_id=str(account.id)).info(
            f"Created account with {self._signup_credit_grant} signup credits"
        )
        return schemas.Account.model_validate(account)

    async def deactivate(self, db: AsyncSession, *, account_id: UUID) -> None:
        """Deactivate an account."""
        if not await self._account_repo.deactivate(db, account_id=account_id):
            raise AccountNotFoundError(account_id)
        logger.with_context(account_id=str(account_id)).info("Deactivated account")

    async def get_balance(self, db: AsyncSession, *, account_id: UUID) -> schemas.CreditBalance:
        """Current credit balance and tier."""
        account = await self._get_account(db, account_id)
        return schemas.CreditBalance(
            account_id=account.id,
            credits=account.credit_balance,
            tier=account.tier,
        )

    async def get_subscription_status(
        self, db: AsyncSession, *, account_id: UUID, at: Optional[datetime] = None
    ) -> schemas.SubscriptionStatus:
        """Subscription details; the state is derived at *at* (default now)."""
        at = at or datetime.now(timezone.utc)
        account = await self._get_account(db, account_id)
        today = at.date()
        usage_today = (
            account.daily_usage_count if account.daily_usage_window_start == today else 0
        )
        return schemas.SubscriptionStatus(
            account_id=account.id,
            tier=account.tier,
            state=derive_state(account, at),
            active=account.subscription_active,
            valid_until=account.valid_until,
            started_at=account.subscription_started_at,
            has_payment_customer=bool(account.external_customer_ref),
            credits=account.credit_balance,
            images_generated=account.images_generated,
            daily_limit=account.daily_limit,
            daily_usage_count=usage_today,
        )

    async def _get_account(self, db: AsyncSession, account_id: UUID) -> Account:
        account = await self._account_repo.get(db, account_id=account_id)
        if account is None or not account.is_active:
            raise AccountNotFoundError(account_id)
        return account
