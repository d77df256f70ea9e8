"""Usage admission controller.

Sits in front of every metered action (one image generation). ``admit`` takes
a slot of the account's daily allowance and reserves one credit in a single
transaction; if the reserve is refused the rollback gives the slot back, so a
request that was never admitted does not count against the day.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from genledger.db.unit_of_work import UnitOfWork
from genledger.domains.accounts.exceptions import AccountNotFoundError
from genledger.domains.accounts.repository import AccountRepositoryProtocol
from genledger.domains.credits.exceptions import wrap_store_errors
from genledger.domains.credits.protocols import CreditLedgerProtocol
from genledger.domains.credits.types import Reservation
from genledger.domains.usage.exceptions import RateLimitExceededError
from genledger.domains.usage.protocols import UsageAdmissionProtocol
from genledger.domains.usage.types import Outcome, seconds_until_next_day

logger = logging.getLogger(__name__)

CREDITS_PER_ACTION = 1


class UsageAdmissionController(UsageAdmissionProtocol):
    """Daily limit plus credit reservation for metered actions."""

    def __init__(
        self,
        account_repo: AccountRepositoryProtocol,
        credit_ledger: CreditLedgerProtocol,
    ) -> None:
        """Initialize with the account repository and the ledger."""
        self._account_repo = account_repo
        self._ledger = credit_ledger

    @wrap_store_errors
    async def admit(
        self, db: AsyncSession, account_id: UUID, *, at: Optional[datetime] = None
    ) -> Reservation:
        """Admit one action for *account_id*.

        Raises:
            AccountNotFoundError: missing or deactivated account.
            RateLimitExceededError: daily allowance used up; credits untouched.
            InsufficientCreditError: no credit left; the daily slot is released.
            LedgerUnavailableError: the store failed; nothing was written.
        """
        at = at or datetime.now(timezone.utc)

        async with UnitOfWork(db) as uow:
            claimed = await self._account_repo.claim_daily_usage(
                db, account_id=account_id, day=at.date(), uow=uow
            )
            if claimed is None:
                await self._raise_refusal(db, account_id, at)

            reservation = await self._ledger.reserve(
                db, account_id, CREDITS_PER_ACTION, at=at, uow=uow
            )
            await uow.commit()

        logger.debug(
            "Admitted action %d today for account %s (reservation %s)",
            claimed,
            account_id,
            reservation.id,
        )
        return reservation

    async def _raise_refusal(self, db: AsyncSession, account_id: UUID, at: datetime) -> None:
        """Explain why the daily claim was refused."""
        account = await self._account_repo.get(db, account_id=account_id)
        if account is None or not account.is_active:
            raise AccountNotFoundError(account_id)
        retry_after = seconds_until_next_day(at)
        logger.info(
            "Account %s hit its daily limit of %d; retry in %ds",
            account_id,
            account.daily_limit,
            retry_after,
        )
        raise RateLimitExceededError(account_id, limit=account.daily_limit, retry_after=retry_after)

    async def settle(
        self,
        db: AsyncSession,
        reservation: Reservation,
        outcome: Outcome,
        *,
        at: Optional[datetime] = None,
    ) -> bool:
        """Commit the credit on success, return it on failure."""
        if outcome is Outcome.SUCCESS:
            return await self._ledger.commit(db, reservation, at=at)
        return await self._ledger.refund(db, reservation, at=at)

    @asynccontextmanager
    async def metered(self, db: AsyncSession, account_id: UUID) -> AsyncIterator[Reservation]:
        """Run a block as one metered action.

        Usage::

            async with controller.metered(db, account_id):
                image = await generate(prompt)

        An exception in the block refunds the credit and propagates.
        """
        reservation = await self.admit(db, account_id)
        try:
            yield reservation
        except BaseException:
            await self.settle(db, reservation, Outcome.FAILURE)
            raise
        await self.settle(db, reservation, Outcome.SUCCESS)
