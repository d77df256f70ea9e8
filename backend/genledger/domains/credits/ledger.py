"""Credit ledger: atomic balance operations.

Every write is a guarded single-row statement in the store (decrement only if
the balance covers it, additive increment, compare-and-set on reservation
status). Nothing about a balance is cached in process memory, so any number
of workers and replicas can call the ledger concurrently.

Methods accept an optional ``uow`` to join a caller's transaction (the webhook
processor grants credits inside the same transaction that records the event).
Without one, each call commits on its own.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from genledger.db.unit_of_work import UnitOfWork, transaction
from genledger.domains.accounts.exceptions import AccountNotFoundError
from genledger.domains.accounts.repository import AccountRepositoryProtocol
from genledger.domains.credits.exceptions import InsufficientCreditError, wrap_store_errors
from genledger.domains.credits.protocols import CreditLedgerProtocol
from genledger.domains.credits.repository import ReservationRepositoryProtocol
from genledger.domains.credits.types import Reservation
from genledger.schemas.usage_reservation import ReservationStatus, UsageReservationCreate

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CreditLedger(CreditLedgerProtocol):
    """Store-backed credit ledger."""

    def __init__(
        self,
        account_repo: AccountRepositoryProtocol,
        reservation_repo: ReservationRepositoryProtocol,
        reservation_timeout_seconds: float = 600,
    ) -> None:
        """Initialize with repositories and the reservation deadline."""
        self._account_repo = account_repo
        self._reservation_repo = reservation_repo
        self._reservation_timeout = timedelta(seconds=reservation_timeout_seconds)

    @wrap_store_errors
    async def reserve(
        self,
        db: AsyncSession,
        account_id: UUID,
        amount: int = 1,
        *,
        at: Optional[datetime] = None,
        uow: Optional[UnitOfWork] = None,
    ) -> Reservation:
        """Withhold *amount* credits for a pending action.

        The decrement and the reservation row are written in one transaction.
        Of two concurrent reserves against a balance of 1, exactly one succeeds.

        Raises:
            ValueError: amount is not positive.
            AccountNotFoundError: no such account.
            InsufficientCreditError: the balance does not cover *amount*.
            LedgerUnavailableError: the store failed; nothing was written.
        """
        if amount <= 0:
            raise ValueError(f"Reservation amount must be positive, got {amount}")
        at = at or _utcnow()

        async with transaction(db, uow) as tx:
            new_balance = await self._account_repo.decrement_balance_if_sufficient(
                db, account_id=account_id, amount=amount, uow=tx
            )
            if new_balance is None:
                account = await self._account_repo.get(db, account_id=account_id)
                if account is None:
                    raise AccountNotFoundError(account_id)
                raise InsufficientCreditError(
                    account_id, requested=amount, available=account.credit_balance
                )
            row = await self._reservation_repo.create(
                db,
                obj_in=UsageReservationCreate(
                    account_id=account_id,
                    amount=amount,
                    expires_at=at + self._reservation_timeout,
                ),
                at=at,
                uow=tx,
            )

        logger.debug(
            "Reserved %d credit(s) for account %s (reservation %s, balance now %d)",
            amount,
            account_id,
            row.id,
            new_balance,
        )
        return Reservation.from_model(row)

    @wrap_store_errors
    async def commit(
        self,
        db: AsyncSession,
        reservation: Reservation,
        *,
        at: Optional[datetime] = None,
        uow: Optional[UnitOfWork] = None,
    ) -> bool:
        """Finalize a reservation. The credits stay spent.

        Returns False without side effects if the reservation was already
        committed or refunded.
        """
        at = at or _utcnow()
        async with transaction(db, uow) as tx:
            stored = await self._reservation_repo.transition(
                db,
                reservation_id=reservation.id,
                from_status=ReservationStatus.RESERVED,
                to_status=ReservationStatus.COMMITTED,
                at=at,
                uow=tx,
            )
            moved = stored is not None
            if moved:
                await self._account_repo.record_generation(
                    db, account_id=reservation.account_id, count=1, uow=tx
                )

        if not moved:
            logger.warning("Reservation %s already settled; commit skipped", reservation.id)
        return moved

    @wrap_store_errors
    async def refund(
        self,
        db: AsyncSession,
        reservation: Reservation,
        *,
        at: Optional[datetime] = None,
        uow: Optional[UnitOfWork] = None,
    ) -> bool:
        """Return reserved credits to the balance.

        The status change and the increment share one transaction, and the
        increment only happens if this call won the status change, so a
        reservation is never credited back twice. The amount credited is the
        one stored with the reservation.
        """
        at = at or _utcnow()
        async with transaction(db, uow) as tx:
            refunded = await self._reservation_repo.transition(
                db,
                reservation_id=reservation.id,
                from_status=ReservationStatus.RESERVED,
                to_status=ReservationStatus.REFUNDED,
                at=at,
                uow=tx,
            )
            moved = refunded is not None
            if moved:
                await self._account_repo.increment_balance(
                    db, account_id=reservation.account_id, amount=refunded, uow=tx
                )

        if moved:
            logger.info(
                "Refunded %d credit(s) to account %s (reservation %s)",
                refunded,
                reservation.account_id,
                reservation.id,
            )
        else:
            logger.warning("Reservation %s already settled; refund skipped", reservation.id)
        return moved

    @wrap_store_errors
    async def grant(
        self,
        db: AsyncSession,
        account_id: UUID,
        amount: int,
        *,
        uow: Optional[UnitOfWork] = None,
    ) -> int:
        """Add *amount* credits. Always additive, never an overwrite."""
        if amount <= 0:
            raise ValueError(f"Grant amount must be positive, got {amount}")
        async with transaction(db, uow) as tx:
            new_balance = await self._account_repo.increment_balance(
                db, account_id=account_id, amount=amount, uow=tx
            )
            if new_balance is None:
                raise AccountNotFoundError(account_id)

        logger.info("Granted %d credit(s) to account %s", amount, account_id)
        return new_balance

    @wrap_store_errors
    async def balance(self, db: AsyncSession, account_id: UUID) -> int:
        """Current balance. A snapshot for display, not for admission decisions."""
        account = await self._account_repo.get(db, account_id=account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return account.credit_balance
