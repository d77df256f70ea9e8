"""Reservation sweeper.

Reservations are persisted with a deadline. If the caller never settles one
(crash, lost connection, a metered action that hung), the sweeper refunds it
once the deadline passes. Refund is a compare-and-set on the reservation
status, so a late settle racing the sweeper still moves the credits once.
"""

import asyncio
import logging
from contextlib import AbstractAsyncContextManager
from datetime import datetime, timezone
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from genledger.domains.credits.protocols import CreditLedgerProtocol
from genledger.domains.credits.repository import ReservationRepositoryProtocol
from genledger.domains.credits.types import Reservation
from genledger.domains.usage.protocols import ReservationSweeperProtocol

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


class ReservationSweeper(ReservationSweeperProtocol):
    """Periodic refund of expired reservations.

    Owns its own DB sessions in the background loop through ``get_db_context``
    (or *session_factory*), so callers never pass a session to ``start``.
    """

    def __init__(
        self,
        reservation_repo: ReservationRepositoryProtocol,
        credit_ledger: CreditLedgerProtocol,
        interval_seconds: float = 60.0,
        batch_size: int = 100,
        session_factory: Optional[SessionFactory] = None,
    ) -> None:
        """Initialize with the repository, the ledger and the loop interval."""
        self._reservation_repo = reservation_repo
        self._ledger = credit_ledger
        self._interval = interval_seconds
        self._batch_size = batch_size
        self._session_factory = session_factory
        self._task: Optional[asyncio.Task] = None

    async def sweep(
        self, db: AsyncSession, *, at: Optional[datetime] = None, limit: int = 100
    ) -> int:
        """Refund reservations still held past their deadline."""
        at = at or datetime.now(timezone.utc)
        expired = await self._reservation_repo.list_expired(db, at=at, limit=limit)

        refunded = 0
        for row in expired:
            if await self._ledger.refund(db, Reservation.from_model(row), at=at):
                refunded += 1

        if refunded:
            logger.info("Sweeper refunded %d expired reservation(s)", refunded)
        return refunded

    def start(self) -> None:
        """Start the background loop if it is not already running."""
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.create_task(self._periodic_sweep_loop())
        logger.info("Reservation sweeper started (interval=%ss)", self._interval)

    async def stop(self) -> None:
        """Cancel the loop and wait for its final sweep."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Reservation sweeper stopped")

    @property
    def running(self) -> bool:
        """Whether the background loop is active."""
        return self._task is not None and not self._task.done()

    async def _sweep_once(self) -> int:
        if self._session_factory is None:
            from genledger.db.session import get_db_context

            session_factory = get_db_context
        else:
            session_factory = self._session_factory

        async with session_factory() as db:
            return await self.sweep(db, limit=self._batch_size)

    async def _periodic_sweep_loop(self) -> None:
        """Sweep every interval; on cancellation run a final sweep, then re-raise."""
        try:
            while True:
                await asyncio.sleep(self._interval)
                try:
                    await self._sweep_once()
                except Exception:
                    logger.error("Periodic reservation sweep failed", exc_info=True)
        except asyncio.CancelledError:
            try:
                await self._sweep_once()
                logger.info("Reservation sweeper final sweep complete on shutdown")
            except Exception:
                logger.error("Reservation sweeper final sweep failed on shutdown", exc_info=True)
            raise
