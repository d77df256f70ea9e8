"""Usage domain test helpers."""

from typing import Optional

from genledger.domains.accounts.fakes.repository import FakeAccountRepository
from genledger.domains.credits.fakes.repository import FakeReservationRepository
from genledger.domains.credits.ledger import CreditLedger
from genledger.domains.usage.admission import UsageAdmissionController
from genledger.domains.usage.sweeper import ReservationSweeper


def _make_controller(
    *,
    account_repo: Optional[FakeAccountRepository] = None,
    reservation_repo: Optional[FakeReservationRepository] = None,
) -> tuple[UsageAdmissionController, FakeAccountRepository, FakeReservationRepository]:
    """Build a UsageAdmissionController wired to fakes."""
    ar = account_repo or FakeAccountRepository()
    rr = reservation_repo or FakeReservationRepository()
    ledger = CreditLedger(account_repo=ar, reservation_repo=rr, reservation_timeout_seconds=60)
    return UsageAdmissionController(account_repo=ar, credit_ledger=ledger), ar, rr


def _make_sweeper(
    *,
    interval_seconds: float = 60.0,
    session_factory=None,
) -> tuple[ReservationSweeper, UsageAdmissionController, FakeAccountRepository, FakeReservationRepository]:
    """Build a ReservationSweeper sharing fakes with an admission controller."""
    controller, ar, rr = _make_controller()
    ledger = CreditLedger(account_repo=ar, reservation_repo=rr, reservation_timeout_seconds=60)
    sweeper = ReservationSweeper(
        reservation_repo=rr,
        credit_ledger=ledger,
        interval_seconds=interval_seconds,
        session_factory=session_factory,
    )
    return sweeper, controller, ar, rr
