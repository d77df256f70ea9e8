"""Credits domain test helpers."""

from typing import Optional

from genledger.domains.accounts.fakes.repository import FakeAccountRepository
from genledger.domains.credits.fakes.repository import FakeReservationRepository
from genledger.domains.credits.ledger import CreditLedger


def _make_ledger(
    *,
    account_repo: Optional[FakeAccountRepository] = None,
    reservation_repo: Optional[FakeReservationRepository] = None,
    reservation_timeout_seconds: float = 600,
) -> tuple[CreditLedger, FakeAccountRepository, FakeReservationRepository]:
    """Build a CreditLedger wired to fakes. Returns (ledger, account_repo, reservation_repo)."""
    ar = account_repo or FakeAccountRepository()
    rr = reservation_repo or FakeReservationRepository()
    ledger = CreditLedger(
        account_repo=ar,
        reservation_repo=rr,
        reservation_timeout_seconds=reservation_timeout_seconds,
    )
    return ledger, ar, rr
