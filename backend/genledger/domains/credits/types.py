"""Credits domain types."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from genledger.models.usage_reservation import UsageReservation


@dataclass(frozen=True)
class Reservation:
    """Handle for credits withheld while a metered action is in flight.

    Pass it back to ``commit`` or ``refund`` (or ``settle`` on the admission
    controller) exactly once.
    """

    id: UUID
    account_id: UUID
    amount: int
    created_at: datetime
    expires_at: datetime

    @classmethod
    def from_model(cls, row: UsageReservation) -> "Reservation":
        """Build from a persisted reservation row."""
        return cls(
            id=row.id,
            account_id=row.account_id,
            amount=row.amount,
            created_at=row.created_at,
            expires_at=row.expires_at,
        )
