"""Models for the genledger application."""

from genledger.models._base import Base
from genledger.models.account import Account
from genledger.models.processed_event import ProcessedEvent
from genledger.models.usage_reservation import UsageReservation

__all__ = [
    "Base",
    "Account",
    "ProcessedEvent",
    "UsageReservation",
]
