"""Usage reservation schemas."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class ReservationStatus(str, Enum):
    """Reservation lifecycle: reserved, then exactly one of committed or refunded."""

    RESERVED = "reserved"
    COMMITTED = "committed"
    REFUNDED = "refunded"


class UsageReservationCreate(BaseModel):
    """Schema for persisting a new reservation."""

    account_id: UUID
    amount: int = Field(..., gt=0)
    expires_at: datetime
