"""Processed billing event model.

The primary key on ``event_id`` is the dedup for webhook deliveries.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from genledger.models._base import Base, utcnow


class ProcessedEvent(Base):
    """One row per provider event that was applied."""

    __tablename__ = "processed_event"

    event_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    event_type: Mapped[str] = mapped_column(String(128), nullable=False)
    account_id: Mapped[Optional[UUID]] = mapped_column(
        ForeignKey("account.id", ondelete="SET NULL"), nullable=True
    )
    applied_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
