"""Account model.

One row per user. Holds the credit balance, the daily usage window and the
embedded subscription columns.
"""

from datetime import date, datetime
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, Date, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from genledger.models._base import EntityBase


class Account(EntityBase):
    """Account model."""

    __tablename__ = "account"

    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Ledger
    credit_balance: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    images_generated: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Daily usage window
    daily_limit: Mapped[int] = mapped_column(Integer, default=100, nullable=False)
    daily_usage_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    daily_usage_window_start: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    # Subscription
    tier: Mapped[str] = mapped_column(String(32), default="free", nullable=False)
    subscription_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    valid_until: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    subscription_started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    external_customer_ref: Mapped[Optional[str]] = mapped_column(
        String(255), nullable=True, unique=True
    )

    __table_args__ = (
        CheckConstraint("credit_balance >= 0", name="credit_balance_non_negative"),
        CheckConstraint("daily_usage_count >= 0", name="daily_usage_non_negative"),
        Index("idx_account_tier", "tier"),
    )
