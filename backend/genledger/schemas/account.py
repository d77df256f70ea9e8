"""Account schemas."""

from datetime import date, datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class SubscriptionTier(str, Enum):
    """Subscription tiers."""

    FREE = "free"
    BASIC = "basic"
    PREMIUM = "premium"
    FAMILY = "family"

    @property
    def is_paid(self) -> bool:
        """Whether the tier was bought through the payment provider."""
        return self is not SubscriptionTier.FREE


class SubscriptionState(str, Enum):
    """Derived subscription state, computed from the stored columns at read time."""

    FREE = "free"
    ACTIVE = "active"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class AccountCreate(BaseModel):
    """Schema for creating an account at signup."""

    email: str = Field(..., min_length=3, max_length=320)
    credit_balance: int = Field(..., ge=0)
    daily_limit: int = Field(..., ge=0)
    tier: SubscriptionTier = SubscriptionTier.FREE
    valid_until: datetime
    subscription_started_at: datetime


class Account(BaseModel):
    """Complete account schema."""

    id: UUID
    email: str
    is_active: bool
    credit_balance: int
    images_generated: int
    daily_limit: int
    daily_usage_count: int
    daily_usage_window_start: Optional[date] = None
    tier: SubscriptionTier
    subscription_active: bool
    valid_until: datetime
    subscription_started_at: datetime
    external_customer_ref: Optional[str] = None
    created_at: datetime
    modified_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SignupRequest(BaseModel):
    """Request to open an account."""

    email: str = Field(..., min_length=3, max_length=320)


class CreditBalance(BaseModel):
    """Balance snapshot for display."""

    account_id: UUID
    credits: int = Field(..., description="Credits available right now")
    tier: SubscriptionTier


class SubscriptionStatus(BaseModel):
    """Subscription details for the account page."""

    account_id: UUID
    tier: SubscriptionTier
    state: SubscriptionState
    active: bool
    valid_until: datetime
    started_at: datetime
    has_payment_customer: bool
    credits: int
    images_generated: int
    daily_limit: int
    daily_usage_count: int = Field(..., description="Actions admitted in the current UTC day")
