"""Billing schemas for API requests and responses."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class PlanPrice(BaseModel):
    """Regional price for a plan."""

    region: str
    amount_cents: int
    currency: str
    display: str
    price_id: Optional[str] = None


class PlanInfo(BaseModel):
    """A purchasable plan, priced for one region."""

    plan_id: str
    title: str
    tier: str
    duration: str
    period_days: int
    credits: int
    features: list[str]
    is_highlighted: bool = False
    price: PlanPrice


class CheckoutSessionRequest(BaseModel):
    """Request to start a subscription checkout."""

    plan_id: str = Field(..., description="monthly, yearly or family")
    region: str = Field("US", description="Country code used to pick the price")
    success_url: Optional[str] = None
    cancel_url: Optional[str] = None


class CreditPurchaseRequest(BaseModel):
    """Request to buy a one-off pack of credits."""

    amount: int = Field(..., description="Number of credits to buy")
    success_url: Optional[str] = None
    cancel_url: Optional[str] = None


class CheckoutSessionResponse(BaseModel):
    """Checkout session to redirect the user to."""

    checkout_url: str
    session_id: str


class ChargeRecord(BaseModel):
    """A charge on the customer's card."""

    id: str
    amount_cents: int
    currency: str
    status: str
    description: Optional[str] = None
    created_at: datetime
    receipt_url: Optional[str] = None


class InvoiceRecord(BaseModel):
    """An invoice issued for the customer's subscription."""

    id: str
    amount_paid_cents: int
    currency: str
    status: Optional[str] = None
    created_at: datetime
    hosted_invoice_url: Optional[str] = None


class BillingHistory(BaseModel):
    """Recent charges and invoices for an account."""

    charges: list[ChargeRecord] = Field(default_factory=list)
    invoices: list[InvoiceRecord] = Field(default_factory=list)


class WebhookAck(BaseModel):
    """Body returned to the payment provider."""

    received: bool = True
