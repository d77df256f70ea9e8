"""Schemas for the genledger application."""

from genledger.schemas.account import (
    Account,
    AccountCreate,
    CreditBalance,
    SignupRequest,
    SubscriptionState,
    SubscriptionStatus,
    SubscriptionTier,
)
from genledger.schemas.billing import (
    BillingHistory,
    ChargeRecord,
    CheckoutSessionRequest,
    CheckoutSessionResponse,
    CreditPurchaseRequest,
    InvoiceRecord,
    PlanInfo,
    PlanPrice,
    WebhookAck,
)
from genledger.schemas.usage_reservation import ReservationStatus, UsageReservationCreate

__all__ = [
    "Account",
    "AccountCreate",
    "BillingHistory",
    "ChargeRecord",
    "CheckoutSessionRequest",
    "CheckoutSessionResponse",
    "CreditBalance",
    "CreditPurchaseRequest",
    "InvoiceRecord",
    "PlanInfo",
    "PlanPrice",
    "ReservationStatus",
    "SignupRequest",
    "SubscriptionState",
    "SubscriptionStatus",
    "SubscriptionTier",
    "UsageReservationCreate",
    "WebhookAck",
]
