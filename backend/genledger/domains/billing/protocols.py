"""Billing domain protocols.

BillingServiceProtocol: what the billing endpoints need injected.
BillingWebhookProtocol: single method for webhook event processing.
"""

from datetime import datetime
from typing import Optional, Protocol, runtime_checkable
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from genledger import schemas
from genledger.domains.billing.types import WebhookResult


@runtime_checkable
class BillingServiceProtocol(Protocol):
    """Public billing service interface."""

    def list_plans(self, region: Optional[str] = None) -> list[schemas.PlanInfo]:
        """Plans priced for *region*."""
        ...

    async def start_subscription_checkout(
        self,
        db: AsyncSession,
        *,
        account_id: UUID,
        plan_id: str,
        region: Optional[str] = None,
        success_url: Optional[str] = None,
        cancel_url: Optional[str] = None,
    ) -> schemas.CheckoutSessionResponse:
        """Start a subscription checkout flow."""
        ...

    async def start_credit_purchase(
        self,
        db: AsyncSession,
        *,
        account_id: UUID,
        amount: int,
        success_url: Optional[str] = None,
        cancel_url: Optional[str] = None,
    ) -> schemas.CheckoutSessionResponse:
        """Start a one-off credit purchase checkout."""
        ...

    async def get_billing_history(
        self, db: AsyncSession, *, account_id: UUID
    ) -> schemas.BillingHistory:
        """Recent charges and invoices."""
        ...


@runtime_checkable
class BillingWebhookProtocol(Protocol):
    """Webhook event processing."""

    async def process_webhook(
        self,
        db: AsyncSession,
        payload: bytes,
        signature: str,
        *,
        at: Optional[datetime] = None,
    ) -> WebhookResult:
        """Verify, dedup and apply one webhook delivery."""
        ...
