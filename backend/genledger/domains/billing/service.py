"""Billing service.

Coordinates the plan catalog, the account repository and the payment gateway
for everything that starts on our side: listing plans, opening checkout
sessions and reading payment history. Credits and expiry only change when the
provider confirms payment through the webhook processor.
"""

from datetime import datetime, timezone
from typing import Any, Mapping, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from genledger import schemas
from genledger.core.logging import logger
from genledger.core.protocols.payment import PaymentGatewayProtocol
from genledger.domains.accounts.exceptions import AccountNotFoundError
from genledger.domains.accounts.repository import AccountRepositoryProtocol
from genledger.domains.billing.exceptions import (
    InvalidCreditAmountError,
    PriceNotConfiguredError,
    UnknownPlanError,
    wrap_gateway_errors,
)
from genledger.domains.billing.protocols import BillingServiceProtocol
from genledger.domains.billing.types import PLAN_CATALOG, get_catalog_plan, plan_for_tier
from genledger.models.account import Account

CREDIT_PRODUCT_NAME = "Image Generation Credits"
CREDIT_CURRENCY = "USD"


class BillingService(BillingServiceProtocol):
    """Service for plans, checkout sessions and billing history."""

    def __init__(
        self,
        payment_gateway: PaymentGatewayProtocol,
        account_repo: AccountRepositoryProtocol,
        frontend_url: str,
        credit_unit_price_cents: int = 100,
        price_ids: Optional[Mapping[str, str]] = None,
    ) -> None:
        """Initialize with all required dependencies.

        *price_ids* maps ``<plan>_<region>`` to the provider's price ID.
        """
        self._payment_gateway = payment_gateway
        self._account_repo = account_repo
        self._frontend_url = frontend_url.rstrip("/")
        self._credit_unit_price_cents = credit_unit_price_cents
        self._price_ids = dict(price_ids or {})

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    def list_plans(self, region: Optional[str] = None) -> list[schemas.PlanInfo]:
        """Plans priced for *region*; unknown regions get US prices."""
        plans = []
        for plan in PLAN_CATALOG:
            region_key, price = plan.price_for(region)
            tier_plan = plan_for_tier(plan.tier)
            plans.append(
                schemas.PlanInfo(
                    plan_id=plan.plan_id,
                    title=plan.title,
                    tier=plan.tier.value,
                    duration=plan.duration,
                    period_days=tier_plan.period.days,
                    credits=tier_plan.credits,
                    features=list(plan.features),
                    is_highlighted=plan.is_highlighted,
                    price=schemas.PlanPrice(
                        region=region_key,
                        amount_cents=price.amount_cents,
                        currency=price.currency,
                        display=price.display,
                        price_id=self._price_ids.get(plan.price_key(region_key)),
                    ),
                )
            )
        return plans

    # ------------------------------------------------------------------
    # Checkout
    # ------------------------------------------------------------------

    @wrap_gateway_errors
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
        """Open a subscription checkout for a catalog plan.

        The session metadata carries ``accountId`` and ``planId``; the
        ``checkout.session.completed`` webhook uses them to activate the tier.
        """
        plan = get_catalog_plan(plan_id)
        if plan is None:
            raise UnknownPlanError(plan_id)
        region_key, _ = plan.price_for(region)
        price_id = self._price_ids.get(plan.price_key(region_key))
        if not price_id:
            raise PriceNotConfiguredError(plan.plan_id, region_key)

        account = await self._get_account(db, account_id)
        customer_id = await self._ensure_customer(db, account)

        session = await self._payment_gateway.create_subscription_checkout_session(
            customer_id=customer_id,
            price_id=price_id,
            success_url=success_url or self._default_success_url(),
            cancel_url=cancel_url or self._default_cancel_url(),
            metadata={
                "accountId": str(account.id),
                "planId": plan.plan_id,
                "region": region_key,
            },
        )
        logger.info(
            f"Created {plan.plan_id} checkout session {session.id} "
            f"for account {account.id} ({region_key})"
        )
        return schemas.CheckoutSessionResponse(checkout_url=session.url, session_id=session.id)

    @wrap_gateway_errors
    async def start_credit_purchase(
        self,
        db: AsyncSession,
        *,
        account_id: UUID,
        amount: int,
        success_url: Optional[str] = None,
        cancel_url: Optional[str] = None,
    ) -> schemas.CheckoutSessionResponse:
        """Open a one-off payment checkout for *amount* credits."""
        if amount <= 0:
            raise InvalidCreditAmountError(amount)

        account = await self._get_account(db, account_id)
        customer_id = await self._ensure_customer(db, account)

        session = await self._payment_gateway.create_payment_checkout_session(
            customer_id=customer_id,
            amount_cents=amount * self._credit_unit_price_cents,
            currency=CREDIT_CURRENCY,
            product_name=f"{CREDIT_PRODUCT_NAME} ({amount} credits)",
            success_url=success_url or self._default_success_url(),
            cancel_url=cancel_url or self._default_cancel_url(),
            metadata={
                "accountId": str(account.id),
                "creditsAmount": str(amount),
            },
        )
        logger.info(f"Created credit checkout session {session.id} for {amount} credits")
        return schemas.CheckoutSessionResponse(checkout_url=session.url, session_id=session.id)

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    @wrap_gateway_errors
    async def get_billing_history(
        self, db: AsyncSession, *, account_id: UUID
    ) -> schemas.BillingHistory:
        """Recent charges and invoices. Empty until the account has paid once."""
        account = await self._get_account(db, account_id)
        if not account.external_customer_ref:
            return schemas.BillingHistory()

        customer_id = account.external_customer_ref
        charges = await self._payment_gateway.list_charges(customer_id)
        invoices = await self._payment_gateway.list_invoices(customer_id)
        return schemas.BillingHistory(
            charges=[_charge_record(c) for c in charges],
            invoices=[_invoice_record(i) for i in invoices],
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _get_account(self, db: AsyncSession, account_id: UUID) -> Account:
        account = await self._account_repo.get(db, account_id=account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return account

    async def _ensure_customer(self, db: AsyncSession, account: Account) -> str:
        """Return the provider customer for *account*, creating it on first use."""
        if account.external_customer_ref:
            return account.external_customer_ref

        customer = await self._payment_gateway.create_customer(
            email=account.email,
            metadata={"accountId": str(account.id)},
        )
        await self._account_repo.set_customer_ref(
            db, account_id=account.id, customer_ref=customer.id
        )
        logger.info(f"Created payment customer {customer.id} for account {account.id}")
        return customer.id

    def _default_success_url(self) -> str:
        return f"{self._frontend_url}/billing/success?session_id={{CHECKOUT_SESSION_ID}}"

    def _default_cancel_url(self) -> str:
        return f"{self._frontend_url}/billing/cancel"


def _ts(value: Any) -> datetime:
    return datetime.fromtimestamp(int(value or 0), tz=timezone.utc)


def _charge_record(charge: Any) -> schemas.ChargeRecord:
    return schemas.ChargeRecord(
        id=charge.id,
        amount_cents=charge.amount,
        currency=(charge.currency or "").upper(),
        status=charge.status,
        description=charge.get("description"),
        created_at=_ts(charge.created),
        receipt_url=charge.get("receipt_url"),
    )


def _invoice_record(invoice: Any) -> schemas.InvoiceRecord:
    return schemas.InvoiceRecord(
        id=invoice.id,
        amount_paid_cents=invoice.amount_paid,
        currency=(invoice.currency or "").upper(),
        status=invoice.get("status"),
        created_at=_ts(invoice.created),
        hosted_invoice_url=invoice.get("hosted_invoice_url"),
    )
