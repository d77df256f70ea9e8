"""API endpoints for billing operations.

This module provides the HTTP interface for billing operations,
delegating all business logic to the billing and account services.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Header, Query, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from genledger import schemas
from genledger.api import deps
from genledger.api.deps import Inject
from genledger.core.logging import logger
from genledger.domains.accounts.protocols import AccountServiceProtocol
from genledger.domains.billing.exceptions import (
    InvalidWebhookError,
    TransientFailureError,
    UnresolvedAccountError,
)
from genledger.domains.billing.protocols import BillingServiceProtocol, BillingWebhookProtocol

router = APIRouter()


@router.get("/plans", response_model=list[schemas.PlanInfo])
async def list_plans(
    region: Optional[str] = Query(None, description="Country code, e.g. US, IN, GB"),
    billing: BillingServiceProtocol = Inject(BillingServiceProtocol),
) -> list[schemas.PlanInfo]:
    """List purchasable plans priced for a region."""
    return billing.list_plans(region)


@router.post("/checkout-session", response_model=schemas.CheckoutSessionResponse)
async def create_checkout_session(
    request: schemas.CheckoutSessionRequest,
    db: AsyncSession = Depends(deps.get_db),
    account_id: UUID = Depends(deps.get_account_id),
    billing: BillingServiceProtocol = Inject(BillingServiceProtocol),
) -> schemas.CheckoutSessionResponse:
    """Create a Stripe checkout session for a subscription plan.

    Args:
        request: Checkout session request with plan, region and URLs
        db: Database session
        account_id: Caller's account
        billing: Billing service

    Returns:
        Checkout session URL to redirect the user to
    """
    return await billing.start_subscription_checkout(
        db,
        account_id=account_id,
        plan_id=request.plan_id,
        region=request.region,
        success_url=request.success_url,
        cancel_url=request.cancel_url,
    )


@router.post("/credits/purchase", response_model=schemas.CheckoutSessionResponse)
async def purchase_credits(
    request: schemas.CreditPurchaseRequest,
    db: AsyncSession = Depends(deps.get_db),
    account_id: UUID = Depends(deps.get_account_id),
    billing: BillingServiceProtocol = Inject(BillingServiceProtocol),
) -> schemas.CheckoutSessionResponse:
    """Create a Stripe checkout session for a one-off credit pack."""
    return await billing.start_credit_purchase(
        db,
        account_id=account_id,
        amount=request.amount,
        success_url=request.success_url,
        cancel_url=request.cancel_url,
    )


@router.get("/credits", response_model=schemas.CreditBalance)
async def get_credits(
    db: AsyncSession = Depends(deps.get_db),
    account_id: UUID = Depends(deps.get_account_id),
    accounts: AccountServiceProtocol = Inject(AccountServiceProtocol),
) -> schemas.CreditBalance:
    """Current credit balance."""
    return await accounts.get_balance(db, account_id=account_id)


@router.get("/subscription", response_model=schemas.SubscriptionStatus)
async def get_subscription(
    db: AsyncSession = Depends(deps.get_db),
    account_id: UUID = Depends(deps.get_account_id),
    accounts: AccountServiceProtocol = Inject(AccountServiceProtocol),
) -> schemas.SubscriptionStatus:
    """Subscription tier, expiry and derived state."""
    return await accounts.get_subscription_status(db, account_id=account_id)


@router.get("/history", response_model=schemas.BillingHistory)
async def get_history(
    db: AsyncSession = Depends(deps.get_db),
    account_id: UUID = Depends(deps.get_account_id),
    billing: BillingServiceProtocol = Inject(BillingServiceProtocol),
) -> schemas.BillingHistory:
    """Recent charges and invoices."""
    return await billing.get_billing_history(db, account_id=account_id)


@router.post("/webhook", include_in_schema=False)
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None),
    db: AsyncSession = Depends(deps.get_db),
    webhook: BillingWebhookProtocol = Inject(BillingWebhookProtocol),
) -> Response:
    """Handle Stripe webhook events.

    Security:
    - Verifies webhook signature (inside processor)
    - Idempotent processing keyed by event ID

    Returns:
        200 for applied, duplicate and ignored events; 400 when retrying cannot
        help (bad signature, malformed payload, unknown account); 500 on a
        transient failure so Stripe redelivers.
    """
    try:
        payload = await request.body()
    except Exception:
        return Response(status_code=400)

    if not stripe_signature:
        return Response(status_code=400)

    try:
        result = await webhook.process_webhook(db, payload, stripe_signature)
    except (InvalidWebhookError, UnresolvedAccountError) as e:
        return JSONResponse(status_code=400, content={"detail": str(e)})
    except TransientFailureError as e:
        return JSONResponse(status_code=500, content={"detail": str(e)})
    except Exception as e:
        logger.error(f"Unexpected webhook failure: {e}", exc_info=True)
        return Response(status_code=500)

    logger.debug(f"Webhook {result.event_id} ({result.event_type}): {result.status.value}")
    return JSONResponse(status_code=200, content=schemas.WebhookAck().model_dump())
