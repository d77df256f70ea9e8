"""Webhook processor for Stripe billing events.

Each delivery goes through: signature check, tagged decode, account
resolution, then one transaction that inserts the dedup record and applies
the state machine transition. A store failure anywhere in that transaction
rolls both back, so the provider's retry finds the event unrecorded and
applies it again.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from genledger.core.logging import ContextualLogger, logger
from genledger.core.protocols.payment import PaymentGatewayProtocol
from genledger.db.unit_of_work import UnitOfWork
from genledger.domains.accounts.repository import AccountRepositoryProtocol
from genledger.domains.billing.events import (
    BillingEvent,
    CheckoutCompleted,
    InvoicePaymentSucceeded,
    OneTimeCreditsPurchased,
    SubscriptionCancelled,
    decode_event,
)
from genledger.domains.billing.exceptions import (
    InvalidSignatureError,
    TransientFailureError,
    UnresolvedAccountError,
)
from genledger.domains.billing.protocols import BillingWebhookProtocol
from genledger.domains.billing.repository import ProcessedEventRepositoryProtocol
from genledger.domains.billing.state_machine import SubscriptionStateMachine
from genledger.domains.billing.types import WebhookResult, WebhookStatus
from genledger.domains.credits.exceptions import LedgerUnavailableError
from genledger.models.account import Account


class BillingWebhookProcessor(BillingWebhookProtocol):
    """Process Stripe webhook events for billing."""

    def __init__(
        self,
        payment_gateway: PaymentGatewayProtocol,
        account_repo: AccountRepositoryProtocol,
        event_repo: ProcessedEventRepositoryProtocol,
        state_machine: SubscriptionStateMachine,
    ) -> None:
        """Initialize with all required dependencies."""
        self._payment_gateway = payment_gateway
        self._account_repo = account_repo
        self._event_repo = event_repo
        self._state_machine = state_machine

        # Event handler mapping, keyed by decoded event variant
        self.handlers = {
            CheckoutCompleted: self._handle_checkout_completed,
            OneTimeCreditsPurchased: self._handle_credits_purchased,
            InvoicePaymentSucceeded: self._handle_payment_succeeded,
            SubscriptionCancelled: self._handle_subscription_deleted,
        }

    async def process_webhook(
        self,
        db: AsyncSession,
        payload: bytes,
        signature: str,
        *,
        at: Optional[datetime] = None,
    ) -> WebhookResult:
        """Verify webhook signature and process the resulting event.

        Returns only after the transaction committed (or the event was found
        to be a duplicate or of no interest).

        Raises:
            InvalidSignatureError: signature mismatch; nothing was touched.
            InvalidPayloadError: signed but malformed payload.
            UnresolvedAccountError: no account matches the event; not recorded.
            TransientFailureError: store failure; everything rolled back.
        """
        try:
            raw = self._payment_gateway.verify_webhook_signature(payload, signature)
        except ValueError as e:
            logger.warning(f"Rejected webhook with invalid signature: {e}")
            raise InvalidSignatureError(str(e)) from e

        event = decode_event(raw)
        return await self._process_event(db, event, at=at or datetime.now(timezone.utc))

    async def _process_event(
        self, db: AsyncSession, event: BillingEvent, *, at: datetime
    ) -> WebhookResult:
        """Process a verified, decoded event."""
        log = logger.with_context(stripe_event_id=event.event_id, event_type=event.event_type)

        handler = self.handlers.get(type(event))
        if handler is None:
            log.info(f"Unhandled webhook event type: {event.event_type}")
            return WebhookResult(WebhookStatus.IGNORED, event.event_id, event.event_type)

        try:
            async with UnitOfWork(db) as uow:
                account = await self._resolve_account(db, event, log)
                log = log.with_context(account_id=str(account.id))

                inserted = await self._event_repo.insert_unique(
                    db,
                    event_id=event.event_id,
                    event_type=event.event_type,
                    account_id=account.id,
                    at=at,
                    uow=uow,
                )
                if not inserted:
                    log.info("Duplicate webhook event; already applied")
                    return WebhookResult(WebhookStatus.DUPLICATE, event.event_id, event.event_type)

                log.info(f"Processing webhook event: {event.event_type}")
                applied = await handler(db, account, event, at=at, uow=uow, log=log)
                await uow.commit()
        except (LedgerUnavailableError, SQLAlchemyError, OSError) as e:
            log.error(f"Transient failure handling {event.event_type}: {e}", exc_info=True)
            raise TransientFailureError(event.event_id) from e

        status = WebhookStatus.APPLIED if applied else WebhookStatus.IGNORED
        return WebhookResult(status, event.event_id, event.event_type)

    async def _resolve_account(
        self, db: AsyncSession, event: BillingEvent, log: ContextualLogger
    ) -> Account:
        """Find the account an event belongs to.

        Explicit account ID from metadata first, then the provider customer.
        """
        if event.account_ref:
            try:
                account_id = UUID(event.account_ref)
            except ValueError:
                log.warning(f"Ignoring malformed accountId {event.account_ref!r}")
            else:
                account = await self._account_repo.get(db, account_id=account_id)
                if account is not None:
                    return account

        if event.customer_ref:
            account = await self._account_repo.get_by_customer_ref(
                db, customer_ref=event.customer_ref
            )
            if account is not None:
                return account

        log.error(
            f"No account for event (accountId={event.account_ref}, customer={event.customer_ref})"
        )
        raise UnresolvedAccountError(event.event_id, event.event_type)

    # Event handlers

    async def _handle_checkout_completed(
        self,
        db: AsyncSession,
        account: Account,
        event: CheckoutCompleted,
        *,
        at: datetime,
        uow: UnitOfWork,
        log: ContextualLogger,
    ) -> bool:
        """Handle a paid subscription checkout."""
        return await self._state_machine.apply_checkout(db, account, event, at=at, uow=uow, log=log)

    async def _handle_credits_purchased(
        self,
        db: AsyncSession,
        account: Account,
        event: OneTimeCreditsPurchased,
        *,
        at: datetime,
        uow: UnitOfWork,
        log: ContextualLogger,
    ) -> bool:
        """Handle a paid one-off credit pack."""
        return await self._state_machine.apply_credit_purchase(
            db, account, event, uow=uow, log=log
        )

    async def _handle_payment_succeeded(
        self,
        db: AsyncSession,
        account: Account,
        event: InvoicePaymentSucceeded,
        *,
        at: datetime,
        uow: UnitOfWork,
        log: ContextualLogger,
    ) -> bool:
        """Handle a paid subscription invoice (renewal)."""
        return await self._state_machine.apply_renewal(db, account, event, at=at, uow=uow, log=log)

    async def _handle_subscription_deleted(
        self,
        db: AsyncSession,
        account: Account,
        event: SubscriptionCancelled,
        *,
        at: datetime,
        uow: UnitOfWork,
        log: ContextualLogger,
    ) -> bool:
        """Handle subscription cancellation."""
        return await self._state_machine.apply_cancellation(db, account, event, uow=uow, log=log)
