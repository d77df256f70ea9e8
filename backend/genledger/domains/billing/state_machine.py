"""Subscription state machine.

Applies decoded billing events to an account's subscription columns. Only the
webhook processor drives it, always inside the transaction that records the
event, so each transition happens at most once per event ID.

States are derived, not stored: ``free``, ``active``, ``expired`` and
``cancelled`` are read off ``tier``, ``subscription_active`` and
``valid_until`` (see ``derive_state``). A checkout starts a fresh period at
the event time; renewal expiry is computed in the store relative to the
current value, so concurrent renewals compose and never move it backwards.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from genledger.core.logging import ContextualLogger, logger
from genledger.db.unit_of_work import UnitOfWork
from genledger.domains.accounts.repository import AccountRepositoryProtocol
from genledger.domains.billing.events import (
    CheckoutCompleted,
    InvoicePaymentSucceeded,
    OneTimeCreditsPurchased,
    SubscriptionCancelled,
)
from genledger.domains.billing.types import plan_for_tier
from genledger.domains.credits.protocols import CreditLedgerProtocol
from genledger.models.account import Account
from genledger.schemas.account import SubscriptionState, SubscriptionTier

# Invoice issued together with a subscription checkout; the checkout already paid that cycle.
FIRST_INVOICE_REASON = "subscription_create"


def derive_state(account: Account, at: datetime) -> SubscriptionState:
    """Read-side view of the subscription."""
    if not account.subscription_active:
        return SubscriptionState.CANCELLED
    if account.valid_until <= at:
        return SubscriptionState.EXPIRED
    if SubscriptionTier(account.tier).is_paid:
        return SubscriptionState.ACTIVE
    return SubscriptionState.FREE


class SubscriptionStateMachine:
    """Transitions driven by billing events.

    Each ``apply_*`` returns True when it changed state and False when a guard
    turned the event into a no-op.
    """

    def __init__(
        self,
        account_repo: AccountRepositoryProtocol,
        credit_ledger: CreditLedgerProtocol,
    ) -> None:
        """Initialize with the account repository and the ledger used for grants."""
        self._account_repo = account_repo
        self._ledger = credit_ledger

    async def apply_checkout(
        self,
        db: AsyncSession,
        account: Account,
        event: CheckoutCompleted,
        *,
        at: datetime,
        uow: UnitOfWork,
        log: Optional[ContextualLogger] = None,
    ) -> bool:
        """Activate the purchased tier and grant its credits.

        The new expiry is ``at + period``. The grant is the credit amount carried
        in the checkout metadata when present, otherwise the plan's credits.
        """
        log = log or logger
        plan = plan_for_tier(event.tier)
        valid_until = await self._account_repo.activate_subscription(
            db,
            account_id=account.id,
            tier=event.tier,
            period=plan.period,
            at=at,
            customer_ref=event.customer_ref,
            uow=uow,
        )
        credits = event.raw_credits or plan.credits
        balance = await self._ledger.grant(db, account.id, credits, uow=uow)
        log.info(
            f"Activated {event.tier.value} until {valid_until.isoformat()}; "
            f"granted {credits} credits (balance {balance}, paid {event.amount_paid})"
        )
        return True

    async def apply_renewal(
        self,
        db: AsyncSession,
        account: Account,
        event: InvoicePaymentSucceeded,
        *,
        at: datetime,
        uow: UnitOfWork,
        log: Optional[ContextualLogger] = None,
    ) -> bool:
        """Extend the subscription by one period and grant the period's credits.

        Guards: the invoice is a renewal (not the first invoice), the account
        already holds a paid tier, and it belongs to the invoiced customer.
        """
        log = log or logger
        if event.billing_reason == FIRST_INVOICE_REASON:
            log.info(f"Skipping first invoice {event.invoice_id}; checkout covers this cycle")
            return False

        current_tier = SubscriptionTier(account.tier)
        if not current_tier.is_paid:
            log.warning(f"Renewal for account {account.id} without a paid tier; ignoring")
            return False
        if (
            account.external_customer_ref
            and event.customer_ref
            and account.external_customer_ref != event.customer_ref
        ):
            log.warning(
                f"Invoice customer {event.customer_ref} does not match account customer "
                f"{account.external_customer_ref}; ignoring"
            )
            return False

        tier = event.tier or current_tier
        plan = plan_for_tier(tier)
        valid_until = await self._account_repo.extend_subscription(
            db,
            account_id=account.id,
            tier=tier,
            period=plan.period,
            at=at,
            uow=uow,
        )
        balance = await self._ledger.grant(db, account.id, plan.credits, uow=uow)
        log.info(
            f"Renewed {tier.value} until {valid_until.isoformat()}; "
            f"granted {plan.credits} credits (balance {balance})"
        )
        return True

    async def apply_cancellation(
        self,
        db: AsyncSession,
        account: Account,
        event: SubscriptionCancelled,
        *,
        uow: UnitOfWork,
        log: Optional[ContextualLogger] = None,
    ) -> bool:
        """Deactivate the subscription. Tier and expiry are kept for history."""
        log = log or logger
        await self._account_repo.deactivate_subscription(db, account_id=account.id, uow=uow)
        log.info(f"Subscription {event.subscription_id} cancelled")
        return True

    async def apply_credit_purchase(
        self,
        db: AsyncSession,
        account: Account,
        event: OneTimeCreditsPurchased,
        *,
        uow: UnitOfWork,
        log: Optional[ContextualLogger] = None,
    ) -> bool:
        """Grant purchased credits. The subscription is untouched."""
        log = log or logger
        balance = await self._ledger.grant(db, account.id, event.amount, uow=uow)
        log.info(f"Granted {event.amount} purchased credits (balance {balance})")
        return True
