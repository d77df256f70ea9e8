"""Unit tests for SubscriptionStateMachine and derive_state."""

from datetime import timedelta

import pytest

from genledger.db.unit_of_work import UnitOfWork
from genledger.domains.accounts.tests.conftest import NOW, _make_account
from genledger.domains.accounts.tests.conftest import _make_service as _make_account_service
from genledger.domains.billing.events import (
    CheckoutCompleted,
    InvoicePaymentSucceeded,
    OneTimeCreditsPurchased,
    SubscriptionCancelled,
)
from genledger.domains.billing.state_machine import derive_state
from genledger.domains.billing.tests.conftest import DEFAULT_CUSTOMER_ID, _make_state_machine
from genledger.schemas.account import SubscriptionState, SubscriptionTier


def _checkout(
    tier=SubscriptionTier.BASIC, plan_id="monthly", customer=DEFAULT_CUSTOMER_ID, raw_credits=None
):
    return CheckoutCompleted(
        event_id="evt_checkout",
        event_type="checkout.session.completed",
        account_ref=None,
        customer_ref=customer,
        tier=tier,
        plan_id=plan_id,
        amount_paid=999,
        raw_credits=raw_credits,
    )


def _renewal(tier=SubscriptionTier.BASIC, reason="subscription_cycle", customer=DEFAULT_CUSTOMER_ID):
    return InvoicePaymentSucceeded(
        event_id="evt_invoice",
        event_type="invoice.payment_succeeded",
        account_ref=None,
        customer_ref=customer,
        tier=tier,
        billing_reason=reason,
        invoice_id="in_1",
    )


def _paid_account(**overrides):
    defaults = dict(
        tier=SubscriptionTier.BASIC.value,
        external_customer_ref=DEFAULT_CUSTOMER_ID,
        valid_until=NOW + timedelta(days=10),
    )
    defaults.update(overrides)
    return _make_account(**defaults)


# ===========================================================================
# Renewal ("extend, don't overwrite")
# ===========================================================================


class TestRenewal:
    @pytest.mark.asyncio
    async def test_monthly_renewal_adds_to_remaining_time(self, db):
        machine, ar = _make_state_machine()
        account = _paid_account(credit_balance=3)
        ar.seed(account)

        async with UnitOfWork(db) as uow:
            applied = await machine.apply_renewal(db, account, _renewal(), at=NOW, uow=uow)
            await uow.commit()

        assert applied is True
        assert account.valid_until == NOW + timedelta(days=40)
        assert account.credit_balance == 103

    @pytest.mark.asyncio
    async def test_lapsed_subscription_restarts_from_now(self, db):
        machine, ar = _make_state_machine()
        account = _paid_account(valid_until=NOW - timedelta(days=5))
        ar.seed(account)

        async with UnitOfWork(db) as uow:
            await machine.apply_renewal(db, account, _renewal(), at=NOW, uow=uow)
            await uow.commit()

        assert account.valid_until == NOW + timedelta(days=30)

    @pytest.mark.asyncio
    async def test_two_renewals_compose(self, db):
        machine, ar = _make_state_machine()
        account = _paid_account()
        ar.seed(account)

        async with UnitOfWork(db) as uow:
            await machine.apply_renewal(db, account, _renewal(), at=NOW, uow=uow)
            await machine.apply_renewal(db, account, _renewal(), at=NOW, uow=uow)
            await uow.commit()

        assert account.valid_until == NOW + timedelta(days=70)
        assert account.credit_balance == 300

    @pytest.mark.asyncio
    async def test_renewal_without_tier_keeps_current(self, db):
        machine, ar = _make_state_machine()
        account = _paid_account(tier=SubscriptionTier.PREMIUM.value)
        ar.seed(account)

        async with UnitOfWork(db) as uow:
            await machine.apply_renewal(db, account, _renewal(tier=None), at=NOW, uow=uow)
            await uow.commit()

        assert account.tier == SubscriptionTier.PREMIUM.value
        assert account.valid_until == NOW + timedelta(days=375)
        assert account.credit_balance == 600

    @pytest.mark.asyncio
    async def test_first_invoice_is_skipped(self, db):
        machine, ar = _make_state_machine()
        account = _paid_account()
        ar.seed(account)
        before = account.valid_until

        async with UnitOfWork(db) as uow:
            applied = await machine.apply_renewal(
                db, account, _renewal(reason="subscription_create"), at=NOW, uow=uow
            )

        assert applied is False
        assert account.valid_until == before
        assert account.credit_balance == 100

    @pytest.mark.asyncio
    async def test_free_account_renewal_ignored(self, db):
        machine, ar = _make_state_machine()
        account = _make_account()
        ar.seed(account)

        async with UnitOfWork(db) as uow:
            applied = await machine.apply_renewal(db, account, _renewal(), at=NOW, uow=uow)

        assert applied is False
        assert ar.call_count("extend_subscription") == 0

    @pytest.mark.asyncio
    async def test_customer_mismatch_ignored(self, db):
        machine, ar = _make_state_machine()
        account = _paid_account()
        ar.seed(account)

        async with UnitOfWork(db) as uow:
            applied = await machine.apply_renewal(
                db, account, _renewal(customer="cus_someone_else"), at=NOW, uow=uow
            )

        assert applied is False
        assert account.credit_balance == 100


# ===========================================================================
# Checkout, cancellation, credit purchase
# ===========================================================================


class TestCheckout:
    @pytest.mark.asyncio
    async def test_checkout_activates_tier_and_grants(self, db):
        machine, ar = _make_state_machine()
        account = _make_account(valid_until=NOW + timedelta(days=2), external_customer_ref=None)
        ar.seed(account)

        async with UnitOfWork(db) as uow:
            await machine.apply_checkout(db, account, _checkout(), at=NOW, uow=uow)
            await uow.commit()

        assert account.tier == SubscriptionTier.BASIC.value
        assert account.subscription_active is True
        assert account.valid_until == NOW + timedelta(days=30)
        assert account.external_customer_ref == DEFAULT_CUSTOMER_ID
        assert account.credit_balance == 200

    @pytest.mark.asyncio
    async def test_checkout_after_signup_starts_fresh_period(self, db):
        machine, ar = _make_state_machine()
        accounts, _ = _make_account_service(account_repo=ar)
        created = await accounts.create_account(db, email="new@example.com", at=NOW)
        account = await ar.get(db, account_id=created.id)
        assert account.valid_until == NOW + timedelta(days=180)

        async with UnitOfWork(db) as uow:
            await machine.apply_checkout(db, account, _checkout(), at=NOW, uow=uow)
            await uow.commit()

        assert account.valid_until == NOW + timedelta(days=30)
        assert derive_state(account, NOW + timedelta(days=31)) == SubscriptionState.EXPIRED

    @pytest.mark.asyncio
    async def test_checkout_credit_override(self, db):
        machine, ar = _make_state_machine()
        account = _make_account(credit_balance=0)
        ar.seed(account)

        async with UnitOfWork(db) as uow:
            await machine.apply_checkout(db, account, _checkout(raw_credits=250), at=NOW, uow=uow)
            await uow.commit()

        assert account.credit_balance == 250
        assert account.valid_until == NOW + timedelta(days=30)

    @pytest.mark.asyncio
    async def test_family_checkout(self, db):
        machine, ar = _make_state_machine()
        account = _make_account(credit_balance=0, valid_until=NOW)
        ar.seed(account)

        async with UnitOfWork(db) as uow:
            await machine.apply_checkout(
                db, account, _checkout(SubscriptionTier.FAMILY, "family"), at=NOW, uow=uow
            )
            await uow.commit()

        assert account.valid_until == NOW + timedelta(days=365)
        assert account.credit_balance == 1000


class TestCancellationAndCredits:
    @pytest.mark.asyncio
    async def test_cancellation_keeps_tier_and_expiry(self, db):
        machine, ar = _make_state_machine()
        account = _paid_account()
        ar.seed(account)
        event = SubscriptionCancelled(
            event_id="evt_del",
            event_type="customer.subscription.deleted",
            account_ref=None,
            customer_ref=DEFAULT_CUSTOMER_ID,
            subscription_id="sub_test",
        )

        async with UnitOfWork(db) as uow:
            await machine.apply_cancellation(db, account, event, uow=uow)
            await uow.commit()

        assert account.subscription_active is False
        assert account.tier == SubscriptionTier.BASIC.value
        assert account.valid_until == NOW + timedelta(days=10)
        assert derive_state(account, NOW) == SubscriptionState.CANCELLED

    @pytest.mark.asyncio
    async def test_credit_purchase_only_grants(self, db):
        machine, ar = _make_state_machine()
        account = _make_account(credit_balance=4)
        ar.seed(account)
        before = account.valid_until
        event = OneTimeCreditsPurchased(
            event_id="evt_buy",
            event_type="checkout.session.completed",
            account_ref=None,
            customer_ref=None,
            amount=25,
        )

        async with UnitOfWork(db) as uow:
            await machine.apply_credit_purchase(db, account, event, uow=uow)
            await uow.commit()

        assert account.credit_balance == 29
        assert account.valid_until == before
        assert account.tier == SubscriptionTier.FREE.value


# ===========================================================================
# derive_state (pure)
# ===========================================================================


class TestDeriveState:
    def test_free(self):
        assert derive_state(_make_account(), NOW) == SubscriptionState.FREE

    def test_active_paid(self):
        assert derive_state(_paid_account(), NOW) == SubscriptionState.ACTIVE

    def test_expired(self):
        account = _paid_account(valid_until=NOW - timedelta(seconds=1))
        assert derive_state(account, NOW) == SubscriptionState.EXPIRED

    def test_expiry_boundary_counts_as_expired(self):
        assert derive_state(_paid_account(valid_until=NOW), NOW) == SubscriptionState.EXPIRED
