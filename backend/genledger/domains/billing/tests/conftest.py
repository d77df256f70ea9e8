"""Billing domain test fixtures and helpers.

Builders for Stripe event payloads and for the processor, state machine and
service wired to fakes.
"""

import json
from typing import Any, Optional
from uuid import UUID

from genledger.adapters.payment.fake import FakePaymentGateway
from genledger.domains.accounts.fakes.repository import FakeAccountRepository
from genledger.domains.accounts.tests.conftest import DEFAULT_ACCOUNT_ID
from genledger.domains.billing.fakes.repository import FakeProcessedEventRepository
from genledger.domains.billing.service import BillingService
from genledger.domains.billing.state_machine import SubscriptionStateMachine
from genledger.domains.billing.webhook_processor import BillingWebhookProcessor
from genledger.domains.credits.fakes.repository import FakeReservationRepository
from genledger.domains.credits.ledger import CreditLedger

DEFAULT_CUSTOMER_ID = "cus_test"
FRONTEND_URL = "https://app.example.com"
PRICE_IDS = {
    f"{plan}_{region}": f"price_{plan}_{region}"
    for plan in ("monthly", "yearly", "family")
    for region in ("us", "in", "gb")
}

# ---------------------------------------------------------------------------
# Stripe event shapes
# ---------------------------------------------------------------------------


def _make_stripe_event(event_type: str, obj: dict, event_id: str = "evt_1") -> dict:
    """Wrap a Stripe object in an event envelope."""
    return {
        "id": event_id,
        "object": "event",
        "type": event_type,
        "livemode": False,
        "data": {"object": obj},
    }


def _make_checkout_session(
    *,
    account_id: Optional[UUID] = DEFAULT_ACCOUNT_ID,
    plan_id: Optional[str] = "monthly",
    credits_amount: Optional[str] = None,
    customer: Optional[str] = DEFAULT_CUSTOMER_ID,
    client_reference_id: Optional[str] = None,
    amount_total: Optional[int] = None,
) -> dict:
    """checkout.session object carrying our metadata."""
    metadata: dict[str, str] = {}
    if account_id is not None:
        metadata["accountId"] = str(account_id)
    if plan_id is not None:
        metadata["planId"] = plan_id
    if credits_amount is not None:
        metadata["creditsAmount"] = credits_amount
    return {
        "id": "cs_test_1",
        "object": "checkout.session",
        "mode": "payment" if credits_amount else "subscription",
        "customer": customer,
        "client_reference_id": client_reference_id,
        "amount_total": amount_total,
        "metadata": metadata,
    }


def _make_invoice(
    *,
    account_id: Optional[UUID] = DEFAULT_ACCOUNT_ID,
    plan_id: Optional[str] = "monthly",
    billing_reason: str = "subscription_cycle",
    customer: Optional[str] = DEFAULT_CUSTOMER_ID,
    nested: bool = False,
) -> dict:
    """invoice object; ``nested`` puts the subscription details under ``parent``."""
    metadata: dict[str, str] = {}
    if account_id is not None:
        metadata["accountId"] = str(account_id)
    if plan_id is not None:
        metadata["planId"] = plan_id
    details = {"subscription": "sub_test", "metadata": metadata}
    invoice: dict[str, Any] = {
        "id": "in_test_1",
        "object": "invoice",
        "customer": customer,
        "billing_reason": billing_reason,
        "amount_paid": 999,
    }
    if nested:
        invoice["parent"] = {"subscription_details": details}
    else:
        invoice["subscription_details"] = details
    return invoice


def _make_subscription(
    *, account_id: Optional[UUID] = DEFAULT_ACCOUNT_ID, customer: str = DEFAULT_CUSTOMER_ID
) -> dict:
    """subscription object."""
    metadata = {"accountId": str(account_id)} if account_id else {}
    return {"id": "sub_test", "object": "subscription", "customer": customer, "metadata": metadata}


def _payload(event: dict) -> bytes:
    return json.dumps(event).encode()


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------


def _make_state_machine(
    *, account_repo: Optional[FakeAccountRepository] = None
) -> tuple[SubscriptionStateMachine, FakeAccountRepository]:
    """Build a SubscriptionStateMachine over fakes. Returns (machine, account_repo)."""
    ar = account_repo or FakeAccountRepository()
    ledger = CreditLedger(account_repo=ar, reservation_repo=FakeReservationRepository())
    return SubscriptionStateMachine(account_repo=ar, credit_ledger=ledger), ar


def _make_webhook_processor(
    *,
    payment_gateway: Optional[FakePaymentGateway] = None,
    account_repo: Optional[FakeAccountRepository] = None,
    event_repo: Optional[FakeProcessedEventRepository] = None,
) -> tuple[
    BillingWebhookProcessor,
    FakePaymentGateway,
    FakeAccountRepository,
    FakeProcessedEventRepository,
]:
    """Build a BillingWebhookProcessor wired to fakes. Returns (processor, *fakes)."""
    gw = payment_gateway or FakePaymentGateway()
    er = event_repo or FakeProcessedEventRepository()
    machine, ar = _make_state_machine(account_repo=account_repo)
    proc = BillingWebhookProcessor(
        payment_gateway=gw,
        account_repo=ar,
        event_repo=er,
        state_machine=machine,
    )
    return proc, gw, ar, er


def _make_service(
    *,
    payment_gateway: Optional[FakePaymentGateway] = None,
    account_repo: Optional[FakeAccountRepository] = None,
    price_ids: Optional[dict[str, str]] = None,
) -> tuple[BillingService, FakePaymentGateway, FakeAccountRepository]:
    """Build a BillingService wired to fakes. Returns (service, gateway, account_repo)."""
    gw = payment_gateway or FakePaymentGateway()
    ar = account_repo or FakeAccountRepository()
    svc = BillingService(
        payment_gateway=gw,
        account_repo=ar,
        frontend_url=FRONTEND_URL,
        credit_unit_price_cents=100,
        price_ids=PRICE_IDS if price_ids is None else price_ids,
    )
    return svc, gw, ar
