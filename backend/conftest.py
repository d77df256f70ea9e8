"""Root conftest for pytest configuration and shared fixtures.

This conftest is loaded before both testpaths (tests/ and genledger/domains/),
making its fixtures available to centralized tests AND colocated domain tests.
"""

import os

import pytest

# Register pytest-asyncio plugin at the root level
pytest_plugins = ("pytest_asyncio",)

# ---------------------------------------------------------------------------
# Environment variables: must be set before any genledger module import
# Uses setdefault so real env vars (CI, e2e) are never overridden.
# ---------------------------------------------------------------------------
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("POSTGRES_HOST", "localhost")
os.environ.setdefault("POSTGRES_USER", "test_user")
os.environ.setdefault("POSTGRES_PASSWORD", "test_password")
os.environ.setdefault("POSTGRES_DB", "test_db")
os.environ.setdefault("STRIPE_ENABLED", "false")
os.environ.setdefault("RESERVATION_SWEEP_ENABLED", "false")
os.environ.setdefault("FRONTEND_URL", "https://app.example.com")


# ---------------------------------------------------------------------------
# Shared fake fixtures: individual protocol fakes
# ---------------------------------------------------------------------------


@pytest.fixture
def db():
    """In-memory session whose commit/rollback drive the repository fakes."""
    from genledger.db.fake_session import FakeSession

    return FakeSession()


@pytest.fixture
def fake_payment_gateway():
    """Fake PaymentGateway that records calls and accepts the test signature."""
    from genledger.adapters.payment.fake import FakePaymentGateway

    return FakePaymentGateway()


@pytest.fixture
def fake_account_repo():
    """Fake AccountRepository with in-memory rows."""
    from genledger.domains.accounts.fakes.repository import FakeAccountRepository

    return FakeAccountRepository()


@pytest.fixture
def fake_reservation_repo():
    """Fake ReservationRepository with in-memory rows."""
    from genledger.domains.credits.fakes.repository import FakeReservationRepository

    return FakeReservationRepository()


@pytest.fixture
def fake_event_repo():
    """Fake ProcessedEventRepository with in-memory rows."""
    from genledger.domains.billing.fakes.repository import FakeProcessedEventRepository

    return FakeProcessedEventRepository()


@pytest.fixture
def test_container(
    fake_payment_gateway,
    fake_account_repo,
    fake_reservation_repo,
    fake_event_repo,
):
    """A Container whose services run over repository and gateway fakes.

    For partial overrides, use container.replace():
        other = test_container.replace(payment_gateway=NullPaymentGateway())
    """
    from genledger.core.container import Container
    from genledger.domains.accounts.service import AccountService
    from genledger.domains.billing.service import BillingService
    from genledger.domains.billing.state_machine import SubscriptionStateMachine
    from genledger.domains.billing.webhook_processor import BillingWebhookProcessor
    from genledger.domains.credits.ledger import CreditLedger
    from genledger.domains.usage.admission import UsageAdmissionController
    from genledger.domains.usage.sweeper import ReservationSweeper

    ledger = CreditLedger(
        account_repo=fake_account_repo, reservation_repo=fake_reservation_repo
    )
    return Container(
        account_repo=fake_account_repo,
        reservation_repo=fake_reservation_repo,
        event_repo=fake_event_repo,
        credit_ledger=ledger,
        account_service=AccountService(account_repo=fake_account_repo),
        billing_service=BillingService(
            payment_gateway=fake_payment_gateway,
            account_repo=fake_account_repo,
            frontend_url="https://app.example.com",
            price_ids={"monthly_us": "price_monthly_us"},
        ),
        billing_webhook=BillingWebhookProcessor(
            payment_gateway=fake_payment_gateway,
            account_repo=fake_account_repo,
            event_repo=fake_event_repo,
            state_machine=SubscriptionStateMachine(
                account_repo=fake_account_repo, credit_ledger=ledger
            ),
        ),
        payment_gateway=fake_payment_gateway,
        admission_controller=UsageAdmissionController(
            account_repo=fake_account_repo, credit_ledger=ledger
        ),
        reservation_sweeper=ReservationSweeper(
            reservation_repo=fake_reservation_repo, credit_ledger=ledger
        ),
    )
