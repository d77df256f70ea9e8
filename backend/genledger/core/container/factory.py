"""Container Factory.

All construction logic lives here. The factory reads settings and builds
the container with environment-appropriate implementations.
"""

from genledger.core.config import Settings
from genledger.core.container.container import Container
from genledger.core.logging import logger
from genledger.core.protocols.payment import PaymentGatewayProtocol
from genledger.domains.accounts.repository import AccountRepository
from genledger.domains.accounts.service import AccountService
from genledger.domains.billing.repository import ProcessedEventRepository
from genledger.domains.billing.service import BillingService
from genledger.domains.billing.state_machine import SubscriptionStateMachine
from genledger.domains.billing.webhook_processor import BillingWebhookProcessor
from genledger.domains.credits.ledger import CreditLedger
from genledger.domains.credits.repository import ReservationRepository
from genledger.domains.usage.admission import UsageAdmissionController
from genledger.domains.usage.sweeper import ReservationSweeper


def create_container(settings: Settings) -> Container:
    """Build container with environment-appropriate implementations.

    This is the single source of truth for dependency wiring.

    Args:
        settings: Application settings (from core/config)

    Returns:
        Fully constructed Container ready for use
    """
    # -----------------------------------------------------------------
    # Repositories
    # -----------------------------------------------------------------
    account_repo = AccountRepository()
    reservation_repo = ReservationRepository()
    event_repo = ProcessedEventRepository()

    # -----------------------------------------------------------------
    # Credits
    # -----------------------------------------------------------------
    credit_ledger = CreditLedger(
        account_repo=account_repo,
        reservation_repo=reservation_repo,
        reservation_timeout_seconds=settings.RESERVATION_TIMEOUT_SECONDS,
    )

    account_service = AccountService(
        account_repo=account_repo,
        signup_credit_grant=settings.SIGNUP_CREDIT_GRANT,
        signup_validity_days=settings.SIGNUP_VALIDITY_DAYS,
        default_daily_limit=settings.DEFAULT_DAILY_LIMIT,
    )

    billing_services = _create_billing_services(settings, account_repo, event_repo, credit_ledger)
    usage_services = _create_usage_services(settings, account_repo, reservation_repo, credit_ledger)

    return Container(
        account_repo=account_repo,
        reservation_repo=reservation_repo,
        event_repo=event_repo,
        credit_ledger=credit_ledger,
        account_service=account_service,
        billing_service=billing_services["billing_service"],
        billing_webhook=billing_services["billing_webhook"],
        payment_gateway=billing_services["payment_gateway"],
        admission_controller=usage_services["admission_controller"],
        reservation_sweeper=usage_services["reservation_sweeper"],
    )


# ---------------------------------------------------------------------------
# Private factory functions
# ---------------------------------------------------------------------------


def _create_payment_gateway(settings: Settings) -> PaymentGatewayProtocol:
    """Create payment gateway: Stripe if enabled, otherwise a null implementation."""
    if settings.STRIPE_ENABLED:
        from genledger.adapters.payment.stripe import StripePaymentGateway

        return StripePaymentGateway(
            api_key=settings.STRIPE_SECRET_KEY,
            webhook_secret=settings.STRIPE_WEBHOOK_SECRET,
            webhook_tolerance_seconds=settings.STRIPE_WEBHOOK_TOLERANCE_SECONDS,
        )

    from genledger.adapters.payment.null import NullPaymentGateway

    logger.info("Stripe disabled; using NullPaymentGateway")
    return NullPaymentGateway()


def _create_billing_services(
    settings: Settings,
    account_repo: AccountRepository,
    event_repo: ProcessedEventRepository,
    credit_ledger: CreditLedger,
) -> dict:
    """Create billing service and webhook processor with shared dependencies."""
    payment_gateway = _create_payment_gateway(settings)
    state_machine = SubscriptionStateMachine(
        account_repo=account_repo,
        credit_ledger=credit_ledger,
    )

    billing_service = BillingService(
        payment_gateway=payment_gateway,
        account_repo=account_repo,
        frontend_url=settings.FRONTEND_URL,
        credit_unit_price_cents=settings.CREDIT_UNIT_PRICE_CENTS,
        price_ids=settings.STRIPE_PRICE_IDS,
    )
    billing_webhook = BillingWebhookProcessor(
        payment_gateway=payment_gateway,
        account_repo=account_repo,
        event_repo=event_repo,
        state_machine=state_machine,
    )

    return {
        "billing_service": billing_service,
        "billing_webhook": billing_webhook,
        "payment_gateway": payment_gateway,
    }


def _create_usage_services(
    settings: Settings,
    account_repo: AccountRepository,
    reservation_repo: ReservationRepository,
    credit_ledger: CreditLedger,
) -> dict:
    """Create the admission controller and the reservation sweeper."""
    return {
        "admission_controller": UsageAdmissionController(
            account_repo=account_repo,
            credit_ledger=credit_ledger,
        ),
        "reservation_sweeper": ReservationSweeper(
            reservation_repo=reservation_repo,
            credit_ledger=credit_ledger,
            interval_seconds=settings.RESERVATION_SWEEP_INTERVAL_SECONDS,
        ),
    }
