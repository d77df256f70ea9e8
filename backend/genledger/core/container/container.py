"""Dependency Injection Container.

The container is a simple immutable dataclass that holds protocol implementations.
It has no construction logic; that belongs in the factory.
"""

from dataclasses import dataclass, replace
from typing import Any

from genledger.core.protocols.payment import PaymentGatewayProtocol
from genledger.domains.accounts.protocols import AccountServiceProtocol
from genledger.domains.accounts.repository import AccountRepositoryProtocol
from genledger.domains.billing.protocols import BillingServiceProtocol, BillingWebhookProtocol
from genledger.domains.billing.repository import ProcessedEventRepositoryProtocol
from genledger.domains.credits.protocols import CreditLedgerProtocol
from genledger.domains.credits.repository import ReservationRepositoryProtocol
from genledger.domains.usage.protocols import (
    ReservationSweeperProtocol,
    UsageAdmissionProtocol,
)


@dataclass(frozen=True)
class Container:
    """Immutable container holding all protocol implementations.

    Usage:
        # FastAPI endpoints: use Inject() to pull individual protocols
        from genledger.api.deps import Inject
        async def my_endpoint(ledger: CreditLedgerProtocol = Inject(CreditLedgerProtocol)):
            ...

        # Testing: construct directly with fakes
        test_container = Container(payment_gateway=FakePaymentGateway(), ...)
    """

    # Repository protocols (thin wrappers around crud singletons)
    account_repo: AccountRepositoryProtocol
    reservation_repo: ReservationRepositoryProtocol
    event_repo: ProcessedEventRepositoryProtocol

    # Credits: sole mutator of balances
    credit_ledger: CreditLedgerProtocol

    # Accounts
    account_service: AccountServiceProtocol

    # Billing domain
    billing_service: BillingServiceProtocol
    billing_webhook: BillingWebhookProtocol

    payment_gateway: PaymentGatewayProtocol

    # Usage: admission in front of metered actions, timeout reconciliation
    admission_controller: UsageAdmissionProtocol
    reservation_sweeper: ReservationSweeperProtocol

    def replace(self, **changes: Any) -> "Container":
        """Create a new container with some dependencies replaced.

        Useful for partial overrides in tests:

            modified = container.replace(payment_gateway=FakePaymentGateway())
        """
        return replace(self, **changes)
