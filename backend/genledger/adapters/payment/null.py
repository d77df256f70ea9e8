"""Null payment gateway for when Stripe is disabled.

Satisfies PaymentGatewayProtocol so the container can always be fully
constructed.

History lookups return empty lists so account pages render without billing.
User-facing billing operations (customers, checkout sessions) raise
BillingNotAvailableError; these require a real payment provider and should
fail clearly.

verify_webhook_signature raises ValueError, matching the Stripe adapter's
contract for invalid signatures.
"""

from typing import Any, Dict, Optional

from genledger.core.protocols.payment import PaymentGatewayProtocol
from genledger.domains.billing.exceptions import BillingNotAvailableError


class NullPaymentGateway(PaymentGatewayProtocol):
    """No-op payment gateway used when Stripe is disabled."""

    async def create_customer(
        self,
        email: str,
        metadata: Optional[Dict[str, str]] = None,
    ) -> Any:
        """Raise BillingNotAvailableError."""
        raise BillingNotAvailableError()

    async def create_subscription_checkout_session(
        self,
        *,
        customer_id: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
        metadata: Optional[Dict[str, str]] = None,
    ) -> Any:
        """Raise BillingNotAvailableError."""
        raise BillingNotAvailableError()

    async def create_payment_checkout_session(
        self,
        *,
        customer_id: Optional[str],
        amount_cents: int,
        currency: str,
        product_name: str,
        success_url: str,
        cancel_url: str,
        metadata: Optional[Dict[str, str]] = None,
    ) -> Any:
        """Raise BillingNotAvailableError."""
        raise BillingNotAvailableError()

    async def list_charges(self, customer_id: str, limit: int = 20) -> list[Any]:
        """No-op: no history without a provider."""
        return []

    async def list_invoices(self, customer_id: str, limit: int = 20) -> list[Any]:
        """No-op: no history without a provider."""
        return []

    def verify_webhook_signature(self, payload: bytes, signature: str) -> dict[str, Any]:
        """Raise ValueError; billing is not enabled."""
        raise ValueError("Billing is not enabled")
