"""Payment gateway protocol.

Cross-cutting infrastructure protocol for payment processing (Stripe, etc.).
All methods must be implemented by the same provider; the protocol is not split.

Direct consumers: BillingService, BillingWebhookProcessor.
"""

from typing import Any, Dict, Optional, Protocol, runtime_checkable


@runtime_checkable
class PaymentGatewayProtocol(Protocol):
    """Protocol for payment gateway operations.

    Abstracts all payment provider interactions (customers, checkout,
    history, webhook verification).
    """

    # -------------------------------------------------------------------------
    # Customer operations
    # -------------------------------------------------------------------------

    async def create_customer(
        self,
        email: str,
        metadata: Optional[Dict[str, str]] = None,
    ) -> Any:
        """Create a customer in the payment provider. Returns an object with ``id``."""
        ...

    # -------------------------------------------------------------------------
    # Checkout
    # -------------------------------------------------------------------------

    async def create_subscription_checkout_session(
        self,
        *,
        customer_id: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
        metadata: Optional[Dict[str, str]] = None,
    ) -> Any:
        """Create a subscription-mode checkout session. Returns an object with ``id`` and ``url``."""
        ...

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
        """Create a one-off payment-mode checkout session."""
        ...

    # -------------------------------------------------------------------------
    # History
    # -------------------------------------------------------------------------

    async def list_charges(self, customer_id: str, limit: int = 20) -> list[Any]:
        """Most recent charges for a customer."""
        ...

    async def list_invoices(self, customer_id: str, limit: int = 20) -> list[Any]:
        """Most recent invoices for a customer."""
        ...

    # -------------------------------------------------------------------------
    # Webhooks
    # -------------------------------------------------------------------------

    def verify_webhook_signature(self, payload: bytes, signature: str) -> dict[str, Any]:
        """Verify the signature and return the decoded event.

        Raises ValueError if the signature (or payload encoding) is invalid.
        """
        ...
