"""Fake payment gateway for testing.

In-memory implementation of PaymentGatewayProtocol.
Records all calls for assertions. No external API calls.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Optional
from uuid import uuid4

from genledger.core.protocols.payment import PaymentGatewayProtocol

VALID_SIGNATURE = "sig_valid"


class FakePaymentGateway(PaymentGatewayProtocol):
    """Test implementation of PaymentGatewayProtocol.

    Usage::

        fake = FakePaymentGateway()
        customer = await fake.create_customer("a@b.com")
        assert fake.call_count("create_customer") == 1

    ``verify_webhook_signature`` accepts only ``VALID_SIGNATURE`` and decodes
    the payload as JSON.
    """

    def __init__(
        self,
        should_raise: Optional[Exception] = None,
        valid_signature: str = VALID_SIGNATURE,
    ) -> None:
        """Initialize with optional error injection."""
        self._should_raise = should_raise
        self._valid_signature = valid_signature
        self._calls: list[tuple[str, tuple, dict]] = []

        # In-memory state
        self._customers: dict[str, dict] = {}
        self._sessions: dict[str, dict] = {}
        self._charges: dict[str, list[Any]] = {}
        self._invoices: dict[str, list[Any]] = {}

    def _record(self, method: str, *args: Any, **kwargs: Any) -> None:
        self._calls.append((method, args, kwargs))
        if self._should_raise:
            raise self._should_raise

    # ---- Test helpers ----

    def call_count(self, method: str) -> int:
        """Number of times a method was called."""
        return sum(1 for name, _, _ in self._calls if name == method)

    def calls_for(self, method: str) -> list[tuple[tuple, dict]]:
        """Return (args, kwargs) for each call to *method*."""
        return [(a, k) for name, a, k in self._calls if name == method]

    def seed_charges(self, customer_id: str, charges: list[Any]) -> None:
        """Set the charges returned for a customer."""
        self._charges[customer_id] = charges

    def seed_invoices(self, customer_id: str, invoices: list[Any]) -> None:
        """Set the invoices returned for a customer."""
        self._invoices[customer_id] = invoices

    def clear(self) -> None:
        """Reset all recorded state."""
        self._calls.clear()
        self._customers.clear()
        self._sessions.clear()
        self._charges.clear()
        self._invoices.clear()

    # ---- Customer operations ----

    async def create_customer(
        self,
        email: str,
        metadata: Optional[Dict[str, str]] = None,
    ) -> Any:
        """Create a fake customer."""
        self._record("create_customer", email, metadata=metadata)
        cid = f"cus_{uuid4().hex[:14]}"
        self._customers[cid] = {"email": email, "metadata": metadata or {}}
        return _obj(id=cid, email=email, metadata=metadata or {})

    # ---- Checkout ----

    async def create_subscription_checkout_session(
        self,
        *,
        customer_id: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
        metadata: Optional[Dict[str, str]] = None,
    ) -> Any:
        """Create a fake subscription checkout session."""
        self._record(
            "create_subscription_checkout_session",
            customer_id=customer_id,
            price_id=price_id,
            success_url=success_url,
            cancel_url=cancel_url,
            metadata=metadata,
        )
        return self._new_session("subscription", customer_id, metadata)

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
        """Create a fake payment checkout session."""
        self._record(
            "create_payment_checkout_session",
            customer_id=customer_id,
            amount_cents=amount_cents,
            currency=currency,
            product_name=product_name,
            success_url=success_url,
            cancel_url=cancel_url,
            metadata=metadata,
        )
        return self._new_session("payment", customer_id, metadata)

    def _new_session(self, mode: str, customer_id: Optional[str], metadata: Any) -> Any:
        sid = f"cs_test_{uuid4().hex[:14]}"
        self._sessions[sid] = {"mode": mode, "customer": customer_id, "metadata": metadata}
        return _obj(id=sid, url=f"https://checkout.stripe.com/c/pay/{sid}", mode=mode)

    # ---- History ----

    async def list_charges(self, customer_id: str, limit: int = 20) -> list[Any]:
        """Return seeded charges."""
        self._record("list_charges", customer_id, limit=limit)
        return self._charges.get(customer_id, [])[:limit]

    async def list_invoices(self, customer_id: str, limit: int = 20) -> list[Any]:
        """Return seeded invoices."""
        self._record("list_invoices", customer_id, limit=limit)
        return self._invoices.get(customer_id, [])[:limit]

    # ---- Webhooks ----

    def verify_webhook_signature(self, payload: bytes, signature: str) -> dict[str, Any]:
        """Accept only the configured signature; decode the payload as JSON."""
        self._calls.append(("verify_webhook_signature", (signature,), {}))
        if signature != self._valid_signature:
            raise ValueError("Invalid signature")
        try:
            return json.loads(payload)
        except json.JSONDecodeError as e:
            raise ValueError("Webhook payload is not valid JSON") from e


class _obj:
    """Tiny attribute-bag to emulate Stripe object shapes in tests."""

    def __init__(self, **kwargs: Any):
        for k, v in kwargs.items():
            setattr(self, k, v)

    def get(self, key: str, default: Any = None) -> Any:
        """Get attribute by key with default."""
        return getattr(self, key, default)
