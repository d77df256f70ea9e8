"""Stripe payment gateway.

Implements PaymentGatewayProtocol on top of the stripe SDK's async request
methods. Stripe errors are re-raised as ExternalServiceError; domain code
wraps them again with ``wrap_gateway_errors``.
"""

import json
from typing import Any, Dict, Optional

import stripe

from genledger.core.exceptions import ExternalServiceError
from genledger.core.logging import logger
from genledger.core.protocols.payment import PaymentGatewayProtocol

_SERVICE = "Stripe"


class StripePaymentGateway(PaymentGatewayProtocol):
    """Stripe-backed payment gateway."""

    def __init__(
        self,
        api_key: str,
        webhook_secret: Optional[str],
        webhook_tolerance_seconds: int = 300,
    ) -> None:
        """Initialize with credentials."""
        self._api_key = api_key
        self._webhook_secret = webhook_secret
        self._tolerance = webhook_tolerance_seconds

    # ---- Customer operations ----

    async def create_customer(
        self,
        email: str,
        metadata: Optional[Dict[str, str]] = None,
    ) -> Any:
        """Create a Stripe customer."""
        try:
            return await stripe.Customer.create_async(
                api_key=self._api_key,
                email=email,
                metadata=metadata or {},
            )
        except stripe.StripeError as e:
            logger.error(f"Failed to create Stripe customer for {email}: {e}")
            raise ExternalServiceError(_SERVICE, str(e)) from e

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
        """Create a subscription checkout session.

        Metadata is copied onto the subscription so renewal invoices carry it.
        """
        try:
            return await stripe.checkout.Session.create_async(
                api_key=self._api_key,
                mode="subscription",
                customer=customer_id,
                payment_method_types=["card"],
                line_items=[{"price": price_id, "quantity": 1}],
                success_url=success_url,
                cancel_url=cancel_url,
                metadata=metadata or {},
                subscription_data={"metadata": metadata or {}},
            )
        except stripe.StripeError as e:
            logger.error(f"Failed to create subscription checkout for {customer_id}: {e}")
            raise ExternalServiceError(_SERVICE, str(e)) from e

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
        """Create a one-off payment checkout session with inline price data."""
        params: Dict[str, Any] = dict(
            mode="payment",
            payment_method_types=["card"],
            line_items=[
                {
                    "price_data": {
                        "currency": currency,
                        "unit_amount": amount_cents,
                        "product_data": {"name": product_name},
                    },
                    "quantity": 1,
                }
            ],
            success_url=success_url,
            cancel_url=cancel_url,
            metadata=metadata or {},
        )
        if customer_id:
            params["customer"] = customer_id
        try:
            return await stripe.checkout.Session.create_async(api_key=self._api_key, **params)
        except stripe.StripeError as e:
            logger.error(f"Failed to create payment checkout: {e}")
            raise ExternalServiceError(_SERVICE, str(e)) from e

    # ---- History ----

    async def list_charges(self, customer_id: str, limit: int = 20) -> list[Any]:
        """Most recent charges for a customer."""
        try:
            result = await stripe.Charge.list_async(
                api_key=self._api_key, customer=customer_id, limit=limit
            )
        except stripe.StripeError as e:
            raise ExternalServiceError(_SERVICE, str(e)) from e
        return list(result.data)

    async def list_invoices(self, customer_id: str, limit: int = 20) -> list[Any]:
        """Most recent invoices for a customer."""
        try:
            result = await stripe.Invoice.list_async(
                api_key=self._api_key, customer=customer_id, limit=limit
            )
        except stripe.StripeError as e:
            raise ExternalServiceError(_SERVICE, str(e)) from e
        return list(result.data)

    # ---- Webhooks ----

    def verify_webhook_signature(self, payload: bytes, signature: str) -> dict[str, Any]:
        """Verify the Stripe-Signature header and decode the event body.

        Raises ValueError on a bad signature, a stale timestamp, or a body that
        is not JSON.
        """
        if not self._webhook_secret:
            raise ValueError("Stripe webhook secret is not configured")
        try:
            text = payload.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ValueError("Webhook payload is not UTF-8") from e
        try:
            stripe.WebhookSignature.verify_header(
                text, signature, self._webhook_secret, self._tolerance
            )
        except stripe.SignatureVerificationError as e:
            raise ValueError(f"Invalid Stripe signature: {e.user_message or e}") from e
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise ValueError("Webhook payload is not valid JSON") from e
