"""Unit tests for the Stripe payment gateway.

Signatures are computed the way Stripe computes them, so the SDK's real
verification runs; API calls are patched.
"""

import hashlib
import hmac
import json
import time
from unittest.mock import AsyncMock, patch

import pytest
import stripe

from genledger.adapters.payment.stripe import StripePaymentGateway
from genledger.core.exceptions import ExternalServiceError

SECRET = "whsec_test_secret"


def _sign(payload: str, secret: str = SECRET, timestamp: int | None = None) -> str:
    ts = int(time.time()) if timestamp is None else timestamp
    digest = hmac.new(secret.encode(), f"{ts}.{payload}".encode(), hashlib.sha256).hexdigest()
    return f"t={ts},v1={digest}"


@pytest.fixture
def gateway():
    return StripePaymentGateway(api_key="sk_test_123", webhook_secret=SECRET)


class TestVerifyWebhookSignature:
    def test_valid_signature_returns_event(self, gateway):
        payload = json.dumps({"id": "evt_1", "type": "invoice.paid"})

        event = gateway.verify_webhook_signature(payload.encode(), _sign(payload))

        assert event["id"] == "evt_1"

    def test_wrong_secret(self, gateway):
        payload = json.dumps({"id": "evt_1"})

        with pytest.raises(ValueError):
            gateway.verify_webhook_signature(payload.encode(), _sign(payload, secret="whsec_other"))

    def test_tampered_body(self, gateway):
        payload = json.dumps({"id": "evt_1", "amount": 100})
        header = _sign(payload)

        with pytest.raises(ValueError):
            gateway.verify_webhook_signature(payload.replace("100", "900").encode(), header)

    def test_stale_timestamp(self, gateway):
        payload = json.dumps({"id": "evt_1"})
        header = _sign(payload, timestamp=int(time.time()) - 3600)

        with pytest.raises(ValueError):
            gateway.verify_webhook_signature(payload.encode(), header)

    def test_signed_but_not_json(self, gateway):
        payload = "not json"

        with pytest.raises(ValueError):
            gateway.verify_webhook_signature(payload.encode(), _sign(payload))

    def test_secret_not_configured(self):
        gateway = StripePaymentGateway(api_key="sk_test_123", webhook_secret=None)
        payload = json.dumps({"id": "evt_1"})

        with pytest.raises(ValueError):
            gateway.verify_webhook_signature(payload.encode(), _sign(payload))


class TestApiCalls:
    @pytest.mark.asyncio
    async def test_create_customer_passes_metadata(self, gateway):
        with patch.object(
            stripe.Customer, "create_async", new=AsyncMock(return_value={"id": "cus_1"})
        ) as create:
            customer = await gateway.create_customer("a@b.com", metadata={"accountId": "x"})

        assert customer == {"id": "cus_1"}
        kwargs = create.call_args.kwargs
        assert kwargs["email"] == "a@b.com"
        assert kwargs["metadata"] == {"accountId": "x"}
        assert kwargs["api_key"] == "sk_test_123"

    @pytest.mark.asyncio
    async def test_stripe_error_becomes_external_service_error(self, gateway):
        with patch.object(
            stripe.Customer,
            "create_async",
            new=AsyncMock(side_effect=stripe.APIConnectionError("network down")),
        ):
            with pytest.raises(ExternalServiceError):
                await gateway.create_customer("a@b.com")

    @pytest.mark.asyncio
    async def test_subscription_checkout_copies_metadata_to_subscription(self, gateway):
        with patch.object(
            stripe.checkout.Session, "create_async", new=AsyncMock(return_value={"id": "cs_1"})
        ) as create:
            await gateway.create_subscription_checkout_session(
                customer_id="cus_1",
                price_id="price_monthly_us",
                success_url="https://x/ok",
                cancel_url="https://x/no",
                metadata={"accountId": "x", "planId": "monthly"},
            )

        kwargs = create.call_args.kwargs
        assert kwargs["mode"] == "subscription"
        assert kwargs["line_items"] == [{"price": "price_monthly_us", "quantity": 1}]
        assert kwargs["subscription_data"] == {"metadata": {"accountId": "x", "planId": "monthly"}}
