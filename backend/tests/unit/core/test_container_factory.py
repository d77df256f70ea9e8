"""Unit tests for create_container and the global container lifecycle."""

import pytest

from genledger.adapters.payment.null import NullPaymentGateway
from genledger.adapters.payment.stripe import StripePaymentGateway
from genledger.core import container as container_mod
from genledger.core.config import settings
from genledger.core.container import create_container, initialize_container, reset_container
from genledger.domains.billing.webhook_processor import BillingWebhookProcessor
from genledger.domains.usage.admission import UsageAdmissionController


class TestCreateContainer:
    def test_null_gateway_when_stripe_disabled(self):
        c = create_container(settings.model_copy(update={"STRIPE_ENABLED": False}))

        assert isinstance(c.payment_gateway, NullPaymentGateway)
        assert isinstance(c.billing_webhook, BillingWebhookProcessor)
        assert isinstance(c.admission_controller, UsageAdmissionController)

    def test_stripe_gateway_when_enabled(self):
        c = create_container(
            settings.model_copy(
                update={
                    "STRIPE_ENABLED": True,
                    "STRIPE_SECRET_KEY": "sk_test_123",
                    "STRIPE_WEBHOOK_SECRET": "whsec_test",
                }
            )
        )

        assert isinstance(c.payment_gateway, StripePaymentGateway)

    def test_price_ids_read_from_settings(self):
        c = create_container(
            settings.model_copy(update={"STRIPE_PRICE_IDS": {"monthly_us": "price_1USmonthly"}})
        )

        plans = {p.plan_id: p for p in c.billing_service.list_plans("US")}

        assert plans["monthly"].price.price_id == "price_1USmonthly"
        assert plans["family"].price.price_id is None

    def test_replace_swaps_one_field(self):
        c = create_container(settings)
        other = c.replace(payment_gateway=NullPaymentGateway())

        assert other.payment_gateway is not c.payment_gateway
        assert other.credit_ledger is c.credit_ledger


class TestGlobalContainer:
    def test_initialize_once(self):
        reset_container()
        try:
            initialize_container(settings)
            assert container_mod.container is not None
            with pytest.raises(RuntimeError):
                initialize_container(settings)
        finally:
            reset_container()
