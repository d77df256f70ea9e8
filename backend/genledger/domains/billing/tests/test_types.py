"""Unit tests for billing types: tier plans and the price catalog."""

from datetime import timedelta

import pytest

from genledger.domains.billing.types import (
    PLAN_CATALOG,
    TIER_PLANS,
    get_catalog_plan,
    plan_for_tier,
    tier_for_plan_id,
)
from genledger.schemas.account import SubscriptionTier


class TestTierPlans:
    @pytest.mark.parametrize(
        "tier,credits,days",
        [
            (SubscriptionTier.BASIC, 100, 30),
            (SubscriptionTier.PREMIUM, 500, 365),
            (SubscriptionTier.FAMILY, 1000, 365),
        ],
    )
    def test_plan_table(self, tier, credits, days):
        plan = plan_for_tier(tier)
        assert plan.credits == credits
        assert plan.period == timedelta(days=days)

    def test_free_tier_has_no_plan(self):
        assert SubscriptionTier.FREE not in TIER_PLANS
        with pytest.raises(KeyError):
            plan_for_tier(SubscriptionTier.FREE)

    @pytest.mark.parametrize(
        "plan_id,tier",
        [
            ("monthly", SubscriptionTier.BASIC),
            ("yearly", SubscriptionTier.PREMIUM),
            ("family", SubscriptionTier.FAMILY),
            ("weekly", None),
            (None, None),
            ("", None),
        ],
    )
    def test_tier_for_plan_id(self, plan_id, tier):
        assert tier_for_plan_id(plan_id) == tier


class TestCatalog:
    def test_every_plan_priced_in_every_region(self):
        for plan in PLAN_CATALOG:
            assert set(plan.prices) == {"US", "IN", "GB"}

    def test_unknown_region_falls_back_to_us(self):
        region, price = get_catalog_plan("monthly").price_for("BR")
        assert region == "US"
        assert price.amount_cents == 999

    def test_lookup_unknown_plan(self):
        assert get_catalog_plan("lifetime") is None
