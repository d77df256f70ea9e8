"""Billing domain types: tier plans, the regional price catalog, webhook results."""

from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import Optional

from genledger.schemas.account import SubscriptionTier


@dataclass(frozen=True)
class TierPlan:
    """Credits granted and time bought by one payment for a tier."""

    tier: SubscriptionTier
    credits: int
    period: timedelta


TIER_PLANS: dict[SubscriptionTier, TierPlan] = {
    SubscriptionTier.BASIC: TierPlan(SubscriptionTier.BASIC, 100, timedelta(days=30)),
    SubscriptionTier.PREMIUM: TierPlan(SubscriptionTier.PREMIUM, 500, timedelta(days=365)),
    SubscriptionTier.FAMILY: TierPlan(SubscriptionTier.FAMILY, 1000, timedelta(days=365)),
}

# Plan IDs carried in checkout metadata
PLAN_ID_TO_TIER: dict[str, SubscriptionTier] = {
    "monthly": SubscriptionTier.BASIC,
    "yearly": SubscriptionTier.PREMIUM,
    "family": SubscriptionTier.FAMILY,
}


def plan_for_tier(tier: SubscriptionTier) -> TierPlan:
    """Plan for a paid tier. Raises KeyError for the free tier."""
    return TIER_PLANS[tier]


def tier_for_plan_id(plan_id: Optional[str]) -> Optional[SubscriptionTier]:
    """Map a checkout plan ID to its tier, or None if unknown."""
    if not plan_id:
        return None
    return PLAN_ID_TO_TIER.get(plan_id)


# ---------------------------------------------------------------------------
# Regional price catalog
# ---------------------------------------------------------------------------

DEFAULT_REGION = "US"


@dataclass(frozen=True)
class RegionalPrice:
    """Price shown to and charged in one region."""

    amount_cents: int
    currency: str
    display: str


@dataclass(frozen=True)
class CatalogPlan:
    """A purchasable plan and its prices per region."""

    plan_id: str
    title: str
    duration: str
    features: tuple[str, ...]
    prices: dict[str, RegionalPrice] = field(default_factory=dict)
    is_highlighted: bool = False

    @property
    def tier(self) -> SubscriptionTier:
        """Tier granted by this plan."""
        return PLAN_ID_TO_TIER[self.plan_id]

    def price_for(self, region: Optional[str]) -> tuple[str, RegionalPrice]:
        """Price for *region*, falling back to the default region."""
        key = (region or DEFAULT_REGION).upper()
        if key not in self.prices:
            key = DEFAULT_REGION
        return key, self.prices[key]

    def price_key(self, region_key: str) -> str:
        """Key of this plan's provider price ID in ``STRIPE_PRICE_IDS``, e.g. ``monthly_us``."""
        return f"{self.plan_id}_{region_key.lower()}"


PLAN_CATALOG: tuple[CatalogPlan, ...] = (
    CatalogPlan(
        plan_id="monthly",
        title="Monthly Plan",
        duration="month",
        features=(
            "Basic access to all features",
            "24/7 Customer Support",
            "Single user license",
        ),
        prices={
            "US": RegionalPrice(999, "USD", "$9.99"),
            "IN": RegionalPrice(49900, "INR", "₹499"),
            "GB": RegionalPrice(799, "GBP", "£7.99"),
        },
    ),
    CatalogPlan(
        plan_id="yearly",
        title="Yearly Plan",
        duration="year",
        features=(
            "All Monthly Plan features",
            "Save 25% annually",
            "Priority support",
            "Advanced features",
        ),
        prices={
            "US": RegionalPrice(8999, "USD", "$89.99"),
            "IN": RegionalPrice(449900, "INR", "₹4,499"),
            "GB": RegionalPrice(6999, "GBP", "£69.99"),
        },
        is_highlighted=True,
    ),
    CatalogPlan(
        plan_id="family",
        title="Family Plan",
        duration="year",
        features=(
            "Up to 5 family members",
            "All Yearly Plan features",
            "Family dashboard",
            "Parental controls",
        ),
        prices={
            "US": RegionalPrice(14999, "USD", "$149.99"),
            "IN": RegionalPrice(749900, "INR", "₹7,499"),
            "GB": RegionalPrice(11999, "GBP", "£119.99"),
        },
    ),
)


def get_catalog_plan(plan_id: str) -> Optional[CatalogPlan]:
    """Look up a catalog plan by ID."""
    return next((p for p in PLAN_CATALOG if p.plan_id == plan_id), None)


# ---------------------------------------------------------------------------
# Webhook processing results
# ---------------------------------------------------------------------------


class WebhookStatus(str, Enum):
    """How a verified webhook delivery was handled."""

    APPLIED = "applied"
    DUPLICATE = "duplicate"
    IGNORED = "ignored"


@dataclass(frozen=True)
class WebhookResult:
    """Outcome of one webhook delivery. Every status is acknowledged with 200."""

    status: WebhookStatus
    event_id: str
    event_type: str
