"""Accounts domain test fixtures and helpers.

``_make_account`` is shared by the credits, billing and usage tests.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from uuid import UUID

from genledger.domains.accounts.fakes.repository import FakeAccountRepository
from genledger.domains.accounts.service import AccountService
from genledger.models.account import Account
from genledger.schemas.account import SubscriptionTier

# Default test IDs
DEFAULT_ACCOUNT_ID = UUID("00000000-0000-0000-0000-000000000001")
OTHER_ACCOUNT_ID = UUID("00000000-0000-0000-0000-000000000002")

NOW = datetime(2026, 3, 14, 12, 0, tzinfo=timezone.utc)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_account(
    account_id: UUID = DEFAULT_ACCOUNT_ID, *, at: datetime = NOW, **overrides: Any
) -> Account:
    """Return an Account ORM model with sensible defaults (free tier, 100 credits)."""
    defaults = dict(
        id=account_id,
        created_at=at,
        modified_at=at,
        email=f"user-{account_id.hex[:8]}@example.com",
        is_active=True,
        credit_balance=100,
        images_generated=0,
        daily_limit=100,
        daily_usage_count=0,
        daily_usage_window_start=None,
        tier=SubscriptionTier.FREE.value,
        subscription_active=True,
        valid_until=at + timedelta(days=180),
        subscription_started_at=at,
        external_customer_ref=None,
    )
    defaults.update(overrides)
    return Account(**defaults)


def _make_service(
    *, account_repo: Optional[FakeAccountRepository] = None
) -> tuple[AccountService, FakeAccountRepository]:
    """Build an AccountService wired to fakes. Returns (service, repo)."""
    repo = account_repo or FakeAccountRepository()
    return AccountService(account_repo=repo), repo
