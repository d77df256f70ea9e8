"""Unit tests for UsageAdmissionController."""

import asyncio
from datetime import timedelta
from uuid import uuid4

import pytest

from genledger.db.fake_session import FakeSession
from genledger.domains.accounts.exceptions import AccountNotFoundError
from genledger.domains.accounts.tests.conftest import DEFAULT_ACCOUNT_ID, NOW, _make_account
from genledger.domains.credits.exceptions import InsufficientCreditError, LedgerUnavailableError
from genledger.domains.usage.exceptions import RateLimitExceededError
from genledger.domains.usage.tests.conftest import _make_controller
from genledger.domains.usage.types import Outcome, seconds_until_next_day
from genledger.schemas.usage_reservation import ReservationStatus


class GenerationFailed(Exception):
    pass


# ===========================================================================
# admit
# ===========================================================================


class TestAdmit:
    @pytest.mark.asyncio
    async def test_admit_takes_slot_and_credit(self, db):
        ctrl, ar, rr = _make_controller()
        account = _make_account(credit_balance=5)
        ar.seed(account)

        reservation = await ctrl.admit(db, DEFAULT_ACCOUNT_ID, at=NOW)

        assert account.credit_balance == 4
        assert account.daily_usage_count == 1
        assert account.daily_usage_window_start == NOW.date()
        assert reservation.amount == 1
        assert rr.status_of(reservation.id) == ReservationStatus.RESERVED

    @pytest.mark.asyncio
    async def test_daily_limit_refuses_without_touching_credits(self, db):
        ctrl, ar, _ = _make_controller()
        account = _make_account(credit_balance=10, daily_limit=2)
        ar.seed(account)

        await ctrl.admit(db, DEFAULT_ACCOUNT_ID, at=NOW)
        await ctrl.admit(db, DEFAULT_ACCOUNT_ID, at=NOW)
        with pytest.raises(RateLimitExceededError) as exc_info:
            await ctrl.admit(db, DEFAULT_ACCOUNT_ID, at=NOW)

        assert exc_info.value.limit == 2
        assert exc_info.value.remaining == 0
        # NOW is 12:00 UTC
        assert exc_info.value.retry_after == 12 * 3600
        assert account.credit_balance == 8
        assert account.daily_usage_count == 2

    @pytest.mark.asyncio
    async def test_window_resets_next_day(self, db):
        ctrl, ar, _ = _make_controller()
        account = _make_account(daily_limit=1)
        ar.seed(account)

        await ctrl.admit(db, DEFAULT_ACCOUNT_ID, at=NOW)
        with pytest.raises(RateLimitExceededError):
            await ctrl.admit(db, DEFAULT_ACCOUNT_ID, at=NOW + timedelta(hours=1))
        await ctrl.admit(db, DEFAULT_ACCOUNT_ID, at=NOW + timedelta(days=1))

        assert account.daily_usage_count == 1
        assert account.daily_usage_window_start == (NOW + timedelta(days=1)).date()

    @pytest.mark.asyncio
    async def test_insufficient_credit_releases_slot(self, db):
        ctrl, ar, rr = _make_controller()
        account = _make_account(credit_balance=0, daily_limit=1)
        ar.seed(account)

        with pytest.raises(InsufficientCreditError):
            await ctrl.admit(db, DEFAULT_ACCOUNT_ID, at=NOW)

        assert account.daily_usage_count == 0
        assert account.daily_usage_window_start is None
        assert rr.call_count("create") == 0

        account.credit_balance = 1
        await ctrl.admit(db, DEFAULT_ACCOUNT_ID, at=NOW)
        assert account.daily_usage_count == 1

    @pytest.mark.asyncio
    async def test_zero_daily_limit_always_refused(self, db):
        ctrl, ar, _ = _make_controller()
        ar.seed(_make_account(daily_limit=0))

        with pytest.raises(RateLimitExceededError):
            await ctrl.admit(db, DEFAULT_ACCOUNT_ID, at=NOW)

    @pytest.mark.asyncio
    async def test_unknown_account(self, db):
        ctrl, _, _ = _make_controller()

        with pytest.raises(AccountNotFoundError):
            await ctrl.admit(db, uuid4(), at=NOW)

    @pytest.mark.asyncio
    async def test_deactivated_account(self, db):
        ctrl, ar, _ = _make_controller()
        ar.seed(_make_account(is_active=False))

        with pytest.raises(AccountNotFoundError):
            await ctrl.admit(db, DEFAULT_ACCOUNT_ID, at=NOW)

    @pytest.mark.asyncio
    async def test_store_failure(self, db):
        ctrl, ar, _ = _make_controller()
        account = _make_account()
        ar.seed(account)
        ar.fail_with(ConnectionResetError("db gone"))

        with pytest.raises(LedgerUnavailableError):
            await ctrl.admit(db, DEFAULT_ACCOUNT_ID, at=NOW)

        assert account.credit_balance == 100
        assert account.daily_usage_count == 0

    @pytest.mark.asyncio
    async def test_concurrent_admits_respect_balance(self):
        ctrl, ar, _ = _make_controller()
        account = _make_account(credit_balance=1)
        ar.seed(account)

        results = await asyncio.gather(
            ctrl.admit(FakeSession(), DEFAULT_ACCOUNT_ID, at=NOW),
            ctrl.admit(FakeSession(), DEFAULT_ACCOUNT_ID, at=NOW),
            return_exceptions=True,
        )

        refused = [r for r in results if isinstance(r, InsufficientCreditError)]
        assert len(refused) == 1
        assert account.credit_balance == 0
        assert account.daily_usage_count == 1


# ===========================================================================
# settle / metered
# ===========================================================================


class TestSettle:
    @pytest.mark.asyncio
    async def test_success_keeps_credit_spent(self, db):
        ctrl, ar, rr = _make_controller()
        account = _make_account(credit_balance=5)
        ar.seed(account)

        reservation = await ctrl.admit(db, DEFAULT_ACCOUNT_ID, at=NOW)
        assert await ctrl.settle(db, reservation, Outcome.SUCCESS, at=NOW) is True

        assert account.credit_balance == 4
        assert account.images_generated == 1
        assert rr.status_of(reservation.id) == ReservationStatus.COMMITTED

    @pytest.mark.asyncio
    async def test_failure_returns_credit(self, db):
        ctrl, ar, rr = _make_controller()
        account = _make_account(credit_balance=5)
        ar.seed(account)

        reservation = await ctrl.admit(db, DEFAULT_ACCOUNT_ID, at=NOW)
        assert account.credit_balance == 4
        assert await ctrl.settle(db, reservation, Outcome.FAILURE, at=NOW) is True

        assert account.credit_balance == 5
        assert account.images_generated == 0
        assert rr.status_of(reservation.id) == ReservationStatus.REFUNDED

    @pytest.mark.asyncio
    async def test_second_settle_is_noop(self, db):
        ctrl, ar, _ = _make_controller()
        account = _make_account(credit_balance=5)
        ar.seed(account)

        reservation = await ctrl.admit(db, DEFAULT_ACCOUNT_ID, at=NOW)
        await ctrl.settle(db, reservation, Outcome.FAILURE, at=NOW)

        assert await ctrl.settle(db, reservation, Outcome.FAILURE, at=NOW) is False
        assert await ctrl.settle(db, reservation, Outcome.SUCCESS, at=NOW) is False
        assert account.credit_balance == 5


class TestMetered:
    @pytest.mark.asyncio
    async def test_block_success_commits(self, db):
        ctrl, ar, rr = _make_controller()
        account = _make_account(credit_balance=3)
        ar.seed(account)

        async with ctrl.metered(db, DEFAULT_ACCOUNT_ID) as reservation:
            assert account.credit_balance == 2

        assert account.credit_balance == 2
        assert rr.status_of(reservation.id) == ReservationStatus.COMMITTED

    @pytest.mark.asyncio
    async def test_block_failure_refunds_and_propagates(self, db):
        ctrl, ar, rr = _make_controller()
        account = _make_account(credit_balance=3)
        ar.seed(account)

        with pytest.raises(GenerationFailed):
            async with ctrl.metered(db, DEFAULT_ACCOUNT_ID) as reservation:
                raise GenerationFailed("provider timeout")

        assert account.credit_balance == 3
        assert rr.status_of(reservation.id) == ReservationStatus.REFUNDED


def test_seconds_until_next_day():
    assert seconds_until_next_day(NOW) == 12 * 3600
    assert seconds_until_next_day(NOW.replace(hour=23, minute=59, second=59, microsecond=999)) == 1
