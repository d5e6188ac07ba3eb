"""Tests for subscription service — lookups and state changes (pure DB, no HTTP)."""

from datetime import datetime

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from billing_hub.billing.periods import resolve_billing_period_text
from billing_hub.services.subscription_service import (
    apply_resubscription,
    get_owned_subscription,
    get_subscription_by_stripe_customer,
    get_subscription_by_stripe_subscription,
    get_user_subscription,
    list_payment_methods,
    mark_expired,
    update_subscription_from_stripe,
)
from conftest import create_payment_method, create_subscription, create_user


class TestLookups:
    @pytest.mark.asyncio
    async def test_get_user_subscription(self, db_session: AsyncSession):
        user = await create_user(db_session)
        subscription = await create_subscription(db_session, user)

        result = await get_user_subscription(db_session, user)
        assert result is not None
        assert result.id == subscription.id

    @pytest.mark.asyncio
    async def test_get_user_subscription_none(self, db_session: AsyncSession):
        user = await create_user(db_session)
        assert await get_user_subscription(db_session, user) is None

    @pytest.mark.asyncio
    async def test_owned_subscription_requires_both_ids(self, db_session: AsyncSession):
        owner = await create_user(db_session)
        other = await create_user(db_session)
        await create_subscription(db_session, owner, stripe_subscription_id="sub_owned")

        assert await get_owned_subscription(db_session, owner.id, "sub_owned") is not None
        assert await get_owned_subscription(db_session, other.id, "sub_owned") is None
        assert await get_owned_subscription(db_session, owner.id, "sub_other") is None

    @pytest.mark.asyncio
    async def test_lookup_by_stripe_ids(self, db_session: AsyncSession):
        user = await create_user(db_session)
        subscription = await create_subscription(
            db_session,
            user,
            stripe_subscription_id="sub_lookup_1",
            stripe_customer_id="cus_lookup_1",
        )

        by_sub = await get_subscription_by_stripe_subscription(db_session, "sub_lookup_1")
        by_cus = await get_subscription_by_stripe_customer(db_session, "cus_lookup_1")
        assert by_sub.id == subscription.id
        assert by_cus.id == subscription.id
        assert await get_subscription_by_stripe_subscription(db_session, "sub_missing") is None

    @pytest.mark.asyncio
    async def test_list_payment_methods_default_first(self, db_session: AsyncSession):
        user = await create_user(db_session)
        await create_payment_method(db_session, user, "pm_a")
        await create_payment_method(db_session, user, "pm_b", is_default=True)
        other = await create_user(db_session)
        await create_payment_method(db_session, other, "pm_other")

        methods = await list_payment_methods(db_session, user)
        assert [m.stripe_payment_method_id for m in methods][0] == "pm_b"
        assert {m.stripe_payment_method_id for m in methods} == {"pm_a", "pm_b"}


class TestUpdateSubscriptionFromStripe:
    @pytest.mark.asyncio
    async def test_update_plan_status_period(self, db_session: AsyncSession):
        user = await create_user(db_session)
        subscription = await create_subscription(db_session, user, plan_type="trial", status="trialing")

        period_start = datetime(2026, 2, 1)
        period_end = datetime(2026, 3, 1)
        updated = await update_subscription_from_stripe(
            db_session,
            subscription=subscription,
            stripe_subscription_id="sub_test_456",
            plan_type="monthly",
            status="active",
            current_period_start=period_start,
            current_period_end=period_end,
            cancel_at_period_end=True,
        )

        assert updated.stripe_subscription_id == "sub_test_456"
        assert updated.plan_type == "monthly"
        assert updated.status == "active"
        assert updated.current_period_start == period_start
        assert updated.current_period_end == period_end
        assert updated.cancel_at_period_end is True

    @pytest.mark.asyncio
    async def test_period_change_clears_stored_text(self, db_session: AsyncSession):
        user = await create_user(db_session)
        subscription = await create_subscription(
            db_session,
            user,
            current_period_start=datetime(2024, 1, 1),
            current_period_end=datetime(2024, 2, 1),
            billing_period_text="Jan 1 – Feb 1",
            billing_period_accurate=True,
        )

        await update_subscription_from_stripe(
            db_session,
            subscription=subscription,
            stripe_subscription_id="sub_roll",
            plan_type="monthly",
            status="active",
            current_period_start=datetime(2024, 2, 1),
            current_period_end=datetime(2024, 3, 1),
        )
        assert subscription.billing_period_text is None
        assert subscription.billing_period_accurate is None

    @pytest.mark.asyncio
    async def test_same_period_keeps_stored_text(self, db_session: AsyncSession):
        user = await create_user(db_session)
        subscription = await create_subscription(
            db_session,
            user,
            current_period_start=datetime(2024, 1, 1),
            current_period_end=datetime(2024, 2, 1),
            billing_period_text="Jan 1 – Feb 1",
        )

        await update_subscription_from_stripe(
            db_session,
            subscription=subscription,
            stripe_subscription_id="sub_same",
            plan_type="monthly",
            status="active",
            current_period_start=datetime(2024, 1, 1),
            current_period_end=datetime(2024, 2, 1),
            cancel_at_period_end=True,
        )
        assert subscription.billing_period_text == "Jan 1 – Feb 1"


class TestStatusTransitions:
    @pytest.mark.asyncio
    async def test_mark_expired_keeps_row(self, db_session: AsyncSession):
        user = await create_user(db_session)
        subscription = await create_subscription(
            db_session, user, stripe_subscription_id="sub_gone", cancel_at_period_end=True
        )

        await mark_expired(db_session, subscription)

        result = await get_subscription_by_stripe_subscription(db_session, "sub_gone")
        assert result is not None
        assert result.status == "expired"
        assert result.cancel_at_period_end is False

    @pytest.mark.asyncio
    async def test_apply_resubscription(self, db_session: AsyncSession):
        user = await create_user(db_session)
        subscription = await create_subscription(
            db_session,
            user,
            status="canceled",
            stripe_subscription_id="sub_back",
            current_period_start=datetime(2024, 1, 1),
            current_period_end=datetime(2024, 2, 1),
            cancel_at_period_end=True,
        )
        card = await create_payment_method(db_session, user, "pm_back")

        await apply_resubscription(
            db_session,
            subscription,
            payment_method_id="pm_back",
            current_period_end=datetime(2024, 2, 2),
        )

        assert subscription.status == "active"
        assert subscription.cancel_at_period_end is False
        assert subscription.default_payment_method_id == "pm_back"
        assert subscription.current_period_end == datetime(2024, 2, 2)
        await db_session.refresh(card)
        assert card.is_default is True

    @pytest.mark.asyncio
    async def test_apply_resubscription_new_period_end_clears_stored_text(
        self, db_session: AsyncSession
    ):
        user = await create_user(db_session)
        subscription = await create_subscription(
            db_session,
            user,
            stripe_subscription_id="sub_moved",
            current_period_start=datetime(2024, 1, 1),
            current_period_end=datetime(2024, 2, 1),
            cancel_at_period_end=True,
            billing_period_text="Monthly billing (renews Feb 1, 2024)",
            billing_period_accurate=True,
        )
        await create_payment_method(db_session, user, "pm_moved")

        await apply_resubscription(
            db_session,
            subscription,
            payment_method_id="pm_moved",
            current_period_end=datetime(2024, 3, 1),
        )

        assert subscription.billing_period_text is None
        assert subscription.billing_period_accurate is None
        assert resolve_billing_period_text(subscription) == "Monthly billing (renews Mar 1, 2024)"

    @pytest.mark.asyncio
    async def test_apply_resubscription_same_period_keeps_stored_text(
        self, db_session: AsyncSession
    ):
        user = await create_user(db_session)
        subscription = await create_subscription(
            db_session,
            user,
            stripe_subscription_id="sub_same",
            current_period_start=datetime(2024, 1, 1),
            current_period_end=datetime(2024, 2, 1),
            cancel_at_period_end=True,
            billing_period_text="Renews Feb 1",
        )
        await create_payment_method(db_session, user, "pm_same")

        await apply_resubscription(
            db_session,
            subscription,
            payment_method_id="pm_same",
            current_period_end=datetime(2024, 2, 1),
        )

        assert subscription.billing_period_text == "Renews Feb 1"


class TestPeriodOrder:
    @pytest.mark.parametrize(
        ("start", "end"),
        [
            (datetime(2024, 2, 1), datetime(2024, 1, 1)),
            (datetime(2024, 1, 1), datetime(2024, 1, 1)),
        ],
    )
    @pytest.mark.asyncio
    async def test_end_must_follow_start(self, db_session: AsyncSession, start, end):
        user = await create_user(db_session)
        with pytest.raises(IntegrityError):
            await create_subscription(
                db_session,
                user,
                current_period_start=start,
                current_period_end=end,
            )
        await db_session.rollback()

    @pytest.mark.asyncio
    async def test_valid_period(self, db_session: AsyncSession):
        user = await create_user(db_session)
        subscription = await create_subscription(
            db_session,
            user,
            current_period_start=datetime(2024, 1, 1),
            current_period_end=datetime(2024, 2, 1),
        )
        assert subscription.has_valid_period is True

        open_ended = await create_subscription(
            db_session, await create_user(db_session), current_period_start=datetime(2024, 1, 1)
        )
        assert open_ended.has_valid_period is False
