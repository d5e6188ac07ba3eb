"""Subscription service — lookups and state changes for user subscriptions."""

import logging
import uuid
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from billing_hub.models.payment_method import PaymentMethod
from billing_hub.models.subscription import Subscription
from billing_hub.models.user import User

logger = logging.getLogger(__name__)


async def get_user_subscription(db: AsyncSession, user: User) -> Subscription | None:
    """Return the user's subscription, or None if they never checked out."""
    result = await db.execute(
        select(Subscription)
        .where(Subscription.user_id == user.id)
        .order_by(Subscription.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def get_owned_subscription(
    db: AsyncSession, user_id: uuid.UUID, stripe_subscription_id: str
) -> Subscription | None:
    """Look up a subscription only if it belongs to the given user."""
    result = await db.execute(
        select(Subscription).where(
            Subscription.user_id == user_id,
            Subscription.stripe_subscription_id == stripe_subscription_id,
        )
    )
    return result.scalar_one_or_none()


async def get_subscription_by_stripe_customer(
    db: AsyncSession, stripe_customer_id: str
) -> Subscription | None:
    """Look up subscription by Stripe customer ID (used by webhooks)."""
    result = await db.execute(
        select(Subscription).where(
            Subscription.stripe_customer_id == stripe_customer_id
        )
    )
    return result.scalar_one_or_none()


async def get_subscription_by_stripe_subscription(
    db: AsyncSession, stripe_subscription_id: str
) -> Subscription | None:
    """Look up subscription by Stripe subscription ID (used by webhooks)."""
    result = await db.execute(
        select(Subscription).where(
            Subscription.stripe_subscription_id == stripe_subscription_id
        )
    )
    return result.scalar_one_or_none()


async def list_payment_methods(db: AsyncSession, user: User) -> list[PaymentMethod]:
    """Saved payment methods for the user, default first."""
    result = await db.execute(
        select(PaymentMethod)
        .where(PaymentMethod.user_id == user.id)
        .order_by(PaymentMethod.is_default.desc(), PaymentMethod.created_at)
    )
    return list(result.scalars().all())


async def update_subscription_from_stripe(
    db: AsyncSession,
    subscription: Subscription,
    stripe_subscription_id: str,
    plan_type: str | None,
    status: str,
    current_period_start: datetime | None = None,
    current_period_end: datetime | None = None,
    cancel_at_period_end: bool = False,
) -> Subscription:
    """Update local subscription record from Stripe webhook data.

    A changed billing period invalidates any stored billing-period text.
    """
    period_changed = (
        subscription.current_period_start != current_period_start
        or subscription.current_period_end != current_period_end
        or subscription.plan_type != plan_type
    )

    subscription.stripe_subscription_id = stripe_subscription_id
    subscription.plan_type = plan_type
    subscription.status = status
    subscription.current_period_start = current_period_start
    subscription.current_period_end = current_period_end
    subscription.cancel_at_period_end = cancel_at_period_end
    if period_changed:
        subscription.billing_period_text = None
        subscription.billing_period_accurate = None
    await db.flush()

    logger.info(
        "Updated subscription %s: plan_type=%s, status=%s, cancel_at_period_end=%s",
        subscription.id,
        plan_type,
        status,
        cancel_at_period_end,
    )
    return subscription


async def mark_expired(db: AsyncSession, subscription: Subscription) -> Subscription:
    """Move a subscription to ``expired`` (called when Stripe deletes it)."""
    subscription.status = "expired"
    subscription.cancel_at_period_end = False
    await db.flush()

    logger.info(
        "Subscription %s (user %s) expired",
        subscription.id,
        subscription.user_id,
    )
    return subscription


async def apply_resubscription(
    db: AsyncSession,
    subscription: Subscription,
    payment_method_id: str,
    current_period_end: datetime | None = None,
) -> Subscription:
    """Persist a resubscription in a single transaction.

    Clears the pending cancellation, reactivates the subscription, records
    the new default payment method and flips ``is_default`` on the user's
    saved cards to match. A moved period end drops the stored
    billing-period text. Commits; the caller handles rollback on error.
    """
    values: dict = {
        "cancel_at_period_end": False,
        "status": "active",
        "default_payment_method_id": payment_method_id,
    }
    if current_period_end is not None:
        values["current_period_end"] = current_period_end
        if current_period_end != subscription.current_period_end:
            # Stored text names the old renewal date
            values["billing_period_text"] = None
            values["billing_period_accurate"] = None

    await db.execute(
        update(Subscription).where(Subscription.id == subscription.id).values(**values)
    )
    await db.execute(
        update(PaymentMethod)
        .where(
            PaymentMethod.user_id == subscription.user_id,
            PaymentMethod.stripe_payment_method_id != payment_method_id,
        )
        .values(is_default=False)
    )
    await db.execute(
        update(PaymentMethod)
        .where(
            PaymentMethod.user_id == subscription.user_id,
            PaymentMethod.stripe_payment_method_id == payment_method_id,
        )
        .values(is_default=True)
    )
    await db.commit()
    await db.refresh(subscription)

    logger.info("Subscription %s resubscribed (status=active)", subscription.id)
    return subscription
