"""Stripe webhook event handlers — keep local subscriptions in sync."""

import logging

import stripe
from sqlalchemy.ext.asyncio import AsyncSession

from billing_hub.billing.plans import get_plan_by_price_id
from billing_hub.billing.stripe_client import (
    get_period,
    get_price_id,
    get_subscription,
    mask_id,
)
from billing_hub.models.subscription import Subscription
from billing_hub.services.subscription_service import (
    get_subscription_by_stripe_customer,
    get_subscription_by_stripe_subscription,
    mark_expired,
    update_subscription_from_stripe,
)

logger = logging.getLogger(__name__)


def _resolve_plan_type(stripe_sub: stripe.Subscription, subscription: Subscription) -> str | None:
    """Plan type for the subscription's price, keeping the current one if unknown."""
    price_id = get_price_id(stripe_sub)
    plan_type = get_plan_by_price_id(price_id) if price_id else None
    if plan_type is None:
        return subscription.plan_type
    return plan_type.value


async def _sync(
    db: AsyncSession,
    subscription: Subscription,
    stripe_sub: stripe.Subscription,
    status: str,
) -> None:
    period_start, period_end = get_period(stripe_sub)
    await update_subscription_from_stripe(
        db,
        subscription=subscription,
        stripe_subscription_id=stripe_sub.id,
        plan_type=_resolve_plan_type(stripe_sub, subscription),
        status=status,
        current_period_start=period_start,
        current_period_end=period_end,
        cancel_at_period_end=stripe_sub.cancel_at_period_end or False,
    )


async def handle_invoice_paid(db: AsyncSession, event: stripe.Event) -> None:
    """Handle invoice.paid — confirm active status and roll the billing period."""
    invoice = event.data.object
    subscription_id = getattr(invoice, "subscription", None)

    if not subscription_id:
        logger.info("Invoice %s has no subscription (one-time), skipping", mask_id(invoice.id))
        return

    subscription = await get_subscription_by_stripe_subscription(db, subscription_id)
    if subscription is None:
        logger.warning(
            "No local subscription found for Stripe subscription %s (invoice %s)",
            mask_id(subscription_id),
            mask_id(invoice.id),
        )
        return

    # Fetch full subscription from Stripe to get current period
    stripe_sub = await get_subscription(subscription_id)
    await _sync(db, subscription, stripe_sub, status="active")
    logger.info("Invoice paid: subscription %s confirmed active", mask_id(subscription_id))


async def handle_subscription_updated(
    db: AsyncSession, event: stripe.Event
) -> None:
    """Handle customer.subscription.updated — sync plan, status, period, cancellation."""
    stripe_sub = event.data.object
    subscription_id = stripe_sub.id
    customer_id = stripe_sub.customer

    # Try lookup by subscription ID first, then by customer ID
    subscription = await get_subscription_by_stripe_subscription(db, subscription_id)
    if subscription is None:
        subscription = await get_subscription_by_stripe_customer(db, customer_id)

    if subscription is None:
        logger.warning(
            "No local subscription found for Stripe subscription %s (customer %s)",
            mask_id(subscription_id),
            mask_id(customer_id),
        )
        return

    await _sync(db, subscription, stripe_sub, status=stripe_sub.status)
    logger.info(
        "Subscription updated: %s → status=%s, cancel_at_period_end=%s",
        mask_id(subscription_id),
        stripe_sub.status,
        stripe_sub.cancel_at_period_end,
    )


async def handle_subscription_deleted(
    db: AsyncSession, event: stripe.Event
) -> None:
    """Handle customer.subscription.deleted — mark expired, keep the row."""
    stripe_sub = event.data.object
    subscription_id = stripe_sub.id

    subscription = await get_subscription_by_stripe_subscription(db, subscription_id)
    if subscription is None:
        logger.warning(
            "No local subscription found for Stripe subscription %s (delete event)",
            mask_id(subscription_id),
        )
        return

    await mark_expired(db, subscription)
    logger.info("Subscription deleted: %s marked expired", mask_id(subscription_id))


async def handle_invoice_payment_failed(
    db: AsyncSession, event: stripe.Event
) -> None:
    """Handle invoice.payment_failed — mark subscription as past_due."""
    invoice = event.data.object
    subscription_id = getattr(invoice, "subscription", None)

    if not subscription_id:
        logger.info(
            "Invoice %s has no subscription (one-time), skipping payment failure",
            mask_id(invoice.id),
        )
        return

    subscription = await get_subscription_by_stripe_subscription(db, subscription_id)
    if subscription is None:
        logger.warning(
            "No local subscription found for Stripe subscription %s (payment failed)",
            mask_id(subscription_id),
        )
        return

    subscription.status = "past_due"
    await db.flush()
    logger.info(
        "Payment failed: subscription %s marked as past_due",
        mask_id(subscription_id),
    )
