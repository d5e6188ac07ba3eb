"""Async Stripe API wrapper for Billing Hub."""

import logging
from datetime import datetime, timezone

import stripe
from stripe import StripeClient

from billing_hub.config import settings

logger = logging.getLogger(__name__)


def get_stripe_client() -> StripeClient:
    """Create a StripeClient instance with async HTTP support."""
    return StripeClient(
        settings.stripe_secret_key,
        http_client=stripe.HTTPXClient(),
    )


def mask_id(value: str | None) -> str:
    """Shorten a Stripe identifier for log output."""
    if not value:
        return "<none>"
    return value[:10] + "..."


def ts_to_naive(ts: int | None) -> datetime | None:
    """Convert Stripe Unix timestamp to naive UTC datetime."""
    if ts is None:
        return None
    return datetime.fromtimestamp(ts, tz=timezone.utc).replace(tzinfo=None)


def get_first_item(stripe_sub: stripe.Subscription):
    """Get the first subscription item, using bracket notation to avoid
    collision with Python dict .items() in newer Stripe API versions.
    """
    sub_items = stripe_sub["items"]
    if sub_items and sub_items.data:
        return sub_items.data[0]
    return None


def get_price_id(stripe_sub: stripe.Subscription) -> str | None:
    """Extract the first price ID from a Stripe subscription's items."""
    item = get_first_item(stripe_sub)
    return item.price.id if item else None


def get_period(stripe_sub: stripe.Subscription) -> tuple[datetime | None, datetime | None]:
    """Extract current period start/end as naive UTC datetimes.

    In Stripe API 2025-08-27 (basil), current_period_start/end moved
    from the subscription object to the subscription item. Older API
    versions keep them on the subscription, which is used as fallback.
    """
    item = get_first_item(stripe_sub)
    start = getattr(item, "current_period_start", None) if item else None
    end = getattr(item, "current_period_end", None) if item else None
    if start is None:
        start = getattr(stripe_sub, "current_period_start", None)
    if end is None:
        end = getattr(stripe_sub, "current_period_end", None)
    return ts_to_naive(start), ts_to_naive(end)


async def get_subscription(subscription_id: str) -> stripe.Subscription:
    """Retrieve a Stripe subscription by ID."""
    client = get_stripe_client()
    return await client.v1.subscriptions.retrieve_async(subscription_id)


async def resume_subscription(
    subscription_id: str,
    payment_method_id: str,
    resubscribed_by: str,
) -> stripe.Subscription:
    """Clear a pending cancellation and set the default payment method.

    No charge is made; auto-renewal resumes at the end of the current period.
    """
    client = get_stripe_client()
    logger.info(
        "Resuming Stripe subscription %s with payment method %s",
        mask_id(subscription_id),
        mask_id(payment_method_id),
    )
    return await client.v1.subscriptions.update_async(
        subscription_id,
        params={
            "cancel_at_period_end": False,
            "default_payment_method": payment_method_id,
            "metadata": {
                "resubscribed_at": datetime.now(timezone.utc).isoformat(),
                "resubscribed_by": resubscribed_by,
            },
        },
    )


def construct_webhook_event(payload: bytes, sig_header: str) -> stripe.Event:
    """Verify and construct a Stripe webhook event (synchronous)."""
    client = get_stripe_client()
    return client.construct_event(payload, sig_header, settings.stripe_webhook_secret)
