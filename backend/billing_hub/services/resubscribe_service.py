"""Resubscribe service — undo a pending cancellation.

The sequence is authenticate, check ownership, update Stripe, then persist
locally. Stripe is updated first and is not rolled back if the local write
fails; the Stripe call is idempotent, so a retry converges.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

import stripe
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from billing_hub.billing.stripe_client import get_period, mask_id, resume_subscription
from billing_hub.models.user import User
from billing_hub.services.subscription_service import (
    apply_resubscription,
    get_owned_subscription,
)

logger = logging.getLogger(__name__)

RESUBSCRIBE_SUCCESS_MESSAGE = (
    "Resubscription successful. Auto-renewal will activate at the end of "
    "your current billing period."
)


class ResubscribeError(Exception):
    """Base class for resubscribe failures. ``str(err)`` is user-facing."""


class AuthenticationError(ResubscribeError):
    """No authenticated caller."""


class SubscriptionNotFoundError(ResubscribeError):
    """Subscription missing or owned by someone else."""


class PaymentProviderError(ResubscribeError):
    """Stripe rejected the update."""


class PersistenceError(ResubscribeError):
    """Stripe was updated but the local write failed."""


@dataclass(frozen=True)
class ResubscribeResult:
    """Provider-side state after a successful resubscription."""

    subscription_id: str
    cancel_at_period_end: bool
    current_period_end: datetime | None
    message: str = RESUBSCRIBE_SUCCESS_MESSAGE


async def resubscribe(
    db: AsyncSession,
    user: User | None,
    subscription_id: str,
    payment_method_id: str,
) -> ResubscribeResult:
    """Clear the pending cancellation on ``subscription_id`` for ``user``.

    Args:
        db: Database session.
        user: Authenticated caller, or None.
        subscription_id: Stripe subscription ID.
        payment_method_id: Stripe payment method to bill from now on.

    Raises:
        AuthenticationError: No caller.
        SubscriptionNotFoundError: Not found or not owned; Stripe is not called.
        PaymentProviderError: Stripe update failed.
        PersistenceError: Local update failed after Stripe succeeded.
    """
    if user is None:
        raise AuthenticationError("Unauthorized")

    logger.info(
        "Processing resubscription: user=%s subscription=%s payment_method=%s",
        user.id,
        mask_id(subscription_id),
        mask_id(payment_method_id),
    )

    subscription = await get_owned_subscription(db, user.id, subscription_id)
    if subscription is None:
        logger.warning(
            "Resubscribe rejected: subscription %s not owned by user %s",
            mask_id(subscription_id),
            user.id,
        )
        raise SubscriptionNotFoundError("Subscription not found or access denied")

    try:
        stripe_sub = await resume_subscription(
            subscription_id,
            payment_method_id,
            resubscribed_by=str(user.id),
        )
    except stripe.StripeError as e:
        logger.error("Stripe resubscribe error for %s: %s", mask_id(subscription_id), e)
        raise PaymentProviderError(e.user_message or str(e)) from e

    _, period_end = get_period(stripe_sub)
    cancel_at_period_end = bool(stripe_sub.cancel_at_period_end)
    logger.info(
        "Stripe subscription updated: %s cancel_at_period_end=%s status=%s period_end=%s",
        mask_id(stripe_sub.id),
        cancel_at_period_end,
        stripe_sub.status,
        period_end,
    )

    try:
        await apply_resubscription(
            db,
            subscription,
            payment_method_id=payment_method_id,
            current_period_end=period_end,
        )
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Database update failed after Stripe resubscribe of %s", subscription.id)
        raise PersistenceError(f"Failed to update subscription in database: {e}") from e

    logger.info("Resubscription completed for subscription %s", subscription.id)
    return ResubscribeResult(
        subscription_id=stripe_sub.id,
        cancel_at_period_end=cancel_at_period_end,
        current_period_end=period_end,
    )
