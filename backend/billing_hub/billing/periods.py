"""Billing-period display text for a subscription.

The billing page shows a stored, precomputed ``billing_period_text`` when
one exists and has not been flagged inaccurate. Otherwise the text is
rebuilt from the period boundaries and the plan type, e.g.::

    Monthly billing (renews Feb 1, 2024)
    Jan 1, 2024 – Jul 1, 2024 (6-month plan)
"""

from dataclasses import dataclass
from datetime import date

from billing_hub.billing.plans import PlanType
from billing_hub.models.subscription import Subscription

NOT_AVAILABLE = "N/A"

_RANGE_SUFFIXES: dict[PlanType, str] = {
    PlanType.TRIAL: "30-day trial",
    PlanType.SEMIANNUAL: "6-month plan",
    PlanType.ANNUAL: "1-year plan",
}


@dataclass(frozen=True)
class BillingPeriodInfo:
    """Display text plus whether it can be trusted."""

    text: str
    accurate: bool


def format_billing_date(value: date) -> str:
    """Format a date (or datetime) as ``Feb 1, 2024``."""
    return f"{value:%b} {value.day}, {value.year}"


def fallback_billing_period_text(subscription: Subscription | None) -> str:
    """Build the billing-period text from boundaries and plan type."""
    if subscription is None or not subscription.has_valid_period:
        return NOT_AVAILABLE
    start, end = subscription.current_period_start, subscription.current_period_end

    start_text = format_billing_date(start)
    end_text = format_billing_date(end)
    plan_type = PlanType.parse(subscription.plan_type)

    if plan_type is PlanType.MONTHLY:
        return f"Monthly billing (renews {end_text})"
    suffix = _RANGE_SUFFIXES.get(plan_type)
    if suffix is None:
        return f"{start_text} – {end_text}"
    return f"{start_text} – {end_text} ({suffix})"


def resolve_billing_period_text(subscription: Subscription | None) -> str:
    """Return the billing-period text shown on the billing page.

    Without a complete period the result is always ``N/A``. Otherwise stored
    text wins unless ``billing_period_accurate`` is explicitly False; ``None``
    counts as accurate.
    """
    if subscription is None or not subscription.has_valid_period:
        return NOT_AVAILABLE
    if subscription.billing_period_text and subscription.billing_period_accurate is not False:
        return subscription.billing_period_text
    return fallback_billing_period_text(subscription)


def describe_billing_period(subscription: Subscription | None) -> BillingPeriodInfo:
    """Return the billing-period text together with its accuracy flag.

    Without stored text the computed fallback is used and reported as
    inaccurate, so the UI can show a "may be inaccurate" hint.
    """
    if subscription is None or not subscription.has_valid_period:
        return BillingPeriodInfo(text=NOT_AVAILABLE, accurate=False)

    if not subscription.billing_period_text:
        return BillingPeriodInfo(
            text=fallback_billing_period_text(subscription),
            accurate=False,
        )

    accurate = subscription.billing_period_accurate is not False
    return BillingPeriodInfo(text=resolve_billing_period_text(subscription), accurate=accurate)


def next_billing_text(subscription: Subscription | None) -> str:
    """Date the current period ends (renewal or access cutoff)."""
    if subscription is None or subscription.current_period_end is None:
        return NOT_AVAILABLE
    return format_billing_date(subscription.current_period_end)
