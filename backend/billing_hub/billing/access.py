"""Access decisions — who can use what, and which screen they see.

``check_subscription_access`` turns a subscription row into an
``AccessDecision``. ``resolve_gate`` maps that decision to one of the
presentation states the front end renders:

- ``LOADING``: decision not fetched yet
- ``UPGRADE_REQUIRED``: a required feature is missing on an expired plan
- ``TRIAL_WARNING``: banner over normal content, trial ends within a week
- ``EXPIRED``: no access, subscription has ended
- ``CONTENT``: everything else, including cancelled-but-still-active
  subscriptions (cancellation is only surfaced on the billing page)
"""

import enum
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone

from billing_hub.billing.plans import ALL_FEATURES, PlanType, get_plan
from billing_hub.config import settings
from billing_hub.models.subscription import Subscription

ACCESS_STATUSES = frozenset({"trialing", "active", "past_due"})
TERMINAL_STATUSES = frozenset({"canceled", "cancelled", "expired", "unpaid", "incomplete_expired"})

_SECONDS_PER_DAY = 86400


class GateState(str, enum.Enum):
    """Presentation state selected by the access gate."""

    LOADING = "loading"
    UPGRADE_REQUIRED = "upgrade_required"
    TRIAL_WARNING = "trial_warning"
    EXPIRED = "expired"
    CONTENT = "content"


@dataclass(frozen=True)
class AccessDecision:
    """Derived access state for one subscription. Never persisted."""

    has_access: bool
    is_expired: bool
    is_cancelled: bool
    days_remaining: int | None
    plan_type: PlanType | None = None
    features: dict[str, bool] = field(default_factory=dict)

    def has_feature(self, feature: str) -> bool:
        return self.features.get(feature, False)


@dataclass(frozen=True)
class GateView:
    """What to render for a gate state."""

    state: GateState
    title: str | None = None
    message: str | None = None
    action_label: str | None = None
    action_url: str | None = None

    @property
    def shows_content(self) -> bool:
        """Whether the protected content is rendered (alone or under a banner)."""
        return self.state in (GateState.CONTENT, GateState.TRIAL_WARNING)


def _utcnow() -> datetime:
    """Current time as naive UTC, matching the DB columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _days_until(end: datetime, now: datetime) -> int:
    remaining = (end - now).total_seconds()
    if remaining <= 0:
        return 0
    return math.ceil(remaining / _SECONDS_PER_DAY)


def check_subscription_access(
    subscription: Subscription | None,
    now: datetime | None = None,
) -> AccessDecision:
    """Compute the access decision for a subscription (None = no subscription)."""
    if subscription is None:
        return AccessDecision(
            has_access=False,
            is_expired=True,
            is_cancelled=False,
            days_remaining=0,
            features={feature: False for feature in ALL_FEATURES},
        )

    now = now or _utcnow()
    period_end = subscription.current_period_end

    period_over = period_end is not None and period_end <= now
    is_expired = period_over or subscription.status in TERMINAL_STATUSES
    has_access = subscription.status in ACCESS_STATUSES and not is_expired
    is_cancelled = bool(subscription.cancel_at_period_end) or subscription.status in (
        "canceled",
        "cancelled",
    )
    days_remaining = _days_until(period_end, now) if period_end is not None else None

    plan_type = PlanType.parse(subscription.plan_type)
    plan = get_plan(plan_type)
    included = plan.features if plan is not None else frozenset()
    features = {feature: has_access and feature in included for feature in ALL_FEATURES}

    return AccessDecision(
        has_access=has_access,
        is_expired=is_expired,
        is_cancelled=is_cancelled,
        days_remaining=days_remaining,
        plan_type=plan_type,
        features=features,
    )


def _trial_warning(days_remaining: int) -> GateView:
    if days_remaining == 0:
        when = "today"
    elif days_remaining == 1:
        when = "in 1 day"
    else:
        when = f"in {days_remaining} days"
    return GateView(
        state=GateState.TRIAL_WARNING,
        title="Trial ending soon",
        message=f"Your free trial ends {when}. Upgrade to keep full access.",
        action_label="Upgrade Now",
        action_url=settings.upgrade_path,
    )


def upgrade_required_view() -> GateView:
    return GateView(
        state=GateState.UPGRADE_REQUIRED,
        title="Upgrade Required",
        message="This feature requires an active subscription. Upgrade to unlock it.",
        action_label="Upgrade Now",
        action_url=settings.upgrade_path,
    )


def resolve_gate(
    decision: AccessDecision | None,
    required_feature: str | None = None,
    loading: bool = False,
    warning_days: int | None = None,
) -> GateView:
    """Pick the presentation state for a decision. First matching rule wins."""
    if loading or decision is None:
        return GateView(state=GateState.LOADING)

    if warning_days is None:
        warning_days = settings.trial_warning_days

    if required_feature and not decision.has_feature(required_feature) and decision.is_expired:
        return upgrade_required_view()

    if (
        decision.plan_type is PlanType.TRIAL
        and decision.has_access
        and decision.days_remaining is not None
        and decision.days_remaining <= warning_days
        and not decision.is_cancelled
    ):
        return _trial_warning(decision.days_remaining)

    if not decision.has_access and decision.is_expired:
        return GateView(
            state=GateState.EXPIRED,
            title="Subscription Expired",
            message="Your subscription has ended. Subscribe again to regain access.",
            action_label="Subscribe Again",
            action_url=settings.upgrade_path,
        )

    return GateView(state=GateState.CONTENT)
