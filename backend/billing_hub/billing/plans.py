"""Plan definitions — billing cadences, pricing, and feature sets."""

import enum
from dataclasses import dataclass

from billing_hub.config import settings


class PlanType(str, enum.Enum):
    """Billing cadences a subscription can be on."""

    TRIAL = "trial"
    MONTHLY = "monthly"
    SEMIANNUAL = "semiannual"
    ANNUAL = "annual"

    @classmethod
    def parse(cls, value: "str | PlanType | None") -> "PlanType | None":
        """Return the matching plan type, or None for missing/unknown values."""
        if value is None:
            return None
        try:
            return cls(value)
        except ValueError:
            return None


# Feature keys checked by the access gate
FEATURE_CORE = "core"
FEATURE_ADVANCED_ANALYTICS = "advanced_analytics"
FEATURE_EXPORT = "export"
FEATURE_PRIORITY_SUPPORT = "priority_support"

ALL_FEATURES: tuple[str, ...] = (
    FEATURE_CORE,
    FEATURE_ADVANCED_ANALYTICS,
    FEATURE_EXPORT,
    FEATURE_PRIORITY_SUPPORT,
)

_PAID_FEATURES = frozenset(ALL_FEATURES)


@dataclass(frozen=True)
class PlanDefinition:
    """Display and pricing details for a plan type."""

    plan_type: PlanType
    display_name: str
    duration_text: str
    months: int  # 0 for the day-based trial
    price_cents: int  # in cents (e.g., 1999 = $19.99)
    stripe_price_id: str | None  # None for the trial
    features: frozenset[str]


TRIAL_LENGTH_DAYS = 30

PLANS: dict[PlanType, PlanDefinition] = {
    PlanType.TRIAL: PlanDefinition(
        plan_type=PlanType.TRIAL,
        display_name="Free Trial",
        duration_text=f"{TRIAL_LENGTH_DAYS}-day trial",
        months=0,
        price_cents=0,
        stripe_price_id=None,
        features=frozenset({FEATURE_CORE, FEATURE_ADVANCED_ANALYTICS}),
    ),
    PlanType.MONTHLY: PlanDefinition(
        plan_type=PlanType.MONTHLY,
        display_name="Monthly",
        duration_text="monthly",
        months=1,
        price_cents=1999,
        stripe_price_id=settings.stripe_monthly_price_id or None,
        features=_PAID_FEATURES,
    ),
    PlanType.SEMIANNUAL: PlanDefinition(
        plan_type=PlanType.SEMIANNUAL,
        display_name="6-Month",
        duration_text="6-month plan",
        months=6,
        price_cents=9999,
        stripe_price_id=settings.stripe_semiannual_price_id or None,
        features=_PAID_FEATURES,
    ),
    PlanType.ANNUAL: PlanDefinition(
        plan_type=PlanType.ANNUAL,
        display_name="Annual",
        duration_text="1-year plan",
        months=12,
        price_cents=17999,
        stripe_price_id=settings.stripe_annual_price_id or None,
        features=_PAID_FEATURES,
    ),
}


def get_plan(plan_type: "str | PlanType | None") -> PlanDefinition | None:
    """Get plan details by type. Returns None for missing or unknown types."""
    parsed = PlanType.parse(plan_type)
    return PLANS[parsed] if parsed is not None else None


def get_plan_by_price_id(price_id: str) -> PlanType | None:
    """Reverse lookup: Stripe price ID -> plan type. Returns None if not found."""
    for plan in PLANS.values():
        if plan.stripe_price_id and plan.stripe_price_id == price_id:
            return plan.plan_type
    return None
