"""Billing API endpoints — subscription overview, access checks, payment methods."""


from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from billing_hub.api.deps import get_current_user, get_db
from billing_hub.billing.access import (
    AccessDecision,
    GateView,
    check_subscription_access,
    resolve_gate,
)
from billing_hub.billing.periods import describe_billing_period, next_billing_text
from billing_hub.billing.plans import PLANS, get_plan
from billing_hub.models.subscription import Subscription
from billing_hub.models.user import User
from billing_hub.schemas.billing import (
    AccessCheckResponse,
    AccessResponse,
    BillingOverviewResponse,
    GateResponse,
    PaymentMethodResponse,
    PaymentMethodsListResponse,
    PlanResponse,
    PlansListResponse,
    SubscriptionResponse,
)
from billing_hub.services.subscription_service import (
    get_user_subscription,
    list_payment_methods,
)


router = APIRouter(prefix="/api/v1/billing", tags=["billing"])


def _access_response(decision: AccessDecision) -> AccessResponse:
    return AccessResponse(
        has_access=decision.has_access,
        is_expired=decision.is_expired,
        is_cancelled=decision.is_cancelled,
        days_remaining=decision.days_remaining,
        plan_type=decision.plan_type.value if decision.plan_type else None,
        features=dict(decision.features),
    )


def _gate_response(view: GateView) -> GateResponse:
    return GateResponse(
        state=view.state.value,
        title=view.title,
        message=view.message,
        action_label=view.action_label,
        action_url=view.action_url,
    )


def _subscription_response(subscription: Subscription) -> SubscriptionResponse:
    period = describe_billing_period(subscription)
    plan = get_plan(subscription.plan_type)
    return SubscriptionResponse(
        id=str(subscription.id),
        plan_type=subscription.plan_type,
        plan_display_name=plan.display_name if plan else None,
        status=subscription.status,
        stripe_subscription_id=subscription.stripe_subscription_id,
        current_period_start=subscription.current_period_start,
        current_period_end=subscription.current_period_end,
        cancel_at_period_end=subscription.cancel_at_period_end,
        billing_period_text=period.text,
        billing_period_accurate=period.accurate,
        next_billing_text=next_billing_text(subscription),
    )


@router.get("/plans", response_model=PlansListResponse)
async def list_plans() -> PlansListResponse:
    """List available plans (public — no auth required)."""
    return PlansListResponse(
        plans=[
            PlanResponse(
                plan_type=p.plan_type.value,
                display_name=p.display_name,
                duration_text=p.duration_text,
                price_cents=p.price_cents,
                features=sorted(p.features),
            )
            for p in PLANS.values()
        ]
    )


@router.get("/subscription", response_model=BillingOverviewResponse)
async def get_billing_overview(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> BillingOverviewResponse:
    """Get the current subscription with billing-period text and access state."""
    subscription = await get_user_subscription(db, current_user)
    decision = check_subscription_access(subscription)
    return BillingOverviewResponse(
        subscription=_subscription_response(subscription) if subscription else None,
        access=_access_response(decision),
    )


@router.get("/access", response_model=AccessCheckResponse)
async def check_access(
    feature: str | None = Query(default=None, description="Feature the page requires"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> AccessCheckResponse:
    """Compute the access decision and the gate state for an optional feature."""
    subscription = await get_user_subscription(db, current_user)
    decision = check_subscription_access(subscription)
    view = resolve_gate(decision, required_feature=feature)
    return AccessCheckResponse(
        access=_access_response(decision),
        gate=_gate_response(view),
        required_feature=feature,
    )


@router.get("/payment-methods", response_model=PaymentMethodsListResponse)
async def get_payment_methods(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> PaymentMethodsListResponse:
    """List the caller's saved payment methods, default first."""
    methods = await list_payment_methods(db, current_user)
    return PaymentMethodsListResponse(
        payment_methods=[
            PaymentMethodResponse(
                id=m.stripe_payment_method_id,
                brand=m.brand,
                last4=m.last4,
                exp_month=m.exp_month,
                exp_year=m.exp_year,
                is_default=m.is_default,
            )
            for m in methods
        ]
    )
