"""Pydantic v2 request/response schemas for billing endpoints."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

# --- Request schemas ---


class ResubscribeRequest(BaseModel):
    """Request to clear a pending cancellation (camelCase on the wire)."""

    model_config = ConfigDict(populate_by_name=True)

    subscription_id: str = Field(alias="subscriptionId", min_length=1)
    payment_method_id: str = Field(alias="paymentMethodId", min_length=1)


# --- Response schemas ---


class PlanResponse(BaseModel):
    """Plan details for display."""

    plan_type: str
    display_name: str
    duration_text: str
    price_cents: int
    features: list[str]


class PlansListResponse(BaseModel):
    """All available plans."""

    plans: list[PlanResponse]


class AccessResponse(BaseModel):
    """Derived access decision."""

    has_access: bool
    is_expired: bool
    is_cancelled: bool
    days_remaining: int | None
    plan_type: str | None
    features: dict[str, bool]


class GateResponse(BaseModel):
    """Presentation state chosen by the access gate."""

    state: str
    title: str | None = None
    message: str | None = None
    action_label: str | None = None
    action_url: str | None = None


class AccessCheckResponse(BaseModel):
    """Access decision plus the gate view for an optional required feature."""

    access: AccessResponse
    gate: GateResponse
    required_feature: str | None = None


class SubscriptionResponse(BaseModel):
    """Subscription record with resolved display fields."""

    id: str
    plan_type: str | None
    plan_display_name: str | None
    status: str
    stripe_subscription_id: str | None
    current_period_start: datetime | None
    current_period_end: datetime | None
    cancel_at_period_end: bool
    billing_period_text: str
    billing_period_accurate: bool
    next_billing_text: str


class BillingOverviewResponse(BaseModel):
    """Everything the billing page needs in one call."""

    subscription: SubscriptionResponse | None
    access: AccessResponse


class PaymentMethodResponse(BaseModel):
    """Saved card. ``id`` is the Stripe payment method ID."""

    id: str
    brand: str
    last4: str
    exp_month: int
    exp_year: int
    is_default: bool


class PaymentMethodsListResponse(BaseModel):
    """The caller's saved cards, default first."""

    payment_methods: list[PaymentMethodResponse]


class ResubscribedSubscription(BaseModel):
    """Provider-side state after resubscribing."""

    id: str
    cancel_at_period_end: bool
    current_period_end: datetime | None


class ResubscribeResponse(BaseModel):
    """Successful resubscription."""

    success: bool = True
    message: str
    subscription: ResubscribedSubscription


class ErrorResponse(BaseModel):
    """Failure payload of the resubscribe endpoint."""

    error: str
