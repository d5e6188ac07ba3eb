"""Subscription model — plan, status, and Stripe billing state per user."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, String, false
from sqlalchemy.orm import Mapped, mapped_column, relationship

from billing_hub.database import Base, TimestampMixin, UUIDPrimaryKeyMixin


class Subscription(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Tracks a user's Stripe subscription and billing period.

    Rows are never deleted; ending a subscription is a status transition.
    """

    __tablename__ = "subscriptions"
    __table_args__ = (
        CheckConstraint(
            "current_period_start IS NULL OR current_period_end IS NULL "
            "OR current_period_end > current_period_start",
            name="ck_subscriptions_period_order",
        ),
    )

    # Foreign key — one subscription per user (UNIQUE enforces one-to-one)
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        index=True,
    )

    # Stripe identifiers
    stripe_customer_id: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    stripe_subscription_id: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    default_payment_method_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Plan & status
    plan_type: Mapped[str | None] = mapped_column(String(50), nullable=True, default="trial")
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="trialing")

    # Billing period
    current_period_start: Mapped[datetime | None] = mapped_column(nullable=True)
    current_period_end: Mapped[datetime | None] = mapped_column(nullable=True)
    cancel_at_period_end: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )

    # Precomputed display text; billing_period_accurate=None means "not stated"
    billing_period_text: Mapped[str | None] = mapped_column(String(255), nullable=True)
    billing_period_accurate: Mapped[bool | None] = mapped_column(Boolean, nullable=True)

    # Relationships
    user: Mapped["User"] = relationship(back_populates="subscription", lazy="selectin")  # type: ignore[name-defined]  # noqa: F821

    @property
    def has_valid_period(self) -> bool:
        """True when both boundaries are set and the end follows the start."""
        if self.current_period_start is None or self.current_period_end is None:
            return False
        return self.current_period_end > self.current_period_start

    def __repr__(self) -> str:
        return (
            f"<Subscription(id={self.id}, user_id={self.user_id}, "
            f"plan_type={self.plan_type}, status={self.status})>"
        )
