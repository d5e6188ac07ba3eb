"""PaymentMethod model — saved cards available for future billing."""

import uuid

from sqlalchemy import Boolean, ForeignKey, Integer, String, false
from sqlalchemy.orm import Mapped, mapped_column, relationship

from billing_hub.database import Base, TimestampMixin, UUIDPrimaryKeyMixin


class PaymentMethod(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A card the user has attached in Stripe."""

    __tablename__ = "payment_methods"

    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    stripe_payment_method_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)

    # Card details (display only)
    brand: Mapped[str] = mapped_column(String(50), nullable=False)
    last4: Mapped[str] = mapped_column(String(4), nullable=False)
    exp_month: Mapped[int] = mapped_column(Integer, nullable=False)
    exp_year: Mapped[int] = mapped_column(Integer, nullable=False)
    is_default: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )

    user: Mapped["User"] = relationship(back_populates="payment_methods", lazy="selectin")  # type: ignore[name-defined]  # noqa: F821

    def __repr__(self) -> str:
        return f"<PaymentMethod id={self.id} brand={self.brand!r} last4={self.last4!r}>"
