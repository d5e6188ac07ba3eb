"""SQLAlchemy models for Billing Hub.

All models are imported here so that Alembic's autogenerate can discover
them via Base.metadata. If you add a new model, import it in this file.
"""

from billing_hub.models.payment_method import PaymentMethod
from billing_hub.models.subscription import Subscription
from billing_hub.models.user import User

__all__ = [
    "PaymentMethod",
    "Subscription",
    "User",
]
