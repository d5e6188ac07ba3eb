"""Shared API dependencies — single import point for all routers.

Re-exports database session, authentication, and access-gate dependencies
so that router modules can import everything they need from one place::

    from billing_hub.api.deps import get_db, get_current_user
"""

from billing_hub.auth.dependencies import get_current_user, get_optional_user
from billing_hub.billing.dependencies import get_access_decision, require_feature
from billing_hub.database import get_db

__all__ = [
    "get_db",
    "get_current_user",
    "get_optional_user",
    "get_access_decision",
    "require_feature",
]
