"""Access gating dependencies — enforce feature access based on subscription state."""

import logging
from collections.abc import Awaitable, Callable

from fastapi import Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from billing_hub.auth.dependencies import get_current_user
from billing_hub.billing.access import (
    AccessDecision,
    GateState,
    check_subscription_access,
    resolve_gate,
    upgrade_required_view,
)
from billing_hub.database import get_db
from billing_hub.models.user import User
from billing_hub.services.subscription_service import get_user_subscription

logger = logging.getLogger(__name__)

_BLOCKING_STATES = (GateState.UPGRADE_REQUIRED, GateState.EXPIRED)


async def get_access_decision(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> AccessDecision:
    """Fetch the user's subscription and compute their access decision."""
    subscription = await get_user_subscription(db, user)
    return check_subscription_access(subscription)


def require_feature(feature: str) -> Callable[..., Awaitable[AccessDecision]]:
    """Build a dependency that raises 402 unless the caller may use ``feature``.

    Blocks when the gate shows upgrade-required or expired, and when an
    active plan does not include the feature.

    Usage::

        @router.get("/reports/export", dependencies=[Depends(require_feature("export"))])
        async def export_report(): ...
    """

    async def _check(decision: AccessDecision = Depends(get_access_decision)) -> AccessDecision:
        view = resolve_gate(decision, required_feature=feature)
        if view.state not in _BLOCKING_STATES and not decision.has_feature(feature):
            # Active plan that does not include the feature
            view = upgrade_required_view()
        if view.state in _BLOCKING_STATES:
            logger.info("Access to feature %r blocked (%s)", feature, view.state.value)
            raise HTTPException(
                status_code=status.HTTP_402_PAYMENT_REQUIRED,
                detail={
                    "message": view.message,
                    "feature": feature,
                    "gate": view.state.value,
                    "upgrade_url": view.action_url,
                },
            )
        return decision

    return _check
