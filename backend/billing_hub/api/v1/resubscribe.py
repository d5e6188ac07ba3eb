"""Resubscribe endpoint — re-enable auto-renewal on a cancelled subscription.

Responds with ``{success, message, subscription}`` on success and
``{error}`` with status 400 on any failure, including authentication.
"""

import json
import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from billing_hub.api.deps import get_db, get_optional_user
from billing_hub.models.user import User
from billing_hub.schemas.billing import (
    ErrorResponse,
    ResubscribedSubscription,
    ResubscribeRequest,
    ResubscribeResponse,
)
from billing_hub.services.resubscribe_service import (
    AuthenticationError,
    ResubscribeError,
    resubscribe,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["billing"])


def _error(message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ErrorResponse(error=message).model_dump(),
    )


@router.options("/resubscribe", include_in_schema=False)
async def resubscribe_options() -> PlainTextResponse:
    """Answer bare OPTIONS requests; CORS preflight is handled by middleware."""
    return PlainTextResponse("ok")


@router.post(
    "/resubscribe",
    response_model=ResubscribeResponse,
    responses={400: {"model": ErrorResponse}},
)
async def resubscribe_endpoint(
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User | None = Depends(get_optional_user),
):
    """Clear a pending cancellation and set the default payment method.

    No charge is made; auto-renewal resumes at the next billing boundary.
    """
    if current_user is None:
        logger.warning("Resubscribe rejected: unauthenticated request")
        return _error(str(AuthenticationError("Unauthorized")))

    try:
        body = ResubscribeRequest.model_validate(await request.json())
    except (ValidationError, json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.warning("Invalid resubscribe payload: %s", e)
        return _error("subscriptionId and paymentMethodId are required")

    try:
        result = await resubscribe(
            db,
            current_user,
            subscription_id=body.subscription_id,
            payment_method_id=body.payment_method_id,
        )
    except ResubscribeError as e:
        logger.error("Error processing resubscription: %s", e)
        return _error(str(e))

    return ResubscribeResponse(
        success=True,
        message=result.message,
        subscription=ResubscribedSubscription(
            id=result.subscription_id,
            cancel_at_period_end=result.cancel_at_period_end,
            current_period_end=result.current_period_end,
        ),
    )
