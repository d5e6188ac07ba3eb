"""Billing page client — the front end's side of the billing API.

``BillingApi`` wraps the HTTP calls; ``BillingPageController`` holds the
page state (loaded subscription, payment-method selection, dialog, errors)
and runs the resubscribe flow. Endpoint and credentials come in through an
explicit ``BillingContext`` rather than module-level configuration::

    context = BillingContext(base_url="https://api.example.com", access_token=token)
    async with BillingApi(context) as api:
        page = BillingPageController(api)
        await page.load()
        page.open_resubscribe_dialog()
        page.select_payment_method("pm_123")
        await page.resubscribe()
"""

import logging
from dataclasses import dataclass

import httpx
from pydantic import ValidationError

from billing_hub.billing.stripe_client import mask_id
from billing_hub.schemas.billing import (
    BillingOverviewResponse,
    PaymentMethodResponse,
    PaymentMethodsListResponse,
    ResubscribeResponse,
)

logger = logging.getLogger(__name__)

RESUBSCRIBE_NOTICE = (
    "Successfully resubscribed! Auto-renewal will activate at the end of "
    "your current billing period."
)


class BillingClientError(Exception):
    """Request failed; ``str(err)`` is safe to show to the user."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class BillingContext:
    """Where the billing API lives and who is calling it."""

    base_url: str
    access_token: str
    timeout: float = 30.0

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }


def _error_message(response: httpx.Response, default: str) -> str:
    """Pull the server's error text out of an error response."""
    try:
        data = response.json()
    except ValueError:
        return default
    if isinstance(data, dict):
        for key in ("error", "detail"):
            value = data.get(key)
            if isinstance(value, str) and value:
                return value
            if isinstance(value, dict) and isinstance(value.get("message"), str):
                return value["message"]
    return default


class BillingApi:
    """Async HTTP client for the billing endpoints."""

    def __init__(
        self,
        context: BillingContext,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.context = context
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.context.base_url.rstrip("/"),
                headers=self.context.headers,
                timeout=self.context.timeout,
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "BillingApi":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def _request(
        self, method: str, path: str, default_error: str, **kwargs
    ) -> httpx.Response:
        try:
            response = await self._get_client().request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise BillingClientError(str(e) or default_error) from e

        if response.is_error:
            raise BillingClientError(
                _error_message(response, default_error),
                status_code=response.status_code,
            )
        return response

    async def get_overview(self) -> BillingOverviewResponse:
        response = await self._request(
            "GET", "/api/v1/billing/subscription", "Failed to load billing data"
        )
        try:
            return BillingOverviewResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise BillingClientError("Failed to load billing data") from e

    async def get_payment_methods(self) -> list[PaymentMethodResponse]:
        response = await self._request(
            "GET", "/api/v1/billing/payment-methods", "Failed to load payment methods"
        )
        try:
            return PaymentMethodsListResponse.model_validate(response.json()).payment_methods
        except (ValueError, ValidationError) as e:
            raise BillingClientError("Failed to load payment methods") from e

    async def resubscribe(
        self, subscription_id: str, payment_method_id: str
    ) -> ResubscribeResponse:
        response = await self._request(
            "POST",
            "/resubscribe",
            "Failed to resubscribe",
            json={
                "subscriptionId": subscription_id,
                "paymentMethodId": payment_method_id,
            },
        )
        try:
            return ResubscribeResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise BillingClientError("Failed to resubscribe") from e


class BillingPageController:
    """State and actions of the billing page."""

    def __init__(self, api: BillingApi) -> None:
        self.api = api
        self.overview: BillingOverviewResponse | None = None
        self.payment_methods: list[PaymentMethodResponse] = []
        self.selected_payment_method: str = ""
        self.show_resubscribe_dialog = False
        self.loading = False
        self.resubscribe_loading = False
        self.error: str | None = None
        self.notice: str | None = None

    @property
    def can_resubscribe(self) -> bool:
        """A cancelled subscription that has not run out yet."""
        if self.overview is None or self.overview.subscription is None:
            return False
        return (
            self.overview.subscription.cancel_at_period_end
            and not self.overview.access.is_expired
        )

    async def load(self) -> None:
        """Fetch the subscription overview and saved payment methods."""
        self.error = None
        self.loading = True
        try:
            self.overview = await self.api.get_overview()
            self.payment_methods = await self.api.get_payment_methods()
        except BillingClientError as e:
            self.error = str(e)
        finally:
            self.loading = False

    def open_resubscribe_dialog(self) -> None:
        self.show_resubscribe_dialog = True

    def close_resubscribe_dialog(self) -> None:
        self.show_resubscribe_dialog = False
        self.selected_payment_method = ""

    def select_payment_method(self, payment_method_id: str) -> None:
        self.selected_payment_method = payment_method_id

    async def resubscribe(self) -> bool:
        """Re-enable auto-renewal with the selected payment method.

        Local state changes only after the server confirms. Returns True on
        success; on failure the server's message is left in ``error``.
        """
        self.error = None
        self.notice = None
        subscription = self.overview.subscription if self.overview else None
        if (
            subscription is None
            or not subscription.stripe_subscription_id
            or not self.selected_payment_method
        ):
            return False

        self.resubscribe_loading = True
        try:
            await self.api.resubscribe(
                subscription.stripe_subscription_id,
                self.selected_payment_method,
            )
        except BillingClientError as e:
            self.error = str(e) or "Failed to resubscribe"
            return False
        finally:
            self.resubscribe_loading = False

        subscription.status = "active"
        await self.load()
        self.close_resubscribe_dialog()
        self.notice = RESUBSCRIBE_NOTICE
        logger.info("Resubscribed %s", mask_id(subscription.stripe_subscription_id))
        return True
