from typing import Dict, Optional

import httpx
import sentry_sdk
import structlog

from app.exceptions import UpstreamFailure
from app.models.config import StripeConfig
from app.models.stripe.checkout import CheckoutSession

logger = structlog.getLogger(__name__)


class StripeService:
    def __init__(self, config: StripeConfig, timeout: float = 10, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        self.timeout = timeout
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.config.secret_key)

    def get_http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.config.api_url,
            headers={"Authorization": f"Bearer {self.config.secret_key}"},
            timeout=self.timeout,
            transport=self._transport,
        )

    def _checkout_form(self, price_id: Optional[str], customer_email: Optional[str]) -> Dict[str, str]:
        form = {
            "mode": "payment",
            "payment_method_types[0]": "card",
            "success_url": self.config.success_url,
            "cancel_url": self.config.cancel_url,
            "line_items[0][quantity]": "1",
        }
        price_id = price_id or self.config.default_price_id
        if price_id:
            form["line_items[0][price]"] = price_id
            form["metadata[price_id]"] = price_id
        else:
            form["line_items[0][price_data][currency]"] = self.config.currency
            form["line_items[0][price_data][unit_amount]"] = str(self.config.unit_amount)
            form["line_items[0][price_data][product_data][name]"] = self.config.product_name
        if customer_email:
            form["customer_email"] = customer_email
        return form

    async def create_checkout_session(self, price_id: Optional[str] = None, customer_email: Optional[str] = None) -> CheckoutSession:
        if not self.enabled:
            logger.warning("Checkout requested but payments are not configured")
            raise UpstreamFailure("Payments are not configured")
        async with self.get_http_client() as client:
            try:
                response = await client.post(
                    "/checkout/sessions",
                    data=self._checkout_form(price_id, customer_email),
                )
                response.raise_for_status()
                return CheckoutSession(**response.json())
            except httpx.HTTPStatusError as e:
                logger.error("HTTP status error from Stripe", status_code=e.response.status_code,
                             content=e.response.text)
                sentry_sdk.capture_exception(e)
                raise UpstreamFailure("Payment processor error")
            except httpx.HTTPError as e:
                logger.error("Stripe request failed", error=repr(e))
                sentry_sdk.capture_exception(e)
                raise UpstreamFailure("Payment processor unavailable")
