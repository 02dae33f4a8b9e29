"""
Client for the hosted payment provider (Stripe REST API).
"""
import logging
from typing import Optional

import httpx

from sos_mecanicos.config import get_settings
from sos_mecanicos.errors import PaymentError

logger = logging.getLogger(__name__)


class PaymentGateway:
    """Thin async wrapper over the payment intents, transfers and refunds endpoints."""

    def __init__(
        self,
        secret_key: str,
        currency: str,
        api_base: str = "https://api.stripe.com",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.secret_key = secret_key
        self.currency = currency
        self._client = httpx.AsyncClient(
            base_url=api_base,
            headers={"Authorization": f"Bearer {secret_key}"},
            timeout=timeout,
            transport=transport,
        )

    async def _request(self, method: str, path: str, data: dict = None) -> dict:
        if not self.secret_key:
            raise PaymentError(cause="payment provider key is not configured")
        try:
            response = await self._client.request(method, path, data=data)
        except httpx.HTTPError as exc:
            logger.error("Payment provider unreachable on %s %s: %s", method, path, exc)
            raise PaymentError(cause=str(exc))
        if response.status_code >= 400:
            try:
                cause = response.json().get("error", {}).get("message", response.text)
            except ValueError:
                cause = response.text
            logger.error("Payment provider rejected %s %s (%s): %s", method, path, response.status_code, cause)
            raise PaymentError(cause=cause)
        try:
            return response.json()
        except ValueError:
            logger.error("Payment provider sent an unreadable body for %s %s", method, path)
            raise PaymentError(cause="unreadable response body")

    async def create_payment_intent(self, amount_cents: int, transfer_group: str, metadata: dict = None) -> dict:
        data = {
            "amount": amount_cents,
            "currency": self.currency,
            "payment_method_types[]": "card",
            "transfer_group": transfer_group,
        }
        for key, value in (metadata or {}).items():
            data[f"metadata[{key}]"] = value
        intent = await self._request("POST", "/v1/payment_intents", data)
        if not intent.get("id") or not intent.get("client_secret"):
            raise PaymentError(cause="payment intent without id or client secret")
        return intent

    async def create_transfer(
        self, amount_cents: int, destination: str, transfer_group: str, payment_intent_id: str
    ) -> dict:
        data = {
            "amount": amount_cents,
            "currency": self.currency,
            "destination": destination,
            "transfer_group": transfer_group,
            "metadata[payment_intent]": payment_intent_id,
        }
        return await self._request("POST", "/v1/transfers", data)

    async def retrieve_payment_intent(self, payment_intent_id: str) -> dict:
        return await self._request("GET", f"/v1/payment_intents/{payment_intent_id}")

    async def cancel_payment_intent(self, payment_intent_id: str) -> dict:
        return await self._request("POST", f"/v1/payment_intents/{payment_intent_id}/cancel")

    async def create_refund(self, payment_intent_id: str) -> dict:
        return await self._request("POST", "/v1/refunds", {"payment_intent": payment_intent_id})

    async def reverse_transfer(self, transfer_id: str) -> dict:
        return await self._request("POST", f"/v1/transfers/{transfer_id}/reversals")

    async def aclose(self) -> None:
        await self._client.aclose()


async def get_payment_gateway():
    """
    Dependency that yields a gateway configured from settings.
    """
    settings = get_settings()
    gateway = PaymentGateway(
        secret_key=settings.stripe_secret_key,
        currency=settings.payment_currency,
        api_base=settings.stripe_api_base,
        timeout=settings.stripe_timeout_seconds,
    )
    try:
        yield gateway
    finally:
        await gateway.aclose()
