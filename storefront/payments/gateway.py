from typing import Any, Dict, Optional
import httpx
from uuid6 import uuid7
from storefront.common.custom_exceptions import GatewayError
from storefront.config.settings import config_settings
from storefront.payments.constants import logger


def new_reference(order_id: int) -> str:
    # time ordered, unique per initialisation attempt
    return f"ord{order_id}_{uuid7().hex}"


class PaystackClient:
    """Outbound calls to the Paystack REST api over a shared httpx.AsyncClient."""

    def __init__(self, secret_key: str = config_settings.PAYSTACK_SECRET_KEY,
                 base_url: str = config_settings.PAYSTACK_BASE_URL,
                 timeout: float = config_settings.PAYSTACK_TIMEOUT_SECONDS,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={
                "Authorization": f"Bearer {secret_key}",
                "Content-Type": "application/json",
            },
        )

    async def initialize_transaction(self, email: str, amount: int, reference: str,
                                     metadata: Dict[str, Any], callback_url: Optional[str] = None) -> Dict[str, Any]:
        """amount is in kobo; returns {authorization_url, access_code, reference}."""
        payload = {
            "email": email,
            "amount": amount,
            "reference": reference,
            "metadata": metadata,
        }
        if callback_url:
            payload["callback_url"] = callback_url

        try:
            resp = await self._client.post("/transaction/initialize", json=payload)
            resp.raise_for_status()
            body = resp.json()
        except httpx.HTTPStatusError as ex:
            logger.error("paystack.initialize.http_error", extra={
                "http_status": ex.response.status_code, "reference": reference,
            })
            raise GatewayError("Payment gateway rejected the request")
        except (httpx.HTTPError, ValueError) as ex:
            logger.error("paystack.initialize.unreachable", extra={"error": str(ex), "reference": reference})
            raise GatewayError()

        data = body.get("data") or {}
        if not body.get("status") or not data.get("authorization_url"):
            logger.error("paystack.initialize.bad_response", extra={"reference": reference, "gateway_message": body.get("message")})
            raise GatewayError("Payment gateway returned an unexpected response")
        return data

    async def aclose(self):
        await self._client.aclose()
