import logging
from dataclasses import dataclass
from typing import Optional, Protocol

import httpx

from app.core.config import settings
from app.core.constants import PaymentMethodEnum
from app.core.exceptions import GatewayError

logger = logging.getLogger(__name__)


@dataclass
class GatewayPayment:
    transaction_id: str
    raw: dict


class PaymentGateway(Protocol):
    def credential_for(self, payment_method: str) -> Optional[str]:
        ...

    async def pay(self, amount: float, phone: str, credential: str) -> GatewayPayment:
        ...


class ItecPayGateway:
    """Mobile money collection through the ITEC Pay ``/pay`` endpoint."""

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None, keys: Optional[dict] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = (base_url or settings.ITECPAY_API_URL).rstrip("/")
        self.timeout = timeout or settings.ITECPAY_TIMEOUT_SECONDS
        self.keys = keys if keys is not None else {
            PaymentMethodEnum.MTN_MOMO.value: settings.ITECPAY_MTN_KEY,
            PaymentMethodEnum.AIRTEL_MONEY.value: settings.ITECPAY_AIRTEL_KEY,
            PaymentMethodEnum.SPENN.value: settings.ITECPAY_SPENN_KEY,
        }
        self.transport = transport

    def credential_for(self, payment_method: str) -> Optional[str]:
        return self.keys.get(payment_method)

    async def _make_request(self, path: str, payload: dict) -> dict:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            url = f"{self.base_url}{path}"
            try:
                response = await client.post(url, json=payload)
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                raise GatewayError(
                    message=self._error_message(e.response),
                    status_code=e.response.status_code,
                    gateway_status=e.response.status_code
                )
            except httpx.RequestError as e:
                raise GatewayError(message=f"Network error: {e}", status_code=503)

            return response.json()

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return "Payment failed"
        data = body.get("data") if isinstance(body, dict) else None
        if isinstance(data, dict) and data.get("message"):
            return data["message"]
        if isinstance(body, dict) and body.get("message"):
            return body["message"]
        return "Payment failed"

    async def pay(self, amount: float, phone: str, credential: str) -> GatewayPayment:
        body = await self._make_request("/pay", {"amount": amount, "phone": phone, "key": credential})
        data = body.get("data") or {}
        if body.get("status") != 200 or not data.get("transID"):
            logger.warning(f"ITEC Pay rejected payment: {body}")
            raise GatewayError(message=data.get("message") or "Payment initiation failed. Please try again.")
        return GatewayPayment(transaction_id=str(data["transID"]), raw=body)
