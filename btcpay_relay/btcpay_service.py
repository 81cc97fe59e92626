import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError as PydanticValidationError

from btcpay_relay.config import Settings
from btcpay_relay.errors import UpstreamError
from btcpay_relay.models import Invoice

log = logging.getLogger("btcpay_relay.btcpay")

REQUEST_TIMEOUT = 15.0
# Lets BTCPay settle over fast paths such as Lightning when the store supports them
SPEED_POLICY = "HighSpeed"


class BTCPayClient:
    """Thin async wrapper around the store-scoped Greenfield invoice endpoints.

    One attempt per call. Every failure surfaces as UpstreamError.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        store_id: str,
        timeout: float = REQUEST_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.store_id = store_id
        self._client = httpx.AsyncClient(
            base_url=f"{base_url.rstrip('/')}/api/v1",
            headers={"Authorization": f"token {api_key}"},
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> "BTCPayClient":
        return cls(settings.btcpay_base_url, settings.btcpay_api_key, settings.btcpay_store_id, **kwargs)

    async def create_invoice(
        self,
        amount: str,
        currency: str,
        metadata: Optional[Dict[str, Any]] = None,
        description: Optional[str] = None,
    ) -> Invoice:
        metadata = dict(metadata or {})
        if description:
            # shown to the payer on the checkout page
            metadata["itemDesc"] = description

        payload = {
            "amount": str(amount),
            "currency": currency,
            "metadata": metadata,
            "checkout": {"speedPolicy": SPEED_POLICY},
        }
        return await self._request("POST", f"/stores/{self.store_id}/invoices", json=payload)

    async def get_invoice(self, invoice_id: str) -> Invoice:
        return await self._request("GET", f"/stores/{self.store_id}/invoices/{quote(invoice_id, safe='')}")

    async def _request(self, method: str, path: str, **kwargs) -> Invoice:
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise UpstreamError(f"BTCPay {method} {path} failed: {e}") from e

        if not resp.is_success:
            raise UpstreamError(
                f"BTCPay {method} {path} returned an error",
                status_code=resp.status_code,
                body=resp.text,
            )

        try:
            return Invoice.model_validate(resp.json())
        except (ValueError, PydanticValidationError) as e:
            log.debug("unexpected BTCPay payload for %s %s: %s", method, path, e)
            raise UpstreamError(
                f"BTCPay {method} {path} returned an unexpected payload",
                status_code=resp.status_code,
                body=resp.text,
            ) from e

    async def aclose(self) -> None:
        await self._client.aclose()
