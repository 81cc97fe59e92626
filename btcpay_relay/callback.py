import logging
from typing import Optional

import httpx

from btcpay_relay.config import Settings
from btcpay_relay.errors import CallbackError
from btcpay_relay.models import CallbackPayload

log = logging.getLogger("btcpay_relay.callback")

CALLBACK_TIMEOUT = 10.0


class BackendNotifier:
    """Posts payment status changes to the order backend's callback URL."""

    def __init__(
        self,
        callback_url: str,
        token: str,
        timeout: float = CALLBACK_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.callback_url = callback_url
        self._client = httpx.AsyncClient(
            headers={"Authorization": f"Bearer {token}"},
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> "BackendNotifier":
        return cls(settings.callback_url, settings.callback_token, **kwargs)

    async def notify(self, payload: CallbackPayload) -> None:
        try:
            resp = await self._client.post(self.callback_url, json=payload.model_dump(mode="json"))
        except httpx.HTTPError as e:
            raise CallbackError(f"callback request failed: {e!r}") from e

        if not resp.is_success:
            raise CallbackError("callback rejected", status_code=resp.status_code, body=resp.text[:500])

    async def aclose(self) -> None:
        await self._client.aclose()


async def forward_status_change(notifier: BackendNotifier, payload: CallbackPayload) -> None:
    """Detached task: one notification attempt, outcome logged and never raised."""
    try:
        await notifier.notify(payload)
    except CallbackError as e:
        log.error(
            "backend callback failed for invoice=%s order=%s: %s status=%s body=%s",
            payload.invoice_id,
            payload.order_id,
            e,
            e.status_code,
            e.body,
        )
        return
    except Exception:
        log.exception("backend callback crashed for invoice=%s order=%s", payload.invoice_id, payload.order_id)
        return
    log.info("backend notified: invoice=%s order=%s status=%s", payload.invoice_id, payload.order_id, payload.status.value)
