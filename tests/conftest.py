import json

import httpx
import pytest

from btcpay_relay.auth import compute_signature
from btcpay_relay.config import Settings

WEBHOOK_SECRET = "whsec_test"
BTCPAY_URL = "https://btcpay.test"
CALLBACK_URL = "https://shop.test/payments/crypto/callback"


@pytest.fixture
def settings():
    return Settings(
        webhook_secret=WEBHOOK_SECRET,
        callback_url=CALLBACK_URL,
        callback_token="cb_token",
        btcpay_base_url=BTCPAY_URL + "/",
        btcpay_api_key="api_key",
        btcpay_store_id="store1",
        allowed_origin="https://shop.test",
    )


def sign(body: bytes, secret: str = WEBHOOK_SECRET) -> str:
    return compute_signature(body, secret)


def status_changed(invoice_id, status="Settled", **extra) -> bytes:
    event = {
        "type": "InvoiceStatusChanged",
        "invoiceId": invoice_id,
        "storeId": "store1",
        "deliveryId": "dlv_1",
        "data": {"status": status},
    }
    event.update(extra)
    return json.dumps(event).encode()


class CallbackRecorder:
    """httpx transport standing in for the order backend."""

    def __init__(self, status_code=200, error=None):
        self.status_code = status_code
        self.error = error
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error:
            raise self.error
        return httpx.Response(self.status_code, json={"ok": True})

    def transport(self):
        return httpx.MockTransport(self)


class FakeBTCPay:
    """Minimal in-process BTCPay Greenfield invoice API."""

    def __init__(self):
        self.invoices = {}
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.headers.get("authorization") != "token api_key":
            return httpx.Response(401, json={"code": "unauthenticated"})

        prefix = "/api/v1/stores/store1/invoices"
        path = request.url.path
        if request.method == "POST" and path == prefix:
            body = json.loads(request.content)
            invoice_id = f"inv_{len(self.invoices) + 1}"
            self.invoices[invoice_id] = {
                "id": invoice_id,
                "status": "New",
                "checkoutLink": f"{BTCPAY_URL}/i/{invoice_id}",
                "amount": body["amount"],
                "currency": body["currency"],
                "metadata": body.get("metadata") or {},
            }
            return httpx.Response(200, json=self.invoices[invoice_id])
        if request.method == "GET" and path.startswith(prefix + "/"):
            invoice = self.invoices.get(path[len(prefix) + 1:])
            if invoice is None:
                return httpx.Response(404, json={"code": "invoice-not-found", "message": "Invoice not found"})
            return httpx.Response(200, json=invoice)
        return httpx.Response(404)

    def transport(self):
        return httpx.MockTransport(self)
