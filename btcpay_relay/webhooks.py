import json
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Header, Request
from pydantic import ValidationError as PydanticValidationError

from btcpay_relay.auth import verify_signature
from btcpay_relay.callback import BackendNotifier, forward_status_change
from btcpay_relay.config import Settings
from btcpay_relay.errors import InternalError
from btcpay_relay.models import INVOICE_STATUS_CHANGED, CallbackPayload, WebhookEvent
from btcpay_relay.routes import get_store
from btcpay_relay.store import InvoiceStore

log = logging.getLogger("btcpay_relay.webhooks")

router = APIRouter()


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_notifier(request: Request) -> BackendNotifier:
    return request.app.state.notifier


def parse_event(payload: bytes) -> WebhookEvent:
    try:
        return WebhookEvent.model_validate(json.loads(payload))
    except (ValueError, PydanticValidationError) as e:
        raise InternalError("Webhook processing failed") from e


@router.post("/api/webhooks/btcpay")
async def btcpay_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    btcpay_sig: str = Header(None),
    settings: Settings = Depends(get_settings),
    store: InvoiceStore = Depends(get_store),
    notifier: BackendNotifier = Depends(get_notifier),
):
    # HMAC must see the exact bytes BTCPay signed
    payload = await request.body()
    verify_signature(payload, btcpay_sig, settings.webhook_secret)

    event = parse_event(payload)
    log.info("webhook %s delivery=%s invoice=%s", event.type, event.delivery_id, event.invoice_id)

    if event.type != INVOICE_STATUS_CHANGED or not event.invoice_id:
        return {"received": True}

    record = store.get(event.invoice_id)
    if record is None:
        log.info("webhook for unknown invoice %s ignored", event.invoice_id)
        return {"received": True}

    status = event.new_status()
    if status is None:
        log.warning("webhook for invoice %s carries no usable status: %r", event.invoice_id, event.data)
        return {"received": True}

    store.set(event.invoice_id, record.with_status(status))

    # Runs after the response; BTCPay gets 200 whatever the backend does
    background_tasks.add_task(
        forward_status_change,
        notifier,
        CallbackPayload(order_id=record.order_id, invoice_id=event.invoice_id, status=status),
    )
    return {"received": True}
