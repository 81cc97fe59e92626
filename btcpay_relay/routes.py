import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from btcpay_relay.btcpay_service import BTCPayClient
from btcpay_relay.errors import UpstreamError
from btcpay_relay.models import CreateInvoiceRequest, InvoiceResponse, LocalInvoiceRecord
from btcpay_relay.store import InvoiceStore

log = logging.getLogger("btcpay_relay.routes")

router = APIRouter()


def get_store(request: Request) -> InvoiceStore:
    return request.app.state.store


def get_gateway(request: Request) -> BTCPayClient:
    return request.app.state.gateway


@router.get("/healthz", response_class=PlainTextResponse)
def healthz():
    return "ok"


@router.post("/api/invoices", response_model=InvoiceResponse)
async def create_invoice_api(
    request: CreateInvoiceRequest,
    store: InvoiceStore = Depends(get_store),
    gateway: BTCPayClient = Depends(get_gateway),
):
    try:
        invoice = await gateway.create_invoice(
            amount=request.amount,
            currency=request.currency,
            metadata={"orderId": request.order_id},
            description=request.description,
        )
    except UpstreamError as e:
        log.error("Create invoice error for order=%s: %s", request.order_id, e)
        return JSONResponse(status_code=500, content={"error": "Failed to create invoice"})

    store.set(invoice.id, LocalInvoiceRecord(order_id=request.order_id, status=invoice.status))
    log.info("invoice %s created for order=%s status=%s", invoice.id, request.order_id, invoice.status.value)

    return InvoiceResponse.from_invoice(invoice)


@router.get("/api/invoices/{invoice_id}", response_model=InvoiceResponse)
async def get_invoice_api(
    invoice_id: str,
    store: InvoiceStore = Depends(get_store),
    gateway: BTCPayClient = Depends(get_gateway),
):
    # "not found" upstream is not told apart from other failures
    try:
        invoice = await gateway.get_invoice(invoice_id)
    except UpstreamError as e:
        log.error("Get invoice error for %s: %s", invoice_id, e)
        return JSONResponse(status_code=500, content={"error": "Failed to fetch invoice"})

    record = store.get(invoice_id)
    if record:
        store.set(invoice_id, record.with_status(invoice.status))

    return InvoiceResponse.from_invoice(invoice)
