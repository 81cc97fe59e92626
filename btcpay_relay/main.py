import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from btcpay_relay.btcpay_service import BTCPayClient
from btcpay_relay.callback import BackendNotifier
from btcpay_relay.config import Settings, load_settings
from btcpay_relay.errors import AuthError, InternalError, ValidationError
from btcpay_relay.logging_config import setup_logging
from btcpay_relay.routes import router
from btcpay_relay.store import InMemoryInvoiceStore, InvoiceStore
from btcpay_relay.webhooks import router as webhook_router

log = logging.getLogger("btcpay_relay")

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
}


def validation_error_from(exc: RequestValidationError) -> ValidationError:
    """Collect every failing field, keyed by field name."""
    field_errors = {}
    form_errors = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        if loc and err.get("type") != "json_invalid":
            field_errors.setdefault(".".join(loc), []).append(err.get("msg", "Invalid value"))
        else:
            form_errors.append(err.get("msg", "Invalid payload"))
    return ValidationError(field_errors, form_errors)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    return await validation_handler(request, validation_error_from(exc))


async def validation_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"error": "Invalid payload", "details": exc.details()})


async def auth_error_handler(request: Request, exc: AuthError):
    log.warning("webhook rejected from %s: %s", request.client.host if request.client else "-", exc)
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})


async def internal_error_handler(request: Request, exc: InternalError):
    log.error("%s %s failed: %s", request.method, request.url.path, exc.__cause__ or exc)
    return JSONResponse(status_code=500, content={"error": str(exc) or "Internal server error"})


async def unhandled_error_handler(request: Request, exc: Exception):
    log.exception("unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"}, headers=SECURITY_HEADERS)


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[InvoiceStore] = None,
    gateway: Optional[BTCPayClient] = None,
    notifier: Optional[BackendNotifier] = None,
) -> FastAPI:
    settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await app.state.gateway.aclose()
        await app.state.notifier.aclose()

    app = FastAPI(title="BTCPay Relay", lifespan=lifespan)

    app.state.settings = settings
    app.state.store = store if store is not None else InMemoryInvoiceStore()
    app.state.gateway = gateway or BTCPayClient.from_settings(settings)
    app.state.notifier = notifier or BackendNotifier.from_settings(settings)

    app.include_router(router)
    app.include_router(webhook_router)

    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(ValidationError, validation_handler)
    app.add_exception_handler(AuthError, auth_error_handler)
    app.add_exception_handler(InternalError, internal_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response

    # Only the configured frontend origin; none when unset
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.allowed_origin] if settings.allowed_origin else [],
        allow_credentials=False,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    return app


def run():
    settings = load_settings()
    setup_logging(settings.log_level)
    app = create_app(settings)
    log.info("BTCPay relay listening on port %s", settings.port)
    uvicorn.run(app, host="0.0.0.0", port=settings.port, log_config=None)


if __name__ == "__main__":
    run()
