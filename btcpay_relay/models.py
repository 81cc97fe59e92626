from dataclasses import dataclass, replace
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

INVOICE_STATUS_CHANGED = "InvoiceStatusChanged"


class InvoiceStatus(str, Enum):
    NEW = "New"
    PROCESSING = "Processing"
    SETTLED = "Settled"
    EXPIRED = "Expired"
    INVALID = "Invalid"


class Invoice(BaseModel):
    """Invoice as returned by the BTCPay Greenfield API."""

    model_config = ConfigDict(extra="allow", populate_by_name=True, coerce_numbers_to_str=True)

    id: str
    status: InvoiceStatus
    checkout_link: str = Field(alias="checkoutLink")
    amount: Optional[str] = None
    currency: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


@dataclass(frozen=True)
class LocalInvoiceRecord:
    order_id: str
    status: InvoiceStatus

    def with_status(self, status: InvoiceStatus) -> "LocalInvoiceRecord":
        return replace(self, status=status)


class CreateInvoiceRequest(BaseModel):
    order_id: str = Field(min_length=1)
    amount: str
    currency: str = Field(min_length=3, max_length=5)
    description: Optional[str] = None

    @field_validator("amount", mode="before")
    @classmethod
    def amount_as_string(cls, value):
        # bool is an int subclass; reject it explicitly
        if isinstance(value, bool) or not isinstance(value, (int, float, str)):
            raise ValueError("Expected number or numeric string")
        if isinstance(value, str):
            try:
                parsed = Decimal(value.strip())
            except InvalidOperation:
                raise ValueError("Expected number or numeric string")
            if not parsed.is_finite():
                raise ValueError("Expected number or numeric string")
            return value.strip()
        return str(value)


class InvoiceResponse(BaseModel):
    invoice_id: str
    invoice_status: InvoiceStatus
    checkout_url: str

    @classmethod
    def from_invoice(cls, invoice: Invoice) -> "InvoiceResponse":
        return cls(
            invoice_id=invoice.id,
            invoice_status=invoice.status,
            checkout_url=invoice.checkout_link,
        )


class WebhookEvent(BaseModel):
    """Signed BTCPay delivery. Fields of an unexpected type read as absent."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    type: Optional[str] = None
    invoice_id: Optional[str] = Field(default=None, alias="invoiceId")
    store_id: Optional[str] = Field(default=None, alias="storeId")
    delivery_id: Optional[str] = Field(default=None, alias="deliveryId")
    data: Optional[Dict[str, Any]] = None

    @field_validator("type", "invoice_id", "store_id", "delivery_id", mode="before")
    @classmethod
    def string_or_none(cls, value):
        return value if isinstance(value, str) else None

    @field_validator("data", mode="before")
    @classmethod
    def dict_or_none(cls, value):
        return value if isinstance(value, dict) else None

    def new_status(self) -> Optional[InvoiceStatus]:
        status = (self.data or {}).get("status")
        try:
            return InvoiceStatus(status)
        except ValueError:
            return None


class CallbackPayload(BaseModel):
    order_id: str
    invoice_id: str
    status: InvoiceStatus
    payment_method: str = "crypto"
