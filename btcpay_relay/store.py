from abc import ABC, abstractmethod
from typing import Dict, Optional

from btcpay_relay.models import LocalInvoiceRecord


class InvoiceStore(ABC):
    """Local invoice records keyed by BTCPay invoice id.

    Implementations only need single-key reads and overwrites. A database
    backed store can replace the in-memory one without touching the routes.
    """

    @abstractmethod
    def get(self, invoice_id: str) -> Optional[LocalInvoiceRecord]:
        ...

    @abstractmethod
    def set(self, invoice_id: str, record: LocalInvoiceRecord) -> None:
        ...


class InMemoryInvoiceStore(InvoiceStore):
    # Process lifetime only; last write wins
    def __init__(self):
        self._records: Dict[str, LocalInvoiceRecord] = {}

    def get(self, invoice_id: str) -> Optional[LocalInvoiceRecord]:
        return self._records.get(invoice_id)

    def set(self, invoice_id: str, record: LocalInvoiceRecord) -> None:
        self._records[invoice_id] = record

    def __len__(self):
        return len(self._records)
