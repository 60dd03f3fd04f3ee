from .invoice import (
     PaymentStatusEnum,
     InvoiceCreate,
     PaymentStatusUpdate,
     InvoiceResponse,
     InvoiceListResponse,
     IssuedInvoice,
)
from .order import OrderCompleteRequest
from .credit_note import (
     CreditNoteKindEnum,
     CreditNoteCreate,
     CreditNoteResponse,
     CreditNoteListResponse,
)
from .ledger import (
     ChainValidationAnomaly,
     ChainValidationReport,
     LedgerRow,
     LedgerExport,
)

__all__ = [
     "PaymentStatusEnum",
     "InvoiceCreate",
     "PaymentStatusUpdate",
     "InvoiceResponse",
     "InvoiceListResponse",
     "IssuedInvoice",
     "OrderCompleteRequest",
     "CreditNoteKindEnum",
     "CreditNoteCreate",
     "CreditNoteResponse",
     "CreditNoteListResponse",
     "ChainValidationAnomaly",
     "ChainValidationReport",
     "LedgerRow",
     "LedgerExport",
]
