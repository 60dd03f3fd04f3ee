from .base import Base
from .client import Client
from .repair_order import RepairOrder, RepairOrderStatus, OrderProduct
from .chained_document import ChainedDocumentMixin, ImmutableDocumentError
from .invoice import Invoice, PaymentStatus
from .credit_note import CreditNote, CreditNoteKind
from .sequence_counter import SequenceCounter

__all__ = [
     "Base",
     "Client",
     "RepairOrder",
     "RepairOrderStatus",
     "OrderProduct",
     "ChainedDocumentMixin",
     "ImmutableDocumentError",
     "Invoice",
     "PaymentStatus",
     "CreditNote",
     "CreditNoteKind",
     "SequenceCounter",
]
