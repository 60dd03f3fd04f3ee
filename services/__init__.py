from .chain_hash import (
     SENTINEL_HASH,
     CANONICAL_VERSION,
     compute_chain_hash,
     compute_tax,
     canonicalize,
)
from .chain_builder import ChainBuilder, InvoiceDraft, CreditNoteDraft
from .chain_validator import validate_chain
from .ledger_export import export_ledger_csv, export_ledger_json, build_invoice_record
from .invoice_service import InvoiceService
from .credit_note_service import issue_credit_note, list_credit_notes

__all__ = [
     "SENTINEL_HASH",
     "CANONICAL_VERSION",
     "compute_chain_hash",
     "compute_tax",
     "canonicalize",
     "ChainBuilder",
     "InvoiceDraft",
     "CreditNoteDraft",
     "validate_chain",
     "export_ledger_csv",
     "export_ledger_json",
     "build_invoice_record",
     "InvoiceService",
     "issue_credit_note",
     "list_credit_notes",
]
