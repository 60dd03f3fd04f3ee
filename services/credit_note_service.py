# services/credit_note_service.py
"""
Credit notes - compensating documents for issued invoices.

An invoice is never edited after issue. Corrections and refunds are issued
as credit notes in their own chain (ABO-<year>-<series>-<counter>).
"""
import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from models import CreditNote, CreditNoteKind, Invoice
from services.chain_builder import ChainBuilder, CreditNoteDraft
from services.chain_hash import to_money
from services.exceptions import CreditNoteLimitError, InvoiceNotFoundError

logger = logging.getLogger(__name__)


def credited_amount(db: Session, invoice_id: str) -> Decimal:
     """Sum of credit notes already issued against an invoice."""
     total = (
          db.query(func.coalesce(func.sum(CreditNote.amount), 0))
          .filter(CreditNote.original_invoice_id == invoice_id)
          .scalar()
     )
     return to_money(total or 0)


def _remaining_credit(db: Session, invoice: Invoice) -> Decimal:
     return to_money(invoice.total) - credited_amount(db, invoice.id)


def issue_credit_note(
     db: Session,
     builder: ChainBuilder,
     amount: Decimal,
     reason: str,
     original_invoice_id: Optional[str] = None,
     kind: CreditNoteKind = CreditNoteKind.CREDIT_NOTE,
     series: Optional[str] = None,
     created_by: Optional[str] = None,
) -> CreditNote:
     """
     Issue a credit note, optionally against an invoice.

     The remaining amount is checked up front and again inside the chain
     lock with the invoice row locked, so concurrent requests cannot credit
     more than the invoice total.

     Raises:
          InvoiceNotFoundError: If original_invoice_id doesn't exist
          CreditNoteLimitError: If the credit would exceed the invoice total
          InvalidDraftError: If amount or reason are invalid
          ChainBuildFailure: If the note could not be persisted
     """
     if original_invoice_id is not None:
          invoice = db.query(Invoice).filter(Invoice.id == original_invoice_id).first()
          if not invoice:
               raise InvoiceNotFoundError(f"Invoice with ID {original_invoice_id} not found")
          remaining = _remaining_credit(db, invoice)
          if to_money(amount) > remaining:
               raise CreditNoteLimitError(
                    f"Credit of {to_money(amount)} exceeds remaining {remaining} on {invoice.sequence_number}"
               )

     draft = CreditNoteDraft(
          amount=amount,
          reason=reason,
          original_invoice_id=original_invoice_id,
          kind=kind,
          series=series,
          created_by=created_by,
     )

     def recheck_limit(note: CreditNote) -> None:
          # Credit notes committed since the check above count too
          if original_invoice_id is None:
               return
          with db.no_autoflush:
               locked = (
                    db.query(Invoice)
                    .filter(Invoice.id == original_invoice_id)
                    .with_for_update()
                    .one()
               )
               remaining = _remaining_credit(db, locked)
          if note.amount > remaining:
               raise CreditNoteLimitError(
                    f"Credit of {note.amount} exceeds remaining {remaining} on {locked.sequence_number}"
               )

     note = builder.build_credit_note(db, draft, on_issued=recheck_limit)
     logger.info(
          "Credit note %s issued for %s against %s",
          note.sequence_number, note.amount, original_invoice_id or "<no invoice>",
     )
     return note


def list_credit_notes(
     db: Session,
     fiscal_year: Optional[int] = None,
     original_invoice_id: Optional[str] = None,
) -> list[CreditNote]:
     query = db.query(CreditNote)
     if fiscal_year:
          query = query.filter(CreditNote.fiscal_year == fiscal_year)
     if original_invoice_id:
          query = query.filter(CreditNote.original_invoice_id == original_invoice_id)
     return query.order_by(CreditNote.created_at, CreditNote.sequence_counter).all()
