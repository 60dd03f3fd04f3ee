# services/chain_builder.py
"""
Chain Builder - issues fiscal documents with gapless numbers and hash links.

For a new document in (fiscal_year, series):
1. Reserve the next counter value (compare-and-swap on the counter row)
2. Read current_hash of the last document of the same key ("" if none)
3. Compute amounts and SHA-256 over the canonical fields + previous hash
4. Insert and commit in one transaction

Steps 1-4 run while holding a per-key lock so two writers in this process
never race for the same predecessor; the counter CAS and the unique
constraints cover writers in other processes. A lost race rolls back and
retries from step 1, up to max_attempts. A clash on the one-invoice-per-order
key is not a race and fails at once with OrderStateError.

created_at is clamped to the predecessor's, so creation order never
contradicts counter order when host clocks disagree.
"""
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

import config
from models import Invoice, CreditNote, CreditNoteKind, PaymentStatus
from services.chain_hash import (
     CANONICAL_VERSION,
     CREDIT_NOTE_PREFIX,
     INVOICE_PREFIX,
     SENTINEL_HASH,
     compute_chain_hash,
     compute_tax,
     format_sequence_number,
     to_money,
)
from services.exceptions import ChainBuildFailure, DuplicateSequenceError, InvalidDraftError, OrderStateError
from services.sequence_service import allocate_next_counter

logger = logging.getLogger(__name__)

# Unique keys whose violation means another writer took the number
_SEQUENCE_KEY_MARKERS = ("sequence_number", "sequence_counter", "year_series_counter")

# One invoice per repair order (index name, or table.column on SQLite)
_ORDER_KEY_MARKERS = ("ix_invoices_order_id", "invoices.order_id")


@dataclass
class InvoiceDraft:
     """Input for a new invoice. Number and hash are assigned by the builder."""
     client_id: str
     taxable_base: Decimal
     order_id: Optional[str] = None
     tax_rate: Optional[Decimal] = None
     series: Optional[str] = None
     fiscal_year: Optional[int] = None  # Override for backfilled series
     issue_date: Optional[datetime] = None
     client_tax_id: Optional[str] = None
     sequence_number: Optional[str] = None
     current_hash: Optional[str] = None


@dataclass
class CreditNoteDraft:
     """Input for a compensating document."""
     amount: Decimal
     reason: str
     original_invoice_id: Optional[str] = None
     kind: CreditNoteKind = CreditNoteKind.CREDIT_NOTE
     series: Optional[str] = None
     fiscal_year: Optional[int] = None
     issue_date: Optional[datetime] = None
     created_by: Optional[str] = None
     sequence_number: Optional[str] = None
     current_hash: Optional[str] = None


# One lock per (prefix, fiscal_year, series), shared by every builder in the process
_key_locks: dict[tuple, threading.Lock] = {}
_key_locks_guard = threading.Lock()


def _lock_for(key: tuple) -> threading.Lock:
     with _key_locks_guard:
          lock = _key_locks.get(key)
          if lock is None:
               lock = _key_locks[key] = threading.Lock()
          return lock


def _utcnow() -> datetime:
     return datetime.now(timezone.utc).replace(tzinfo=None)


def _validate_series(series: str) -> str:
     if not series or len(series) > 10 or "-" in series or "|" in series:
          raise InvalidDraftError(f"Invalid series {series!r}: 1-10 chars, no '-' or '|'")
     return series


class ChainBuilder:
     """Assigns sequence numbers and tamper-evident hashes to new documents."""

     def __init__(
          self,
          max_attempts: Optional[int] = None,
          clock: Callable[[], datetime] = _utcnow,
     ):
          self.max_attempts = max_attempts or config.CHAIN_MAX_ATTEMPTS
          self.clock = clock

     def build_invoice(
          self,
          db: Session,
          draft: InvoiceDraft,
          on_issued: Optional[Callable[[Invoice], None]] = None,
     ) -> Invoice:
          """
          Issue an invoice from a draft.

          Args:
               db: SQLAlchemy session; committed by this call
               draft: invoice draft without number or hash
               on_issued: optional hook run in the same transaction right
                    before commit (e.g. marking the source order completed);
                    re-run on retry

          Returns:
               Persisted Invoice

          Raises:
               InvalidDraftError: precondition violated, nothing written
               ChainBuildFailure: retries exhausted or persistence error
          """
          if draft.sequence_number or draft.current_hash:
               raise InvalidDraftError("Draft already carries a sequence number or hash")
          tax_rate = config.INVOICE_DEFAULT_TAX_RATE if draft.tax_rate is None else draft.tax_rate
          breakdown = compute_tax(draft.taxable_base, tax_rate)
          if breakdown.taxable_base <= 0:
               raise InvalidDraftError(f"Taxable base must be positive, got {breakdown.taxable_base}")
          if not Decimal("0") <= breakdown.tax_rate <= Decimal("100"):
               raise InvalidDraftError(f"Tax rate must be between 0 and 100, got {breakdown.tax_rate}")

          def make_invoice(number: str, counter: int, fiscal_year: int, series: str,
                           issue_date: datetime, previous_hash: str) -> Invoice:
               return Invoice(
                    client_id=draft.client_id,
                    order_id=draft.order_id,
                    client_tax_id=draft.client_tax_id or None,
                    taxable_base=breakdown.taxable_base,
                    tax_rate=breakdown.tax_rate,
                    tax_amount=breakdown.tax_amount,
                    total=breakdown.total,
                    payment_status=PaymentStatus.PENDING,
                    sequence_number=number,
                    sequence_counter=counter,
                    fiscal_year=fiscal_year,
                    series=series,
                    issue_date=issue_date,
                    previous_hash=previous_hash,
                    current_hash=compute_chain_hash(
                         number,
                         issue_date,
                         breakdown.taxable_base,
                         breakdown.tax_amount,
                         breakdown.total,
                         previous_hash,
                    ),
                    hash_version=CANONICAL_VERSION,
               )

          return self._issue(db, Invoice, INVOICE_PREFIX, draft, make_invoice, on_issued)

     def build_credit_note(
          self,
          db: Session,
          draft: CreditNoteDraft,
          on_issued: Optional[Callable[[CreditNote], None]] = None,
     ) -> CreditNote:
          """Issue a credit note in its own ABO chain. Same contract as build_invoice."""
          if draft.sequence_number or draft.current_hash:
               raise InvalidDraftError("Draft already carries a sequence number or hash")
          amount = to_money(draft.amount)
          if amount <= 0:
               raise InvalidDraftError(f"Credit note amount must be positive, got {amount}")
          if not (draft.reason or "").strip():
               raise InvalidDraftError("Credit note reason is required")

          def make_credit_note(number: str, counter: int, fiscal_year: int, series: str,
                               issue_date: datetime, previous_hash: str) -> CreditNote:
               return CreditNote(
                    original_invoice_id=draft.original_invoice_id,
                    kind=draft.kind,
                    reason=draft.reason.strip(),
                    amount=amount,
                    created_by=draft.created_by,
                    sequence_number=number,
                    sequence_counter=counter,
                    fiscal_year=fiscal_year,
                    series=series,
                    issue_date=issue_date,
                    previous_hash=previous_hash,
                    current_hash=compute_chain_hash(
                         number, issue_date, -amount, Decimal("0.00"), -amount, previous_hash,
                    ),
                    hash_version=CANONICAL_VERSION,
               )

          return self._issue(db, CreditNote, CREDIT_NOTE_PREFIX, draft, make_credit_note, on_issued)

     def _issue(self, db: Session, model, prefix: str, draft, make_document, on_issued):
          series = _validate_series(draft.series or config.INVOICE_DEFAULT_SERIES)
          issue_date = draft.issue_date or self.clock()
          if issue_date.tzinfo is not None:
               issue_date = issue_date.astimezone(timezone.utc)
          issue_date = issue_date.replace(microsecond=0, tzinfo=None)
          fiscal_year = draft.fiscal_year or issue_date.year
          key = (prefix, fiscal_year, series)

          last_error: Optional[DuplicateSequenceError] = None
          for attempt in range(1, self.max_attempts + 1):
               with _lock_for(key):
                    try:
                         document = self._issue_once(
                              db, model, prefix, fiscal_year, series, issue_date,
                              make_document, on_issued,
                         )
                    except DuplicateSequenceError as exc:
                         db.rollback()
                         last_error = exc
                         logger.warning(
                              "Sequence race on %s-%s-%s (attempt %d/%d): %s",
                              prefix, fiscal_year, series, attempt, self.max_attempts, exc,
                         )
                         continue
                    except SQLAlchemyError as exc:
                         db.rollback()
                         logger.exception("Failed to persist %s-%s-%s document", prefix, fiscal_year, series)
                         raise ChainBuildFailure(
                              f"Could not persist document in series {prefix}-{fiscal_year}-{series}",
                              cause=exc,
                         ) from exc
                    except Exception:
                         db.rollback()
                         raise

               logger.info(
                    "Issued %s (previous=%s, hash=%s)",
                    document.sequence_number,
                    document.previous_hash[:16] or "<none>",
                    document.current_hash[:16],
               )
               return document

          logger.error(
               "Giving up on %s-%s-%s after %d attempts", prefix, fiscal_year, series, self.max_attempts
          )
          raise ChainBuildFailure(
               f"Could not allocate a sequence number in {prefix}-{fiscal_year}-{series} "
               f"after {self.max_attempts} attempts",
               cause=last_error,
          ) from last_error

     def _issue_once(self, db: Session, model, prefix: str, fiscal_year: int, series: str,
                     issue_date: datetime, make_document, on_issued):
          counter = allocate_next_counter(db, prefix, fiscal_year, series)
          number = format_sequence_number(prefix, fiscal_year, series, counter)
          previous_hash, previous_created_at = get_previous_link(db, model, fiscal_year, series, counter)

          document = make_document(number, counter, fiscal_year, series, issue_date, previous_hash)
          # Never before the predecessor; another host's clock may run ahead of ours
          created_at = self.clock()
          if previous_created_at is not None and created_at < previous_created_at:
               created_at = previous_created_at
          document.created_at = created_at
          db.add(document)
          if on_issued is not None:
               on_issued(document)

          try:
               db.flush()
               db.commit()
          except IntegrityError as exc:
               message = str(exc.orig)
               if any(marker in message for marker in _SEQUENCE_KEY_MARKERS):
                    raise DuplicateSequenceError(
                         f"Sequence number {number} already exists", sequence_number=number
                    ) from exc
               if any(marker in message for marker in _ORDER_KEY_MARKERS):
                    raise OrderStateError(
                         f"Repair order {document.order_id} is already invoiced"
                    ) from exc
               raise
          return document


def get_previous_link(db: Session, model, fiscal_year: int, series: str,
                      counter: int) -> tuple[str, Optional[datetime]]:
     """
     (current_hash, created_at) of the document just before counter in the
     series, or (sentinel, None) for the first one.
     """
     previous = (
          db.query(model.current_hash, model.created_at)
          .filter(
               model.fiscal_year == fiscal_year,
               model.series == series,
               model.sequence_counter < counter,
          )
          .order_by(model.sequence_counter.desc())
          .first()
     )
     if previous is None:
          return SENTINEL_HASH, None
     return previous.current_hash, previous.created_at
