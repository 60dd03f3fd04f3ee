# services/chain_validator.py
"""
Chain Validator - read-only audit of a fiscal year's document chain.

Walks the documents of each (fiscal_year, series) in creation order and
checks every previous_hash against the current_hash before it. Every break
is collected; the walk never stops at the first one.

Stored hashes are trusted by default. verify_hashes=True also recomputes
current_hash for documents written with the current canonical version.
"""
import logging
from itertools import groupby
from typing import Optional

from sqlalchemy.orm import Session

from models import Invoice, CreditNote
from schemas.ledger import ChainValidationAnomaly, ChainValidationReport
from services.chain_hash import CANONICAL_VERSION, SENTINEL_HASH, compute_chain_hash

logger = logging.getLogger(__name__)

DOCUMENT_MODELS = {
     "invoice": Invoice,
     "credit_note": CreditNote,
}


def fetch_chain(db: Session, model, fiscal_year: int, series: Optional[str] = None) -> list:
     """Documents of a fiscal year ordered by series, then creation time."""
     query = db.query(model).filter(model.fiscal_year == fiscal_year)
     if series is not None:
          query = query.filter(model.series == series)
     return query.order_by(model.series, model.created_at, model.sequence_counter).all()


def recompute_hash(document) -> str:
     taxable_base, tax_amount, total = document.hash_amounts()
     return compute_chain_hash(
          document.sequence_number,
          document.issue_date,
          taxable_base,
          tax_amount,
          total,
          document.previous_hash,
          version=document.hash_version,
     )


def check_links(documents: list, verify_hashes: bool = False) -> list[ChainValidationAnomaly]:
     """
     Check linkage of one series, already in chain order.

     Index 0 must point at the sentinel; index i at document i-1.
     """
     errors = []
     expected_previous = SENTINEL_HASH
     for document in documents:
          actual_previous = document.previous_hash or SENTINEL_HASH
          if actual_previous != expected_previous:
               errors.append(ChainValidationAnomaly(
                    sequence_number=document.sequence_number,
                    expected_hash=expected_previous,
                    actual_hash=actual_previous,
               ))
          if verify_hashes and document.hash_version == CANONICAL_VERSION:
               computed = recompute_hash(document)
               if computed != document.current_hash:
                    errors.append(ChainValidationAnomaly(
                         sequence_number=document.sequence_number,
                         expected_hash=computed,
                         actual_hash=document.current_hash,
                         kind="current_hash_mismatch",
                    ))
          expected_previous = document.current_hash
     return errors


def validate_chain(
     db: Session,
     fiscal_year: int,
     series: Optional[str] = None,
     document: str = "invoice",
     verify_hashes: bool = False,
) -> ChainValidationReport:
     """
     Verify the hash chain of a fiscal year.

     Args:
          db: SQLAlchemy session (only read from)
          fiscal_year: Year to audit
          series: Restrict to one series; None audits each series separately
          document: "invoice" or "credit_note"
          verify_hashes: Also recompute current_hash (current version only)

     Returns:
          ChainValidationReport; valid is True iff errors is empty. An empty
          year is valid with total_invoices=0.
     """
     model = DOCUMENT_MODELS[document]
     documents = fetch_chain(db, model, fiscal_year, series)

     errors = []
     for _, chain in groupby(documents, key=lambda d: d.series):
          errors.extend(check_links(list(chain), verify_hashes=verify_hashes))

     report = ChainValidationReport(
          valid=not errors,
          total_invoices=len(documents),
          errors=errors,
          fiscal_year=fiscal_year,
          series=series,
     )
     if errors:
          logger.warning(
               "Chain %s %s%s has %d anomalies, first at %s",
               document, fiscal_year, f"/{series}" if series else "", len(errors), errors[0].sequence_number,
          )
     else:
          logger.info(
               "Chain %s %s%s valid (%d documents)",
               document, fiscal_year, f"/{series}" if series else "", len(documents),
          )
     return report
