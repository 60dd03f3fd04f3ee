# services/sequence_service.py
"""
Gapless numbering for fiscal documents.

Counters live in the 'sequence_counters' table so numbers never restart,
even if document rows go missing. Allocation is a compare-and-swap on the
counter row: it must run inside the caller's transaction, which also inserts
the document, so a rolled back issue leaves no gap.
"""
import logging

from sqlalchemy import select, insert, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models import SequenceCounter
from services.exceptions import DuplicateSequenceError

logger = logging.getLogger(__name__)


def _counter_filter(prefix: str, fiscal_year: int, series: str):
     return (
          SequenceCounter.document_prefix == prefix,
          SequenceCounter.fiscal_year == fiscal_year,
          SequenceCounter.series == series,
     )


def peek_counter(db: Session, prefix: str, fiscal_year: int, series: str) -> int:
     """Last value handed out for the key, 0 if none yet."""
     value = db.execute(
          select(SequenceCounter.last_value).where(*_counter_filter(prefix, fiscal_year, series))
     ).scalar()
     return value or 0


def allocate_next_counter(db: Session, prefix: str, fiscal_year: int, series: str) -> int:
     """
     Reserve the next counter value for (prefix, fiscal_year, series).

     The counter row is read FOR UPDATE (row lock on databases that support
     it) and bumped with a compare-and-swap, so two writers can never leave
     with the same value.

     Raises:
          DuplicateSequenceError: a concurrent writer created or advanced the
               counter first; roll back and retry.
     """
     row = db.execute(
          select(SequenceCounter.id, SequenceCounter.last_value)
          .where(*_counter_filter(prefix, fiscal_year, series))
          .with_for_update()
     ).first()

     if row is None:
          try:
               result = db.execute(
                    insert(SequenceCounter).values(
                         document_prefix=prefix,
                         fiscal_year=fiscal_year,
                         series=series,
                         last_value=0,
                    )
               )
          except IntegrityError as exc:
               raise DuplicateSequenceError(
                    f"Counter {prefix}-{fiscal_year}-{series} was created concurrently"
               ) from exc
          counter_id, current = result.inserted_primary_key[0], 0
          logger.info("Opened numbering series %s-%s-%s", prefix, fiscal_year, series)
     else:
          counter_id, current = row.id, row.last_value

     result = db.execute(
          update(SequenceCounter)
          .where(SequenceCounter.id == counter_id, SequenceCounter.last_value == current)
          .values(last_value=current + 1)
          .execution_options(synchronize_session=False)
     )
     if result.rowcount != 1:
          raise DuplicateSequenceError(
               f"Counter {prefix}-{fiscal_year}-{series} moved past {current} concurrently"
          )
     return current + 1
