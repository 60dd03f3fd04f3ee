"""
Columns and guards shared by every document that takes part in a fiscal
hash chain (invoices and credit notes).

Each chained record stores the SHA-256 hash of its own canonical fields plus
the hash of its predecessor in the same (fiscal_year, series) sequence.
Records are append-only; modification of chain fields and deletion are
prevented at the application layer.
"""
from sqlalchemy import Column, Integer, String, DateTime, UniqueConstraint, event, inspect
from sqlalchemy.orm import declared_attr


class ImmutableDocumentError(RuntimeError):
     """Raised when code tries to alter or delete an issued fiscal document."""


class ChainedDocumentMixin:
     """Numbering and hash-chain columns for fiscal documents."""

     sequence_number = Column(String(40), nullable=False, unique=True, index=True)
     series = Column(String(10), nullable=False)
     fiscal_year = Column(Integer, nullable=False, index=True)
     sequence_counter = Column(Integer, nullable=False)
     issue_date = Column(DateTime, nullable=False)

     previous_hash = Column(String(64), nullable=False)  # "" for the first document
     current_hash = Column(String(64), nullable=False, unique=True, index=True)  # SHA-256 hex length
     hash_version = Column(String(10), nullable=False)

     # Set by the chain builder with microsecond precision; orders the chain
     created_at = Column(DateTime, nullable=False, index=True)

     @declared_attr.directive
     def __table_args__(cls):
          return chain_table_args(cls.__tablename__)


def chain_table_args(tablename: str) -> tuple:
     """Table constraints every chained document needs; extend, don't replace."""
     return (
          UniqueConstraint(
               "fiscal_year", "series", "sequence_counter",
               name=f"uq_{tablename}_year_series_counter",
          ),
     )


def protect_chain_fields(model, mutable_fields=()) -> None:
     """
     Register ORM listeners that reject updates to chain fields and any delete.

     Only columns listed in mutable_fields may change once the row exists.
     Bulk/core statements bypass these listeners; the database grants should
     restrict those.
     """
     mutable = set(mutable_fields)

     @event.listens_for(model, "before_update")
     def _reject_chain_update(mapper, connection, target):
          state = inspect(target)
          changed = [
               attr.key for attr in mapper.column_attrs
               if attr.key not in mutable and state.attrs[attr.key].history.has_changes()
          ]
          if changed:
               raise ImmutableDocumentError(
                    f"{model.__name__} {target.sequence_number} is immutable; "
                    f"attempted to change {', '.join(sorted(changed))}"
               )

     @event.listens_for(model, "before_delete")
     def _reject_delete(mapper, connection, target):
          raise ImmutableDocumentError(
               f"{model.__name__} {target.sequence_number} cannot be deleted; "
               "issue a credit note instead"
          )
