"""
Persistent counters for fiscal document numbering.

One row per (document_prefix, fiscal_year, series). The row is never reset
or deleted, so numbers never repeat even if the documents table is tampered
with.
"""
from sqlalchemy import Column, Integer, String, UniqueConstraint
from .base import Base


class SequenceCounter(Base):
     """Last number handed out for a document prefix, fiscal year and series."""
     __tablename__ = "sequence_counters"

     id = Column(Integer, primary_key=True, autoincrement=True)
     document_prefix = Column(String(10), nullable=False)  # FAC, ABO
     fiscal_year = Column(Integer, nullable=False)
     series = Column(String(10), nullable=False)
     last_value = Column(Integer, nullable=False, default=0)

     __table_args__ = (
          UniqueConstraint("document_prefix", "fiscal_year", "series", name="uq_sequence_counter_key"),
     )

     def __repr__(self):
          return f"<SequenceCounter({self.document_prefix}-{self.fiscal_year}-{self.series}={self.last_value})>"
