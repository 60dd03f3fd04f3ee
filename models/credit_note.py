import enum
from decimal import Decimal
from sqlalchemy import Column, String, Text, Numeric, ForeignKey, Enum
from sqlalchemy.orm import relationship
from .base import Base, new_uuid
from .chained_document import ChainedDocumentMixin, protect_chain_fields


class CreditNoteKind(str, enum.Enum):
     """Compensating document types."""
     CREDIT_NOTE = "credit_note"
     REFUND = "refund"


class CreditNote(ChainedDocumentMixin, Base):
     """
     Credit note model - compensating document that offsets an issued invoice.

     Invoices are never edited; corrections are issued here, numbered
     ABO-<year>-<series>-<counter> in a chain of their own.
     """
     __tablename__ = "credit_notes"

     id = Column(String(36), primary_key=True, default=new_uuid)
     original_invoice_id = Column(
          String(36),
          ForeignKey("invoices.id", ondelete="RESTRICT"),
          nullable=True,
          index=True
     )
     kind = Column(
          Enum(CreditNoteKind, name="credit_note_kind", create_constraint=True),
          default=CreditNoteKind.CREDIT_NOTE,
          nullable=False
     )
     reason = Column(Text, nullable=False)
     amount = Column(Numeric(12, 2), nullable=False)  # Positive; hashed as a negative total
     created_by = Column(String(100), nullable=True)

     original_invoice = relationship("Invoice", back_populates="credit_notes")

     def __repr__(self):
          return f"<CreditNote(id={self.id}, number='{self.sequence_number}', amount={self.amount})>"

     def hash_amounts(self):
          """Credit notes hash as a negative base with no tax."""
          return -self.amount, Decimal("0.00"), -self.amount


protect_chain_fields(CreditNote)
