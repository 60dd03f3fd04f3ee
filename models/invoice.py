import enum
from sqlalchemy import Column, String, Numeric, DateTime, ForeignKey, Enum, Index, text
from sqlalchemy.orm import relationship
from .base import Base, new_uuid
from .chained_document import ChainedDocumentMixin, chain_table_args, protect_chain_fields

# Manual invoices have no order; SQL Server would treat their NULLs as duplicates
ORDER_INVOICED_WHERE = "order_id IS NOT NULL"


class PaymentStatus(str, enum.Enum):
     """Enumeration for invoice payment status."""
     PENDING = "pending"
     PAID = "paid"
     FAILED = "failed"


class Invoice(ChainedDocumentMixin, Base):
     """
     Invoice model - fiscal invoice issued when a repair order is completed.

     Numbered FAC-<year>-<series>-<counter> and hash-chained to the previous
     invoice of the same fiscal year and series. Only the payment fields may
     change after issue.
     """
     __tablename__ = "invoices"

     __table_args__ = chain_table_args("invoices") + (
          # One invoice per repair order
          Index(
               "ix_invoices_order_id",
               "order_id",
               unique=True,
               mssql_where=text(ORDER_INVOICED_WHERE),
               postgresql_where=text(ORDER_INVOICED_WHERE),
               sqlite_where=text(ORDER_INVOICED_WHERE),
          ),
     )

     id = Column(String(36), primary_key=True, default=new_uuid)

     # Foreign keys
     client_id = Column(
          String(36),
          ForeignKey("clients.id", ondelete="RESTRICT"),
          nullable=False,
          index=True
     )
     order_id = Column(
          String(36),
          ForeignKey("repair_orders.id", ondelete="RESTRICT"),
          nullable=True
     )
     client_tax_id = Column(String(20), nullable=True)  # Snapshot at issue time

     # Amounts
     taxable_base = Column(Numeric(12, 2), nullable=False)
     tax_rate = Column(Numeric(5, 2), nullable=False)
     tax_amount = Column(Numeric(12, 2), nullable=False)
     total = Column(Numeric(12, 2), nullable=False)

     # Payment (mutable, driven by payment events)
     payment_status = Column(
          Enum(PaymentStatus, name="invoice_payment_status", create_constraint=True),
          default=PaymentStatus.PENDING,
          nullable=False,
          index=True
     )
     paid_at = Column(DateTime, nullable=True)

     # Relationships
     client = relationship("Client", back_populates="invoices")
     order = relationship("RepairOrder", back_populates="invoice")
     credit_notes = relationship("CreditNote", back_populates="original_invoice")

     def __repr__(self):
          return f"<Invoice(id={self.id}, number='{self.sequence_number}', total={self.total}, status='{self.payment_status.value}')>"

     def hash_amounts(self):
          """(taxable_base, tax_amount, total) as covered by current_hash."""
          return self.taxable_base, self.tax_amount, self.total

     def mark_as_paid(self, when) -> None:
          """Mark the invoice as paid."""
          self.payment_status = PaymentStatus.PAID
          self.paid_at = when

     def mark_as_failed(self) -> None:
          """Record a failed payment attempt."""
          self.payment_status = PaymentStatus.FAILED
          self.paid_at = None


protect_chain_fields(Invoice, mutable_fields=("payment_status", "paid_at"))
