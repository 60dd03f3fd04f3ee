# services/invoice_service.py
"""
Invoice Service - Business logic layer for invoice operations.

Handles the order-completion billing event, payment status changes and
queries, separate from the API layer. Numbering and hashing are delegated
to the ChainBuilder.
"""
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from models import Client, Invoice, PaymentStatus, RepairOrder, RepairOrderStatus
from services.chain_builder import ChainBuilder, InvoiceDraft
from services.exceptions import InvalidDraftError, InvoiceNotFoundError, OrderNotFoundError, OrderStateError

logger = logging.getLogger(__name__)

INVOICEABLE_ORDER_STATES = {RepairOrderStatus.RECEIVED, RepairOrderStatus.IN_PROGRESS}


class InvoiceService:
     """Service class for invoice-related business logic."""

     @staticmethod
     def issue_invoice(
          db: Session,
          builder: ChainBuilder,
          client_id: str,
          taxable_base: Decimal,
          tax_rate: Optional[Decimal] = None,
          series: Optional[str] = None,
          fiscal_year: Optional[int] = None,
          order_id: Optional[str] = None,
     ) -> Invoice:
          """
          Issue a manual invoice for a client.

          Raises:
               InvalidDraftError: If the client doesn't exist or amounts are invalid
               ChainBuildFailure: If the invoice could not be persisted
          """
          client = db.query(Client).filter(Client.id == client_id).first()
          if not client:
               raise InvalidDraftError(f"Client with ID {client_id} not found")

          draft = InvoiceDraft(
               client_id=client.id,
               order_id=order_id,
               taxable_base=taxable_base,
               tax_rate=tax_rate,
               series=series,
               fiscal_year=fiscal_year,
               client_tax_id=client.tax_id,
          )
          return builder.build_invoice(db, draft)

     @staticmethod
     def complete_order(
          db: Session,
          builder: ChainBuilder,
          order_id: str,
          series: Optional[str] = None,
          fiscal_year: Optional[int] = None,
          tax_rate: Optional[Decimal] = None,
     ) -> Invoice:
          """
          Complete a repair order and issue its invoice.

          The taxable base is the labour estimate plus every product line.
          The order status change and the invoice are committed together;
          if the invoice cannot be issued the order stays open.

          Args:
               db: SQLAlchemy database session
               builder: Chain builder issuing the invoice
               order_id: ID of the repair order
               series: Invoice series (default: configured series)
               fiscal_year: Override for backfilled series

          Returns:
               Issued Invoice

          Raises:
               OrderNotFoundError: If the order doesn't exist
               OrderStateError: If the order is closed or already invoiced
               ChainBuildFailure: If the invoice could not be issued
          """
          order = db.query(RepairOrder).filter(RepairOrder.id == order_id).first()
          if not order:
               raise OrderNotFoundError(f"Repair order with ID {order_id} not found")
          if order.invoice is not None:
               raise OrderStateError(
                    f"Repair order {order_id} already invoiced as {order.invoice.sequence_number}"
               )
          if order.status not in INVOICEABLE_ORDER_STATES:
               raise OrderStateError(f"Repair order {order_id} is {order.status.value}")

          draft = InvoiceDraft(
               client_id=order.client_id,
               order_id=order.id,
               taxable_base=order.taxable_base,
               tax_rate=tax_rate,
               series=series,
               fiscal_year=fiscal_year,
               client_tax_id=order.client.tax_id if order.client else None,
          )

          def close_order(invoice: Invoice) -> None:
               completed = db.query(RepairOrder).filter(RepairOrder.id == order_id).one()
               completed.status = RepairOrderStatus.COMPLETED
               completed.completed_at = invoice.created_at

          invoice = builder.build_invoice(db, draft, on_issued=close_order)
          logger.info("Repair order %s completed, invoiced as %s", order_id, invoice.sequence_number)
          return invoice

     @staticmethod
     def get_invoice(db: Session, invoice_id: str) -> Invoice:
          invoice = db.query(Invoice).filter(Invoice.id == invoice_id).first()
          if not invoice:
               raise InvoiceNotFoundError(f"Invoice with ID {invoice_id} not found")
          return invoice

     @staticmethod
     def record_payment_event(db: Session, invoice_id: str, status: PaymentStatus) -> Invoice:
          """
          Apply a payment result to an invoice.

          Payment status is the only invoice field that may change after issue.
          """
          invoice = InvoiceService.get_invoice(db, invoice_id)
          if status == PaymentStatus.PAID:
               invoice.mark_as_paid(datetime.now(timezone.utc).replace(tzinfo=None))
          elif status == PaymentStatus.FAILED:
               invoice.mark_as_failed()
          else:
               invoice.payment_status = PaymentStatus.PENDING
               invoice.paid_at = None
          db.flush()
          logger.info("Invoice %s payment status -> %s", invoice.sequence_number, status.value)
          return invoice

     @staticmethod
     def list_invoices(
          db: Session,
          fiscal_year: Optional[int] = None,
          series: Optional[str] = None,
          payment_status: Optional[PaymentStatus] = None,
          client_id: Optional[str] = None,
          page: int = 1,
          page_size: int = 50,
     ) -> tuple[list[Invoice], int]:
          """
          Paginated invoice listing, newest first.

          Returns:
               (invoices, total) where total ignores pagination
          """
          query = db.query(Invoice)

          if fiscal_year:
               query = query.filter(Invoice.fiscal_year == fiscal_year)
          if series:
               query = query.filter(Invoice.series == series)
          if payment_status:
               query = query.filter(Invoice.payment_status == payment_status)
          if client_id:
               query = query.filter(Invoice.client_id == client_id)

          total = query.count()
          offset = (page - 1) * page_size
          invoices = (
               query.order_by(Invoice.created_at.desc(), Invoice.sequence_counter.desc())
               .offset(offset)
               .limit(page_size)
               .all()
          )
          return invoices, total
