# routers/orders.py
"""
Repair order completion - the billing event that issues an invoice.
"""
from typing import Optional
from fastapi import APIRouter, Body, Depends, status
from sqlalchemy.orm import Session

from auth import require_roles
from database import get_session
from routers.deps import get_chain_builder, http_error
from schemas.invoice import IssuedInvoice
from schemas.order import OrderCompleteRequest
from services.chain_builder import ChainBuilder
from services.exceptions import ChainError
from services.invoice_service import InvoiceService

router = APIRouter(prefix="/api/orders", tags=["orders"])


@router.post(
     "/{order_id}/complete",
     response_model=IssuedInvoice,
     status_code=status.HTTP_201_CREATED,
     summary="Complete a repair order and issue its invoice"
)
def complete_order(
     order_id: str,
     body: Optional[OrderCompleteRequest] = Body(None),
     db: Session = Depends(get_session),
     builder: ChainBuilder = Depends(get_chain_builder),
     token: dict = Depends(require_roles("admin", "manager", "mechanic")),
):
     """
     Mark the order completed and issue its invoice in one transaction.

     If the invoice cannot be issued the order stays open and the request
     fails; the client must retry.
     """
     options = body or OrderCompleteRequest()
     try:
          invoice = InvoiceService.complete_order(
               db,
               builder,
               order_id,
               series=options.series,
               fiscal_year=options.fiscal_year,
               tax_rate=options.tax_rate,
          )
     except ChainError as exc:
          raise http_error(exc)

     return IssuedInvoice(
          invoice_id=invoice.id,
          sequence_number=invoice.sequence_number,
          current_hash=invoice.current_hash,
     )
