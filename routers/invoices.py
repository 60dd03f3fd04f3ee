# routers/invoices.py
"""
Invoice API routes.

Invoices are issued (never edited or deleted), listed, audited and
exported. Role-based access:
- Any authenticated user: list and read invoices
- Admin / Manager: issue invoices, record payment events, audit and export
"""
from typing import Literal, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from auth import require_roles, verify_token
from database import get_session
from models import Invoice, PaymentStatus
from routers.deps import get_chain_builder, http_error
from schemas.invoice import (
     InvoiceCreate,
     InvoiceListResponse,
     InvoiceResponse,
     PaymentStatusEnum,
     PaymentStatusUpdate,
)
from schemas.ledger import ChainValidationReport, LedgerExport
from services.chain_builder import ChainBuilder
from services.chain_validator import validate_chain
from services.exceptions import ChainError
from services.invoice_service import InvoiceService
from services.ledger_export import build_invoice_record, export_ledger_csv, export_ledger_json

router = APIRouter(prefix="/api/invoices", tags=["invoices"])

staff_only = require_roles("admin", "manager")


def _build_invoice_response(invoice: Invoice) -> InvoiceResponse:
     """Build InvoiceResponse with related client data."""
     response = InvoiceResponse.model_validate(invoice)
     if invoice.client:
          response.client_name = invoice.client.full_name
     return response


@router.post(
     "",
     response_model=InvoiceResponse,
     status_code=status.HTTP_201_CREATED,
     summary="Issue a new invoice"
)
def create_invoice(
     invoice_data: InvoiceCreate,
     db: Session = Depends(get_session),
     builder: ChainBuilder = Depends(get_chain_builder),
     token: dict = Depends(staff_only)
):
     """
     Issue a manual invoice for a client.

     - **client_id**: ID of the client being billed
     - **taxable_base**: Amount before VAT (must be positive)
     - **tax_rate**: VAT percentage (defaults to 21)
     - **series**: Invoice series (defaults to the configured series)

     Sequence number and hash are assigned by the server.
     """
     try:
          invoice = InvoiceService.issue_invoice(
               db,
               builder,
               client_id=invoice_data.client_id,
               taxable_base=invoice_data.taxable_base,
               tax_rate=invoice_data.tax_rate,
               series=invoice_data.series,
               fiscal_year=invoice_data.fiscal_year,
          )
     except ChainError as exc:
          raise http_error(exc)

     return _build_invoice_response(invoice)


@router.get(
     "",
     response_model=InvoiceListResponse,
     summary="List invoices with filters"
)
def list_invoices(
     fiscal_year: Optional[int] = Query(None, description="Filter by fiscal year"),
     series: Optional[str] = Query(None, description="Filter by series"),
     payment_status: Optional[PaymentStatusEnum] = Query(None, description="Filter by payment status"),
     client_id: Optional[str] = Query(None, description="Filter by client ID"),
     page: int = Query(1, ge=1, description="Page number"),
     page_size: int = Query(50, ge=1, le=100, description="Items per page"),
     db: Session = Depends(get_session),
     token: dict = Depends(verify_token)
):
     """
     Retrieve a paginated list of invoices, newest first.
     """
     invoices, total = InvoiceService.list_invoices(
          db,
          fiscal_year=fiscal_year,
          series=series,
          payment_status=PaymentStatus(payment_status.value) if payment_status else None,
          client_id=client_id,
          page=page,
          page_size=page_size,
     )
     return InvoiceListResponse(
          invoices=[_build_invoice_response(inv) for inv in invoices],
          total=total,
          page=page,
          page_size=page_size
     )


# ---------------------------------------------------------------------------
# Hash chain audit and ledger export
# ---------------------------------------------------------------------------

@router.get(
     "/chain/{fiscal_year}/validate",
     response_model=ChainValidationReport,
     summary="Verify the invoice hash chain of a fiscal year"
)
def validate_invoice_chain(
     fiscal_year: int,
     series: Optional[str] = Query(None, description="Restrict to one series"),
     verify_hashes: bool = Query(False, description="Also recompute stored hashes"),
     db: Session = Depends(get_session),
     token: dict = Depends(staff_only),
):
     """
     Check every previous_hash link of the fiscal year. All breaks are
     reported; an empty year is valid.
     """
     return validate_chain(db, fiscal_year, series=series, verify_hashes=verify_hashes)


@router.get(
     "/ledger/{fiscal_year}",
     response_model=LedgerExport,
     summary="Export the ledger of issued invoices"
)
def export_ledger(
     fiscal_year: int,
     series: Optional[str] = Query(None, description="Restrict to one series"),
     format: Literal["csv", "json"] = Query("csv", description="csv (';'-separated) or json"),
     db: Session = Depends(get_session),
     token: dict = Depends(staff_only),
):
     """
     Ledger of issued invoices for regulatory submission.

     CSV columns: sequenceNumber;issueDate;clientName;clientTaxId;taxableBase;
     taxRate;taxAmount;total;paymentStatus;currentHash
     """
     if format == "json":
          return export_ledger_json(db, fiscal_year, series)

     body = export_ledger_csv(db, fiscal_year, series)
     filename = f"invoice-ledger-{fiscal_year}{'-' + series if series else ''}.csv"
     return Response(
          content=body.encode("utf-8"),
          media_type="text/csv; charset=utf-8",
          headers={"Content-Disposition": f'attachment; filename="{filename}"'},
     )


@router.get(
     "/{invoice_id}",
     response_model=InvoiceResponse,
     summary="Get invoice by ID"
)
def get_invoice(
     invoice_id: str,
     db: Session = Depends(get_session),
     token: dict = Depends(verify_token)
):
     """
     Retrieve a specific invoice by ID with related client information.
     """
     try:
          invoice = InvoiceService.get_invoice(db, invoice_id)
     except ChainError as exc:
          raise http_error(exc)
     return _build_invoice_response(invoice)


@router.get(
     "/{invoice_id}/fiscal-record",
     summary="Fiscal record of a single invoice"
)
def get_fiscal_record(
     invoice_id: str,
     db: Session = Depends(get_session),
     token: dict = Depends(staff_only),
):
     """
     JSON record of one invoice for submission to the tax agency, including
     its chaining block.
     """
     try:
          invoice = InvoiceService.get_invoice(db, invoice_id)
     except ChainError as exc:
          raise http_error(exc)

     record = build_invoice_record(invoice)
     return JSONResponse(
          content=record,
          headers={"Content-Disposition": f'attachment; filename="fiscal-record-{invoice.sequence_number}.json"'},
     )


@router.patch(
     "/{invoice_id}/payment-status",
     response_model=InvoiceResponse,
     summary="Record a payment event"
)
def update_payment_status(
     invoice_id: str,
     body: PaymentStatusUpdate,
     db: Session = Depends(get_session),
     token: dict = Depends(staff_only)
):
     """
     Apply a payment result (pending, paid, failed). No other invoice field
     can change after issue.
     """
     try:
          invoice = InvoiceService.record_payment_event(
               db, invoice_id, PaymentStatus(body.payment_status.value)
          )
     except ChainError as exc:
          raise http_error(exc)

     db.commit()
     return _build_invoice_response(invoice)


@router.put(
     "/{invoice_id}",
     status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
     summary="Invoices cannot be edited"
)
def update_invoice(invoice_id: str, token: dict = Depends(verify_token)):
     """
     Issued invoices are immutable. Issue a credit note to correct one.
     """
     raise HTTPException(
          status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
          detail="Issued invoices cannot be modified; issue a credit note instead"
     )


@router.delete(
     "/{invoice_id}",
     status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
     summary="Invoices cannot be deleted"
)
def delete_invoice(invoice_id: str, token: dict = Depends(verify_token)):
     """
     Invoices are kept forever for fiscal audit. Issue a credit note instead.
     """
     raise HTTPException(
          status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
          detail="Issued invoices cannot be deleted; issue a credit note instead"
     )