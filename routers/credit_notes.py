# routers/credit_notes.py
"""
Credit note API routes - compensating documents for issued invoices.
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from auth import require_roles, verify_token
from database import get_session
from models import CreditNoteKind
from routers.deps import get_chain_builder, http_error
from schemas.credit_note import CreditNoteCreate, CreditNoteListResponse, CreditNoteResponse
from schemas.ledger import ChainValidationReport
from services.chain_builder import ChainBuilder
from services.chain_validator import validate_chain
from services.credit_note_service import issue_credit_note, list_credit_notes
from services.exceptions import ChainError

router = APIRouter(prefix="/api/credit-notes", tags=["credit-notes"])

staff_only = require_roles("admin", "manager")


@router.post(
     "",
     response_model=CreditNoteResponse,
     status_code=status.HTTP_201_CREATED,
     summary="Issue a credit note"
)
def create_credit_note(
     body: CreditNoteCreate,
     db: Session = Depends(get_session),
     builder: ChainBuilder = Depends(get_chain_builder),
     token: dict = Depends(staff_only),
):
     """
     Issue a credit note, optionally against an invoice. The amount may not
     exceed what remains uncredited on that invoice.
     """
     try:
          note = issue_credit_note(
               db,
               builder,
               amount=body.amount,
               reason=body.reason,
               original_invoice_id=body.original_invoice_id,
               kind=CreditNoteKind(body.kind.value),
               series=body.series,
               created_by=str(token.get("id")) if token.get("id") is not None else None,
          )
     except ChainError as exc:
          raise http_error(exc)
     return note


@router.get(
     "",
     response_model=CreditNoteListResponse,
     summary="List credit notes"
)
def get_credit_notes(
     fiscal_year: Optional[int] = Query(None, description="Filter by fiscal year"),
     original_invoice_id: Optional[str] = Query(None, description="Filter by compensated invoice"),
     db: Session = Depends(get_session),
     token: dict = Depends(verify_token),
):
     notes = list_credit_notes(db, fiscal_year=fiscal_year, original_invoice_id=original_invoice_id)
     return CreditNoteListResponse(
          credit_notes=[CreditNoteResponse.model_validate(note) for note in notes],
          total=len(notes),
     )


@router.get(
     "/chain/{fiscal_year}/validate",
     response_model=ChainValidationReport,
     summary="Verify the credit note hash chain of a fiscal year"
)
def validate_credit_note_chain(
     fiscal_year: int,
     series: Optional[str] = Query(None, description="Restrict to one series"),
     verify_hashes: bool = Query(False, description="Also recompute stored hashes"),
     db: Session = Depends(get_session),
     token: dict = Depends(staff_only),
):
     return validate_chain(
          db, fiscal_year, series=series, document="credit_note", verify_hashes=verify_hashes
     )
