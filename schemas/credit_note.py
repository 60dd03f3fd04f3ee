# schemas/credit_note.py
"""
Pydantic schemas for credit notes (compensating documents).
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional, List
from pydantic import BaseModel, Field, ConfigDict
from enum import Enum


class CreditNoteKindEnum(str, Enum):
     CREDIT_NOTE = "credit_note"
     REFUND = "refund"


class CreditNoteCreate(BaseModel):
     """Schema for issuing a credit note."""
     original_invoice_id: Optional[str] = Field(None, description="Invoice being compensated")
     amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
     reason: str = Field(..., min_length=1, max_length=1000)
     kind: CreditNoteKindEnum = CreditNoteKindEnum.CREDIT_NOTE
     series: Optional[str] = Field(None, min_length=1, max_length=10, pattern=r"^[A-Za-z0-9_]+$")

     model_config = ConfigDict(
          json_schema_extra={
               "example": {
                    "original_invoice_id": "5f0b3c9e-3d7a-4a57-a3a1-0c6f0f2b9e10",
                    "amount": 30.25,
                    "reason": "Brake pads returned unused",
                    "kind": "credit_note"
               }
          }
     )


class CreditNoteResponse(BaseModel):
     id: str
     sequence_number: str
     series: str
     fiscal_year: int
     issue_date: datetime
     original_invoice_id: Optional[str] = None
     kind: CreditNoteKindEnum
     reason: str
     amount: Decimal
     created_by: Optional[str] = None
     previous_hash: str
     current_hash: str
     hash_version: str
     created_at: datetime

     model_config = ConfigDict(from_attributes=True)


class CreditNoteListResponse(BaseModel):
     credit_notes: List[CreditNoteResponse]
     total: int
