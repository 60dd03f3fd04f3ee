# schemas/invoice.py
"""
Pydantic schemas for Invoice API request/response validation.
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional, List
from pydantic import BaseModel, Field, ConfigDict
from enum import Enum


class PaymentStatusEnum(str, Enum):
     """Invoice payment status options."""
     PENDING = "pending"
     PAID = "paid"
     FAILED = "failed"


class InvoiceCreate(BaseModel):
     """Schema for issuing a manual invoice. Number and hash are assigned by the server."""
     client_id: str = Field(..., min_length=1, description="Client ID (must exist)")
     taxable_base: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2, description="Amount before VAT")
     tax_rate: Optional[Decimal] = Field(None, ge=0, le=100, max_digits=5, decimal_places=2, description="VAT percentage (default 21)")
     series: Optional[str] = Field(None, min_length=1, max_length=10, pattern=r"^[A-Za-z0-9_]+$")
     fiscal_year: Optional[int] = Field(None, ge=2000, le=2100, description="Override for backfilled series")

     model_config = ConfigDict(
          json_schema_extra={
               "example": {
                    "client_id": "2b1f7c1e-9a43-4a8e-9f43-6c1f0d8a5e21",
                    "taxable_base": 100.00,
                    "tax_rate": 21.00,
                    "series": "001"
               }
          }
     )


class PaymentStatusUpdate(BaseModel):
     """Schema for payment events. The only change an issued invoice accepts."""
     payment_status: PaymentStatusEnum

     model_config = ConfigDict(
          json_schema_extra={
               "example": {
                    "payment_status": "paid"
               }
          }
     )


class InvoiceResponse(BaseModel):
     """Schema for invoice response."""
     id: str
     sequence_number: str
     series: str
     fiscal_year: int
     issue_date: datetime
     client_id: str
     order_id: Optional[str] = None
     client_tax_id: Optional[str] = None
     taxable_base: Decimal
     tax_rate: Decimal
     tax_amount: Decimal
     total: Decimal
     payment_status: PaymentStatusEnum
     paid_at: Optional[datetime] = None
     previous_hash: str
     current_hash: str
     hash_version: str
     created_at: datetime

     # Optional related data
     client_name: Optional[str] = None

     model_config = ConfigDict(
          from_attributes=True,
          json_schema_extra={
               "example": {
                    "id": "5f0b3c9e-3d7a-4a57-a3a1-0c6f0f2b9e10",
                    "sequence_number": "FAC-2025-001-00000001",
                    "series": "001",
                    "fiscal_year": 2025,
                    "issue_date": "2025-03-14T10:30:00",
                    "client_id": "2b1f7c1e-9a43-4a8e-9f43-6c1f0d8a5e21",
                    "taxable_base": 100.00,
                    "tax_rate": 21.00,
                    "tax_amount": 21.00,
                    "total": 121.00,
                    "payment_status": "pending",
                    "previous_hash": "",
                    "current_hash": "9c1e...",
                    "hash_version": "v1",
                    "created_at": "2025-03-14T10:30:00.123456",
                    "client_name": "Ana Ruiz"
               }
          }
     )


class InvoiceListResponse(BaseModel):
     """Schema for paginated invoice list response."""
     invoices: List[InvoiceResponse]
     total: int
     page: int = 1
     page_size: int = 50

     model_config = ConfigDict(
          json_schema_extra={
               "example": {
                    "invoices": [],
                    "total": 0,
                    "page": 1,
                    "page_size": 50
               }
          }
     )


class IssuedInvoice(BaseModel):
     """Reply to the order-completion trigger."""
     invoice_id: str
     sequence_number: str
     current_hash: str
