"""
Pydantic schemas for chain audit and ledger export.

Field names are snake_case in Python and camelCase on the wire, the format
expected by the regulator report consumers.
"""
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
     model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ChainValidationAnomaly(CamelModel):
     """A broken link found during audit. Reported, never raised."""
     sequence_number: str
     expected_hash: str
     actual_hash: str
     kind: str = Field(default="previous_hash_mismatch", description="previous_hash_mismatch | current_hash_mismatch")


class ChainValidationReport(CamelModel):
     """Result of validating one fiscal year (optionally one series)."""
     valid: bool
     total_invoices: int
     errors: List[ChainValidationAnomaly] = Field(default_factory=list)
     fiscal_year: Optional[int] = None
     series: Optional[str] = None

     model_config = ConfigDict(
          alias_generator=to_camel,
          populate_by_name=True,
          json_schema_extra={
               "example": {
                    "valid": True,
                    "totalInvoices": 2,
                    "errors": [],
                    "fiscalYear": 2025,
                    "series": "001"
               }
          }
     )


class LedgerRow(CamelModel):
     """One invoice as submitted in the ledger of issued invoices."""
     sequence_number: str
     issue_date: datetime
     client_name: str
     client_tax_id: str
     taxable_base: Decimal
     tax_rate: Decimal
     tax_amount: Decimal
     total: Decimal
     payment_status: str
     current_hash: str


class LedgerExport(CamelModel):
     """JSON flavour of the ledger export."""
     fiscal_year: int
     series: Optional[str] = None
     total_invoices: int
     invoices: List[LedgerRow] = Field(default_factory=list)
