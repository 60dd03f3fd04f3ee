# schemas/order.py
"""
Pydantic schemas for the repair-order completion trigger.
"""
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field


class OrderCompleteRequest(BaseModel):
     """Optional overrides when completing an order; all default from configuration."""
     series: Optional[str] = Field(None, min_length=1, max_length=10, pattern=r"^[A-Za-z0-9_]+$")
     fiscal_year: Optional[int] = Field(None, ge=2000, le=2100)
     tax_rate: Optional[Decimal] = Field(None, ge=0, le=100, max_digits=5, decimal_places=2)
