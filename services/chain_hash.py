# services/chain_hash.py
"""
Canonical form and SHA-256 digest for fiscal document hash chains.

The canonical string is a fixed, versioned field order with fixed numeric
formatting so any implementation can reproduce the digest:

     v1|<sequence_number>|<issue_date>|<taxable_base>|<tax_amount>|<total>|<previous_hash>

- issue_date: YYYY-MM-DDTHH:MM:SS (whole seconds, no timezone)
- amounts: fixed-point with exactly 2 decimals, ROUND_HALF_UP
- previous_hash: 64-char hex, or "" for the first document of a series
"""
import hashlib
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP

# No predecessor: first document of a (fiscal_year, series)
SENTINEL_HASH = ""

CANONICAL_VERSION = "v1"

INVOICE_PREFIX = "FAC"
CREDIT_NOTE_PREFIX = "ABO"

COUNTER_DIGITS = 8

_CENT = Decimal("0.01")


@dataclass(frozen=True)
class TaxBreakdown:
     taxable_base: Decimal
     tax_rate: Decimal
     tax_amount: Decimal
     total: Decimal


def to_money(value) -> Decimal:
     """Quantize any numeric value to cents, rounding half up."""
     if not isinstance(value, Decimal):
          # str() avoids binary float artefacts (0.1 -> 0.1000000000000000055...)
          value = Decimal(str(value))
     return value.quantize(_CENT, rounding=ROUND_HALF_UP)


def format_amount(value) -> str:
     """Normalize amount to canonical string for hashing (2 decimal places)."""
     return f"{to_money(value):.2f}"


def format_issue_date(ts: datetime) -> str:
     """Normalize timestamp to ISO format (seconds) for deterministic hashing."""
     return ts.replace(microsecond=0, tzinfo=None).strftime("%Y-%m-%dT%H:%M:%S")


def compute_tax(taxable_base, tax_rate) -> TaxBreakdown:
     """
     Compute VAT for a taxable base.

     tax_amount = round_half_up(taxable_base * tax_rate / 100, 2)
     total = taxable_base + tax_amount

     Example: base 100.00 at 21 -> tax 21.00, total 121.00
     """
     base = to_money(taxable_base)
     rate = to_money(tax_rate)
     tax_amount = to_money(base * rate / Decimal(100))
     return TaxBreakdown(
          taxable_base=base,
          tax_rate=rate,
          tax_amount=tax_amount,
          total=base + tax_amount,
     )


def format_sequence_number(prefix: str, fiscal_year: int, series: str, counter: int) -> str:
     """Build a document number, e.g. FAC-2025-001-00000001."""
     return f"{prefix}-{fiscal_year}-{series}-{counter:0{COUNTER_DIGITS}d}"


def canonicalize(
     sequence_number: str,
     issue_date: datetime,
     taxable_base,
     tax_amount,
     total,
     previous_hash: str,
     version: str = CANONICAL_VERSION,
) -> str:
     """Build the canonical hash input for a fiscal document."""
     if version != CANONICAL_VERSION:
          raise ValueError(f"Unsupported canonical version: {version}")
     return "|".join([
          version,
          sequence_number,
          format_issue_date(issue_date),
          format_amount(taxable_base),
          format_amount(tax_amount),
          format_amount(total),
          previous_hash or SENTINEL_HASH,
     ])


def compute_chain_hash(
     sequence_number: str,
     issue_date: datetime,
     taxable_base,
     tax_amount,
     total,
     previous_hash: str,
     version: str = CANONICAL_VERSION,
) -> str:
     """
     Compute SHA-256 hash for a chained document.

     Returns 64-char lowercase hex string.
     """
     payload = canonicalize(
          sequence_number,
          issue_date,
          taxable_base,
          tax_amount,
          total,
          previous_hash,
          version=version,
     )
     return hashlib.sha256(payload.encode("utf-8")).hexdigest()
