# services/ledger_export.py
"""
Ledger Exporter - flat record of issued invoices for regulatory submission.

Pure projection of stored invoices; nothing is written. Columns are fixed:

     sequenceNumber;issueDate;clientName;clientTaxId;taxableBase;taxRate;taxAmount;total;paymentStatus;currentHash
"""
import csv
import io
import logging
from typing import Optional

from sqlalchemy.orm import Session, joinedload

import config
from models import Invoice
from schemas.ledger import LedgerExport, LedgerRow
from services.chain_hash import format_amount, format_issue_date

logger = logging.getLogger(__name__)

LEDGER_COLUMNS = (
     "sequenceNumber",
     "issueDate",
     "clientName",
     "clientTaxId",
     "taxableBase",
     "taxRate",
     "taxAmount",
     "total",
     "paymentStatus",
     "currentHash",
)

CSV_DELIMITER = ";"


def _ledger_invoices(db: Session, fiscal_year: int, series: Optional[str] = None) -> list[Invoice]:
     query = (
          db.query(Invoice)
          .options(joinedload(Invoice.client))
          .filter(Invoice.fiscal_year == fiscal_year)
     )
     if series is not None:
          query = query.filter(Invoice.series == series)
     return query.order_by(Invoice.series, Invoice.created_at, Invoice.sequence_counter).all()


def to_ledger_row(invoice: Invoice) -> LedgerRow:
     client = invoice.client
     tax_id = invoice.client_tax_id or (client.tax_id if client else None) or ""
     return LedgerRow(
          sequence_number=invoice.sequence_number,
          issue_date=invoice.issue_date,
          client_name=client.full_name if client else "",
          client_tax_id=tax_id,
          taxable_base=invoice.taxable_base,
          tax_rate=invoice.tax_rate,
          tax_amount=invoice.tax_amount,
          total=invoice.total,
          payment_status=invoice.payment_status.value,
          current_hash=invoice.current_hash,
     )


def build_ledger_rows(db: Session, fiscal_year: int, series: Optional[str] = None) -> list[LedgerRow]:
     """Ledger rows for a fiscal year in chain order."""
     return [to_ledger_row(invoice) for invoice in _ledger_invoices(db, fiscal_year, series)]


def export_ledger_csv(db: Session, fiscal_year: int, series: Optional[str] = None) -> str:
     """
     Render the ledger as ';'-separated text with a header row.

     An empty fiscal year yields the header only.
     """
     rows = build_ledger_rows(db, fiscal_year, series)
     output = io.StringIO()
     writer = csv.writer(output, delimiter=CSV_DELIMITER, lineterminator="\n")
     writer.writerow(LEDGER_COLUMNS)
     for row in rows:
          writer.writerow([
               row.sequence_number,
               format_issue_date(row.issue_date),
               row.client_name,
               row.client_tax_id,
               format_amount(row.taxable_base),
               format_amount(row.tax_rate),
               format_amount(row.tax_amount),
               format_amount(row.total),
               row.payment_status,
               row.current_hash,
          ])
     logger.info("Exported ledger %s%s: %d invoices", fiscal_year, f"/{series}" if series else "", len(rows))
     return output.getvalue()


def export_ledger_json(db: Session, fiscal_year: int, series: Optional[str] = None) -> LedgerExport:
     """JSON flavour of the ledger export."""
     rows = build_ledger_rows(db, fiscal_year, series)
     return LedgerExport(
          fiscal_year=fiscal_year,
          series=series,
          total_invoices=len(rows),
          invoices=rows,
     )


def build_invoice_record(invoice: Invoice) -> dict:
     """
     Fiscal record of a single invoice for submission to the tax agency.

     Includes issuer, identification, tax breakdown and the chaining block.
     """
     client = invoice.client
     return {
          "Issuer": {
               "Name": config.ISSUER_NAME,
               "TaxId": config.ISSUER_TAX_ID,
               "Address": config.ISSUER_ADDRESS,
          },
          "InvoiceId": {
               "IssuerTaxId": config.ISSUER_TAX_ID,
               "SeriesNumber": invoice.sequence_number,
               "IssueDate": format_issue_date(invoice.issue_date),
          },
          "Recipient": {
               "Name": client.full_name if client else "",
               "TaxId": invoice.client_tax_id or (client.tax_id if client else None) or "",
          },
          "InvoiceType": "F1",
          "Breakdown": {
               "TaxableBase": format_amount(invoice.taxable_base),
               "TaxRate": format_amount(invoice.tax_rate),
               "TaxAmount": format_amount(invoice.tax_amount),
          },
          "TotalAmount": format_amount(invoice.total),
          "Chaining": {
               "FiscalYear": invoice.fiscal_year,
               "Series": invoice.series,
               "PreviousHash": invoice.previous_hash,
               "Hash": invoice.current_hash,
               "HashAlgorithm": "SHA-256",
               "CanonicalVersion": invoice.hash_version,
          },
     }
