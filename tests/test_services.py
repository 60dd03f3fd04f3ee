"""
Tests for order completion, payment events and credit notes.
"""
from decimal import Decimal

import pytest

import services.chain_builder as chain_builder_module
import services.credit_note_service as credit_note_service_module
from models import CreditNoteKind, Invoice, PaymentStatus, RepairOrder, RepairOrderStatus
from services.chain_hash import compute_chain_hash
from services.credit_note_service import credited_amount, issue_credit_note, list_credit_notes
from services.exceptions import (
    ChainBuildFailure,
    CreditNoteLimitError,
    DuplicateSequenceError,
    InvalidDraftError,
    InvoiceNotFoundError,
    OrderNotFoundError,
    OrderStateError,
)
from services.invoice_service import InvoiceService
from services.sequence_service import peek_counter


class TestCompleteOrder:

    def test_invoices_labour_and_products(self, db, builder, repair_order):
        invoice = InvoiceService.complete_order(db, builder, repair_order.id)

        # 40.00 labour + 2 x 15.50
        assert invoice.taxable_base == Decimal("71.00")
        assert invoice.tax_amount == Decimal("14.91")
        assert invoice.total == Decimal("85.91")
        assert invoice.order_id == repair_order.id
        assert invoice.client_tax_id == "12345678Z"
        assert invoice.sequence_number == "FAC-2025-001-00000001"

        db.expire_all()
        order = db.get(RepairOrder, repair_order.id)
        assert order.status == RepairOrderStatus.COMPLETED
        assert order.completed_at is not None

    def test_order_invoiced_once(self, db, builder, repair_order):
        InvoiceService.complete_order(db, builder, repair_order.id)
        with pytest.raises(OrderStateError):
            InvoiceService.complete_order(db, builder, repair_order.id)
        assert db.query(Invoice).count() == 1

    def test_cancelled_order_not_invoiced(self, db, builder, repair_order):
        repair_order.status = RepairOrderStatus.CANCELLED
        db.commit()
        with pytest.raises(OrderStateError):
            InvoiceService.complete_order(db, builder, repair_order.id)

    def test_unknown_order(self, db, builder):
        with pytest.raises(OrderNotFoundError):
            InvoiceService.complete_order(db, builder, "missing")

    def test_failed_invoice_keeps_order_open(self, db, builder, repair_order, monkeypatch):
        def always_lose(*args, **kwargs):
            raise DuplicateSequenceError("counter moved")

        monkeypatch.setattr(chain_builder_module, "allocate_next_counter", always_lose)

        with pytest.raises(ChainBuildFailure):
            InvoiceService.complete_order(db, builder, repair_order.id)

        db.expire_all()
        assert db.get(RepairOrder, repair_order.id).status == RepairOrderStatus.RECEIVED
        assert db.query(Invoice).count() == 0


class TestManualInvoice:

    def test_issue_for_client(self, db, builder, client_record):
        invoice = InvoiceService.issue_invoice(db, builder, client_record.id, Decimal("100"))
        assert invoice.total == Decimal("121.00")
        assert invoice.client_tax_id == "12345678Z"

    def test_counter_follows_issued_invoices(self, db, builder, client_record):
        assert peek_counter(db, "FAC", 2025, "001") == 0
        InvoiceService.issue_invoice(db, builder, client_record.id, Decimal("10"))
        InvoiceService.issue_invoice(db, builder, client_record.id, Decimal("20"))
        assert peek_counter(db, "FAC", 2025, "001") == 2
        assert peek_counter(db, "ABO", 2025, "001") == 0

    def test_unknown_client(self, db, builder):
        with pytest.raises(InvalidDraftError):
            InvoiceService.issue_invoice(db, builder, "nobody", Decimal("100"))


class TestPaymentEvents:

    def test_paid_sets_timestamp(self, db, builder, client_record):
        invoice = InvoiceService.issue_invoice(db, builder, client_record.id, Decimal("100"))
        hash_before = invoice.current_hash

        updated = InvoiceService.record_payment_event(db, invoice.id, PaymentStatus.PAID)
        db.commit()

        assert updated.payment_status == PaymentStatus.PAID
        assert updated.paid_at is not None
        assert updated.current_hash == hash_before

    def test_failed_clears_timestamp(self, db, builder, client_record):
        invoice = InvoiceService.issue_invoice(db, builder, client_record.id, Decimal("100"))
        InvoiceService.record_payment_event(db, invoice.id, PaymentStatus.PAID)
        updated = InvoiceService.record_payment_event(db, invoice.id, PaymentStatus.FAILED)
        assert updated.payment_status == PaymentStatus.FAILED
        assert updated.paid_at is None

    def test_unknown_invoice(self, db):
        with pytest.raises(InvoiceNotFoundError):
            InvoiceService.record_payment_event(db, "missing", PaymentStatus.PAID)

    def test_listing_filters(self, db, builder, client_record):
        first = InvoiceService.issue_invoice(db, builder, client_record.id, Decimal("10"))
        InvoiceService.issue_invoice(db, builder, client_record.id, Decimal("20"))
        InvoiceService.record_payment_event(db, first.id, PaymentStatus.PAID)
        db.commit()

        paid, total = InvoiceService.list_invoices(db, fiscal_year=2025, payment_status=PaymentStatus.PAID)
        assert total == 1
        assert paid[0].id == first.id

        page, total = InvoiceService.list_invoices(db, page=1, page_size=1)
        assert total == 2
        assert page[0].sequence_number == "FAC-2025-001-00000002"


class TestCreditNotes:

    def test_credit_note_chain(self, db, builder, client_record):
        invoice = InvoiceService.issue_invoice(db, builder, client_record.id, Decimal("100"))

        first = issue_credit_note(db, builder, Decimal("21.00"), "Wrong part billed", original_invoice_id=invoice.id)
        second = issue_credit_note(db, builder, Decimal("10.00"), "Goodwill", kind=CreditNoteKind.REFUND)

        assert first.sequence_number == "ABO-2025-001-00000001"
        assert first.previous_hash == ""
        assert second.sequence_number == "ABO-2025-001-00000002"
        assert second.previous_hash == first.current_hash
        assert first.current_hash == compute_chain_hash(
            first.sequence_number, first.issue_date, Decimal("-21.00"), Decimal("0"), Decimal("-21.00"), "",
        )
        # Invoice numbering is untouched by credit notes
        assert InvoiceService.issue_invoice(db, builder, client_record.id, Decimal("5")).sequence_number == \
            "FAC-2025-001-00000002"

    def test_credit_cannot_exceed_invoice(self, db, builder, client_record):
        invoice = InvoiceService.issue_invoice(db, builder, client_record.id, Decimal("100"))
        issue_credit_note(db, builder, Decimal("100.00"), "Partial refund", original_invoice_id=invoice.id)

        assert credited_amount(db, invoice.id) == Decimal("100.00")
        with pytest.raises(CreditNoteLimitError):
            issue_credit_note(db, builder, Decimal("21.01"), "Too much", original_invoice_id=invoice.id)

        issue_credit_note(db, builder, Decimal("21.00"), "Rest of it", original_invoice_id=invoice.id)
        assert len(list_credit_notes(db, original_invoice_id=invoice.id)) == 2

    def test_limit_rechecked_when_issuing(self, db, builder, client_record, monkeypatch):
        invoice = InvoiceService.issue_invoice(db, builder, client_record.id, Decimal("100"))
        issue_credit_note(db, builder, Decimal("121.00"), "Full refund", original_invoice_id=invoice.id)

        real_credited = credit_note_service_module.credited_amount
        calls = []

        def stale_first_read(session, invoice_id):
            calls.append(invoice_id)
            if len(calls) == 1:
                return Decimal("0.00")
            return real_credited(session, invoice_id)

        monkeypatch.setattr(credit_note_service_module, "credited_amount", stale_first_read)

        with pytest.raises(CreditNoteLimitError):
            issue_credit_note(db, builder, Decimal("121.00"), "Refund again", original_invoice_id=invoice.id)

        assert len(calls) == 2
        assert len(list_credit_notes(db, original_invoice_id=invoice.id)) == 1
        assert peek_counter(db, "ABO", 2025, "001") == 1

    def test_unknown_original_invoice(self, db, builder):
        with pytest.raises(InvoiceNotFoundError):
            issue_credit_note(db, builder, Decimal("1"), "x", original_invoice_id="missing")

    def test_reason_required(self, db, builder):
        with pytest.raises(InvalidDraftError):
            issue_credit_note(db, builder, Decimal("1"), "   ")
