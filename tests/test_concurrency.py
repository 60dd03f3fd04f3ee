"""
Concurrent writers against one series, one order or one invoice.
"""
import threading
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from models import Base, Client, Invoice, OrderProduct, RepairOrder
from services.chain_builder import ChainBuilder, InvoiceDraft
from services.chain_validator import validate_chain
from services.credit_note_service import credited_amount, issue_credit_note
from services.exceptions import ChainError
from services.invoice_service import InvoiceService

WRITERS = 20


@pytest.fixture
def file_session_factory(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'chain.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    engine.dispose()


@pytest.fixture
def shop_client_id(file_session_factory):
    setup = file_session_factory()
    client = Client(first_name="Taller", last_name="Norte", tax_id="B12345678")
    setup.add(client)
    setup.commit()
    client_id = client.id
    setup.close()
    return client_id


def run_together(session_factory, action, count):
    """Run action(session) in count threads released at once; collect outcomes."""
    barrier = threading.Barrier(count)

    def worker(_):
        session = session_factory()
        try:
            barrier.wait()
            return "ok", action(session)
        except ChainError as exc:
            return type(exc).__name__, None
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=count) as pool:
        return list(pool.map(worker, range(count)))


def test_parallel_writers_get_distinct_gapless_numbers(file_session_factory, shop_client_id):
    builder = ChainBuilder(max_attempts=3)

    def issue(n):
        session = file_session_factory()
        try:
            invoice = builder.build_invoice(
                session,
                InvoiceDraft(client_id=shop_client_id, taxable_base=Decimal(10 + n), fiscal_year=2025),
            )
            return invoice.sequence_number
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=8) as pool:
        numbers = list(pool.map(issue, range(WRITERS)))

    assert len(set(numbers)) == WRITERS
    assert sorted(numbers) == [f"FAC-2025-001-{n:08d}" for n in range(1, WRITERS + 1)]

    check = file_session_factory()
    try:
        assert check.query(Invoice).count() == WRITERS
        report = validate_chain(check, 2025, verify_hashes=True)
        assert report.valid, report.errors
        assert report.total_invoices == WRITERS
    finally:
        check.close()


def test_same_order_completed_twice_at_once(file_session_factory, shop_client_id):
    setup = file_session_factory()
    order = RepairOrder(client_id=shop_client_id, estimated_cost=Decimal("40.00"))
    order.products.append(
        OrderProduct(product_name="Brake pads", quantity=1, unit_price=Decimal("12.00"), subtotal=Decimal("12.00"))
    )
    setup.add(order)
    setup.commit()
    order_id = order.id
    setup.close()

    builder = ChainBuilder(max_attempts=3)
    outcomes = run_together(
        file_session_factory,
        lambda session: InvoiceService.complete_order(session, builder, order_id, fiscal_year=2025).sequence_number,
        2,
    )

    assert sorted(kind for kind, _ in outcomes) == ["OrderStateError", "ok"]

    check = file_session_factory()
    try:
        assert check.query(Invoice).filter(Invoice.order_id == order_id).count() == 1
        assert validate_chain(check, 2025).valid
    finally:
        check.close()


def test_parallel_credit_notes_respect_invoice_total(file_session_factory, shop_client_id):
    builder = ChainBuilder(max_attempts=3)
    setup = file_session_factory()
    invoice = InvoiceService.issue_invoice(setup, builder, shop_client_id, Decimal("100.00"), fiscal_year=2025)
    invoice_id = invoice.id
    setup.close()

    outcomes = run_together(
        file_session_factory,
        lambda session: issue_credit_note(
            session, builder, Decimal("121.00"), "Full refund", original_invoice_id=invoice_id
        ).sequence_number,
        2,
    )

    assert sorted(kind for kind, _ in outcomes) == ["CreditNoteLimitError", "ok"]

    check = file_session_factory()
    try:
        assert credited_amount(check, invoice_id) == Decimal("121.00")
    finally:
        check.close()
