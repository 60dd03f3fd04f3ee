"""Create fiscal document tables

Revision ID: 20261019_000002
Revises: 20261019_000001
Create Date: 2026-10-19

Sequence counters plus the hash-chained invoices and credit notes.
Rows in these tables are append-only.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "20261019_000002"
down_revision: Union[str, None] = "20261019_000001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _chain_columns() -> list:
    return [
        sa.Column("sequence_number", sa.String(40), nullable=False),
        sa.Column("series", sa.String(10), nullable=False),
        sa.Column("fiscal_year", sa.Integer(), nullable=False),
        sa.Column("sequence_counter", sa.Integer(), nullable=False),
        sa.Column("issue_date", sa.DateTime(), nullable=False),
        sa.Column("previous_hash", sa.String(64), nullable=False),
        sa.Column("current_hash", sa.String(64), nullable=False),
        sa.Column("hash_version", sa.String(10), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    ]


def _chain_indexes(table: str) -> None:
    op.create_index(f"ix_{table}_sequence_number", table, ["sequence_number"], unique=True)
    op.create_index(f"ix_{table}_current_hash", table, ["current_hash"], unique=True)
    op.create_index(f"ix_{table}_fiscal_year", table, ["fiscal_year"])
    op.create_index(f"ix_{table}_created_at", table, ["created_at"])


def _drop_chain_indexes(table: str) -> None:
    for name in ("created_at", "fiscal_year", "current_hash", "sequence_number"):
        op.drop_index(f"ix_{table}_{name}", table_name=table)


def upgrade() -> None:
    op.create_table(
        "sequence_counters",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("document_prefix", sa.String(10), nullable=False),
        sa.Column("fiscal_year", sa.Integer(), nullable=False),
        sa.Column("series", sa.String(10), nullable=False),
        sa.Column("last_value", sa.Integer(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("document_prefix", "fiscal_year", "series", name="uq_sequence_counter_key"),
    )

    op.create_table(
        "invoices",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("client_id", sa.String(36), nullable=False),
        sa.Column("order_id", sa.String(36), nullable=True),
        sa.Column("client_tax_id", sa.String(20), nullable=True),
        sa.Column("taxable_base", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("tax_rate", sa.Numeric(precision=5, scale=2), nullable=False),
        sa.Column("tax_amount", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("total", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column(
            "payment_status",
            sa.Enum("PENDING", "PAID", "FAILED", name="invoice_payment_status"),
            nullable=False,
            server_default="PENDING",
        ),
        sa.Column("paid_at", sa.DateTime(), nullable=True),
        *_chain_columns(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["client_id"], ["clients.id"], name="fk_invoices_client_id", ondelete="RESTRICT"
        ),
        sa.ForeignKeyConstraint(
            ["order_id"], ["repair_orders.id"], name="fk_invoices_order_id", ondelete="RESTRICT"
        ),
        sa.UniqueConstraint(
            "fiscal_year", "series", "sequence_counter", name="uq_invoices_year_series_counter"
        ),
    )
    _chain_indexes("invoices")
    op.create_index("ix_invoices_client_id", "invoices", ["client_id"])
    # Filtered: manual invoices have no order, and SQL Server treats NULLs as equal
    op.create_index(
        "ix_invoices_order_id",
        "invoices",
        ["order_id"],
        unique=True,
        mssql_where=sa.text("order_id IS NOT NULL"),
        postgresql_where=sa.text("order_id IS NOT NULL"),
        sqlite_where=sa.text("order_id IS NOT NULL"),
    )
    op.create_index("ix_invoices_payment_status", "invoices", ["payment_status"])

    op.create_table(
        "credit_notes",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("original_invoice_id", sa.String(36), nullable=True),
        sa.Column(
            "kind",
            sa.Enum("CREDIT_NOTE", "REFUND", name="credit_note_kind"),
            nullable=False,
            server_default="CREDIT_NOTE",
        ),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("amount", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("created_by", sa.String(100), nullable=True),
        *_chain_columns(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["original_invoice_id"],
            ["invoices.id"],
            name="fk_credit_notes_original_invoice_id",
            ondelete="RESTRICT",
        ),
        sa.UniqueConstraint(
            "fiscal_year", "series", "sequence_counter", name="uq_credit_notes_year_series_counter"
        ),
    )
    _chain_indexes("credit_notes")
    op.create_index("ix_credit_notes_original_invoice_id", "credit_notes", ["original_invoice_id"])


def downgrade() -> None:
    op.drop_index("ix_credit_notes_original_invoice_id", table_name="credit_notes")
    _drop_chain_indexes("credit_notes")
    op.drop_table("credit_notes")

    op.drop_index("ix_invoices_payment_status", table_name="invoices")
    op.drop_index("ix_invoices_order_id", table_name="invoices")
    op.drop_index("ix_invoices_client_id", table_name="invoices")
    _drop_chain_indexes("invoices")
    op.drop_table("invoices")

    op.drop_table("sequence_counters")
