"""Create workshop tables

Revision ID: 20261019_000001
Revises: None
Create Date: 2026-10-19

Clients, repair orders and the products consumed by each order.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20261019_000001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create clients, repair_orders and order_products."""
    op.create_table(
        'clients',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('last_name', sa.String(100), nullable=False),
        sa.Column('tax_id', sa.String(20), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'repair_orders',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('client_id', sa.String(36), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('estimated_cost', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column(
            'status',
            sa.Enum('RECEIVED', 'IN_PROGRESS', 'COMPLETED', 'DELIVERED', 'CANCELLED', name='repair_order_status'),
            nullable=False,
            server_default='RECEIVED'
        ),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(
            ['client_id'],
            ['clients.id'],
            name='fk_repair_orders_client_id',
            ondelete='RESTRICT'
        ),
    )
    op.create_index('ix_repair_orders_client_id', 'repair_orders', ['client_id'])
    op.create_index('ix_repair_orders_status', 'repair_orders', ['status'])

    op.create_table(
        'order_products',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('order_id', sa.String(36), nullable=False),
        sa.Column('product_name', sa.String(200), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('unit_price', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('subtotal', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(
            ['order_id'],
            ['repair_orders.id'],
            name='fk_order_products_order_id',
            ondelete='CASCADE'
        ),
    )
    op.create_index('ix_order_products_order_id', 'order_products', ['order_id'])


def downgrade() -> None:
    """Drop workshop tables."""
    op.drop_index('ix_order_products_order_id', table_name='order_products')
    op.drop_table('order_products')
    op.drop_index('ix_repair_orders_status', table_name='repair_orders')
    op.drop_index('ix_repair_orders_client_id', table_name='repair_orders')
    op.drop_table('repair_orders')
    op.drop_table('clients')
    sa.Enum(name='repair_order_status').drop(op.get_bind(), checkfirst=True)
