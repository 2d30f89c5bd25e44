"""create_customer_report_tables

Revision ID: 4d2f6c1e8a73
Revises:
Create Date: 2026-10-19 09:12:40.118204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '4d2f6c1e8a73'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'customer_lookup',
        sa.Column('customer_id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('username', sa.String(length=60), nullable=True),
        sa.Column('first_name', sa.String(length=255), nullable=True),
        sa.Column('last_name', sa.String(length=255), nullable=True),
        sa.Column('email', sa.String(length=100), nullable=True),
        sa.Column('country', sa.String(length=2), nullable=True),
        sa.Column('city', sa.String(length=100), nullable=True),
        sa.Column('postcode', sa.String(length=20), nullable=True),
        sa.Column('date_registered', sa.DateTime(timezone=True), nullable=True),
        sa.Column('date_last_active', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('user_id'),
    )
    op.create_index('ix_customer_lookup_email', 'customer_lookup', ['email'])
    # Guests are keyed by email, a second guest row for the same address is rejected
    op.create_index(
        'uq_customer_lookup_guest_email',
        'customer_lookup',
        ['email'],
        unique=True,
        postgresql_where=sa.text('user_id IS NULL'),
    )

    op.create_table(
        'order_stats',
        sa.Column('order_id', sa.Integer(), primary_key=True, autoincrement=False),
        sa.Column('customer_id', sa.Integer(), sa.ForeignKey('customer_lookup.customer_id'), nullable=True),
        sa.Column('date_created', sa.DateTime(timezone=True), nullable=False),
        sa.Column('status', sa.String(length=200), nullable=False),
        sa.Column('num_items_sold', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('gross_total', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('net_total', sa.Numeric(12, 2), nullable=False, server_default='0'),
    )
    op.create_index('ix_order_stats_customer_id', 'order_stats', ['customer_id'])
    op.create_index('ix_order_stats_date_created', 'order_stats', ['date_created'])
    op.create_index('ix_order_stats_status', 'order_stats', ['status'])


def downgrade() -> None:
    op.drop_index('ix_order_stats_status', table_name='order_stats')
    op.drop_index('ix_order_stats_date_created', table_name='order_stats')
    op.drop_index('ix_order_stats_customer_id', table_name='order_stats')
    op.drop_table('order_stats')
    op.drop_index('uq_customer_lookup_guest_email', table_name='customer_lookup')
    op.drop_index('ix_customer_lookup_email', table_name='customer_lookup')
    op.drop_table('customer_lookup')
