"""initial order workflow schema

Revision ID: 0001_order_workflow
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates:
- orders: fulfillment + payment status, per-order modification policy,
  version_id for compare-and-swap writes
- order_lines: line items with unit price snapshot
- modification_requests: pending -> approved | rejected
- policy_config: single-row global policy document
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_order_workflow'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('payment_status', sa.String(length=16), nullable=False),
        sa.Column('total_cents', sa.Integer(), nullable=False),
        sa.Column('shipping_cost_cents', sa.Integer(), nullable=False),
        sa.Column('insurance_cost_cents', sa.Integer(), nullable=False),
        sa.Column('shipping_details', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('modification_count', sa.Integer(), nullable=False),
        sa.Column('max_modifications_allowed', sa.Integer(), nullable=True),
        sa.Column('modification_deadline', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancel_reason', sa.String(length=255), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_by', sa.String(length=64), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.CheckConstraint('total_cents >= 0', name='ck_orders_total_nonneg'),
        sa.CheckConstraint('shipping_cost_cents >= 0', name='ck_orders_shipping_nonneg'),
        sa.CheckConstraint('insurance_cost_cents >= 0', name='ck_orders_insurance_nonneg'),
        sa.CheckConstraint('modification_count >= 0', name='ck_orders_mod_count_nonneg'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_orders_user_id', 'orders', ['user_id'])
    op.create_index('ix_orders_status', 'orders', ['status'])
    op.create_index('ix_orders_payment_status', 'orders', ['payment_status'])
    op.create_index('ix_orders_user_created', 'orders', ['user_id', 'created_at'])
    op.create_index('ix_orders_status_created', 'orders', ['status', 'created_at'])

    op.create_table(
        'order_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.String(length=64), nullable=False),
        sa.Column('product_name', sa.String(length=255), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False),
        sa.Column('line_total_cents', sa.Integer(), nullable=False),
        sa.CheckConstraint('quantity >= 1', name='ck_order_lines_quantity_positive'),
        sa.CheckConstraint('unit_price_cents >= 0', name='ck_order_lines_price_nonneg'),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_order_lines_order_id', 'order_lines', ['order_id'])

    op.create_table(
        'modification_requests',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('requested_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('requested_by', sa.String(length=64), nullable=False),
        sa.Column('responded_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('response_text', sa.Text(), nullable=True),
        sa.Column('responded_by', sa.String(length=64), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_modification_requests_order_id', 'modification_requests', ['order_id'])
    op.create_index(
        'ix_modification_requests_status_requested',
        'modification_requests',
        ['status', 'requested_at'],
    )

    op.create_table(
        'policy_config',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('default_max_modifications', sa.Integer(), nullable=False),
        sa.Column('modification_deadline_hours', sa.Integer(), nullable=False),
        sa.Column('allow_cancellations', sa.Boolean(), nullable=False),
        sa.Column('require_reason_for_cancellation', sa.Boolean(), nullable=False),
        sa.Column('updated_by', sa.String(length=64), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )


def downgrade():
    op.drop_table('policy_config')
    op.drop_index('ix_modification_requests_status_requested', table_name='modification_requests')
    op.drop_index('ix_modification_requests_order_id', table_name='modification_requests')
    op.drop_table('modification_requests')
    op.drop_index('ix_order_lines_order_id', table_name='order_lines')
    op.drop_table('order_lines')
    op.drop_index('ix_orders_status_created', table_name='orders')
    op.drop_index('ix_orders_user_created', table_name='orders')
    op.drop_index('ix_orders_payment_status', table_name='orders')
    op.drop_index('ix_orders_status', table_name='orders')
    op.drop_index('ix_orders_user_id', table_name='orders')
    op.drop_table('orders')
