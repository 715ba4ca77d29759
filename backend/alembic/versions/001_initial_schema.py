"""Initial schema: users, offers, orders, remittances and audit tables

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19

Creates:
- users (customers and admins)
- offers / offer_usage (discount codes)
- orders / order_items
- remittances
- status_history (one row per applied transition)
- activity_logs (admin activity)
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def _audit_columns(*names):
    """(<name>_by FK users, <name>_at) pairs for workflow audit fields."""
    columns = []
    for name in names:
        columns.append(sa.Column(f'{name}_by', sa.Integer(), sa.ForeignKey('users.id'), nullable=True))
        columns.append(sa.Column(f'{name}_at', sa.DateTime(), nullable=True))
    return columns


def upgrade():
    """Create all tables."""
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('first_name', sa.String(100), nullable=True),
        sa.Column('last_name', sa.String(100), nullable=True),
        sa.Column('phone', sa.String(30), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('account_type', sa.String(20), nullable=False, server_default='customer'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('last_login_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_status', 'users', ['status'])

    op.create_table(
        'offers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(50), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('discount_type', sa.String(20), nullable=False, server_default='percentage'),
        sa.Column('discount_value', sa.Numeric(12, 2), nullable=False),
        sa.Column('min_purchase_amount', sa.Numeric(12, 2), nullable=True),
        sa.Column('max_usage_global', sa.Integer(), nullable=True),
        sa.Column('max_usage_per_user', sa.Integer(), nullable=True),
        sa.Column('valid_from', sa.DateTime(), nullable=True),
        sa.Column('valid_until', sa.DateTime(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_offers_id', 'offers', ['id'])
    op.create_index('ix_offers_code', 'offers', ['code'], unique=True)
    op.create_index('ix_offers_is_active', 'offers', ['is_active'])

    op.create_table(
        'orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('offer_id', sa.Integer(), sa.ForeignKey('offers.id', ondelete='SET NULL'), nullable=True),
        sa.Column('order_number', sa.String(50), nullable=False),
        sa.Column('order_type', sa.String(20), nullable=False, server_default='product'),
        sa.Column('status', sa.String(30), nullable=False, server_default='pending'),
        sa.Column('payment_status', sa.String(30), nullable=False, server_default='pending'),
        # Money
        sa.Column('subtotal', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('shipping_cost', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('discount_amount', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('total_amount', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('currency_code', sa.String(3), nullable=False, server_default='USD'),
        # Payment
        sa.Column('payment_method', sa.String(50), nullable=True),
        sa.Column('payment_reference', sa.String(255), nullable=True),
        sa.Column('payment_proof_url', sa.String(500), nullable=True),
        # Workflow fields
        sa.Column('tracking_info', sa.String(255), nullable=True),
        sa.Column('delivery_proof_url', sa.String(500), nullable=True),
        sa.Column('cancellation_reason', sa.Text(), nullable=True),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_audit_columns(
            'validated', 'rejected', 'processing_started', 'dispatched',
            'delivered', 'completed', 'cancelled',
        ),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_orders_id', 'orders', ['id'])
    op.create_index('ix_orders_order_number', 'orders', ['order_number'], unique=True)
    op.create_index('ix_orders_user_id', 'orders', ['user_id'])
    op.create_index('ix_orders_offer_id', 'orders', ['offer_id'])
    op.create_index('ix_orders_order_type', 'orders', ['order_type'])
    op.create_index('ix_orders_status', 'orders', ['status'])
    op.create_index('ix_orders_payment_status', 'orders', ['payment_status'])

    op.create_table(
        'order_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), sa.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False),
        sa.Column('item_type', sa.String(20), nullable=False, server_default='product'),
        sa.Column('item_id', sa.Integer(), nullable=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('unit_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('total_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_order_items_id', 'order_items', ['id'])
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])

    op.create_table(
        'offer_usage',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('offer_id', sa.Integer(), sa.ForeignKey('offers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('order_id', sa.Integer(), sa.ForeignKey('orders.id', ondelete='SET NULL'), nullable=True),
        sa.Column('used_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_offer_usage_id', 'offer_usage', ['id'])
    op.create_index('ix_offer_usage_offer_id', 'offer_usage', ['offer_id'])
    op.create_index('ix_offer_usage_user_id', 'offer_usage', ['user_id'])

    op.create_table(
        'remittances',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('remittance_number', sa.String(50), nullable=False),
        sa.Column('status', sa.String(30), nullable=False, server_default='payment_pending'),
        sa.Column('delivery_method', sa.String(20), nullable=False, server_default='cash'),
        # Amounts
        sa.Column('amount_sent', sa.Numeric(12, 2), nullable=False),
        sa.Column('currency_sent', sa.String(3), nullable=False, server_default='USD'),
        sa.Column('exchange_rate', sa.Numeric(12, 4), nullable=False, server_default='1'),
        sa.Column('amount_to_deliver', sa.Numeric(12, 2), nullable=False),
        sa.Column('currency_delivered', sa.String(3), nullable=False, server_default='USD'),
        sa.Column('commission_total', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('discount_amount', sa.Numeric(12, 2), nullable=False, server_default='0'),
        # Recipient
        sa.Column('recipient_name', sa.String(200), nullable=False),
        sa.Column('recipient_phone', sa.String(30), nullable=False),
        sa.Column('recipient_province', sa.String(100), nullable=True),
        sa.Column('recipient_municipality', sa.String(100), nullable=True),
        sa.Column('recipient_address', sa.Text(), nullable=True),
        sa.Column('recipient_bank_account', sa.String(100), nullable=True),
        # Proofs & references
        sa.Column('payment_reference', sa.String(255), nullable=True),
        sa.Column('payment_proof_url', sa.String(500), nullable=True),
        sa.Column('delivery_proof_url', sa.String(500), nullable=True),
        sa.Column('max_delivery_date', sa.DateTime(), nullable=True),
        # Notes
        sa.Column('payment_validation_notes', sa.Text(), nullable=True),
        sa.Column('payment_rejection_reason', sa.Text(), nullable=True),
        sa.Column('processing_notes', sa.Text(), nullable=True),
        sa.Column('delivery_notes', sa.Text(), nullable=True),
        sa.Column('completion_notes', sa.Text(), nullable=True),
        sa.Column('cancellation_reason', sa.Text(), nullable=True),
        sa.Column('payment_proof_uploaded_at', sa.DateTime(), nullable=True),
        *_audit_columns(
            'payment_validated', 'payment_rejected', 'processing_started',
            'delivered', 'completed', 'cancelled',
        ),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_remittances_id', 'remittances', ['id'])
    op.create_index('ix_remittances_remittance_number', 'remittances', ['remittance_number'], unique=True)
    op.create_index('ix_remittances_user_id', 'remittances', ['user_id'])
    op.create_index('ix_remittances_status', 'remittances', ['status'])

    op.create_table(
        'status_history',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('entity_type', sa.String(30), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=False),
        sa.Column('action', sa.String(50), nullable=False),
        sa.Column('field', sa.String(30), nullable=False, server_default='status'),
        sa.Column('old_value', sa.String(50), nullable=True),
        sa.Column('new_value', sa.String(50), nullable=False),
        sa.Column('changed_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_status_history_id', 'status_history', ['id'])
    op.create_index('ix_status_history_entity_type', 'status_history', ['entity_type'])
    op.create_index('ix_status_history_entity_id', 'status_history', ['entity_id'])
    op.create_index('ix_status_history_created_at', 'status_history', ['created_at'])

    op.create_table(
        'activity_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('action', sa.String(50), nullable=False),
        sa.Column('entity_type', sa.String(30), nullable=False),
        sa.Column('entity_id', sa.String(50), nullable=True),
        sa.Column('performed_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_activity_logs_id', 'activity_logs', ['id'])
    op.create_index('ix_activity_logs_action', 'activity_logs', ['action'])
    op.create_index('ix_activity_logs_entity_type', 'activity_logs', ['entity_type'])
    op.create_index('ix_activity_logs_entity_id', 'activity_logs', ['entity_id'])
    op.create_index('ix_activity_logs_performed_by', 'activity_logs', ['performed_by'])
    op.create_index('ix_activity_logs_created_at', 'activity_logs', ['created_at'])


def downgrade():
    """Drop all tables."""
    op.drop_table('activity_logs')
    op.drop_table('status_history')
    op.drop_table('remittances')
    op.drop_table('offer_usage')
    op.drop_table('order_items')
    op.drop_table('orders')
    op.drop_table('offers')
    op.drop_table('users')
