"""Remittance types, delivery window and order payment proof timestamp

Revision ID: 002_remittance_types
Revises: 001_initial_schema
Create Date: 2026-10-19

Adds:
- remittance_types (rates, commission, limits, delivery window)
- remittances.remittance_type_id / max_delivery_days
- orders.payment_proof_uploaded_at
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '002_remittance_types'
down_revision = '001_initial_schema'
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'remittance_types',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('currency_code', sa.String(3), nullable=False, server_default='USD'),
        sa.Column('delivery_currency', sa.String(3), nullable=False),
        sa.Column('exchange_rate', sa.Numeric(12, 4), nullable=False),
        sa.Column('commission_percentage', sa.Numeric(5, 2), nullable=False, server_default='0'),
        sa.Column('commission_fixed', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('min_amount', sa.Numeric(12, 2), nullable=False, server_default='1'),
        sa.Column('max_amount', sa.Numeric(12, 2), nullable=True),
        sa.Column('delivery_method', sa.String(20), nullable=False, server_default='cash'),
        sa.Column('max_delivery_days', sa.Integer(), nullable=False, server_default='3'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('display_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name', name='uq_remittance_types_name'),
    )
    op.create_index('ix_remittance_types_id', 'remittance_types', ['id'])
    op.create_index('ix_remittance_types_is_active', 'remittance_types', ['is_active'])

    # Remittances remember their type and the delivery window it promised
    op.add_column('remittances', sa.Column('remittance_type_id', sa.Integer(), nullable=True))
    op.add_column(
        'remittances',
        sa.Column('max_delivery_days', sa.Integer(), nullable=False, server_default='3'),
    )
    op.create_foreign_key(
        'fk_remittances_remittance_type_id', 'remittances', 'remittance_types',
        ['remittance_type_id'], ['id'], ondelete='SET NULL',
    )
    op.create_index('ix_remittances_remittance_type_id', 'remittances', ['remittance_type_id'])

    # Customer payment proof on orders
    op.add_column('orders', sa.Column('payment_proof_uploaded_at', sa.DateTime(), nullable=True))


def downgrade() -> None:
    op.drop_column('orders', 'payment_proof_uploaded_at')

    op.drop_index('ix_remittances_remittance_type_id', table_name='remittances')
    op.drop_constraint('fk_remittances_remittance_type_id', 'remittances', type_='foreignkey')
    op.drop_column('remittances', 'max_delivery_days')
    op.drop_column('remittances', 'remittance_type_id')

    op.drop_index('ix_remittance_types_is_active', table_name='remittance_types')
    op.drop_index('ix_remittance_types_id', table_name='remittance_types')
    op.drop_table('remittance_types')
