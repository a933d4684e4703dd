"""Create tenants and invoices tables

Revision ID: 20240101_000001
Revises: None
Create Date: 2024-01-01

This migration creates the tenants table and the invoices table used by
the recurring billing service.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20240101_000001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the tenants and invoices tables."""
    op.create_table(
        'tenants',
        sa.Column('tenant_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=True),
        sa.Column('last_name', sa.String(length=100), nullable=True),
        sa.Column('company_name', sa.String(length=255), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('contact_number', sa.String(length=50), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('tenant_id'),
    )

    op.create_table(
        'invoices',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('assigned_resource', sa.String(length=100), nullable=True),
        sa.Column('desk', sa.String(length=100), nullable=True),
        sa.Column('room', sa.String(length=100), nullable=True),
        sa.Column('office', sa.String(length=100), nullable=True),
        sa.Column('service_type', sa.String(length=50), nullable=True),
        sa.Column('client_name', sa.String(length=200), nullable=True),
        sa.Column('company_name', sa.String(length=255), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('contact_number', sa.String(length=50), nullable=True),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('cusa_fee', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('parking_fee', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('late_fee', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('damage_fee', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('fee_period', sa.String(length=50), nullable=True),
        sa.Column(
            'status',
            sa.Enum('unpaid', 'paid', 'overdue', name='invoice_status', create_constraint=True),
            nullable=False,
            server_default='unpaid'
        ),
        sa.Column('start_date', sa.DateTime(), nullable=True),
        sa.Column('due_date', sa.DateTime(), nullable=True),
        sa.Column('booking_id', sa.String(length=100), nullable=True),
        sa.Column('room_id', sa.String(length=100), nullable=True),
        sa.Column('cycle_key', sa.String(length=255), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.Column('paid_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(
            ['tenant_id'],
            ['tenants.tenant_id'],
            name='fk_invoices_tenant_id',
            ondelete='CASCADE'
        ),
    )

    # Create indexes for common queries
    op.create_index('ix_invoices_tenant_id', 'invoices', ['tenant_id'])
    op.create_index('ix_invoices_assigned_resource', 'invoices', ['assigned_resource'])
    op.create_index('ix_invoices_due_date', 'invoices', ['due_date'])
    op.create_index('ix_invoices_status', 'invoices', ['status'])
    op.create_index('ix_invoices_created_at', 'invoices', ['created_at'])

    # Unique only among keyed rows; SQL Server would otherwise allow a single NULL
    op.create_index(
        'uq_invoices_cycle_key',
        'invoices',
        ['cycle_key'],
        unique=True,
        mssql_where=sa.text('cycle_key IS NOT NULL'),
        sqlite_where=sa.text('cycle_key IS NOT NULL'),
    )


def downgrade() -> None:
    """Drop the invoices and tenants tables."""
    op.drop_index('uq_invoices_cycle_key', table_name='invoices')
    op.drop_index('ix_invoices_created_at', table_name='invoices')
    op.drop_index('ix_invoices_status', table_name='invoices')
    op.drop_index('ix_invoices_due_date', table_name='invoices')
    op.drop_index('ix_invoices_assigned_resource', table_name='invoices')
    op.drop_index('ix_invoices_tenant_id', table_name='invoices')
    op.drop_table('invoices')
    op.drop_table('tenants')
