"""Initial print shop schema: tenancy, catalog, invoicing, sequences, production

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-16

This migration adds:
1. companies / branches (tenant root and invoice number prefix)
2. products / weight_pricing_tiers (catalog and delivery pricing)
3. invoices / invoice_items / payments (version-locked invoices)
4. number_sequences (atomic per-branch counters)
5. print_jobs / production_stages (version-locked production workflow)
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ==========================================================================
    # 1. TENANCY
    # ==========================================================================
    op.create_table('companies',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('code', sa.String(length=32), nullable=True),
        sa.Column('tax_rate', sa.Numeric(precision=6, scale=4), nullable=True),
        sa.Column('currency', sa.String(length=8), nullable=False, server_default='LKR'),
        sa.Column('settings', sa.JSON(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('companies', schema=None) as batch_op:
        batch_op.create_index('ix_companies_code', ['code'], unique=True)
        batch_op.create_index('ix_companies_is_active', ['is_active'], unique=False)

    op.create_table('branches',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('code', sa.String(length=32), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('company_id', 'code', name='uq_branches_company_code'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('branches', schema=None) as batch_op:
        batch_op.create_index('ix_branches_company_id', ['company_id'], unique=False)

    # ==========================================================================
    # 2. CATALOG
    # ==========================================================================
    op.create_table('products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('product_code', sa.String(length=64), nullable=True),
        sa.Column('base_price', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('weight_per_unit', sa.Numeric(precision=12, scale=3), nullable=False, server_default='0'),
        sa.Column('weight_unit', sa.String(length=16), nullable=False, server_default='kg'),
        sa.Column('tax_rate', sa.Numeric(precision=5, scale=2), nullable=False, server_default='0'),
        sa.Column('minimum_quantity', sa.Integer(), nullable=True),
        sa.Column('maximum_quantity', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('company_id', 'product_code', name='uq_products_company_code'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('products', schema=None) as batch_op:
        batch_op.create_index('ix_products_company_id', ['company_id'], unique=False)

    op.create_table('weight_pricing_tiers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('tier_name', sa.String(length=120), nullable=False),
        sa.Column('min_weight', sa.Numeric(precision=12, scale=3), nullable=False, server_default='0'),
        sa.Column('max_weight', sa.Numeric(precision=12, scale=3), nullable=True),
        sa.Column('base_price', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('price_per_kg', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='active'),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.CheckConstraint('max_weight IS NULL OR max_weight >= min_weight', name='ck_weight_tiers_range'),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('weight_pricing_tiers', schema=None) as batch_op:
        batch_op.create_index('ix_weight_pricing_tiers_company_id', ['company_id'], unique=False)
        batch_op.create_index('ix_weight_pricing_tiers_status', ['status'], unique=False)
        batch_op.create_index('ix_weight_tiers_company_status_min', ['company_id', 'status', 'min_weight'], unique=False)

    # ==========================================================================
    # 3. INVOICING
    # ==========================================================================
    op.create_table('invoices',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('branch_id', sa.Integer(), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=True),
        sa.Column('invoice_number', sa.String(length=64), nullable=False),
        sa.Column('invoice_date', sa.Date(), nullable=False),
        sa.Column('due_date', sa.Date(), nullable=False),
        sa.Column('subtotal', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('weight_charge', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('tax_amount', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('discount_amount', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('total_amount', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('total_weight', sa.Numeric(precision=12, scale=3), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='draft'),
        sa.Column('payment_status', sa.String(length=16), nullable=False, server_default='pending'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('terms_conditions', sa.Text(), nullable=True),
        sa.Column('created_by_user_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ),
        sa.ForeignKeyConstraint(['branch_id'], ['branches.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('branch_id', 'invoice_number', name='uq_invoices_branch_number'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('invoices', schema=None) as batch_op:
        batch_op.create_index('ix_invoices_company_id', ['company_id'], unique=False)
        batch_op.create_index('ix_invoices_branch_id', ['branch_id'], unique=False)
        batch_op.create_index('ix_invoices_customer_id', ['customer_id'], unique=False)
        batch_op.create_index('ix_invoices_status', ['status'], unique=False)
        batch_op.create_index('ix_invoices_payment_status', ['payment_status'], unique=False)
        batch_op.create_index('ix_invoices_branch_status_created', ['branch_id', 'status', 'created_at'], unique=False)

    op.create_table('invoice_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('invoice_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=True),
        sa.Column('item_description', sa.String(length=255), nullable=True),
        sa.Column('quantity', sa.Numeric(precision=12, scale=2), nullable=False, server_default='1'),
        sa.Column('unit_price', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('unit_weight', sa.Numeric(precision=12, scale=3), nullable=False, server_default='0'),
        sa.Column('line_total', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('line_weight', sa.Numeric(precision=12, scale=3), nullable=False, server_default='0'),
        sa.Column('tax_amount', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('specifications', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['invoice_id'], ['invoices.id'], ),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('invoice_items', schema=None) as batch_op:
        batch_op.create_index('ix_invoice_items_invoice_id', ['invoice_id'], unique=False)
        batch_op.create_index('ix_invoice_items_product_id', ['product_id'], unique=False)

    op.create_table('payments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('invoice_id', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('method', sa.String(length=32), nullable=False, server_default='cash'),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='completed'),
        sa.Column('reference', sa.String(length=120), nullable=True),
        sa.Column('created_by_user_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['invoice_id'], ['invoices.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('payments', schema=None) as batch_op:
        batch_op.create_index('ix_payments_invoice_id', ['invoice_id'], unique=False)
        batch_op.create_index('ix_payments_status', ['status'], unique=False)

    # ==========================================================================
    # 4. NUMBER SEQUENCES
    # ==========================================================================
    op.create_table('number_sequences',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('branch_id', sa.Integer(), nullable=False),
        sa.Column('sequence_type', sa.String(length=32), nullable=False),
        sa.Column('next_number', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['branch_id'], ['branches.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('branch_id', 'sequence_type', name='uq_number_sequences_branch_type'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('number_sequences', schema=None) as batch_op:
        batch_op.create_index('ix_number_sequences_branch_id', ['branch_id'], unique=False)
        batch_op.create_index('ix_number_sequences_sequence_type', ['sequence_type'], unique=False)

    # ==========================================================================
    # 5. PRODUCTION
    # ==========================================================================
    op.create_table('print_jobs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('branch_id', sa.Integer(), nullable=False),
        sa.Column('invoice_id', sa.Integer(), nullable=True),
        sa.Column('assigned_to_user_id', sa.Integer(), nullable=True),
        sa.Column('job_number', sa.String(length=64), nullable=False),
        sa.Column('job_type', sa.String(length=32), nullable=False, server_default='custom'),
        sa.Column('priority', sa.String(length=16), nullable=False, server_default='normal'),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('production_status', sa.String(length=32), nullable=False, server_default='pending'),
        sa.Column('completion_percentage', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('actual_completion', sa.DateTime(timezone=True), nullable=True),
        sa.Column('specifications', sa.JSON(), nullable=True),
        sa.Column('production_notes', sa.Text(), nullable=True),
        sa.Column('created_by_user_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['branch_id'], ['branches.id'], ),
        sa.ForeignKeyConstraint(['invoice_id'], ['invoices.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('branch_id', 'job_number', name='uq_print_jobs_branch_number'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('print_jobs', schema=None) as batch_op:
        batch_op.create_index('ix_print_jobs_branch_id', ['branch_id'], unique=False)
        batch_op.create_index('ix_print_jobs_invoice_id', ['invoice_id'], unique=False)
        batch_op.create_index('ix_print_jobs_production_status', ['production_status'], unique=False)
        batch_op.create_index('ix_print_jobs_branch_status', ['branch_id', 'production_status'], unique=False)

    op.create_table('production_stages',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('print_job_id', sa.Integer(), nullable=False),
        sa.Column('stage_name', sa.String(length=64), nullable=False),
        sa.Column('stage_order', sa.Integer(), nullable=False),
        sa.Column('stage_status', sa.String(length=32), nullable=False, server_default='pending'),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('estimated_duration', sa.Integer(), nullable=True),
        sa.Column('actual_duration', sa.Integer(), nullable=True),
        sa.Column('requires_customer_approval', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('customer_approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('approval_status', sa.String(length=16), nullable=True),
        sa.Column('approved_by_user_id', sa.Integer(), nullable=True),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('stage_data', sa.JSON(), nullable=True),
        sa.Column('updated_by_user_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['print_job_id'], ['print_jobs.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('print_job_id', 'stage_order', name='uq_production_stages_job_order'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('production_stages', schema=None) as batch_op:
        batch_op.create_index('ix_production_stages_print_job_id', ['print_job_id'], unique=False)
        batch_op.create_index('ix_production_stages_job_status', ['print_job_id', 'stage_status'], unique=False)


def downgrade():
    op.drop_table('production_stages')
    op.drop_table('print_jobs')
    op.drop_table('number_sequences')
    op.drop_table('payments')
    op.drop_table('invoice_items')
    op.drop_table('invoices')
    op.drop_table('weight_pricing_tiers')
    op.drop_table('products')
    op.drop_table('branches')
    op.drop_table('companies')
