"""Initial schema: tenants, companies, chart of accounts, documents, intercompany

Revision ID: 20260301_initial
Revises:
Create Date: 2026-03-01

This migration creates:
1. Tenants and companies (tenant-owned)
2. Account types (global) and per-company chart of accounts
3. Customers, vendors (optionally linked to a sister company) and products
4. Per-company document sequences
5. Sales/purchase orders with lines, invoices, bills, receipts, payments
6. Intercompany transactions linking both sides of one trade
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20260301_initial'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
    ]


def upgrade():
    # ==========================================================================
    # 1. TENANTS AND COMPANIES
    # ==========================================================================
    op.create_table('tenants',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('subdomain', sa.String(length=64), nullable=False),
        sa.Column('plan_type', sa.String(length=32), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('tenants', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_tenants_subdomain'), ['subdomain'], unique=True)
        batch_op.create_index(batch_op.f('ix_tenants_is_active'), ['is_active'], unique=False)

    op.create_table('companies',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('code', sa.String(length=32), nullable=False),
        sa.Column('company_type', sa.String(length=32), nullable=False),
        sa.Column('tax_id', sa.String(length=64), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('base_currency', sa.String(length=3), nullable=False),
        sa.Column('industry', sa.String(length=128), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'code', name='uq_companies_tenant_code'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('companies', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_companies_tenant_id'), ['tenant_id'], unique=False)
        batch_op.create_index('ix_companies_tenant_active', ['tenant_id', 'is_active'], unique=False)

    # ==========================================================================
    # 2. CHART OF ACCOUNTS
    # ==========================================================================
    op.create_table('account_types',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('balance_sheet_section', sa.String(length=32), nullable=False),
        sa.Column('normal_balance', sa.String(length=8), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('code'),
        sqlite_autoincrement=True
    )

    op.create_table('accounts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('account_type_id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('parent_id', sa.Integer(), nullable=True),
        sa.Column('level', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('balance_cents', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ),
        sa.ForeignKeyConstraint(['account_type_id'], ['account_types.id'], ),
        sa.ForeignKeyConstraint(['parent_id'], ['accounts.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('company_id', 'code', name='uq_accounts_company_code'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('accounts', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_accounts_company_id'), ['company_id'], unique=False)

    # ==========================================================================
    # 3. COUNTERPARTIES AND PRODUCTS
    # ==========================================================================
    for table in ('customers', 'vendors'):
        op.create_table(table,
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('company_id', sa.Integer(), nullable=False),
            sa.Column('name', sa.String(length=255), nullable=False),
            sa.Column('email', sa.String(length=255), nullable=True),
            sa.Column('phone', sa.String(length=32), nullable=True),
            sa.Column('address', sa.Text(), nullable=True),
            sa.Column('tax_id', sa.String(length=64), nullable=True),
            sa.Column('linked_company_id', sa.Integer(), nullable=True),
            sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
            sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ),
            sa.ForeignKeyConstraint(['linked_company_id'], ['companies.id'], ),
            sa.PrimaryKeyConstraint('id'),
            sqlite_autoincrement=True
        )
        with op.batch_alter_table(table, schema=None) as batch_op:
            batch_op.create_index(batch_op.f(f'ix_{table}_company_id'), ['company_id'], unique=False)
            batch_op.create_index(f'ix_{table}_company_linked', ['company_id', 'linked_company_id'], unique=False)

    op.create_table('products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('sales_price_cents', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('purchase_price_cents', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('company_id', 'code', name='uq_products_company_code'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('products', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_products_company_id'), ['company_id'], unique=False)

    # ==========================================================================
    # 4. DOCUMENT SEQUENCES
    # ==========================================================================
    op.create_table('document_sequences',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('document_type', sa.String(length=32), nullable=False),
        sa.Column('next_number', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('company_id', 'document_type', name='uq_doc_sequences_company_type'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('document_sequences', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_document_sequences_company_id'), ['company_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_document_sequences_document_type'), ['document_type'], unique=False)

    # ==========================================================================
    # 5. ORDERS
    # ==========================================================================
    for table, party_column, party_table in (
        ('sales_orders', 'customer_id', 'customers'),
        ('purchase_orders', 'vendor_id', 'vendors'),
    ):
        op.create_table(table,
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('company_id', sa.Integer(), nullable=False),
            sa.Column(party_column, sa.Integer(), nullable=False),
            sa.Column('order_number', sa.String(length=64), nullable=False),
            sa.Column('order_date', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
            sa.Column('expected_date', sa.DateTime(timezone=True), nullable=True),
            sa.Column('status', sa.String(length=16), nullable=False),
            sa.Column('total_cents', sa.BigInteger(), nullable=False, server_default='0'),
            sa.Column('notes', sa.Text(), nullable=True),
            sa.Column('reference_number', sa.String(length=64), nullable=True),
            sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
            *_timestamps(),
            sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ),
            sa.ForeignKeyConstraint([party_column], [f'{party_table}.id'], ),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('company_id', 'order_number', name=f'uq_{table}_company_number'),
            sqlite_autoincrement=True
        )
        with op.batch_alter_table(table, schema=None) as batch_op:
            batch_op.create_index(batch_op.f(f'ix_{table}_company_id'), ['company_id'], unique=False)
            batch_op.create_index(batch_op.f(f'ix_{table}_{party_column}'), [party_column], unique=False)
            batch_op.create_index(batch_op.f(f'ix_{table}_status'), ['status'], unique=False)
            batch_op.create_index(batch_op.f(f'ix_{table}_reference_number'), ['reference_number'], unique=False)
            batch_op.create_index(batch_op.f(f'ix_{table}_created_at'), ['created_at'], unique=False)
            batch_op.create_index(f'ix_{table}_company_status_created', ['company_id', 'status', 'created_at'], unique=False)

    for table, order_column, order_table in (
        ('sales_order_items', 'sales_order_id', 'sales_orders'),
        ('purchase_order_items', 'purchase_order_id', 'purchase_orders'),
    ):
        op.create_table(table,
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column(order_column, sa.Integer(), nullable=False),
            sa.Column('product_id', sa.Integer(), nullable=True),
            sa.Column('description', sa.Text(), nullable=True),
            sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
            sa.Column('unit_price_cents', sa.BigInteger(), nullable=False, server_default='0'),
            sa.Column('amount_cents', sa.BigInteger(), nullable=False, server_default='0'),
            sa.ForeignKeyConstraint([order_column], [f'{order_table}.id'], ),
            sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
            sa.PrimaryKeyConstraint('id'),
            sqlite_autoincrement=True
        )
        with op.batch_alter_table(table, schema=None) as batch_op:
            batch_op.create_index(batch_op.f(f'ix_{table}_{order_column}'), [order_column], unique=False)

    # ==========================================================================
    # 6. INVOICES AND BILLS
    # ==========================================================================
    for table, party_column, party_table, order_column, order_table, number_column, date_column, partial_column in (
        ('invoices', 'customer_id', 'customers', 'sales_order_id', 'sales_orders',
         'invoice_number', 'invoice_date', 'is_partial_invoice'),
        ('bills', 'vendor_id', 'vendors', 'purchase_order_id', 'purchase_orders',
         'bill_number', 'bill_date', 'is_partial_bill'),
    ):
        op.create_table(table,
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('company_id', sa.Integer(), nullable=False),
            sa.Column(party_column, sa.Integer(), nullable=False),
            sa.Column(order_column, sa.Integer(), nullable=True),
            sa.Column(number_column, sa.String(length=64), nullable=False),
            sa.Column(date_column, sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
            sa.Column('due_date', sa.DateTime(timezone=True), nullable=True),
            sa.Column('status', sa.String(length=16), nullable=False),
            sa.Column('subtotal_cents', sa.BigInteger(), nullable=False, server_default='0'),
            sa.Column('tax_cents', sa.BigInteger(), nullable=False, server_default='0'),
            sa.Column('total_cents', sa.BigInteger(), nullable=False, server_default='0'),
            sa.Column('amount_paid_cents', sa.BigInteger(), nullable=False, server_default='0'),
            sa.Column(partial_column, sa.Boolean(), nullable=False, server_default='0'),
            sa.Column('notes', sa.Text(), nullable=True),
            sa.Column('reference_number', sa.String(length=64), nullable=True),
            sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
            *_timestamps(),
            sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ),
            sa.ForeignKeyConstraint([party_column], [f'{party_table}.id'], ),
            sa.ForeignKeyConstraint([order_column], [f'{order_table}.id'], ),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('company_id', number_column, name=f'uq_{table}_company_number'),
            sqlite_autoincrement=True
        )
        with op.batch_alter_table(table, schema=None) as batch_op:
            batch_op.create_index(batch_op.f(f'ix_{table}_company_id'), ['company_id'], unique=False)
            batch_op.create_index(batch_op.f(f'ix_{table}_{party_column}'), [party_column], unique=False)
            batch_op.create_index(batch_op.f(f'ix_{table}_{order_column}'), [order_column], unique=False)
            batch_op.create_index(batch_op.f(f'ix_{table}_status'), ['status'], unique=False)
            batch_op.create_index(batch_op.f(f'ix_{table}_reference_number'), ['reference_number'], unique=False)
            batch_op.create_index(batch_op.f(f'ix_{table}_created_at'), ['created_at'], unique=False)
            batch_op.create_index(f'ix_{table}_company_status_due', ['company_id', 'status', 'due_date'], unique=False)

    # ==========================================================================
    # 7. INTERCOMPANY TRANSACTIONS
    # ==========================================================================
    op.create_table('intercompany_transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('source_company_id', sa.Integer(), nullable=False),
        sa.Column('target_company_id', sa.Integer(), nullable=False),
        sa.Column('reference_number', sa.String(length=64), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('amount_cents', sa.BigInteger(), nullable=False),
        sa.Column('paid_cents', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('transaction_date', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('source_order_id', sa.Integer(), nullable=True),
        sa.Column('target_order_id', sa.Integer(), nullable=True),
        sa.Column('source_invoice_id', sa.Integer(), nullable=True),
        sa.Column('target_bill_id', sa.Integer(), nullable=True),
        sa.Column('initiated_by', sa.String(length=16), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('payment_status', sa.String(length=16), nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        *_timestamps(),
        sa.CheckConstraint('source_company_id <> target_company_id', name='ck_ic_tx_distinct_companies'),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ),
        sa.ForeignKeyConstraint(['source_company_id'], ['companies.id'], ),
        sa.ForeignKeyConstraint(['target_company_id'], ['companies.id'], ),
        sa.ForeignKeyConstraint(['source_order_id'], ['sales_orders.id'], ),
        sa.ForeignKeyConstraint(['target_order_id'], ['purchase_orders.id'], ),
        sa.ForeignKeyConstraint(['source_invoice_id'], ['invoices.id'], ),
        sa.ForeignKeyConstraint(['target_bill_id'], ['bills.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('reference_number'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('intercompany_transactions', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_intercompany_transactions_tenant_id'), ['tenant_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_intercompany_transactions_source_company_id'), ['source_company_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_intercompany_transactions_target_company_id'), ['target_company_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_intercompany_transactions_status'), ['status'], unique=False)
        batch_op.create_index(batch_op.f('ix_intercompany_transactions_created_at'), ['created_at'], unique=False)
        batch_op.create_index('ix_ic_tx_tenant_status', ['tenant_id', 'status'], unique=False)
        batch_op.create_index('ix_ic_tx_source_target', ['source_company_id', 'target_company_id'], unique=False)

    # ==========================================================================
    # 8. RECEIPTS AND PAYMENTS
    # ==========================================================================
    op.create_table('receipts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=False),
        sa.Column('invoice_id', sa.Integer(), nullable=False),
        sa.Column('sales_order_id', sa.Integer(), nullable=True),
        sa.Column('intercompany_transaction_id', sa.Integer(), nullable=True),
        sa.Column('receipt_number', sa.String(length=64), nullable=False),
        sa.Column('receipt_date', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('amount_cents', sa.BigInteger(), nullable=False),
        sa.Column('payment_method', sa.String(length=32), nullable=False),
        sa.Column('reference', sa.String(length=128), nullable=True),
        sa.Column('is_partial_payment', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('reference_number', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ),
        sa.ForeignKeyConstraint(['invoice_id'], ['invoices.id'], ),
        sa.ForeignKeyConstraint(['sales_order_id'], ['sales_orders.id'], ),
        sa.ForeignKeyConstraint(['intercompany_transaction_id'], ['intercompany_transactions.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('company_id', 'receipt_number', name='uq_receipts_company_number'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('receipts', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_receipts_company_id'), ['company_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_receipts_customer_id'), ['customer_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_receipts_invoice_id'), ['invoice_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_receipts_intercompany_transaction_id'), ['intercompany_transaction_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_receipts_reference_number'), ['reference_number'], unique=False)
        batch_op.create_index(batch_op.f('ix_receipts_created_at'), ['created_at'], unique=False)
        batch_op.create_index('ix_receipts_company_date', ['company_id', 'receipt_date'], unique=False)

    op.create_table('payments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('vendor_id', sa.Integer(), nullable=False),
        sa.Column('bill_id', sa.Integer(), nullable=False),
        sa.Column('purchase_order_id', sa.Integer(), nullable=True),
        sa.Column('intercompany_transaction_id', sa.Integer(), nullable=True),
        sa.Column('mirror_receipt_id', sa.Integer(), nullable=True),
        sa.Column('payment_number', sa.String(length=64), nullable=False),
        sa.Column('payment_date', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('amount_cents', sa.BigInteger(), nullable=False),
        sa.Column('payment_method', sa.String(length=32), nullable=False),
        sa.Column('reference', sa.String(length=128), nullable=True),
        sa.Column('is_partial_payment', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('reference_number', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ),
        sa.ForeignKeyConstraint(['vendor_id'], ['vendors.id'], ),
        sa.ForeignKeyConstraint(['bill_id'], ['bills.id'], ),
        sa.ForeignKeyConstraint(['purchase_order_id'], ['purchase_orders.id'], ),
        sa.ForeignKeyConstraint(['intercompany_transaction_id'], ['intercompany_transactions.id'], ),
        sa.ForeignKeyConstraint(['mirror_receipt_id'], ['receipts.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('company_id', 'payment_number', name='uq_payments_company_number'),
        sa.UniqueConstraint('mirror_receipt_id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('payments', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_payments_company_id'), ['company_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_payments_vendor_id'), ['vendor_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_payments_bill_id'), ['bill_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_payments_intercompany_transaction_id'), ['intercompany_transaction_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_payments_reference_number'), ['reference_number'], unique=False)
        batch_op.create_index(batch_op.f('ix_payments_created_at'), ['created_at'], unique=False)
        batch_op.create_index('ix_payments_company_date', ['company_id', 'payment_date'], unique=False)


def downgrade():
    for table in (
        'payments',
        'receipts',
        'intercompany_transactions',
        'bills',
        'invoices',
        'purchase_order_items',
        'sales_order_items',
        'purchase_orders',
        'sales_orders',
        'document_sequences',
        'products',
        'vendors',
        'customers',
        'accounts',
        'account_types',
        'companies',
        'tenants',
    ):
        op.drop_table(table)
