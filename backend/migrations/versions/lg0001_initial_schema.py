"""initial schema

Revision ID: lg0001
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates the LogGas schema:
- users / session_tokens: accounts and bearer sessions
- products: per-tenant catalog with stock counter
- sales / sale_items: committed orders with price snapshots
- delivery_routes: driver batches of online orders
- transactions: append-only financial ledger
- customers: per-tenant customer master with purchase aggregates
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'lg0001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ============================================================================
    # users: console admins, storefront customers, platform super admins
    # ============================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('tenant_id', sa.String(length=64), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False),
        sa.Column('address', sa.String(length=255), nullable=True),
        sa.Column('company_name', sa.String(length=255), nullable=True),
        sa.Column('plan', sa.String(length=16), nullable=True),
        sa.Column('subscription_status', sa.String(length=16), nullable=True),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email', name='uq_users_email'),
    )
    op.create_index('ix_users_tenant_id', 'users', ['tenant_id'])
    op.create_index('ix_users_tenant_role', 'users', ['tenant_id', 'role'])

    op.create_table(
        'session_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=32), nullable=False),
        sa.Column('tenant_id', sa.String(length=64), nullable=True),
        sa.Column('token_hash', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_used_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_revoked', sa.Boolean(), nullable=False),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('revoked_reason', sa.String(length=255), nullable=True),
        sa.Column('user_agent', sa.String(length=255), nullable=True),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_session_tokens_user_id', 'session_tokens', ['user_id'])
    op.create_index('ix_session_tokens_token_hash', 'session_tokens', ['token_hash'], unique=True)
    op.create_index('ix_session_tokens_expires_at', 'session_tokens', ['expires_at'])
    op.create_index('ix_session_tokens_is_revoked', 'session_tokens', ['is_revoked'])
    op.create_index('ix_session_tokens_user_active', 'session_tokens', ['user_id', 'is_revoked'])

    # ============================================================================
    # products: catalog; stock only moves via restock and sale commit
    # ============================================================================
    op.create_table(
        'products',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('tenant_id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('category', sa.String(length=16), nullable=False),
        sa.Column('sku', sa.String(length=64), nullable=False),
        sa.Column('unit', sa.String(length=16), nullable=False),
        sa.Column('stock', sa.Integer(), nullable=False),
        sa.Column('min_stock', sa.Integer(), nullable=False),
        sa.Column('cost_price_cents', sa.Integer(), nullable=False),
        sa.Column('sell_price_cents', sa.Integer(), nullable=False),
        sa.Column('active', sa.Boolean(), nullable=False),
        sa.Column('show_online', sa.Boolean(), nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'sku', name='uq_products_tenant_sku'),
        sa.CheckConstraint('stock >= 0', name='ck_products_stock_non_negative'),
        sa.CheckConstraint('min_stock >= 0', name='ck_products_min_stock_non_negative'),
        sa.CheckConstraint('cost_price_cents >= 0', name='ck_products_cost_non_negative'),
        sa.CheckConstraint('sell_price_cents >= 0', name='ck_products_sell_non_negative'),
    )
    op.create_index('ix_products_tenant_id', 'products', ['tenant_id'])
    op.create_index('ix_products_tenant_online', 'products', ['tenant_id', 'active', 'show_online'])

    # ============================================================================
    # sales / sale_items: frozen at creation except status
    # ============================================================================
    op.create_table(
        'sales',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('tenant_id', sa.String(length=64), nullable=False),
        sa.Column('request_id', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('customer_id', sa.String(length=64), nullable=False),
        sa.Column('customer_name', sa.String(length=255), nullable=False),
        sa.Column('customer_address', sa.String(length=255), nullable=True),
        sa.Column('customer_phone', sa.String(length=32), nullable=True),
        sa.Column('total_cents', sa.Integer(), nullable=False),
        sa.Column('payment_method', sa.String(length=16), nullable=False),
        sa.Column('origin', sa.String(length=16), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('status_changed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'request_id', name='uq_sales_tenant_request_id'),
        sa.CheckConstraint('total_cents >= 0', name='ck_sales_total_non_negative'),
    )
    op.create_index('ix_sales_tenant_id', 'sales', ['tenant_id'])
    op.create_index('ix_sales_tenant_created', 'sales', ['tenant_id', 'created_at'])
    op.create_index('ix_sales_tenant_status', 'sales', ['tenant_id', 'status'])
    op.create_index('ix_sales_tenant_customer', 'sales', ['tenant_id', 'customer_id'])

    op.create_table(
        'sale_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.String(length=32), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.String(length=32), nullable=False),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False),
        sa.Column('line_total_cents', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('quantity > 0', name='ck_sale_items_quantity_positive'),
    )
    op.create_index('ix_sale_items_sale_id', 'sale_items', ['sale_id'])
    op.create_index('ix_sale_items_product_id', 'sale_items', ['product_id'])

    op.create_table(
        'delivery_routes',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('tenant_id', sa.String(length=64), nullable=False),
        sa.Column('driver_id', sa.String(length=64), nullable=False),
        sa.Column('sale_ids', sa.JSON(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('suggestion', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_delivery_routes_tenant_id', 'delivery_routes', ['tenant_id'])

    # ============================================================================
    # transactions: append-only ledger
    # ============================================================================
    op.create_table(
        'transactions',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('tenant_id', sa.String(length=64), nullable=False),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=False),
        sa.Column('type', sa.String(length=16), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('category', sa.String(length=64), nullable=False),
        sa.Column('sale_id', sa.String(length=32), nullable=True),
        sa.Column('product_id', sa.String(length=32), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('amount_cents >= 0', name='ck_transactions_amount_non_negative'),
        sa.CheckConstraint("type IN ('income', 'expense')", name='ck_transactions_type_valid'),
    )
    op.create_index('ix_transactions_tenant_id', 'transactions', ['tenant_id'])
    op.create_index('ix_transactions_sale_id', 'transactions', ['sale_id'])
    op.create_index('ix_transactions_tenant_occurred', 'transactions', ['tenant_id', 'occurred_at'])

    # ============================================================================
    # customers: composite identity (tenant_id, id)
    # ============================================================================
    op.create_table(
        'customers',
        sa.Column('tenant_id', sa.String(length=64), nullable=False),
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('document', sa.String(length=32), nullable=True),
        sa.Column('address', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('credit_limit_cents', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('last_purchase_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('purchase_count', sa.Integer(), nullable=False),
        sa.Column('total_spent_cents', sa.Integer(), nullable=False),
        sa.Column('average_interval_days', sa.Float(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('tenant_id', 'id'),
        sa.CheckConstraint('purchase_count >= 0', name='ck_customers_purchase_count_non_negative'),
        sa.CheckConstraint('total_spent_cents >= 0', name='ck_customers_total_spent_non_negative'),
    )
    op.create_index('ix_customers_tenant_name', 'customers', ['tenant_id', 'name'])


def downgrade():
    op.drop_index('ix_customers_tenant_name', table_name='customers')
    op.drop_table('customers')

    op.drop_index('ix_transactions_tenant_occurred', table_name='transactions')
    op.drop_index('ix_transactions_sale_id', table_name='transactions')
    op.drop_index('ix_transactions_tenant_id', table_name='transactions')
    op.drop_table('transactions')

    op.drop_index('ix_delivery_routes_tenant_id', table_name='delivery_routes')
    op.drop_table('delivery_routes')

    op.drop_index('ix_sale_items_product_id', table_name='sale_items')
    op.drop_index('ix_sale_items_sale_id', table_name='sale_items')
    op.drop_table('sale_items')

    op.drop_index('ix_sales_tenant_customer', table_name='sales')
    op.drop_index('ix_sales_tenant_status', table_name='sales')
    op.drop_index('ix_sales_tenant_created', table_name='sales')
    op.drop_index('ix_sales_tenant_id', table_name='sales')
    op.drop_table('sales')

    op.drop_index('ix_products_tenant_online', table_name='products')
    op.drop_index('ix_products_tenant_id', table_name='products')
    op.drop_table('products')

    op.drop_index('ix_session_tokens_user_active', table_name='session_tokens')
    op.drop_index('ix_session_tokens_is_revoked', table_name='session_tokens')
    op.drop_index('ix_session_tokens_expires_at', table_name='session_tokens')
    op.drop_index('ix_session_tokens_token_hash', table_name='session_tokens')
    op.drop_index('ix_session_tokens_user_id', table_name='session_tokens')
    op.drop_table('session_tokens')

    op.drop_index('ix_users_tenant_role', table_name='users')
    op.drop_index('ix_users_tenant_id', table_name='users')
    op.drop_table('users')
