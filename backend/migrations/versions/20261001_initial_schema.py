"""Initial schema: sellers, sessions, catalog, customers, orders, order links

Revision ID: 20261001_initial
Revises:
Create Date: 2026-10-01

This migration creates:
1. sellers and seller_sessions (credentials and server-side sessions)
2. products, price_profiles, price_profile_items (catalog)
3. customers
4. orders and order_lines (lifecycle with pricing snapshots)
5. customer_order_links and customer_order_link_items
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ==========================================================================
    # 1. SELLERS / SESSIONS
    # ==========================================================================
    op.create_table('sellers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('email', sa.String(length=160), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False),
        sa.Column('is_enabled', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('must_change_password', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('password_changed_at', sa.DateTime(), nullable=True),
        sa.Column('last_login_at', sa.DateTime(), nullable=True),
        sa.Column('created_by_seller_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['created_by_seller_id'], ['sellers.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email', name='uq_sellers_email'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_sellers_role_enabled', 'sellers', ['role', 'is_enabled'], unique=False)

    op.create_table('seller_sessions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('seller_id', sa.Integer(), nullable=False),
        sa.Column('token_hash', sa.String(length=64), nullable=False),
        sa.Column('user_agent', sa.String(length=300), nullable=True),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('last_seen_at', sa.DateTime(), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['seller_id'], ['sellers.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('token_hash', name='uq_seller_sessions_token_hash'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_seller_sessions_seller_id', 'seller_sessions', ['seller_id'], unique=False)
    op.create_index('ix_seller_sessions_expires_at', 'seller_sessions', ['expires_at'], unique=False)

    # ==========================================================================
    # 2. CATALOG
    # ==========================================================================
    op.create_table('products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('description', sa.String(length=300), nullable=True),
        sa.Column('unit', sa.String(length=8), nullable=False, server_default='kg'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name', name='uq_products_name'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_products_is_active', 'products', ['is_active'], unique=False)

    op.create_table('price_profiles',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=140), nullable=False),
        sa.Column('type', sa.String(length=8), nullable=False),
        sa.Column('seller_id', sa.Integer(), nullable=True),
        sa.Column('seller_name', sa.String(length=120), nullable=True),
        sa.Column('effective_from', sa.DateTime(), nullable=False),
        sa.Column('notes', sa.String(length=500), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['seller_id'], ['sellers.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_price_profiles_type_active', 'price_profiles', ['type', 'is_active'], unique=False)
    op.create_index('ix_price_profiles_seller_id', 'price_profiles', ['seller_id'], unique=False)

    op.create_table('price_profile_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('profile_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('product_name', sa.String(length=120), nullable=False),
        sa.Column('price_per_kg', sa.Float(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.ForeignKeyConstraint(['profile_id'], ['price_profiles.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('profile_id', 'product_id', name='uq_price_profile_items_product'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_price_profile_items_profile_id', 'price_profile_items', ['profile_id'], unique=False)
    op.create_index('ix_price_profile_items_product_id', 'price_profile_items', ['product_id'], unique=False)

    # ==========================================================================
    # 3. CUSTOMERS
    # ==========================================================================
    op.create_table('customers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('phone', sa.String(length=24), nullable=False),
        sa.Column('email', sa.String(length=160), nullable=True),
        sa.Column('notes', sa.String(length=500), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('order_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_spent_amount', sa.Float(), nullable=False, server_default='0'),
        sa.Column('last_order_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_customers_phone', 'customers', ['phone'], unique=False)
    op.create_index('ix_customers_active', 'customers', ['is_active'], unique=False)

    # ==========================================================================
    # 4. ORDERS
    # ==========================================================================
    op.create_table('orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(length=32), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=False),
        sa.Column('customer_name', sa.String(length=120), nullable=False),
        sa.Column('buyer_name', sa.String(length=120), nullable=False),
        sa.Column('seller_id', sa.Integer(), nullable=False),
        sa.Column('seller_name', sa.String(length=120), nullable=False),
        sa.Column('delivery_date', sa.Date(), nullable=False),
        sa.Column('cost_profile_id', sa.Integer(), nullable=False),
        sa.Column('cost_profile_name', sa.String(length=140), nullable=False),
        sa.Column('cost_profile_effective_from', sa.DateTime(), nullable=False),
        sa.Column('sale_profile_id', sa.Integer(), nullable=False),
        sa.Column('sale_profile_name', sa.String(length=140), nullable=False),
        sa.Column('sale_profile_effective_from', sa.DateTime(), nullable=False),
        sa.Column('sale_profile_is_global', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('total_weight_kg', sa.Float(), nullable=False, server_default='0'),
        sa.Column('total_cost_amount', sa.Float(), nullable=False, server_default='0'),
        sa.Column('base_sale_amount', sa.Float(), nullable=False, server_default='0'),
        sa.Column('total_sale_amount', sa.Float(), nullable=False, server_default='0'),
        sa.Column('total_profit_amount', sa.Float(), nullable=False, server_default='0'),
        sa.Column('fulfillment_status', sa.String(length=24), nullable=False, server_default='PENDING_APPROVAL'),
        sa.Column('supplier_payment_status', sa.String(length=32), nullable=False, server_default='UNPAID_SUPPLIER'),
        sa.Column('collection_status', sa.String(length=24), nullable=False, server_default='UNPAID'),
        sa.Column('requires_admin_approval', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('approval_status', sa.String(length=16), nullable=False, server_default='PENDING'),
        sa.Column('approval_requested_at', sa.DateTime(), nullable=True),
        sa.Column('approval_reviewed_at', sa.DateTime(), nullable=True),
        sa.Column('approval_reviewed_by_id', sa.Integer(), nullable=True),
        sa.Column('approval_reviewed_by_name', sa.String(length=120), nullable=True),
        sa.Column('approval_note', sa.String(length=300), nullable=True),
        sa.Column('discount_status', sa.String(length=16), nullable=False, server_default='NONE'),
        sa.Column('discount_requested_percent', sa.Float(), nullable=True),
        sa.Column('discount_requested_amount', sa.Float(), nullable=True),
        sa.Column('discount_requested_sale_amount', sa.Float(), nullable=True),
        sa.Column('discount_reason', sa.String(length=300), nullable=True),
        sa.Column('discount_requested_at', sa.DateTime(), nullable=True),
        sa.Column('discount_requested_by_id', sa.Integer(), nullable=True),
        sa.Column('discount_reviewed_at', sa.DateTime(), nullable=True),
        sa.Column('discount_reviewed_by_id', sa.Integer(), nullable=True),
        sa.Column('discount_reviewed_by_name', sa.String(length=120), nullable=True),
        sa.Column('discount_review_note', sa.String(length=300), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id']),
        sa.ForeignKeyConstraint(['seller_id'], ['sellers.id']),
        sa.ForeignKeyConstraint(['approval_reviewed_by_id'], ['sellers.id']),
        sa.ForeignKeyConstraint(['discount_requested_by_id'], ['sellers.id']),
        sa.ForeignKeyConstraint(['discount_reviewed_by_id'], ['sellers.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('code', name='uq_orders_code'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_orders_seller_id', 'orders', ['seller_id'], unique=False)
    op.create_index('ix_orders_customer_id', 'orders', ['customer_id'], unique=False)
    op.create_index('ix_orders_delivery_date', 'orders', ['delivery_date'], unique=False)
    op.create_index('ix_orders_fulfillment_status', 'orders', ['fulfillment_status'], unique=False)

    op.create_table('order_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('product_name', sa.String(length=120), nullable=False),
        sa.Column('weight_kg', sa.Float(), nullable=False),
        sa.Column('cost_price_per_kg', sa.Float(), nullable=False),
        sa.Column('sale_price_per_kg', sa.Float(), nullable=False),
        sa.Column('base_sale_price_per_kg', sa.Float(), nullable=False),
        sa.Column('line_cost_total', sa.Float(), nullable=False),
        sa.Column('base_line_sale_total', sa.Float(), nullable=False),
        sa.Column('line_sale_total', sa.Float(), nullable=False),
        sa.Column('line_profit', sa.Float(), nullable=False),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_order_lines_order_id', 'order_lines', ['order_id'], unique=False)
    op.create_index('ix_order_lines_product_id', 'order_lines', ['product_id'], unique=False)

    # ==========================================================================
    # 5. CUSTOMER ORDER LINKS
    # ==========================================================================
    op.create_table('customer_order_links',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('token', sa.String(length=120), nullable=False),
        sa.Column('seller_id', sa.Integer(), nullable=False),
        sa.Column('seller_name', sa.String(length=120), nullable=False),
        sa.Column('sale_profile_id', sa.Integer(), nullable=False),
        sa.Column('sale_profile_name', sa.String(length=140), nullable=False),
        sa.Column('sale_profile_effective_from', sa.DateTime(), nullable=False),
        sa.Column('sale_profile_is_global', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_by_seller_id', sa.Integer(), nullable=False),
        sa.Column('created_by_name', sa.String(length=120), nullable=False),
        sa.Column('usage_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_used_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['seller_id'], ['sellers.id']),
        sa.ForeignKeyConstraint(['created_by_seller_id'], ['sellers.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('token', name='uq_customer_order_links_token'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_customer_order_links_seller_active', 'customer_order_links', ['seller_id', 'is_active'], unique=False)

    op.create_table('customer_order_link_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('link_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('product_name', sa.String(length=120), nullable=False),
        sa.Column('price_per_kg', sa.Float(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.ForeignKeyConstraint(['link_id'], ['customer_order_links.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_customer_order_link_items_link_id', 'customer_order_link_items', ['link_id'], unique=False)


def downgrade():
    op.drop_index('ix_customer_order_link_items_link_id', table_name='customer_order_link_items')
    op.drop_table('customer_order_link_items')
    op.drop_index('ix_customer_order_links_seller_active', table_name='customer_order_links')
    op.drop_table('customer_order_links')

    op.drop_index('ix_order_lines_product_id', table_name='order_lines')
    op.drop_index('ix_order_lines_order_id', table_name='order_lines')
    op.drop_table('order_lines')
    op.drop_index('ix_orders_fulfillment_status', table_name='orders')
    op.drop_index('ix_orders_delivery_date', table_name='orders')
    op.drop_index('ix_orders_customer_id', table_name='orders')
    op.drop_index('ix_orders_seller_id', table_name='orders')
    op.drop_table('orders')

    op.drop_index('ix_customers_active', table_name='customers')
    op.drop_index('ix_customers_phone', table_name='customers')
    op.drop_table('customers')

    op.drop_index('ix_price_profile_items_product_id', table_name='price_profile_items')
    op.drop_index('ix_price_profile_items_profile_id', table_name='price_profile_items')
    op.drop_table('price_profile_items')
    op.drop_index('ix_price_profiles_seller_id', table_name='price_profiles')
    op.drop_index('ix_price_profiles_type_active', table_name='price_profiles')
    op.drop_table('price_profiles')
    op.drop_index('ix_products_is_active', table_name='products')
    op.drop_table('products')

    op.drop_index('ix_seller_sessions_expires_at', table_name='seller_sessions')
    op.drop_index('ix_seller_sessions_seller_id', table_name='seller_sessions')
    op.drop_table('seller_sessions')
    op.drop_index('ix_sellers_role_enabled', table_name='sellers')
    op.drop_table('sellers')
