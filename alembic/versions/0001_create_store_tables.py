"""create_store_tables

Revision ID: 0001_create_store_tables
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0001_create_store_tables'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSONB = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")

product_category_enum = sa.Enum(
    'tshirts', 'hoodies', 'sweatshirts', 'accessories', 'other',
    name='store_product_category_enum',
)
payment_method_enum = sa.Enum('stripe', 'paypal', name='store_payment_method_enum')
payment_status_enum = sa.Enum(
    'pending', 'completed', 'failed', 'refunded', name='store_payment_status_enum'
)
promotion_type_enum = sa.Enum(
    'percentage', 'fixed', 'free_shipping', name='store_promotion_type_enum'
)
promotion_scope_enum = sa.Enum(
    'global', 'products', 'categories', name='store_promotion_scope_enum'
)
admin_role_enum = sa.Enum('super_admin', 'admin', 'manager', name='store_admin_role_enum')
event_type_enum = sa.Enum(
    'page_view', 'product_view', 'add_to_cart', 'remove_from_cart',
    'checkout_started', 'checkout_completed', 'promotion_applied', 'search',
    name='store_analytics_event_type_enum',
)
device_type_enum = sa.Enum(
    'desktop', 'mobile', 'tablet', 'unknown', name='store_device_type_enum'
)


def upgrade() -> None:
    """Upgrade schema - Create store tables."""

    # Catalog
    op.create_table(
        'store_products',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('slug', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('compare_at_price', sa.Numeric(10, 2), nullable=True),
        sa.Column('category', product_category_enum, nullable=False),
        sa.Column('tags', JSONB, nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=False),
        sa.Column('is_featured', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('sales_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('view_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('printful_sync_product_id', sa.BigInteger(), nullable=True),
        sa.Column('printful_external_id', sa.String(length=100), nullable=True),
        sa.Column('printful_base_cost', sa.Numeric(10, 2), nullable=True),
        sa.Column('print_files', JSONB, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_store_products_slug', 'store_products', ['slug'], unique=True)
    op.create_index('ix_store_products_category', 'store_products', ['category'])
    op.create_index(
        'ix_store_products_printful_sync_product_id',
        'store_products',
        ['printful_sync_product_id'],
        unique=True,
    )
    op.create_index('ix_store_products_created_at', 'store_products', ['created_at'])

    op.create_table(
        'store_product_variants',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('product_id', sa.Uuid(), nullable=False),
        sa.Column('size', sa.String(length=32), nullable=False),
        sa.Column('color', sa.String(length=64), server_default='', nullable=False),
        sa.Column('sku', sa.String(length=100), nullable=True),
        sa.Column('stock', sa.Integer(), server_default='0', nullable=False),
        sa.Column('price', sa.Numeric(10, 2), nullable=True),
        sa.Column('price_locked', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('printful_variant_id', sa.BigInteger(), nullable=True),
        sa.Column('printful_sync_variant_id', sa.BigInteger(), nullable=True),
        sa.Column('printful_cost', sa.Numeric(10, 2), nullable=True),
        sa.Column('position', sa.Integer(), server_default='0', nullable=False),
        sa.ForeignKeyConstraint(['product_id'], ['store_products.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'ix_store_product_variants_product_id', 'store_product_variants', ['product_id']
    )
    op.create_index(
        'ix_store_product_variants_printful_sync_variant_id',
        'store_product_variants',
        ['printful_sync_variant_id'],
    )

    op.create_table(
        'store_product_images',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('product_id', sa.Uuid(), nullable=False),
        sa.Column('url', sa.String(length=1024), nullable=False),
        sa.Column('alt', sa.String(length=255), nullable=True),
        sa.Column('is_primary', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('sort_order', sa.Integer(), server_default='0', nullable=False),
        sa.ForeignKeyConstraint(['product_id'], ['store_products.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'ix_store_product_images_product_id', 'store_product_images', ['product_id']
    )

    # Carts
    op.create_table(
        'store_carts',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('session_id', sa.String(length=128), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_store_carts_session_id', 'store_carts', ['session_id'], unique=True)
    op.create_index('ix_store_carts_expires_at', 'store_carts', ['expires_at'])

    op.create_table(
        'store_cart_items',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('cart_id', sa.Uuid(), nullable=False),
        sa.Column('product_id', sa.Uuid(), nullable=False),
        sa.Column('size', sa.String(length=32), nullable=False),
        sa.Column('color', sa.String(length=64), server_default='', nullable=False),
        sa.Column('quantity', sa.Integer(), server_default='1', nullable=False),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('quantity > 0', name='cart_item_positive_quantity'),
        sa.ForeignKeyConstraint(['cart_id'], ['store_carts.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['product_id'], ['store_products.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_store_cart_items_cart_id', 'store_cart_items', ['cart_id'])

    # Orders
    op.create_table(
        'store_orders',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('order_number', sa.String(length=40), nullable=False),
        sa.Column('session_id', sa.String(length=128), nullable=True),
        sa.Column('customer_email', sa.String(length=255), nullable=False),
        sa.Column('customer_first_name', sa.String(length=100), nullable=False),
        sa.Column('customer_last_name', sa.String(length=100), nullable=False),
        sa.Column('customer_phone', sa.String(length=50), nullable=True),
        sa.Column('shipping_address', JSONB, nullable=False),
        sa.Column('billing_address', JSONB, nullable=True),
        sa.Column('subtotal', sa.Numeric(10, 2), nullable=False),
        sa.Column('shipping_cost', sa.Numeric(10, 2), server_default='0', nullable=False),
        sa.Column('shipping_method', sa.String(length=50), nullable=True),
        sa.Column('tax', sa.Numeric(10, 2), server_default='0', nullable=False),
        sa.Column('discount_code', sa.String(length=50), nullable=True),
        sa.Column('discount_amount', sa.Numeric(10, 2), server_default='0', nullable=False),
        sa.Column('donation_amount', sa.Numeric(10, 2), server_default='0', nullable=False),
        sa.Column('donation_description', sa.String(length=255), nullable=True),
        sa.Column('total', sa.Numeric(10, 2), nullable=False),
        sa.Column('payment_method', payment_method_enum, nullable=False),
        sa.Column('payment_status', payment_status_enum, nullable=False),
        sa.Column('stripe_payment_intent_id', sa.String(length=255), nullable=True),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('refunded_amount', sa.Numeric(10, 2), server_default='0', nullable=False),
        sa.Column('fulfillment_status', sa.String(length=32), server_default='pending', nullable=False),
        sa.Column('printful_order_id', sa.BigInteger(), nullable=True),
        sa.Column('printful_status', sa.String(length=32), nullable=True),
        sa.Column('tracking_number', sa.String(length=100), nullable=True),
        sa.Column('tracking_carrier', sa.String(length=100), nullable=True),
        sa.Column('tracking_url', sa.String(length=1024), nullable=True),
        sa.Column('shipped_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('delivered_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('fulfillment_notes', sa.Text(), nullable=True),
        sa.Column('client_metadata', JSONB, nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_store_orders_order_number', 'store_orders', ['order_number'], unique=True)
    op.create_index('ix_store_orders_customer_email', 'store_orders', ['customer_email'])
    op.create_index('ix_store_orders_payment_status', 'store_orders', ['payment_status'])
    op.create_index(
        'ix_store_orders_stripe_payment_intent_id',
        'store_orders',
        ['stripe_payment_intent_id'],
        unique=True,
    )
    op.create_index('ix_store_orders_fulfillment_status', 'store_orders', ['fulfillment_status'])
    op.create_index('ix_store_orders_printful_order_id', 'store_orders', ['printful_order_id'])
    op.create_index('ix_store_orders_created_at', 'store_orders', ['created_at'])

    op.create_table(
        'store_order_items',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('order_id', sa.Uuid(), nullable=False),
        sa.Column('product_id', sa.Uuid(), nullable=True),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('product_slug', sa.String(length=255), nullable=True),
        sa.Column('product_image', sa.String(length=1024), nullable=True),
        sa.Column('size', sa.String(length=32), nullable=False),
        sa.Column('color', sa.String(length=64), nullable=True),
        sa.Column('sku', sa.String(length=100), nullable=True),
        sa.Column('printful_variant_id', sa.BigInteger(), nullable=True),
        sa.Column('printful_sync_variant_id', sa.BigInteger(), nullable=True),
        sa.Column('print_files', JSONB, nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('subtotal', sa.Numeric(10, 2), nullable=False),
        sa.CheckConstraint('quantity > 0', name='order_item_positive_quantity'),
        sa.ForeignKeyConstraint(['order_id'], ['store_orders.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['product_id'], ['store_products.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_store_order_items_order_id', 'store_order_items', ['order_id'])

    # Promotions
    op.create_table(
        'store_promotions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('code', sa.String(length=50), nullable=True),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('type', promotion_type_enum, nullable=False),
        sa.Column('value', sa.Numeric(10, 2), nullable=False),
        sa.Column('scope', promotion_scope_enum, nullable=False),
        sa.Column('applicable_products', JSONB, nullable=False),
        sa.Column('applicable_categories', JSONB, nullable=False),
        sa.Column('auto_apply', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('show_banner', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('banner_text', sa.String(length=255), nullable=True),
        sa.Column('banner_color', sa.String(length=20), server_default='#c41e3a', nullable=False),
        sa.Column('min_purchase_amount', sa.Numeric(10, 2), server_default='0', nullable=False),
        sa.Column('max_discount_amount', sa.Numeric(10, 2), nullable=True),
        sa.Column('usage_limit_total', sa.Integer(), nullable=True),
        sa.Column('usage_limit_per_customer', sa.Integer(), server_default='1', nullable=False),
        sa.Column('usage_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('valid_from', sa.DateTime(timezone=True), nullable=False),
        sa.Column('valid_until', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=False),
        sa.Column('priority', sa.Integer(), server_default='0', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_store_promotions_code', 'store_promotions', ['code'], unique=True)

    # Back office
    op.create_table(
        'store_admins',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('role', admin_role_enum, nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=False),
        sa.Column('last_login', sa.DateTime(timezone=True), nullable=True),
        sa.Column('login_attempts', sa.Integer(), server_default='0', nullable=False),
        sa.Column('lock_until', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_store_admins_email', 'store_admins', ['email'], unique=True)

    op.create_table(
        'store_settings',
        sa.Column('key', sa.String(length=64), nullable=False),
        sa.Column('value', JSONB, nullable=True),
        sa.Column('description', sa.String(length=255), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('key'),
    )

    # Analytics
    op.create_table(
        'store_analytics_events',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('event_type', event_type_enum, nullable=False),
        sa.Column('session_id', sa.String(length=128), nullable=True),
        sa.Column('visitor_id', sa.String(length=128), nullable=True),
        sa.Column('page', sa.String(length=1024), nullable=True),
        sa.Column('referrer', sa.String(length=1024), nullable=True),
        sa.Column('product_id', sa.Uuid(), nullable=True),
        sa.Column('product_name', sa.String(length=255), nullable=True),
        sa.Column('product_category', sa.String(length=50), nullable=True),
        sa.Column('product_price', sa.Numeric(10, 2), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=True),
        sa.Column('cart_total', sa.Numeric(10, 2), nullable=True),
        sa.Column('order_id', sa.Uuid(), nullable=True),
        sa.Column('order_number', sa.String(length=40), nullable=True),
        sa.Column('order_total', sa.Numeric(10, 2), nullable=True),
        sa.Column('promotion_id', sa.Uuid(), nullable=True),
        sa.Column('promotion_code', sa.String(length=50), nullable=True),
        sa.Column('discount_amount', sa.Numeric(10, 2), nullable=True),
        sa.Column('search_query', sa.String(length=255), nullable=True),
        sa.Column('search_results_count', sa.Integer(), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        sa.Column('device_type', device_type_enum, nullable=False),
        sa.Column('browser', sa.String(length=64), nullable=True),
        sa.Column('os', sa.String(length=64), nullable=True),
        sa.Column('country', sa.String(length=64), nullable=True),
        sa.Column('event_metadata', JSONB, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_store_analytics_events_session_id', 'store_analytics_events', ['session_id'])
    op.create_index('ix_store_analytics_events_visitor_id', 'store_analytics_events', ['visitor_id'])
    op.create_index('ix_store_analytics_events_product_id', 'store_analytics_events', ['product_id'])
    op.create_index('ix_store_analytics_events_created_at', 'store_analytics_events', ['created_at'])
    op.create_index(
        'ix_store_analytics_events_type_created',
        'store_analytics_events',
        ['event_type', 'created_at'],
    )
    op.create_index(
        'ix_store_analytics_events_product_type_created',
        'store_analytics_events',
        ['product_id', 'event_type', 'created_at'],
    )

    op.create_table(
        'store_analytics_daily_summaries',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('page_views', sa.Integer(), server_default='0', nullable=False),
        sa.Column('unique_visitors', sa.Integer(), server_default='0', nullable=False),
        sa.Column('sessions', sa.Integer(), server_default='0', nullable=False),
        sa.Column('product_views', sa.Integer(), server_default='0', nullable=False),
        sa.Column('unique_products_viewed', sa.Integer(), server_default='0', nullable=False),
        sa.Column('add_to_carts', sa.Integer(), server_default='0', nullable=False),
        sa.Column('remove_from_carts', sa.Integer(), server_default='0', nullable=False),
        sa.Column('checkouts_started', sa.Integer(), server_default='0', nullable=False),
        sa.Column('checkouts_completed', sa.Integer(), server_default='0', nullable=False),
        sa.Column('conversion_rate', sa.Numeric(6, 2), server_default='0', nullable=False),
        sa.Column('revenue', sa.Numeric(12, 2), server_default='0', nullable=False),
        sa.Column('order_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('average_order_value', sa.Numeric(10, 2), server_default='0', nullable=False),
        sa.Column('promotions_applied', sa.Integer(), server_default='0', nullable=False),
        sa.Column('total_discount', sa.Numeric(10, 2), server_default='0', nullable=False),
        sa.Column('searches', sa.Integer(), server_default='0', nullable=False),
        sa.Column('top_products', JSONB, nullable=False),
        sa.Column('traffic_sources', JSONB, nullable=False),
        sa.Column('devices', JSONB, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'ix_store_analytics_daily_summaries_date',
        'store_analytics_daily_summaries',
        ['date'],
        unique=True,
    )


def downgrade() -> None:
    """Downgrade schema - Drop store tables."""
    op.drop_table('store_analytics_daily_summaries')
    op.drop_table('store_analytics_events')
    op.drop_table('store_settings')
    op.drop_table('store_admins')
    op.drop_table('store_promotions')
    op.drop_table('store_order_items')
    op.drop_table('store_orders')
    op.drop_table('store_cart_items')
    op.drop_table('store_carts')
    op.drop_table('store_product_images')
    op.drop_table('store_product_variants')
    op.drop_table('store_products')

    bind = op.get_bind()
    for enum in (
        device_type_enum,
        event_type_enum,
        admin_role_enum,
        promotion_scope_enum,
        promotion_type_enum,
        payment_status_enum,
        payment_method_enum,
        product_category_enum,
    ):
        enum.drop(bind, checkfirst=True)
