"""initial marketplace schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18 10:12:41.512204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '0001_initial'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ITEM_STATUSES = (
    'pending', 'confirmed', 'packaging', 'ready_to_pickup', 'picked_up',
    'in_transit', 'delivered', 'cancelled', 'rto', 'lost',
)
ORDER_STATUSES = (
    'pending', 'confirmed', 'processing', 'shipped', 'delivered',
    'cancelled', 'rto', 'lost',
)


def upgrade():
    op.create_table(
        'user',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('phone', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('role', sa.Enum('customer', 'seller', 'admin', name='userrole'), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('is_verified', sa.Boolean(), nullable=False),
        sa.Column('otp', sa.String(), nullable=True),
        sa.Column('otp_expiry', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_user_phone', 'user', ['phone'], unique=True)

    op.create_table(
        'vendor',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False, unique=True),
        sa.Column('business_name', sa.String(), nullable=False),
        sa.Column('business_email', sa.String(), nullable=False),
        sa.Column('business_phone', sa.String(), nullable=False),
        sa.Column('commission', sa.Float(), nullable=False, server_default='10'),
        sa.Column('is_approved', sa.Boolean(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('total_orders', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_revenue', sa.Float(), nullable=False, server_default='0'),
        sa.Column('pending_payment', sa.Float(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )

    op.create_table(
        'product',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('vendor_id', sa.Integer(), sa.ForeignKey('vendor.id'), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('slug', sa.String(), nullable=False),
        sa.Column('description', sa.String(), nullable=False),
        sa.Column('category', sa.String(), nullable=False),
        sa.Column('brand', sa.String(), nullable=True),
        sa.Column('gender', sa.String(), nullable=False),
        sa.Column('images', sa.JSON(), nullable=True),
        sa.Column('mrp', sa.Float(), nullable=False),
        sa.Column('selling_price', sa.Float(), nullable=False),
        sa.Column('vendor_discount', sa.Float(), nullable=False, server_default='0'),
        sa.Column('website_discount', sa.Float(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('total_sold', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_product_vendor_id', 'product', ['vendor_id'])
    op.create_index('ix_product_slug', 'product', ['slug'], unique=True)

    op.create_table(
        'product_variant',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('product.id'), nullable=False),
        sa.Column('size', sa.String(), nullable=False),
        sa.Column('color', sa.String(), nullable=False),
        sa.Column('stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('sku', sa.String(), nullable=False),
        sa.UniqueConstraint('product_id', 'size', 'color', name='uq_variant_size_color'),
        sa.CheckConstraint('stock >= 0', name='ck_variant_stock_non_negative'),
    )
    op.create_index('ix_product_variant_product_id', 'product_variant', ['product_id'])

    op.create_table(
        'cart',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=True, unique=True),
        sa.Column('session_id', sa.String(), nullable=True, unique=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )

    op.create_table(
        'cart_item',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('cart_id', sa.Integer(), sa.ForeignKey('cart.id'), nullable=False),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('product.id'), nullable=False),
        sa.Column('vendor_id', sa.Integer(), sa.ForeignKey('vendor.id'), nullable=False),
        sa.Column('size', sa.String(), nullable=False),
        sa.Column('color', sa.String(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('cart_id', 'product_id', 'size', 'color', name='uq_cart_line'),
    )
    op.create_index('ix_cart_item_cart_id', 'cart_item', ['cart_id'])

    op.create_table(
        'orders',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('order_number', sa.String(), nullable=False),
        sa.Column('customer_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
        sa.Column('shipping_address', sa.JSON(), nullable=False),
        sa.Column('billing_address', sa.JSON(), nullable=False),
        sa.Column('subtotal', sa.Float(), nullable=False),
        sa.Column('shipping_charges', sa.Float(), nullable=False),
        sa.Column('coupon_code', sa.String(), nullable=True),
        sa.Column('coupon_discount', sa.Float(), nullable=False),
        sa.Column('total', sa.Float(), nullable=False),
        sa.Column('payment_method', sa.Enum('cod', 'razorpay', 'wallet', name='paymentmethod'), nullable=False),
        sa.Column('payment_status', sa.Enum('pending', 'paid', 'failed', 'refunded', name='paymentstatus'), nullable=False),
        sa.Column('gateway_order_id', sa.String(), nullable=True),
        sa.Column('gateway_payment_id', sa.String(), nullable=True),
        sa.Column('status', sa.Enum(*ORDER_STATUSES, name='orderstatus'), nullable=False),
        sa.Column('estimated_delivery', sa.DateTime(), nullable=True),
        sa.Column('notes', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_orders_order_number', 'orders', ['order_number'], unique=True)
    op.create_index('ix_orders_customer_id', 'orders', ['customer_id'])
    op.create_index('ix_orders_gateway_order_id', 'orders', ['gateway_order_id'])

    op.create_table(
        'order_item',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('order_id', sa.Integer(), sa.ForeignKey('orders.id'), nullable=False),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('product.id'), nullable=False),
        sa.Column('vendor_id', sa.Integer(), sa.ForeignKey('vendor.id'), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('image', sa.String(), nullable=True),
        sa.Column('size', sa.String(), nullable=False),
        sa.Column('color', sa.String(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('mrp', sa.Float(), nullable=False),
        sa.Column('selling_price', sa.Float(), nullable=False),
        sa.Column('vendor_discount', sa.Float(), nullable=False),
        sa.Column('website_discount', sa.Float(), nullable=False),
        sa.Column('final_price', sa.Float(), nullable=False),
        sa.Column('status', sa.Enum(*ITEM_STATUSES, name='itemstatus'), nullable=False),
        sa.Column('tracking_id', sa.String(), nullable=True),
        sa.Column('delivered_at', sa.DateTime(), nullable=True),
        sa.Column('commission', sa.Float(), nullable=False),
        sa.Column('vendor_earning', sa.Float(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_order_item_order_id', 'order_item', ['order_id'])
    op.create_index('ix_order_item_vendor_id', 'order_item', ['vendor_id'])

    op.create_table(
        'order_event',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('order_id', sa.Integer(), sa.ForeignKey('orders.id'), nullable=False),
        sa.Column('event_type', sa.String(), nullable=False),
        sa.Column('label', sa.String(), nullable=False),
        sa.Column('meta', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('created_by', sa.String(), nullable=False),
    )
    op.create_index('ix_order_event_order_id', 'order_event', ['order_id'])
    op.create_index('ix_order_event_event_type', 'order_event', ['event_type'])

    op.create_table(
        'ticket',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('ticket_number', sa.String(), nullable=False),
        sa.Column('vendor_id', sa.Integer(), sa.ForeignKey('vendor.id'), nullable=False),
        sa.Column('order_id', sa.Integer(), sa.ForeignKey('orders.id'), nullable=False),
        sa.Column('type', sa.Enum('missing_pair', 'damage_pair', 'wrong_products', 'other', name='tickettype'), nullable=False),
        sa.Column('description', sa.String(), nullable=False),
        sa.Column('images', sa.JSON(), nullable=True),
        sa.Column('video', sa.String(), nullable=True),
        sa.Column('status', sa.Enum('open', 'in_progress', 'resolved', 'rejected', name='ticketstatus'), nullable=False),
        sa.Column('resolution', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.Column('resolved_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_ticket_ticket_number', 'ticket', ['ticket_number'], unique=True)
    op.create_index('ix_ticket_vendor_id', 'ticket', ['vendor_id'])
    op.create_index('ix_ticket_order_id', 'ticket', ['order_id'])

    op.create_table(
        'coupon',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('code', sa.String(), nullable=False),
        sa.Column('description', sa.String(), nullable=False),
        sa.Column('discount_type', sa.Enum('percentage', 'fixed', name='discounttype'), nullable=False),
        sa.Column('discount_value', sa.Float(), nullable=False),
        sa.Column('min_order_value', sa.Float(), nullable=False),
        sa.Column('max_discount', sa.Float(), nullable=True),
        sa.Column('valid_from', sa.DateTime(), nullable=False),
        sa.Column('valid_until', sa.DateTime(), nullable=False),
        sa.Column('usage_limit', sa.Integer(), nullable=True),
        sa.Column('used_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_coupon_code', 'coupon', ['code'], unique=True)

    op.create_table(
        'counter',
        sa.Column('name', sa.String(), primary_key=True),
        sa.Column('value', sa.Integer(), nullable=False, server_default='0'),
    )


def downgrade():
    op.drop_table('counter')
    op.drop_table('coupon')
    op.drop_table('ticket')
    op.drop_table('order_event')
    op.drop_table('order_item')
    op.drop_table('orders')
    op.drop_table('cart_item')
    op.drop_table('cart')
    op.drop_table('product_variant')
    op.drop_table('product')
    op.drop_table('vendor')
    op.drop_table('user')

    for enum_name in (
        'tickettype', 'ticketstatus', 'discounttype', 'itemstatus',
        'orderstatus', 'paymentstatus', 'paymentmethod', 'userrole',
    ):
        sa.Enum(name=enum_name).drop(op.get_bind(), checkfirst=True)
