"""Orders, payments and digital delivery schema.

Revision ID: 001_orders
Revises:
Create Date: 2026-01-13

"""
from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '001_orders'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ### Customers ###
    op.create_table(
        'customers',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_customers_email', 'customers', ['email'], unique=True)

    # ### Products ###
    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('slug', sa.String(255)),
        sa.Column('description', sa.Text()),
        sa.Column('price', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('file_path', sa.String(500)),
        sa.Column('file_name', sa.String(255)),
        sa.Column('file_size', sa.Integer()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_products_slug', 'products', ['slug'])

    # ### Customer carts ###
    op.create_table(
        'customer_carts',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('customer_id', sa.Integer(), sa.ForeignKey('customers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('products.id', ondelete='CASCADE'), nullable=False),
        sa.Column('quantity', sa.Integer(), server_default='1', nullable=False),
    )
    op.create_index('ix_customer_carts_customer_id', 'customer_carts', ['customer_id'])

    # ### Orders ###
    op.create_table(
        'orders',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('order_number', sa.String(32), nullable=False),
        sa.Column('customer_id', sa.Integer(), sa.ForeignKey('customers.id', ondelete='SET NULL')),
        sa.Column('guest_email', sa.String(255)),
        sa.Column('guest_name', sa.String(255)),
        sa.Column('status', sa.String(20), server_default='pending', nullable=False),
        sa.Column('payment_status', sa.String(20), server_default='pending', nullable=False),
        sa.Column('payment_method', sa.String(50)),
        sa.Column('subtotal', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('tax_amount', sa.Numeric(precision=10, scale=2), server_default='0'),
        sa.Column('discount_amount', sa.Numeric(precision=10, scale=2), server_default='0'),
        sa.Column('total_amount', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('currency', sa.String(3), server_default='PHP'),
        sa.Column('billing_address', sa.JSON()),
        sa.Column('shipping_address', sa.JSON()),
        sa.Column('payment_gateway_id', sa.String(255)),
        sa.Column('payment_gateway_transaction_id', sa.String(255)),
        sa.Column('paid_at', sa.DateTime(timezone=True)),
        sa.Column('completed_at', sa.DateTime(timezone=True)),
        sa.Column('cancelled_at', sa.DateTime(timezone=True)),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_orders_order_number', 'orders', ['order_number'], unique=True)
    op.create_index('ix_orders_customer_id', 'orders', ['customer_id'])
    op.create_index('ix_orders_status', 'orders', ['status'])
    op.create_index('ix_orders_payment_status', 'orders', ['payment_status'])
    op.create_index('ix_orders_payment_gateway_id', 'orders', ['payment_gateway_id'])

    # ### Order items ###
    op.create_table(
        'order_items',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('order_id', sa.Integer(), sa.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('products.id', ondelete='SET NULL')),
        sa.Column('product_name', sa.String(255), nullable=False),
        sa.Column('product_price', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('subtotal', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])
    op.create_index('ix_order_items_product_id', 'order_items', ['product_id'])

    # ### Product downloads ###
    op.create_table(
        'product_downloads',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('order_id', sa.Integer(), sa.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False),
        sa.Column('order_item_id', sa.Integer(), sa.ForeignKey('order_items.id', ondelete='CASCADE'), nullable=False),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('products.id', ondelete='CASCADE')),
        sa.Column('customer_id', sa.Integer(), sa.ForeignKey('customers.id', ondelete='SET NULL')),
        sa.Column('guest_email', sa.String(255)),
        sa.Column('download_token', sa.String(64), nullable=False),
        sa.Column('download_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('max_downloads', sa.Integer(), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True)),
        sa.Column('last_downloaded_at', sa.DateTime(timezone=True)),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        # One entitlement per order item, whatever the number of webhook deliveries
        sa.UniqueConstraint('order_item_id', name='uq_product_downloads_order_item_id'),
    )
    op.create_index('ix_product_downloads_download_token', 'product_downloads', ['download_token'], unique=True)
    op.create_index('ix_product_downloads_order_id', 'product_downloads', ['order_id'])
    op.create_index('ix_product_downloads_product_id', 'product_downloads', ['product_id'])
    op.create_index('ix_product_downloads_customer_id', 'product_downloads', ['customer_id'])


def downgrade() -> None:
    op.drop_table('product_downloads')
    op.drop_table('order_items')
    op.drop_table('orders')
    op.drop_table('customer_carts')
    op.drop_table('products')
    op.drop_table('customers')
