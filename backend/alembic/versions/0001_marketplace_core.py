"""Create users, products, retailer/wholesaler inventory and orders

Revision ID: 0001_marketplace_core
Revises:
Create Date: 2026-10-18

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = '0001_marketplace_core'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table('users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=10), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.CheckConstraint("role IN ('customer', 'retailer', 'wholesaler')", name='user_role'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email')
    )

    op.create_table('products',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('seller_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('category', sa.String(length=100), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.CheckConstraint('price >= 0', name='product_price_non_negative_check'),
        sa.ForeignKeyConstraint(['seller_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_products_seller_id', 'products', ['seller_id'])

    op.create_table('retailer_inventory',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('retailer_id', sa.Uuid(), nullable=False),
        sa.Column('product_id', sa.Uuid(), nullable=False),
        sa.Column('quantity_in_stock', sa.Integer(), nullable=False),
        sa.Column('reorder_level', sa.Integer(), server_default=sa.text('10'), nullable=False),
        sa.Column('last_restocked', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.CheckConstraint('quantity_in_stock >= 0', name='retailer_stock_non_negative_check'),
        sa.CheckConstraint('reorder_level >= 0', name='retailer_reorder_level_non_negative_check'),
        sa.ForeignKeyConstraint(['retailer_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('retailer_id', 'product_id', name='unique_retailer_product')
    )

    op.create_table('wholesaler_inventory',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('wholesaler_id', sa.Uuid(), nullable=False),
        sa.Column('product_id', sa.Uuid(), nullable=False),
        sa.Column('quantity_in_stock', sa.Integer(), nullable=False),
        sa.Column('minimum_order_quantity', sa.Integer(), server_default=sa.text('25'), nullable=False),
        sa.Column('last_restocked', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.CheckConstraint('quantity_in_stock >= 0', name='wholesaler_stock_non_negative_check'),
        sa.CheckConstraint('minimum_order_quantity > 0', name='wholesaler_moq_positive_check'),
        sa.ForeignKeyConstraint(['wholesaler_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('wholesaler_id', 'product_id', name='unique_wholesaler_product')
    )

    op.create_table('orders',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('buyer_id', sa.Uuid(), nullable=False),
        sa.Column('seller_id', sa.Uuid(), nullable=False),
        sa.Column('product_id', sa.Uuid(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('price', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('total_amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('order_type', sa.String(length=9), nullable=False),
        sa.Column('status', sa.String(length=9), nullable=False),
        sa.Column('order_date', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('offline_order', sa.Boolean(), nullable=False),
        sa.Column('delivery_details', sa.Text(), nullable=True),
        sa.Column('expected_delivery_date', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('quantity > 0', name='quantity_positive_check'),
        sa.CheckConstraint('price >= 0', name='order_price_non_negative_check'),
        sa.CheckConstraint('buyer_id <> seller_id', name='no_self_dealing_check'),
        sa.CheckConstraint("order_type IN ('retail', 'wholesale')", name='order_type'),
        sa.CheckConstraint("status IN ('pending', 'shipped', 'delivered', 'cancelled')", name='order_status'),
        sa.ForeignKeyConstraint(['buyer_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['seller_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_orders_buyer_type', 'orders', ['buyer_id', 'order_type'])
    op.create_index('ix_orders_seller_type', 'orders', ['seller_id', 'order_type'])


def downgrade():
    op.drop_index('ix_orders_seller_type', table_name='orders')
    op.drop_index('ix_orders_buyer_type', table_name='orders')
    op.drop_table('orders')
    op.drop_table('wholesaler_inventory')
    op.drop_table('retailer_inventory')
    op.drop_index('ix_products_seller_id', table_name='products')
    op.drop_table('products')
    op.drop_table('users')
