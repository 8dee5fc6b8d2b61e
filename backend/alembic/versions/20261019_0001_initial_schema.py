"""initial marketplace schema

Revision ID: initial_schema_001
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa

revision = 'initial_schema_001'
down_revision = None
branch_labels = None
depends_on = None

user_role = sa.Enum('buyer', 'seller', 'admin', 'super_admin', name='userrole')
order_status = sa.Enum(
    'pending', 'confirmed', 'processing', 'shipped', 'delivered', 'cancelled',
    name='orderstatus',
)
custom_domain_status = sa.Enum('pending', 'active', 'inactive', name='customdomainstatus')


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    ]


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('first_name', sa.String(100), nullable=True),
        sa.Column('last_name', sa.String(100), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('role', user_role, nullable=False),
        sa.Column('is_email_verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_deletable', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_by', sa.String(36), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('last_login_at', sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('idx_user_role', 'users', ['role'])

    # vendors <-> custom_domains reference each other; the vendor FK is added last.
    op.create_table(
        'custom_domains',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('domain', sa.String(255), nullable=False),
        sa.Column('vendor_id', sa.String(36), nullable=True),
        sa.Column('status', custom_domain_status, nullable=False),
        sa.Column('ssl_enabled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_by', sa.String(36), sa.ForeignKey('users.id'), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_custom_domains_domain', 'custom_domains', ['domain'], unique=True)

    op.create_table(
        'vendors',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('owner_id', sa.String(36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('domain', sa.String(255), nullable=True, unique=True),
        sa.Column(
            'custom_domain_id',
            sa.String(36),
            sa.ForeignKey('custom_domains.id', ondelete='SET NULL'),
            nullable=True,
        ),
        sa.Column('plan', sa.String(50), nullable=False, server_default='basic'),
        sa.Column('status', sa.String(50), nullable=False, server_default='active'),
        sa.Column('subscription_status', sa.String(50), nullable=False, server_default='trial'),
        sa.Column('created_by', sa.String(36), sa.ForeignKey('users.id'), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_vendors_owner_id', 'vendors', ['owner_id'])

    with op.batch_alter_table('custom_domains') as batch_op:
        batch_op.create_foreign_key(
            'fk_custom_domains_vendor_id', 'vendors', ['vendor_id'], ['id'], ondelete='SET NULL'
        )

    op.create_table(
        'categories',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('parent_id', sa.String(36), sa.ForeignKey('categories.id', ondelete='CASCADE'), nullable=True),
        sa.Column('vendor_id', sa.String(36), sa.ForeignKey('vendors.id', ondelete='CASCADE'), nullable=True),
        sa.Column('is_global', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('status', sa.String(50), nullable=False, server_default='active'),
        sa.Column('created_by', sa.String(36), sa.ForeignKey('users.id'), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_categories_vendor_id', 'categories', ['vendor_id'])

    op.create_table(
        'products',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('vendor_id', sa.String(36), sa.ForeignKey('vendors.id'), nullable=False),
        sa.Column('category_id', sa.String(36), sa.ForeignKey('categories.id', ondelete='SET NULL'), nullable=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('image_url', sa.String(1024), nullable=True),
        sa.Column('stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index('ix_products_vendor_id', 'products', ['vendor_id'])

    op.create_table(
        'product_variants',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('product_id', sa.String(36), sa.ForeignKey('products.id', ondelete='CASCADE'), nullable=False),
        sa.Column('sku', sa.String(100), nullable=False, unique=True),
        sa.Column('mrp', sa.Numeric(10, 2), nullable=False),
        sa.Column('selling_price', sa.Numeric(10, 2), nullable=False),
        sa.Column('purchase_price', sa.Numeric(10, 2), nullable=False),
        sa.Column('stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('size', sa.String(50), nullable=True),
        sa.Column('color', sa.String(50), nullable=True),
        sa.Column('status', sa.String(50), nullable=False, server_default='active'),
        *_timestamps(),
    )
    op.create_index('ix_product_variants_product_id', 'product_variants', ['product_id'])

    op.create_table(
        'cart_items',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('product_id', sa.String(36), sa.ForeignKey('products.id', ondelete='CASCADE'), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('size', sa.String(50), nullable=False, server_default=''),
        sa.Column('color', sa.String(50), nullable=False, server_default=''),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('user_id', 'product_id', 'size', 'color', name='uq_cart_items_line'),
    )
    op.create_index('idx_cart_items_user', 'cart_items', ['user_id'])

    op.create_table(
        'orders',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('customer_id', sa.String(36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('vendor_id', sa.String(36), sa.ForeignKey('vendors.id'), nullable=False),
        sa.Column('total', sa.Numeric(10, 2), nullable=False),
        sa.Column('status', order_status, nullable=False),
        sa.Column('shipping_address', sa.JSON(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_orders_customer_id', 'orders', ['customer_id'])
    op.create_index('ix_orders_vendor_id', 'orders', ['vendor_id'])

    op.create_table(
        'order_items',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('order_id', sa.String(36), sa.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False),
        sa.Column('product_id', sa.String(36), sa.ForeignKey('products.id'), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
    )
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])

    op.create_table(
        'otp_codes',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('code', sa.String(6), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('used', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('idx_otp_codes_email', 'otp_codes', ['email'])
    op.create_index('idx_otp_codes_expires_at', 'otp_codes', ['expires_at'])


def downgrade():
    op.drop_table('otp_codes')
    op.drop_table('order_items')
    op.drop_table('orders')
    op.drop_table('cart_items')
    op.drop_table('product_variants')
    op.drop_table('products')
    op.drop_table('categories')
    with op.batch_alter_table('custom_domains') as batch_op:
        batch_op.drop_constraint('fk_custom_domains_vendor_id', type_='foreignkey')
    op.drop_table('vendors')
    op.drop_table('custom_domains')
    op.drop_table('users')

    bind = op.get_bind()
    for enum_type in (order_status, custom_domain_status, user_role):
        enum_type.drop(bind, checkfirst=True)
