"""Initial schema: users, restaurants, menu, tables, orders and drafts

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-18

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = '0001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None

# Enum columns store member names
user_role = sa.Enum('OWNER', 'MANAGER', 'STAFF', name='userrole')
addon_type = sa.Enum('SINGLE', 'MULTIPLE', name='addontype')
order_status = sa.Enum('PLACED', 'PREPARING', 'READY', 'COMPLETED', name='orderstatus')


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(), nullable=False),
        sa.Column('full_name', sa.String(200), nullable=True),
        sa.Column('role', user_role, nullable=False),
        sa.Column('restaurant_id', sa.Uuid(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.Column('last_login_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_restaurant_id', 'users', ['restaurant_id'])
    op.create_index('ix_users_is_active', 'users', ['is_active'])

    op.create_table(
        'restaurants',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('owner_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.String(2000), nullable=True),
        sa.Column('image_url', sa.String(1000), nullable=True),
        sa.Column('google_review_link', sa.String(1000), nullable=True),
        sa.Column('location', sa.String(500), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('wifi_password', sa.String(100), nullable=True),
        sa.Column('opening_time', sa.String(20), nullable=True),
        sa.Column('closing_time', sa.String(20), nullable=True),
        sa.Column('payment_qr_code', sa.String(1000), nullable=True),
        sa.Column('upi_id', sa.String(100), nullable=True),
        sa.Column('orders_enabled', sa.Boolean(), nullable=False),
        sa.Column('table_count', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_restaurants_owner_id', 'restaurants', ['owner_id'])

    op.create_table(
        'menu_categories',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('restaurant_id', sa.Uuid(), sa.ForeignKey('restaurants.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('category_type', sa.String(50), nullable=False),
        sa.Column('display_order', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_menu_categories_restaurant_id', 'menu_categories', ['restaurant_id'])
    op.create_index('ix_menu_categories_display_order', 'menu_categories', ['display_order'])

    op.create_table(
        'menu_items',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('category_id', sa.Uuid(), sa.ForeignKey('menu_categories.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.String(2000), nullable=True),
        sa.Column('weight', sa.String(50), nullable=True),
        sa.Column('dietary_type', sa.String(50), nullable=True),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('old_price', sa.Numeric(10, 2), nullable=True),
        sa.Column('image_url', sa.String(1000), nullable=True),
        sa.Column('is_visible', sa.Boolean(), nullable=False),
        sa.Column('is_available', sa.Boolean(), nullable=False),
        sa.Column('display_order', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_menu_items_category_id', 'menu_items', ['category_id'])
    op.create_index('ix_menu_items_display_order', 'menu_items', ['display_order'])

    op.create_table(
        'menu_item_variants',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('menu_item_id', sa.Uuid(), sa.ForeignKey('menu_items.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('display_order', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_menu_item_variants_menu_item_id', 'menu_item_variants', ['menu_item_id'])

    op.create_table(
        'menu_item_addons',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('restaurant_id', sa.Uuid(), sa.ForeignKey('restaurants.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('addon_type', addon_type, nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_menu_item_addons_restaurant_id', 'menu_item_addons', ['restaurant_id'])

    op.create_table(
        'menu_addon_options',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('addon_id', sa.Uuid(), sa.ForeignKey('menu_item_addons.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('display_order', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_menu_addon_options_addon_id', 'menu_addon_options', ['addon_id'])

    op.create_table(
        'menu_item_addon_mappings',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('menu_item_id', sa.Uuid(), sa.ForeignKey('menu_items.id', ondelete='CASCADE'), nullable=False),
        sa.Column('addon_id', sa.Uuid(), sa.ForeignKey('menu_item_addons.id', ondelete='CASCADE'), nullable=False),
        sa.Column('display_order', sa.Integer(), nullable=False),
        sa.UniqueConstraint('menu_item_id', 'addon_id', name='uq_addon_mapping_item_addon'),
    )
    op.create_index('ix_menu_item_addon_mappings_menu_item_id', 'menu_item_addon_mappings', ['menu_item_id'])
    op.create_index('ix_menu_item_addon_mappings_addon_id', 'menu_item_addon_mappings', ['addon_id'])

    op.create_table(
        'restaurant_tables',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('restaurant_id', sa.Uuid(), sa.ForeignKey('restaurants.id', ondelete='CASCADE'), nullable=False),
        sa.Column('table_number', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('restaurant_id', 'table_number', name='uq_restaurant_table_number'),
    )
    op.create_index('ix_restaurant_tables_restaurant_id', 'restaurant_tables', ['restaurant_id'])

    op.create_table(
        'orders',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('restaurant_id', sa.Uuid(), sa.ForeignKey('restaurants.id', ondelete='CASCADE'), nullable=False),
        sa.Column(
            'table_id', sa.Uuid(), sa.ForeignKey('restaurant_tables.id', ondelete='SET NULL'), nullable=True
        ),
        sa.Column('table_number', sa.Integer(), nullable=True),
        sa.Column('device_id', sa.String(64), nullable=False),
        sa.Column('status', order_status, nullable=False),
        sa.Column('total_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('notes', sa.String(1000), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.Column('preparing_at', sa.DateTime(), nullable=True),
        sa.Column('ready_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False),
    )
    op.create_index('ix_orders_restaurant_id', 'orders', ['restaurant_id'])
    op.create_index('ix_orders_table_id', 'orders', ['table_id'])
    op.create_index('ix_orders_table_number', 'orders', ['table_number'])
    op.create_index('ix_orders_device_id', 'orders', ['device_id'])
    op.create_index('ix_orders_status', 'orders', ['status'])
    op.create_index('ix_orders_created_at', 'orders', ['created_at'])

    op.create_table(
        'order_items',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('order_id', sa.Uuid(), sa.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False),
        sa.Column('menu_item_id', sa.Uuid(), nullable=True),
        sa.Column('variant_id', sa.Uuid(), nullable=True),
        sa.Column('item_name', sa.String(255), nullable=False),
        sa.Column('variant_name', sa.String(255), nullable=True),
        sa.Column('addons', sa.JSON(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
    )
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])

    op.create_table(
        'menu_drafts',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('restaurant_id', sa.Uuid(), sa.ForeignKey('restaurants.id', ondelete='CASCADE'), nullable=False),
        sa.Column('payload', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_menu_drafts_restaurant_id', 'menu_drafts', ['restaurant_id'], unique=True)


def downgrade():
    op.drop_table('menu_drafts')
    op.drop_table('order_items')
    op.drop_table('orders')
    op.drop_table('restaurant_tables')
    op.drop_table('menu_item_addon_mappings')
    op.drop_table('menu_addon_options')
    op.drop_table('menu_item_addons')
    op.drop_table('menu_item_variants')
    op.drop_table('menu_items')
    op.drop_table('menu_categories')
    op.drop_table('restaurants')
    op.drop_table('users')

    bind = op.get_bind()
    for enum in (order_status, addon_type, user_role):
        enum.drop(bind, checkfirst=True)
