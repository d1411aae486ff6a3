"""initial schema: users, menu items, tables, orders

Revision ID: 001
Revises:
Create Date: 2026-10-17

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None

ENUMS = {
    'userrole': ('superadmin', 'waiter'),
    'menucategory': ('appetizer', 'main', 'dessert', 'drink', 'special'),
    'tablestatus': ('available', 'occupied', 'reserved', 'maintenance'),
    'joinrole': ('standalone', 'main', 'member'),
    'orderstatus': ('active', 'completed', 'cancelled'),
    'paymentstatus': ('pending', 'paid', 'refunded'),
    'paymentmethod': ('cash', 'credit', 'debit', 'app'),
    'orderitemstatus': ('pending', 'preparing', 'ready', 'delivered', 'cancelled'),
}


def enum(name):
    return sa.Enum(*ENUMS[name], name=name)


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('hashed_password', sa.String(), nullable=False),
        sa.Column('role', enum('userrole'), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.Column('orders_served', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('average_service_time', sa.Float(), nullable=False, server_default='0'),
        sa.Column('customer_ratings', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_users_id'), 'users', ['id'], unique=False)
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)

    op.create_table(
        'menu_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.String(), nullable=False),
        sa.Column('price', sa.Float(), nullable=False),
        sa.Column('category', enum('menucategory'), nullable=False),
        sa.Column('is_available', sa.Boolean(), nullable=True),
        sa.Column('image', sa.String(), nullable=True),
        sa.Column('preparation_time', sa.Integer(), nullable=True),
        sa.Column('is_special', sa.Boolean(), nullable=True),
        sa.Column('ingredients', sa.JSON(), nullable=True),
        sa.Column('nutritional_info', sa.JSON(), nullable=True),
        sa.Column('order_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('rating', sa.Float(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_menu_items_id'), 'menu_items', ['id'], unique=False)

    op.create_table(
        'tables',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('table_number', sa.Integer(), nullable=False),
        sa.Column('capacity', sa.Integer(), nullable=False),
        sa.Column('original_capacity', sa.Integer(), nullable=True),
        sa.Column('status', enum('tablestatus'), nullable=False),
        sa.Column('position_x', sa.Float(), nullable=False),
        sa.Column('position_y', sa.Float(), nullable=False),
        sa.Column('section', sa.String(), nullable=False),
        sa.Column('join_role', enum('joinrole'), nullable=False),
        sa.Column('parent_table_id', sa.Integer(), nullable=True),
        sa.Column('join_position', sa.Integer(), nullable=True),
        sa.Column('current_order_id', sa.Integer(), nullable=True),
        sa.Column('occupied_at', sa.DateTime(), nullable=True),
        sa.Column('split_bills', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['parent_table_id'], ['tables.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_tables_id'), 'tables', ['id'], unique=False)
    op.create_index(op.f('ix_tables_table_number'), 'tables', ['table_number'], unique=True)

    op.create_table(
        'table_waiters',
        sa.Column('table_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['table_id'], ['tables.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('table_id', 'user_id')
    )

    op.create_table(
        'orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('table_id', sa.Integer(), nullable=False),
        sa.Column('waiter_id', sa.Integer(), nullable=False),
        sa.Column('status', enum('orderstatus'), nullable=False),
        sa.Column('total_amount', sa.Float(), nullable=False),
        sa.Column('payment_status', enum('paymentstatus'), nullable=False),
        sa.Column('payment_method', enum('paymentmethod'), nullable=False),
        sa.Column('customer_count', sa.Integer(), nullable=False),
        sa.Column('special_requests', sa.String(), nullable=True),
        sa.Column('estimated_delivery_time', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['table_id'], ['tables.id']),
        sa.ForeignKeyConstraint(['waiter_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_orders_id'), 'orders', ['id'], unique=False)

    op.create_table(
        'order_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('menu_item_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('special_instructions', sa.String(), nullable=True),
        sa.Column('status', enum('orderitemstatus'), nullable=False),
        sa.Column('price', sa.Float(), nullable=False),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['menu_item_id'], ['menu_items.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_order_items_id'), 'order_items', ['id'], unique=False)


def downgrade():
    op.drop_index(op.f('ix_order_items_id'), table_name='order_items')
    op.drop_table('order_items')
    op.drop_index(op.f('ix_orders_id'), table_name='orders')
    op.drop_table('orders')
    op.drop_table('table_waiters')
    op.drop_index(op.f('ix_tables_table_number'), table_name='tables')
    op.drop_index(op.f('ix_tables_id'), table_name='tables')
    op.drop_table('tables')
    op.drop_index(op.f('ix_menu_items_id'), table_name='menu_items')
    op.drop_table('menu_items')
    op.drop_index(op.f('ix_users_email'), table_name='users')
    op.drop_index(op.f('ix_users_id'), table_name='users')
    op.drop_table('users')
    # Postgres keeps enum types after their tables are dropped
    if op.get_bind().dialect.name == 'postgresql':
        for name in ENUMS:
            op.execute(f'DROP TYPE IF EXISTS {name}')
