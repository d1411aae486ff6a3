from models.user import User
from models.menu_management import MenuItem
from models.order_management import Order, OrderItem
from models.table_management import Table, table_waiters

# Register all models
__all__ = ['User', 'MenuItem', 'Order', 'OrderItem', 'Table', 'table_waiters']
