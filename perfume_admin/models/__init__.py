# perfume_admin/models/__init__.py
from .catalog import *            # Brand, Category, Product
from .order import *              # Order, OrderItem
from .order_status_log import *   # OrderStatusLog
