"""Models package - exports all SQLAlchemy models."""
from dealerdesk.models.unit import Unit
from dealerdesk.models.product import Product
from dealerdesk.models.product_pricing import ProductPricing
from dealerdesk.models.stock_level import StockLevel
from dealerdesk.models.app_user import AppUser, Role
from dealerdesk.models.order import Order
from dealerdesk.models.order_item import OrderItem

__all__ = [
    'Unit', 'Product', 'ProductPricing', 'StockLevel',
    'AppUser', 'Role',
    'Order', 'OrderItem',
]
