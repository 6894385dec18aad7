from .auth import Role, User, SessionToken
from .inventory import ProductCategory, Product, StockMovement
from .carts import Cart, CartLine
from .orders import OrderStatus, ShippingMethod, Order, OrderLine
from .expenses import Expense

__all__ = [
    'Role', 'User', 'SessionToken',
    'ProductCategory', 'Product', 'StockMovement',
    'Cart', 'CartLine',
    'OrderStatus', 'ShippingMethod', 'Order', 'OrderLine',
    'Expense',
]
