from .users import User, Address, USER_ROLES, ADDRESS_TYPES
from .catalog import Product
from .cart import Cart, CartItem, CART_STATUSES
from .orders import (
    Order,
    OrderItem,
    Transaction,
    ORDER_STATUSES,
    PAYMENT_STATUSES,
    PAYMENT_METHODS,
    TRANSACTION_TYPES,
    TRANSACTION_STATUSES,
)
from .contacts import Contact, CONTACT_STATUSES

__all__ = [
    'User', 'Address', 'Product', 'Cart', 'CartItem',
    'Order', 'OrderItem', 'Transaction', 'Contact',
    'USER_ROLES', 'ADDRESS_TYPES', 'CART_STATUSES',
    'ORDER_STATUSES', 'PAYMENT_STATUSES', 'PAYMENT_METHODS',
    'TRANSACTION_TYPES', 'TRANSACTION_STATUSES', 'CONTACT_STATUSES',
]
