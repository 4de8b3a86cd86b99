"""
Database models.

Importing this package registers every table on Base.metadata.
"""

from eshop.backend.models.base import Base
from eshop.backend.models.catalog import Category, Product, SubCategory
from eshop.backend.models.chat import ChatMessage, ChatSession
from eshop.backend.models.config_entry import ConfigEntry
from eshop.backend.models.invoice import Invoice
from eshop.backend.models.order import Order, OrderHistory, OrderItem
from eshop.backend.models.user import User

__all__ = [
    "Base",
    "Category",
    "ChatMessage",
    "ChatSession",
    "ConfigEntry",
    "Invoice",
    "Order",
    "OrderHistory",
    "OrderItem",
    "Product",
    "SubCategory",
    "User",
]
