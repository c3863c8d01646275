"""
Database models package
"""

from .table import Table, TableItem
from .catalog import ProductGroup, Product
from .transaction import Transaction, AuditLog
from .user import AppUser, UserSession, AdminSettings
from .media import MediaFile

__all__ = [
    "Table",
    "TableItem",
    "ProductGroup",
    "Product",
    "Transaction",
    "AuditLog",
    "AppUser",
    "UserSession",
    "AdminSettings",
    "MediaFile",
]
