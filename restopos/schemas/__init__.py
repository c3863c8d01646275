"""
Pydantic schemas package
"""

from .common import *
from .table import *
from .catalog import *
from .transaction import *
from .user import *
from .media import *

__all__ = [
    "StandardResponse",
    "ErrorResponse",
    "TableCreate",
    "TableUpdate",
    "TableResponse",
    "TableItemResponse",
    "TableDetail",
    "TableGrid",
    "AddItemRequest",
    "ProductGroupCreate",
    "ProductGroupUpdate",
    "ProductGroupResponse",
    "ProductCreate",
    "ProductUpdate",
    "ProductResponse",
    "TransactionItem",
    "TransactionResponse",
    "CloseTableResult",
    "TotalUpdate",
    "AuditLogResponse",
    "DailyReport",
    "LoginRequest",
    "AdminLoginRequest",
    "SessionResponse",
    "UserCreate",
    "UserUpdate",
    "PasswordReset",
    "UserResponse",
    "MediaResponse",
]
