"""
Transaction, audit log and report Pydantic schemas
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from pydantic import BaseModel

from .table import TableResponse

class TransactionItem(BaseModel):
    """Frozen receipt line"""
    name: str
    price: Optional[Decimal] = None
    quantity: int

class TransactionResponse(BaseModel):
    """Completed sale"""
    id: str
    table_id: int
    table_name: str
    total_amount: Decimal
    items: List[TransactionItem]
    completed_at: Optional[datetime] = None
    opened_by: Optional[str] = None
    closed_by: Optional[str] = None
    items_added_by: Optional[Dict[str, Any]] = None
    status: str = "completed"

    class Config:
        from_attributes = True

class CloseTableResult(BaseModel):
    """Outcome of closing a table"""
    table: TableResponse
    transaction: Optional[TransactionResponse] = None

class TotalUpdate(BaseModel):
    """Manual override of a transaction total"""
    total_amount: Decimal

class AuditLogResponse(BaseModel):
    id: str
    transaction_id: Optional[str] = None
    edit_type: str
    edited_by: str
    description: Optional[str] = None
    old_value: Optional[Any] = None
    new_value: Optional[Any] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class DailyReport(BaseModel):
    """Sales summary for one day"""
    day: date
    total_sales: Decimal
    transaction_count: int
    average_check: Decimal
    transactions: List[TransactionResponse]
