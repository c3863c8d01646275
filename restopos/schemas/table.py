"""
Table and order line Pydantic schemas
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, Field

class TableCreate(BaseModel):
    """Schema for creating a table; id defaults to the next free number"""
    id: Optional[int] = Field(None, ge=1)
    name: Optional[str] = None

class TableUpdate(BaseModel):
    """Schema for renaming a table"""
    name: str

class TableResponse(BaseModel):
    """Table record"""
    id: int
    name: str
    is_occupied: bool
    opened_at: Optional[datetime] = None
    opened_by: Optional[str] = None
    last_modified_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class TableItemResponse(BaseModel):
    """Order line on an open table"""
    id: str
    table_id: int
    product_id: str
    product_name: str
    product_price: Optional[Decimal] = None
    quantity: int
    added_by: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class TableDetail(BaseModel):
    """Table with its current order lines and running total"""
    table: TableResponse
    items: List[TableItemResponse]
    total: Decimal

class TableGrid(BaseModel):
    """All tables as shown on the floor grid"""
    tables: List[TableResponse]
    occupied_count: int
    total_count: int
    poll_interval_seconds: int

class AddItemRequest(BaseModel):
    """Add a product to a table"""
    product_id: str
    quantity: int = 1
    custom_price: Optional[Decimal] = None
