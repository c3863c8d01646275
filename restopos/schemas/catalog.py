"""
Catalog Pydantic schemas
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel

class ProductGroupCreate(BaseModel):
    name: str
    image_url: Optional[str] = None
    order_index: Optional[int] = None

class ProductGroupUpdate(BaseModel):
    name: Optional[str] = None
    image_url: Optional[str] = None
    order_index: Optional[int] = None

class ProductGroupResponse(BaseModel):
    id: str
    name: str
    image_url: Optional[str] = None
    order_index: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class ProductCreate(BaseModel):
    name: str
    group_id: str
    price: Optional[Decimal] = None
    is_active: bool = True

class ProductUpdate(BaseModel):
    name: Optional[str] = None
    group_id: Optional[str] = None
    price: Optional[Decimal] = None
    is_active: Optional[bool] = None
    clear_price: bool = False  # set price to null ("price entered at order time")

class ProductResponse(BaseModel):
    id: str
    name: str
    price: Optional[Decimal] = None
    group_id: str
    is_active: bool = True
    group_name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
