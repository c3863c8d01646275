"""
Table and order line models
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Numeric, ForeignKey
from sqlalchemy.orm import relationship

from restopos.core.db import Base

class Table(Base):
    __tablename__ = "tables"

    # Assigned by the admin, not autoincremented
    id = Column(Integer, primary_key=True, autoincrement=False, index=True)
    name = Column(String(100), nullable=False)
    is_occupied = Column(Boolean, default=False, nullable=False)
    opened_at = Column(DateTime, nullable=True)
    opened_by = Column(String(100), nullable=True)
    last_modified_by = Column(String(100), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    items = relationship("TableItem", back_populates="table", cascade="all, delete-orphan", order_by="TableItem.created_at")

class TableItem(Base):
    __tablename__ = "table_items"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    table_id = Column(Integer, ForeignKey("tables.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(String(36), ForeignKey("products.id"), nullable=False)
    product_name = Column(String(255), nullable=False)
    product_price = Column(Numeric(10, 2), nullable=True)
    quantity = Column(Integer, nullable=False, default=1)
    added_by = Column(String(100), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    table = relationship("Table", back_populates="items")
