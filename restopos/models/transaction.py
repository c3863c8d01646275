"""
Completed sale and audit trail models
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Numeric, JSON, Text

from restopos.core.db import Base

class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    # No foreign key: the ledger outlives the table it was rung up on
    table_id = Column(Integer, nullable=False, index=True)
    table_name = Column(String(100), nullable=False)
    total_amount = Column(Numeric(10, 2), nullable=False, default=0)
    items = Column(JSON, nullable=False, default=list)  # [{name, price, quantity}]
    completed_at = Column(DateTime, default=datetime.utcnow, index=True)
    opened_by = Column(String(100), nullable=True)
    closed_by = Column(String(100), nullable=True)
    items_added_by = Column(JSON, nullable=True)  # {actor: [{product, quantity}]}
    status = Column(String(20), nullable=False, default="completed")  # completed, void

class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    transaction_id = Column(String(36), nullable=True, index=True)
    edit_type = Column(String(50), nullable=False)
    edited_by = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    old_value = Column(JSON, nullable=True)
    new_value = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
