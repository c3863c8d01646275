"""
Media library model
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime

from restopos.core.db import Base

class MediaFile(Base):
    __tablename__ = "media_library"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    file_name = Column(String(255), nullable=False)
    file_url = Column(String(1024), nullable=False)
    storage_path = Column(String(512), nullable=False)
    file_size = Column(Integer, nullable=True)
    mime_type = Column(String(100), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
