"""
Media library Pydantic schemas
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel

class MediaResponse(BaseModel):
    id: str
    file_name: str
    file_url: str
    storage_path: str
    file_size: Optional[int] = None
    mime_type: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
