"""
User and session Pydantic schemas
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel

class LoginRequest(BaseModel):
    """Staff login"""
    username: str
    password: str

class AdminLoginRequest(BaseModel):
    """Admin elevation with the shared password"""
    password: str

class SessionResponse(BaseModel):
    token: str
    expires_at: datetime
    actor_name: str
    is_admin: bool

class UserCreate(BaseModel):
    username: str
    password: str

class UserUpdate(BaseModel):
    username: Optional[str] = None
    is_active: Optional[bool] = None

class PasswordReset(BaseModel):
    new_password: str

class UserResponse(BaseModel):
    id: str
    username: str
    is_active: bool = True
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
