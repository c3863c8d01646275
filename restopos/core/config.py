"""
Configuration settings for the application
"""

import os
from typing import List
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    """Application settings"""

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./restopos.db")
    USE_FIREBASE: bool = os.getenv("USE_FIREBASE", "false").lower() in ("1", "true", "yes")
    FIREBASE_CREDENTIALS_JSON: str | None = os.getenv("FIREBASE_CREDENTIALS_JSON")
    FIREBASE_CREDENTIALS_FILE: str | None = os.getenv("FIREBASE_CREDENTIALS_FILE")
    FIREBASE_CREDENTIALS_B64: str | None = os.getenv("FIREBASE_CREDENTIALS_B64")
    FIREBASE_STORAGE_BUCKET: str | None = os.getenv("FIREBASE_STORAGE_BUCKET")

    # Security
    ADMIN_PASSWORD: str = os.getenv("ADMIN_PASSWORD", "admin123")
    SESSION_TTL_HOURS: int = int(os.getenv("SESSION_TTL_HOURS", "24"))

    # Application
    BASE_URL: str = os.getenv("BASE_URL", "http://localhost:8000")
    MEDIA_DIR: str = os.getenv("MEDIA_DIR", "media")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Table grid clients re-read /tables on this interval when not on the websocket
    TABLE_POLL_INTERVAL_SECONDS: int = 3

    # CORS
    ALLOW_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://localhost:8000",
    ]

    # File limits
    MAX_UPLOAD_SIZE: int = 5 * 1024 * 1024  # 5MB

    # Rate limiting
    RATE_LIMIT_PER_MINUTE: int = 30

    class Config:
        env_file = ".env"

settings = Settings()
