"""
Security utilities and authentication
"""

from fastapi import HTTPException, Depends, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
import time
from collections import defaultdict
from sqlalchemy.orm import Session

from restopos.core.config import settings
from restopos.core.db import get_db
from restopos.services.auth_service import AuthService, SessionContext

# Simple in-memory rate limiter
rate_limiter = defaultdict(list)

security = HTTPBearer(auto_error=False)

def get_current_session(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> SessionContext:
    """Resolve the bearer token to a live session"""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )
    session = AuthService.resolve_session(db, credentials.credentials)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session expired or invalid"
        )
    return session

def require_admin(session: SessionContext = Depends(get_current_session)) -> SessionContext:
    """Only sessions opened with the admin password"""
    if not session.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return session

def rate_limit_check(client_ip: str, limit: int = None) -> bool:
    """Simple rate limiting by IP address"""
    if limit is None:
        limit = settings.RATE_LIMIT_PER_MINUTE

    current_time = time.time()
    minute_ago = current_time - 60

    # Clean old requests, dropping addresses with none left in the window
    for ip in list(rate_limiter):
        recent = [req_time for req_time in rate_limiter[ip] if req_time > minute_ago]
        if recent:
            rate_limiter[ip] = recent
        else:
            del rate_limiter[ip]

    # Check limit
    if len(rate_limiter[client_ip]) >= limit:
        return False

    # Add current request
    rate_limiter[client_ip].append(current_time)
    return True

def get_client_ip(request) -> str:
    """Extract client IP from request"""
    # Check for forwarded IP first (for reverse proxy setups)
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    # Check for real IP header
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    # Fall back to direct client IP
    return request.client.host if request.client else "unknown"
