"""
Authentication routes: staff login, admin elevation, logout
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from restopos.core.db import get_db
from restopos.schemas.user import AdminLoginRequest, LoginRequest
from restopos.services.auth_service import AuthService, SessionContext
from restopos.utils.security import get_current_session, rate_limit_check, get_client_ip
from restopos.utils.responses import success_response, rate_limit_error, unauthorized_error

router = APIRouter()

@router.post("/login")
async def login(
    credentials: LoginRequest,
    request: Request,
    db: Session = Depends(get_db)
):
    """Staff login with username and password"""
    client_ip = get_client_ip(request)
    if not rate_limit_check(client_ip):
        raise rate_limit_error()

    session = AuthService.login(db, credentials.username, credentials.password)
    if session is None:
        raise unauthorized_error("Invalid username or password")

    return success_response(
        message="Logged in",
        data=session
    )

@router.post("/admin")
async def admin_login(
    credentials: AdminLoginRequest,
    request: Request,
    db: Session = Depends(get_db)
):
    """Open an admin session with the shared admin password"""
    client_ip = get_client_ip(request)
    if not rate_limit_check(client_ip):
        raise rate_limit_error()

    session = AuthService.admin_login(db, credentials.password)
    if session is None:
        raise unauthorized_error("Invalid admin password")

    return success_response(
        message="Admin session opened",
        data=session
    )

@router.post("/logout")
async def logout(
    session: SessionContext = Depends(get_current_session),
    db: Session = Depends(get_db)
):
    AuthService.logout(db, session.token)
    return success_response(message="Logged out")

@router.get("/me")
async def whoami(session: SessionContext = Depends(get_current_session)):
    """Current session"""
    return success_response(
        message="Session is valid",
        data={
            "actor_name": session.actor_name,
            "is_admin": session.is_admin,
            "expires_at": session.expires_at,
            "user_id": session.user_id
        }
    )
