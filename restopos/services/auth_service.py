"""
Password verification, sessions and app user management
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

import bcrypt
from sqlalchemy.orm import Session

from restopos.core.config import settings
from restopos.schemas.user import SessionResponse, UserResponse
from restopos.services.exceptions import RecordNotFound, ValidationFailed
from restopos.services.repositories import now_utc, use_firestore
from restopos.services.user_repositories import AdminSettingsRepo, SessionRepo, UserRepo

logger = logging.getLogger(__name__)

ADMIN_ACTOR = "admin"
MAX_PASSWORD_BYTES = 72  # bcrypt input limit


@dataclass
class SessionContext:
    """The caller behind a bearer token, resolved server-side"""
    token: str
    actor_name: str
    is_admin: bool
    expires_at: datetime
    user_id: Optional[str] = None


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def check_password(password: str, password_hash: Optional[str]) -> bool:
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError as e:
        logger.warning(f"Password check rejected input: {e}")
        return False


def validate_password(password: str) -> None:
    if not password or not password.strip():
        raise ValidationFailed("Password is required", "password_required")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationFailed(f"Password must be at most {MAX_PASSWORD_BYTES} bytes", "password_too_long")


class AuthService:
    """Service for authentication and user accounts"""

    @staticmethod
    def ensure_admin_password(db: Session) -> None:
        """Seed the shared admin password from settings when none is stored"""
        if not use_firestore():
            if AdminSettingsRepo.get_hash_sql(db) is None:
                AdminSettingsRepo.set_hash_sql(db, hash_password(settings.ADMIN_PASSWORD))
                logger.info("Admin password initialized from settings")
        else:
            if AdminSettingsRepo.get_hash_fs() is None:
                AdminSettingsRepo.set_hash_fs(hash_password(settings.ADMIN_PASSWORD))
                logger.info("Admin password initialized from settings")

    @staticmethod
    def change_admin_password(db: Session, new_password: str) -> None:
        validate_password(new_password)
        if not use_firestore():
            AdminSettingsRepo.set_hash_sql(db, hash_password(new_password))
        else:
            AdminSettingsRepo.set_hash_fs(hash_password(new_password))
        logger.info("Admin password changed")

    @staticmethod
    def verify_admin_password(db: Session, password: str) -> bool:
        """Check the shared admin password"""
        if not use_firestore():
            stored = AdminSettingsRepo.get_hash_sql(db)
        else:
            stored = AdminSettingsRepo.get_hash_fs()
        return check_password(password, stored)

    @staticmethod
    def verify_user_password(db: Session, username: str, password: str) -> Tuple[bool, Optional[str]]:
        """Check a staff login; returns (is_valid, user_id). Inactive users never verify."""
        if not use_firestore():
            user = UserRepo.get_by_username_sql(db, username)
            if not user or not user.is_active:
                return False, None
            return (True, user.id) if check_password(password, user.password_hash) else (False, None)

        user = UserRepo.get_by_username_fs(username)
        if not user or not user.get("is_active", True):
            return False, None
        return (True, user["id"]) if check_password(password, user.get("password_hash")) else (False, None)

    @staticmethod
    def _open_session(db: Session, user_id: Optional[str], actor_name: str, is_admin: bool) -> SessionResponse:
        token = secrets.token_urlsafe(32)
        AuthService.purge_expired_sessions(db)
        expires_at = now_utc() + timedelta(hours=settings.SESSION_TTL_HOURS)
        if not use_firestore():
            SessionRepo.create_sql(db, token, user_id, actor_name, is_admin, expires_at)
        else:
            SessionRepo.create_fs(token, user_id, actor_name, is_admin, expires_at)
        return SessionResponse(token=token, expires_at=expires_at, actor_name=actor_name, is_admin=is_admin)

    @staticmethod
    def login(db: Session, username: str, password: str) -> Optional[SessionResponse]:
        is_valid, user_id = AuthService.verify_user_password(db, username, password)
        if not is_valid:
            logger.warning(f"Failed login for user '{username}'")
            return None
        logger.info(f"User '{username}' logged in")
        return AuthService._open_session(db, user_id, username, is_admin=False)

    @staticmethod
    def admin_login(db: Session, password: str) -> Optional[SessionResponse]:
        if not AuthService.verify_admin_password(db, password):
            logger.warning("Failed admin login")
            return None
        logger.info("Admin session opened")
        return AuthService._open_session(db, None, ADMIN_ACTOR, is_admin=True)

    @staticmethod
    def resolve_session(db: Session, token: str) -> Optional[SessionContext]:
        """Look up an unexpired session; user sessions also need an active user"""
        now = now_utc()
        if not use_firestore():
            session = SessionRepo.get_valid_sql(db, token, now)
            if not session:
                return None
            context = SessionContext(
                token=session.token,
                actor_name=session.actor_name,
                is_admin=session.is_admin,
                expires_at=session.expires_at,
                user_id=session.user_id,
            )
            user = UserRepo.get_sql(db, context.user_id) if context.user_id else None
            user_active = bool(user and user.is_active)
            username = user.username if user else None
        else:
            session = SessionRepo.get_valid_fs(token, now)
            if not session:
                return None
            context = SessionContext(
                token=session["token"],
                actor_name=session["actor_name"],
                is_admin=bool(session.get("is_admin")),
                expires_at=datetime.fromisoformat(session["expires_at"]),
                user_id=session.get("user_id"),
            )
            user = UserRepo.get_fs(context.user_id) if context.user_id else None
            user_active = bool(user and user.get("is_active", True))
            username = user.get("username") if user else None

        if not context.is_admin:
            if not user_active:
                return None
            # a renamed user keeps the session under the new name
            context.actor_name = username
        return context

    @staticmethod
    def logout(db: Session, token: str) -> None:
        if not use_firestore():
            SessionRepo.delete_sql(db, token)
        else:
            SessionRepo.delete_fs(token)

    @staticmethod
    def purge_expired_sessions(db: Session) -> int:
        """Delete session rows past their expiry"""
        now = now_utc()
        if not use_firestore():
            removed = SessionRepo.purge_expired_sql(db, now)
        else:
            removed = SessionRepo.purge_expired_fs(now)
        if removed:
            logger.info(f"Purged {removed} expired sessions")
        return removed

    # -------- user management --------

    @staticmethod
    def list_users(db: Session) -> List[UserResponse]:
        if not use_firestore():
            return [UserResponse.model_validate(u) for u in UserRepo.list_sql(db)]
        return [UserResponse.model_validate(u) for u in UserRepo.list_fs()]

    @staticmethod
    def _username_taken(db: Session, username: str, exclude_id: Optional[str] = None) -> bool:
        if not use_firestore():
            existing = UserRepo.get_by_username_sql(db, username)
            return bool(existing and existing.id != exclude_id)
        existing = UserRepo.get_by_username_fs(username)
        return bool(existing and existing["id"] != exclude_id)

    @staticmethod
    def create_user(db: Session, username: str, password: str, created_by: str) -> UserResponse:
        username = (username or "").strip()
        if not username:
            raise ValidationFailed("Username is required", "username_required")
        validate_password(password)
        if AuthService._username_taken(db, username):
            raise ValidationFailed(f"Username '{username}' is already taken", "duplicate_username")

        if not use_firestore():
            user = UserRepo.create_sql(db, username, hash_password(password), created_by)
        else:
            user = UserRepo.create_fs(username, hash_password(password), created_by)
        logger.info(f"User '{username}' created by {created_by}")
        return UserResponse.model_validate(user)

    @staticmethod
    def update_user(db: Session, user_id: str, username: Optional[str] = None, is_active: Optional[bool] = None) -> UserResponse:
        fields = {}
        if username is not None:
            username = username.strip()
            if not username:
                raise ValidationFailed("Username is required", "username_required")
            if AuthService._username_taken(db, username, exclude_id=user_id):
                raise ValidationFailed(f"Username '{username}' is already taken", "duplicate_username")
            fields["username"] = username
        if is_active is not None:
            fields["is_active"] = is_active

        if not use_firestore():
            user = UserRepo.get_sql(db, user_id)
            if not user:
                raise RecordNotFound("User")
            user = UserRepo.update_sql(db, user, fields) if fields else user
        else:
            if not UserRepo.get_fs(user_id):
                raise RecordNotFound("User")
            user = UserRepo.update_fs(user_id, fields) if fields else UserRepo.get_fs(user_id)
        return UserResponse.model_validate(user)

    @staticmethod
    def reset_password(db: Session, user_id: str, new_password: str) -> None:
        validate_password(new_password)
        if not use_firestore():
            user = UserRepo.get_sql(db, user_id)
            if not user:
                raise RecordNotFound("User")
            UserRepo.update_sql(db, user, {"password_hash": hash_password(new_password)})
        else:
            if not UserRepo.get_fs(user_id):
                raise RecordNotFound("User")
            UserRepo.update_fs(user_id, {"password_hash": hash_password(new_password)})
        logger.info(f"Password reset for user {user_id}")

    @staticmethod
    def delete_user(db: Session, user_id: str) -> None:
        if not use_firestore():
            user = UserRepo.get_sql(db, user_id)
            if not user:
                raise RecordNotFound("User")
            UserRepo.delete_sql(db, user)
        else:
            if not UserRepo.get_fs(user_id):
                raise RecordNotFound("User")
            UserRepo.delete_fs(user_id)
        logger.info(f"User {user_id} deleted")
