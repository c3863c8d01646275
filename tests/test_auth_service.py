"""
Tests for passwords, sessions and user management
"""

import pytest
from datetime import datetime, timedelta
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from restopos.core.config import settings
from restopos.core.db import Base
from restopos.models import AppUser, UserSession
from restopos.services.auth_service import AuthService, check_password, hash_password
from restopos.services.exceptions import RecordNotFound, ValidationFailed

# Test database setup
SQLALCHEMY_DATABASE_URL = "sqlite:///./test_auth.db"
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

@pytest.fixture
def db_session():
    """Create test database session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)

@pytest.fixture
def staff(db_session):
    return AuthService.create_user(db_session, "anna", "s3cret", created_by="admin")

class TestPasswords:
    """Test password hashing"""

    def test_hash_and_check(self):
        hashed = hash_password("s3cret")
        assert hashed != "s3cret"
        assert check_password("s3cret", hashed) is True
        assert check_password("wrong", hashed) is False

    def test_check_against_garbage_hash(self):
        assert check_password("s3cret", "not-a-bcrypt-hash") is False
        assert check_password("s3cret", None) is False

    def test_admin_password_seeded_once(self, db_session):
        AuthService.ensure_admin_password(db_session)
        assert AuthService.verify_admin_password(db_session, settings.ADMIN_PASSWORD) is True

        AuthService.change_admin_password(db_session, "new-admin-pw")
        AuthService.ensure_admin_password(db_session)

        assert AuthService.verify_admin_password(db_session, "new-admin-pw") is True
        assert AuthService.verify_admin_password(db_session, settings.ADMIN_PASSWORD) is False

class TestLogin:
    """Test sessions"""

    def test_user_login_and_resolve(self, db_session, staff):
        session = AuthService.login(db_session, "anna", "s3cret")

        assert session is not None
        assert session.is_admin is False
        assert session.actor_name == "anna"

        context = AuthService.resolve_session(db_session, session.token)
        assert context.actor_name == "anna"
        assert context.user_id == staff.id

    def test_wrong_password(self, db_session, staff):
        assert AuthService.login(db_session, "anna", "nope") is None
        assert AuthService.login(db_session, "nobody", "s3cret") is None

    def test_inactive_user_cannot_log_in(self, db_session, staff):
        AuthService.update_user(db_session, staff.id, is_active=False)

        is_valid, user_id = AuthService.verify_user_password(db_session, "anna", "s3cret")
        assert is_valid is False
        assert user_id is None

    def test_deactivated_user_session_stops_resolving(self, db_session, staff):
        session = AuthService.login(db_session, "anna", "s3cret")
        AuthService.update_user(db_session, staff.id, is_active=False)

        assert AuthService.resolve_session(db_session, session.token) is None

    def test_login_purges_expired_sessions(self, db_session, staff):
        stale = AuthService.login(db_session, "anna", "s3cret")
        row = db_session.query(UserSession).filter(UserSession.token == stale.token).first()
        row.expires_at = datetime.utcnow() - timedelta(minutes=1)
        db_session.commit()

        fresh = AuthService.login(db_session, "anna", "s3cret")

        tokens = [s.token for s in db_session.query(UserSession).all()]
        assert tokens == [fresh.token]

    def test_purge_keeps_live_sessions(self, db_session, staff):
        session = AuthService.login(db_session, "anna", "s3cret")

        assert AuthService.purge_expired_sessions(db_session) == 0
        assert AuthService.resolve_session(db_session, session.token) is not None

    def test_renamed_user_keeps_session(self, db_session, staff):
        session = AuthService.login(db_session, "anna", "s3cret")
        AuthService.update_user(db_session, staff.id, username="anna.k")

        assert AuthService.resolve_session(db_session, session.token).actor_name == "anna.k"

    def test_admin_login(self, db_session):
        AuthService.ensure_admin_password(db_session)

        session = AuthService.admin_login(db_session, settings.ADMIN_PASSWORD)
        assert session.is_admin is True
        assert session.actor_name == "admin"
        assert AuthService.resolve_session(db_session, session.token).is_admin is True

        assert AuthService.admin_login(db_session, "guess") is None

    def test_expired_session(self, db_session, staff):
        session = AuthService.login(db_session, "anna", "s3cret")
        row = db_session.query(UserSession).filter(UserSession.token == session.token).first()
        row.expires_at = datetime.utcnow() - timedelta(minutes=1)
        db_session.commit()

        assert AuthService.resolve_session(db_session, session.token) is None

    def test_session_lifetime(self, db_session, staff):
        session = AuthService.login(db_session, "anna", "s3cret")
        remaining = session.expires_at - datetime.utcnow()
        assert timedelta(hours=settings.SESSION_TTL_HOURS - 1) < remaining <= timedelta(hours=settings.SESSION_TTL_HOURS)

    def test_logout(self, db_session, staff):
        session = AuthService.login(db_session, "anna", "s3cret")
        AuthService.logout(db_session, session.token)

        assert AuthService.resolve_session(db_session, session.token) is None

class TestUserManagement:
    """Test admin user CRUD"""

    def test_duplicate_username(self, db_session, staff):
        with pytest.raises(ValidationFailed) as exc:
            AuthService.create_user(db_session, "anna", "other", created_by="admin")
        assert exc.value.error_code == "duplicate_username"

    @pytest.mark.parametrize("password", ["", "   ", "x" * 73])
    def test_invalid_password(self, db_session, password):
        with pytest.raises(ValidationFailed):
            AuthService.create_user(db_session, "ben", password, created_by="admin")

    def test_reset_password(self, db_session, staff):
        AuthService.reset_password(db_session, staff.id, "fresh-pw")

        assert AuthService.login(db_session, "anna", "s3cret") is None
        assert AuthService.login(db_session, "anna", "fresh-pw") is not None

    def test_delete_user_drops_sessions(self, db_session, staff):
        session = AuthService.login(db_session, "anna", "s3cret")
        AuthService.delete_user(db_session, staff.id)

        assert db_session.query(AppUser).count() == 0
        assert db_session.query(UserSession).count() == 0
        assert AuthService.resolve_session(db_session, session.token) is None

    def test_unknown_user(self, db_session):
        with pytest.raises(RecordNotFound):
            AuthService.reset_password(db_session, "missing", "pw")
        with pytest.raises(RecordNotFound):
            AuthService.delete_user(db_session, "missing")

    def test_list_users_newest_first(self, db_session, staff):
        AuthService.create_user(db_session, "ben", "pw", created_by="admin")
        assert [u.username for u in AuthService.list_users(db_session)] == ["ben", "anna"]
