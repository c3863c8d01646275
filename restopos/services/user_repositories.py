"""
Repository layer for app users, sessions and the admin password (SQLAlchemy vs Firestore).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from restopos.models import AppUser, UserSession, AdminSettings
from restopos.services.firebase_client import get_firestore_client
from restopos.services.repositories import doc_to_dict, docs_to_list, now_utc


# -------- User repository --------

class UserRepo:
    @staticmethod
    def list_sql(db: Session) -> List[AppUser]:
        return db.query(AppUser).order_by(AppUser.created_at.desc()).all()

    @staticmethod
    def get_sql(db: Session, user_id: str) -> Optional[AppUser]:
        return db.query(AppUser).filter(AppUser.id == user_id).first()

    @staticmethod
    def get_by_username_sql(db: Session, username: str) -> Optional[AppUser]:
        return db.query(AppUser).filter(AppUser.username == username).first()

    @staticmethod
    def create_sql(db: Session, username: str, password_hash: str, created_by: Optional[str]) -> AppUser:
        user = AppUser(username=username, password_hash=password_hash, created_by=created_by, is_active=True)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def update_sql(db: Session, user: AppUser, fields: Dict[str, Any]) -> AppUser:
        for key, value in fields.items():
            setattr(user, key, value)
        user.updated_at = now_utc()
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def delete_sql(db: Session, user: AppUser) -> None:
        db.query(UserSession).filter(UserSession.user_id == user.id).delete(synchronize_session=False)
        db.delete(user)
        db.commit()

    # Firestore shape: collection "app_users" keyed by generated id
    @staticmethod
    def list_fs() -> List[Dict[str, Any]]:
        fs = get_firestore_client()
        users = docs_to_list(fs.collection("app_users").get())
        return sorted(users, key=lambda u: u.get("created_at") or "", reverse=True)

    @staticmethod
    def get_fs(user_id: str) -> Optional[Dict[str, Any]]:
        fs = get_firestore_client()
        return doc_to_dict(fs.collection("app_users").document(user_id).get())

    @staticmethod
    def get_by_username_fs(username: str) -> Optional[Dict[str, Any]]:
        fs = get_firestore_client()
        docs = fs.collection("app_users").where("username", "==", username).get()
        if docs:
            return docs_to_list(docs[:1])[0]
        return None

    @staticmethod
    def create_fs(username: str, password_hash: str, created_by: Optional[str]) -> Dict[str, Any]:
        fs = get_firestore_client()
        now = now_utc().isoformat()
        data = {
            "username": username,
            "password_hash": password_hash,
            "is_active": True,
            "created_by": created_by,
            "created_at": now,
            "updated_at": now,
        }
        ref = fs.collection("app_users").document()
        ref.set(data)
        return {**data, "id": ref.id}

    @staticmethod
    def update_fs(user_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        fs = get_firestore_client()
        ref = fs.collection("app_users").document(user_id)
        ref.update({**fields, "updated_at": now_utc().isoformat()})
        return doc_to_dict(ref.get())

    @staticmethod
    def delete_fs(user_id: str) -> None:
        fs = get_firestore_client()
        batch = fs.batch()
        for doc in fs.collection("user_sessions").where("user_id", "==", user_id).get():
            batch.delete(doc.reference)
        batch.delete(fs.collection("app_users").document(user_id))
        batch.commit()


# -------- Session repository --------

class SessionRepo:
    @staticmethod
    def create_sql(
        db: Session,
        token: str,
        user_id: Optional[str],
        actor_name: str,
        is_admin: bool,
        expires_at: datetime,
    ) -> UserSession:
        session = UserSession(
            token=token,
            user_id=user_id,
            actor_name=actor_name,
            is_admin=is_admin,
            expires_at=expires_at,
        )
        db.add(session)
        db.commit()
        db.refresh(session)
        return session

    @staticmethod
    def get_valid_sql(db: Session, token: str, now: datetime) -> Optional[UserSession]:
        return db.query(UserSession).filter(
            UserSession.token == token,
            UserSession.expires_at > now
        ).first()

    @staticmethod
    def delete_sql(db: Session, token: str) -> None:
        db.query(UserSession).filter(UserSession.token == token).delete(synchronize_session=False)
        db.commit()

    @staticmethod
    def purge_expired_sql(db: Session, now: datetime) -> int:
        removed = db.query(UserSession).filter(UserSession.expires_at <= now).delete(synchronize_session=False)
        db.commit()
        return removed

    # Firestore shape: collection "user_sessions/{token}"
    @staticmethod
    def create_fs(
        token: str,
        user_id: Optional[str],
        actor_name: str,
        is_admin: bool,
        expires_at: datetime,
    ) -> Dict[str, Any]:
        fs = get_firestore_client()
        data = {
            "token": token,
            "user_id": user_id,
            "actor_name": actor_name,
            "is_admin": is_admin,
            "expires_at": expires_at.isoformat(),
            "created_at": now_utc().isoformat(),
        }
        fs.collection("user_sessions").document(token).set(data)
        return data

    @staticmethod
    def get_valid_fs(token: str, now: datetime) -> Optional[Dict[str, Any]]:
        fs = get_firestore_client()
        data = doc_to_dict(fs.collection("user_sessions").document(token).get())
        if not data or data.get("expires_at", "") <= now.isoformat():
            return None
        return data

    @staticmethod
    def delete_fs(token: str) -> None:
        fs = get_firestore_client()
        fs.collection("user_sessions").document(token).delete()

    @staticmethod
    def purge_expired_fs(now: datetime) -> int:
        fs = get_firestore_client()
        expired = fs.collection("user_sessions").where("expires_at", "<=", now.isoformat()).get()
        if not expired:
            return 0
        batch = fs.batch()
        for doc in expired:
            batch.delete(doc.reference)
        batch.commit()
        return len(expired)


# -------- Admin settings repository --------

class AdminSettingsRepo:
    @staticmethod
    def get_hash_sql(db: Session) -> Optional[str]:
        row = db.query(AdminSettings).first()
        return row.password_hash if row else None

    @staticmethod
    def set_hash_sql(db: Session, password_hash: str) -> None:
        row = db.query(AdminSettings).first()
        if row:
            row.password_hash = password_hash
            row.updated_at = now_utc()
        else:
            db.add(AdminSettings(password_hash=password_hash))
        db.commit()

    # Firestore shape: single document "admin_settings/admin"
    @staticmethod
    def get_hash_fs() -> Optional[str]:
        fs = get_firestore_client()
        data = doc_to_dict(fs.collection("admin_settings").document("admin").get())
        return data.get("password_hash") if data else None

    @staticmethod
    def set_hash_fs(password_hash: str) -> None:
        fs = get_firestore_client()
        fs.collection("admin_settings").document("admin").set({
            "password_hash": password_hash,
            "updated_at": now_utc().isoformat()
        }, merge=True)
