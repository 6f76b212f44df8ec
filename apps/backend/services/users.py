"""User accounts and sessions."""
from __future__ import annotations

import logging
import secrets
import time
from datetime import datetime
from typing import Any

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from apps.backend.auth import get_password_hash
from apps.backend.config import get_settings
from apps.backend.models.user import User, LoginHistory
from apps.backend.models.website_permission import WebsitePermission
from apps.backend.utils.dates import iso

logger = logging.getLogger(__name__)

MIN_USERNAME_LENGTH = 3
MIN_PASSWORD_LENGTH = 6


class UserExistsError(Exception):
    pass


def generate_email(username: str, provided: str | None) -> str:
    cleaned = (provided or "").strip().lower()
    if cleaned:
        return cleaned
    return f"{username.lower()}@{get_settings().default_email_domain}"


def get_user_by_username(db: Session, username: str) -> User | None:
    return db.execute(select(User).where(User.username == username)).scalar_one_or_none()


def create_user(db: Session, username: str, password: str, email: str | None = None, is_admin: bool = False) -> User:
    username = username.strip()
    email = generate_email(username, email)
    existing = db.execute(
        select(User).where(or_(User.username == username, User.email == email))
    ).scalar_one_or_none()
    if existing:
        raise UserExistsError(username)
    user = User(
        username=username,
        email=email,
        password_hash=get_password_hash(password),
        is_admin=is_admin,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def ensure_admin_user(db: Session) -> None:
    s = get_settings()
    if not s.admin_default_password:
        return
    if get_user_by_username(db, s.admin_default_username):
        return
    create_user(db, s.admin_default_username, s.admin_default_password, is_admin=True)
    logger.info("bootstrap admin %s created", s.admin_default_username)


def start_session(db: Session, user: User, ip_address: str | None, browser: str | None) -> User:
    """Record the login and rotate the session: older tokens stop validating."""
    now = datetime.utcnow()
    user.login_count = (user.login_count or 0) + 1
    user.last_login = now
    user.login_history.append(LoginHistory(timestamp=now, ip_address=ip_address, browser=browser or "Unknown"))
    user.token_version = (user.token_version or 0) + 1
    user.current_session_id = f"{int(time.time() * 1000)}-{secrets.token_hex(6)}"
    db.commit()
    db.refresh(user)
    return user


def end_session(db: Session, user: User) -> None:
    user.last_logout = datetime.utcnow()
    user.current_session_id = None
    db.commit()


def serialize_permission(p: WebsitePermission) -> dict[str, Any]:
    return {
        "id": p.id,
        "website": p.website,
        "hasAccess": bool(p.has_access),
        "accessLevel": p.access_level,
        "expiresAt": iso(p.expires_at),
        "lastAccessed": iso(p.last_accessed),
        "accessCount": p.access_count or 0,
        "requestedAt": iso(p.requested_at),
        "approvedBy": p.approved_by,
        "approvedAt": iso(p.approved_at),
        "preferences": {
            "autoInsertCookies": bool(p.auto_insert_cookies),
            "notifyOnUpdates": bool(p.notify_on_updates),
            "allowedCategories": list(p.allowed_categories or []),
        },
    }


def serialize_access_request(r, username: str | None = None) -> dict[str, Any]:
    out = {
        "id": r.id,
        "userId": r.user_id,
        "website": r.website,
        "reason": r.reason,
        "requestedAt": iso(r.requested_at),
        "status": r.status,
        "reviewedBy": r.reviewed_by,
        "reviewedAt": iso(r.reviewed_at),
    }
    if username is not None:
        out["username"] = username
    return out


def serialize_user(user: User) -> dict[str, Any]:
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "isAdmin": bool(user.is_admin),
        "isActive": bool(user.is_active),
        "expiryDate": iso(user.expiry_date),
        "loginCount": user.login_count or 0,
        "lastLogin": iso(user.last_login),
        "phoneCountryCode": user.phone_country_code,
        "phoneNumber": user.phone_number,
        "websitePermissions": [serialize_permission(p) for p in user.website_permissions],
        "accessRequests": [serialize_access_request(r) for r in user.access_requests],
        "createdAt": iso(user.created_at),
    }
