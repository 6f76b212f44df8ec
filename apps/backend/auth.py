"""Bearer JWT authentication and the request guards built on it."""
import logging
from datetime import datetime, timedelta
from typing import Optional

import bcrypt
from jose import ExpiredSignatureError, JWTError, jwt
from fastapi import Depends, Request, Response
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from apps.backend.config import get_settings
from apps.backend.deps import get_db
from apps.backend.models.user import User
from apps.backend.services.access import active_permissions, find_permission, is_expired
from apps.backend.services.plan import days_until_expiry, force_logout, is_plan_expired
from apps.backend.utils.api_errors import (
    ApiError,
    forbidden,
    REASON_ACCOUNT_DEACTIVATED,
    REASON_NO_ACTIVE_PERMISSIONS,
    REASON_PLAN_EXPIRED,
    REASON_WEBSITE_ACCESS_EXPIRED,
)
from apps.backend.utils.dates import iso
from apps.backend.utils.domains import normalize_domain

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

# bcrypt limit; pass as bytes to avoid passlib's internal 72-byte test crash
_MAX_PW_BYTES = 72


def _to_bytes(s: str) -> bytes:
    b = s.encode("utf-8")
    return b[: _MAX_PW_BYTES] if len(b) > _MAX_PW_BYTES else b


def verify_password(plain: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(_to_bytes(plain), hashed.encode() if isinstance(hashed, str) else hashed)
    except ValueError:
        return False


def get_password_hash(password: str) -> str:
    return bcrypt.hashpw(_to_bytes(password), bcrypt.gensalt()).decode()


def token_expires_at() -> datetime:
    return datetime.utcnow() + timedelta(days=get_settings().jwt_expire_days)


def create_access_token(user: User, expires_delta: Optional[timedelta] = None) -> str:
    s = get_settings()
    exp = datetime.utcnow() + (expires_delta or timedelta(days=s.jwt_expire_days))
    to_encode = {
        "sub": str(user.id),
        "userId": user.id,
        "isAdmin": bool(user.is_admin),
        "username": user.username,
        "tokenVersion": user.token_version or 0,
        "sessionId": user.current_session_id,
        "exp": exp,
    }
    return jwt.encode(to_encode, s.jwt_secret, algorithm=s.jwt_algorithm)


def decode_token(token: str) -> dict:
    """Raises ExpiredSignatureError / JWTError."""
    s = get_settings()
    return jwt.decode(token, s.jwt_secret, algorithms=[s.jwt_algorithm])


def _bearer_payload(credentials: HTTPAuthorizationCredentials | None, missing_message: str) -> dict:
    if not credentials or not credentials.credentials:
        raise ApiError(401, missing_message)
    try:
        payload = decode_token(credentials.credentials)
    except ExpiredSignatureError:
        raise ApiError(401, "Token expired.", code="TOKEN_EXPIRED")
    except JWTError:
        raise ApiError(401, "Invalid token.")
    if not payload.get("userId"):
        raise ApiError(401, "Invalid token format.")
    return payload


def _session_is_current(payload: dict, user: User) -> bool:
    version = payload.get("tokenVersion")
    if isinstance(version, int) and version != (user.token_version or 0):
        return False
    session_id = payload.get("sessionId")
    if session_id and user.current_session_id and session_id != user.current_session_id:
        return False
    return True


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    payload = _bearer_payload(credentials, "Access denied. No token provided.")
    user = db.get(User, payload["userId"])
    if not user or not user.is_active:
        raise ApiError(401, "User account is inactive.")
    if not _session_is_current(payload, user):
        raise ApiError(401, "Session invalidated. Logged in elsewhere.")
    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        logger.warning("admin access denied for %s", user.username)
        raise forbidden("Admin access required")
    return user


def get_enhanced_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Account status, plan expiry and website permission expiry checks."""
    payload = _bearer_payload(credentials, "No token provided")
    user = db.get(User, payload["userId"])
    if not user:
        raise ApiError(401, "User not found")
    if not user.is_active:
        raise forbidden(
            "Account is deactivated. Please contact administrator.",
            reason=REASON_ACCOUNT_DEACTIVATED,
        )
    if is_plan_expired(user):
        logger.info("plan expired user=%s expired_on=%s, forcing logout", user.username, user.expiry_date)
        force_logout(db, user)
        raise forbidden(
            "Your plan has expired. Please renew your subscription to continue using the service.",
            reason=REASON_PLAN_EXPIRED,
            expiredOn=iso(user.expiry_date),
            forceLogout=True,
        )
    if not _session_is_current(payload, user):
        raise ApiError(401, "Session invalidated. Logged in elsewhere.")

    website = request.path_params.get("website") or request.query_params.get("website")
    if website and not user.is_admin:
        permission = find_permission(user, website)
        if permission is not None and is_expired(permission):
            target = normalize_domain(website)
            raise forbidden(
                f"Your access to {target} has expired. Please request renewed access.",
                reason=REASON_WEBSITE_ACCESS_EXPIRED,
                website=target,
                expiredOn=iso(permission.expires_at),
            )
    return user


def get_cookie_user(
    user: User = Depends(get_enhanced_user),
    db: Session = Depends(get_db),
) -> User:
    if not user.is_admin and not active_permissions(user):
        raise forbidden(
            "No active website permissions. Please request access to websites.",
            reason=REASON_NO_ACTIVE_PERMISSIONS,
        )
    user.last_login = datetime.utcnow()
    db.commit()
    return user


def plan_expiry_warning(response: Response, user: User = Depends(get_enhanced_user)) -> None:
    if user.is_admin or user.expiry_date is None:
        return
    days = days_until_expiry(user)
    if days is not None and 0 < days <= get_settings().plan_warning_days:
        response.headers["X-Plan-Expiry-Warning"] = f"Your plan expires in {days} days"
        response.headers["X-Plan-Expiry-Date"] = iso(user.expiry_date)
