"""Login, registration and session endpoints."""
import logging

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.orm import Session

from apps.backend.auth import (
    create_access_token,
    get_current_user,
    require_admin,
    token_expires_at,
    verify_password,
)
from apps.backend.deps import get_db
from apps.backend.models.user import User
from apps.backend.services.plan import is_plan_expired, plan_status
from apps.backend.services.users import (
    MIN_PASSWORD_LENGTH,
    MIN_USERNAME_LENGTH,
    UserExistsError,
    create_user,
    end_session,
    ensure_admin_user,
    get_user_by_username,
    serialize_permission,
    start_session,
)
from apps.backend.utils.api_errors import ApiError, bad_request, forbidden, REASON_PLAN_EXPIRED
from apps.backend.utils.dates import iso

logger = logging.getLogger(__name__)

router = APIRouter()


class LoginBody(BaseModel):
    username: str | None = None
    password: str | None = None


class RegisterBody(BaseModel):
    username: str | None = None
    password: str | None = None
    email: str | None = None


class LogoutBody(BaseModel):
    deviceId: str | None = None


def _token_response(user: User) -> dict:
    return {
        "token": create_access_token(user),
        "expiresAt": iso(token_expires_at()),
        "user": {"username": user.username, "isAdmin": bool(user.is_admin)},
    }


def _create_account(db: Session, body: RegisterBody, *, enforce_lengths: bool) -> User:
    if not body.username or not body.password:
        raise bad_request("Username and password required")
    if enforce_lengths:
        if len(body.username) < MIN_USERNAME_LENGTH:
            raise bad_request(f"Username must be at least {MIN_USERNAME_LENGTH} characters long")
        if len(body.password) < MIN_PASSWORD_LENGTH:
            raise bad_request(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    try:
        return create_user(db, body.username, body.password, body.email, is_admin=False)
    except UserExistsError:
        logger.info("username or email already exists: %s", body.username)
        raise ApiError(409, "Username or email already exists")


def _plan_check(user: User) -> dict:
    if not user.is_active:
        raise forbidden("Account is inactive. Contact administrator.", reason=REASON_PLAN_EXPIRED)
    if is_plan_expired(user):
        raise forbidden(
            "Your plan has expired. Please renew your subscription to continue using the extension.",
            reason=REASON_PLAN_EXPIRED,
        )
    return {
        **plan_status(user),
        "user": {
            "username": user.username,
            "isAdmin": bool(user.is_admin),
            "expiryDate": iso(user.expiry_date),
        },
    }


@router.post("/login")
def login(body: LoginBody, request: Request, db: Session = Depends(get_db)):
    if not body.username or not body.password:
        raise bad_request("Username and password required")
    ensure_admin_user(db)
    user = get_user_by_username(db, body.username)
    if not user:
        logger.info("login failed, unknown user: %s", body.username)
        raise ApiError(401, "Invalid credentials")
    if not user.is_active:
        raise ApiError(401, "Account is inactive. Contact administrator.")
    if is_plan_expired(user):
        raise ApiError(401, "Account has expired. Contact administrator.")
    if not verify_password(body.password, user.password_hash):
        logger.info("login failed, bad password: %s", body.username)
        raise ApiError(401, "Invalid credentials")

    ip = request.client.host if request.client else None
    start_session(db, user, ip, request.headers.get("user-agent"))
    logger.info("login ok user=%s admin=%s", user.username, user.is_admin)
    return _token_response(user)


@router.post("/register")
def register(body: RegisterBody, db: Session = Depends(get_db)):
    user = _create_account(db, body, enforce_lengths=True)
    logger.info("user registered: %s", user.username)
    return {
        "message": "User registered successfully",
        "user": {"username": user.username, "isAdmin": bool(user.is_admin)},
    }


@router.post("/create")
def create(body: RegisterBody, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    user = _create_account(db, body, enforce_lengths=False)
    logger.info("user %s created by admin %s", user.username, admin.username)
    return {
        "message": "User created successfully",
        "user": {"username": user.username, "isAdmin": bool(user.is_admin)},
    }


@router.post("/refresh")
def refresh(user: User = Depends(get_current_user)):
    return _token_response(user)


@router.get("/me")
def me(user: User = Depends(get_current_user)):
    return {
        "id": user.id,
        "username": user.username,
        "isAdmin": bool(user.is_admin),
        "isActive": bool(user.is_active),
        "expiryDate": iso(user.expiry_date),
        "loginCount": user.login_count or 0,
        "lastLogin": iso(user.last_login),
        "loginHistory": [
            {"timestamp": iso(h.timestamp), "ipAddress": h.ip_address, "browser": h.browser}
            for h in user.login_history
        ],
        "websitePermissions": [serialize_permission(p) for p in user.website_permissions],
        "cookieInsertions": [
            {"website": c.website, "timestamp": iso(c.timestamp), "success": bool(c.success)}
            for c in user.cookie_insertions
        ],
    }


@router.get("/users")
def list_users(db: Session = Depends(get_db), _admin: User = Depends(require_admin)):
    users = db.execute(select(User).order_by(User.id)).scalars().all()
    return {"users": [{"id": u.id, "username": u.username, "isAdmin": bool(u.is_admin)} for u in users]}


@router.post("/check-plan")
def check_plan(user: User = Depends(get_current_user)):
    return {"status": "active", **_plan_check(user)}


@router.post("/validate-session")
def validate_session(user: User = Depends(get_current_user)):
    return {"valid": True, **_plan_check(user)}


@router.post("/logout")
def logout(body: LogoutBody | None = None, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    logger.info("logout user=%s device=%s", user.username, body.deviceId if body else None)
    end_session(db, user)
    return {"message": "Logout successful", "timestamp": iso(user.last_logout)}
