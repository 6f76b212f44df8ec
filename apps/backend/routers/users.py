"""User self-service and admin user management."""
import logging
import re
from datetime import datetime
from typing import Any
from urllib.parse import unquote

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.orm import Session

from apps.backend.auth import get_current_user, get_password_hash, require_admin
from apps.backend.deps import get_db
from apps.backend.models.user import AccessRequest, User
from apps.backend.services.access import evaluate_access, find_permission, grant_access, replace_permissions
from apps.backend.services.users import (
    MIN_PASSWORD_LENGTH,
    serialize_access_request,
    serialize_permission,
    serialize_user,
)
from apps.backend.utils.api_errors import bad_request, not_found
from apps.backend.utils.dates import iso, parse_datetime
from apps.backend.utils.domains import normalize_domain

logger = logging.getLogger(__name__)

router = APIRouter()


class PermissionsBody(BaseModel):
    permissions: list[dict[str, Any]] | None = None
    targetUserId: int | None = None


class AccessRequestBody(BaseModel):
    website: str | None = None
    reason: str | None = None


class ReviewBody(BaseModel):
    approved: bool = False
    note: str | None = None


class StatusBody(BaseModel):
    isActive: bool


class BulkStatusBody(BaseModel):
    userIds: list[int] | None = None
    isActive: bool | None = None


class PhoneBody(BaseModel):
    phoneCountryCode: str | int | None = None
    phoneNumber: str | int | None = None


class PasswordBody(BaseModel):
    password: str | None = None


class ExpiryBody(BaseModel):
    expiryDate: str | None = None


class WebsiteBody(BaseModel):
    website: str | None = None


def _get_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if not user:
        raise not_found()
    return user


def _digits(value) -> str | None:
    return re.sub(r"\D+", "", str(value or "")) or None


# --- self-service ---

@router.get("/stats")
def stats(user: User = Depends(get_current_user)):
    insertions = user.cookie_insertions
    return {
        "loginCount": user.login_count or 0,
        "lastLogin": iso(user.last_login),
        "totalCookieInsertions": len(insertions),
        "successfulInsertions": sum(1 for i in insertions if i.success),
    }


@router.get("/login-history")
def login_history(user: User = Depends(get_current_user)):
    return [
        {"timestamp": iso(h.timestamp), "ipAddress": h.ip_address, "browser": h.browser}
        for h in user.login_history
    ]


@router.get("/cookie-insertions")
def cookie_insertions(user: User = Depends(get_current_user)):
    return [
        {"website": c.website, "timestamp": iso(c.timestamp), "success": bool(c.success)}
        for c in user.cookie_insertions
    ]


@router.get("/website-permissions")
def website_permissions(user: User = Depends(get_current_user)):
    return [serialize_permission(p) for p in user.website_permissions]


@router.put("/permissions")
def update_permissions(body: PermissionsBody, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    if body.permissions is None:
        raise bad_request("Invalid permissions data")
    # only admins may write someone else's list
    target = _get_user(db, body.targetUserId) if body.targetUserId and user.is_admin else user
    replace_permissions(db, target, body.permissions, user.username if user.is_admin else None)
    return {"message": "Permissions updated successfully"}


@router.get("/check-access/{website:path}")
def check_access(website: str, user: User = Depends(get_current_user)):
    decoded = unquote(website).lower().strip()
    if not decoded:
        raise bad_request("Invalid website parameter", hasAccess=False)
    if "chrome://" in decoded or "chrome-extension://" in decoded:
        raise bad_request("Cannot access browser internal pages", hasAccess=False)
    decision = evaluate_access(user, decoded)
    if decision.reason == "admin":
        return {"hasAccess": True, "message": "Admin access granted"}
    return {
        "hasAccess": decision.allowed,
        "message": "Access granted" if decision.allowed else "Access denied. Please request access from an administrator.",
    }


@router.post("/request-access")
def request_access(body: AccessRequestBody, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    website = normalize_domain(body.website)
    if not website:
        raise bad_request("Website is required")
    if any(r.website == website and r.status == "pending" for r in user.access_requests):
        raise bad_request("Access request already pending for this website")
    user.access_requests.append(AccessRequest(
        website=website,
        reason=body.reason or "No reason provided",
        requested_at=datetime.utcnow(),
        status="pending",
    ))
    db.commit()
    return {"message": "Access request submitted successfully"}


@router.post("/website-permission")
def add_website_permission(body: WebsiteBody, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    website = normalize_domain(body.website)
    if not website:
        raise bad_request("Website is required")
    if find_permission(user, website) is not None:
        raise bad_request("Website permission already exists")
    grant_access(user, website, approved_by=None)
    db.commit()
    return {"message": "Website permission added successfully"}


@router.delete("/website-permission/{website}")
def remove_website_permission(website: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    permission = find_permission(user, website)
    if permission is not None:
        user.website_permissions.remove(permission)
        db.commit()
    return {"message": "Website permission removed successfully"}


# --- admin ---

@router.get("/access-requests")
def access_requests(db: Session = Depends(get_db), _admin: User = Depends(require_admin)):
    rows = db.execute(
        select(AccessRequest, User.username)
        .join(User, User.id == AccessRequest.user_id)
        .order_by(AccessRequest.requested_at.desc(), AccessRequest.id.desc())
    ).all()
    return [serialize_access_request(r, username) for r, username in rows]


@router.put("/access-requests/{request_id}")
def review_access_request(
    request_id: int,
    body: ReviewBody,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    req = db.get(AccessRequest, request_id)
    if not req:
        raise not_found("Access request not found")
    req.status = "approved" if body.approved else "denied"
    req.reviewed_by = admin.username
    req.reviewed_at = datetime.utcnow()
    req.note = body.note
    if body.approved:
        grant_access(req.user, req.website, approved_by=admin.username)
    logger.info("access request %s for %s %s by %s", req.id, req.website, req.status, admin.username)
    db.commit()
    db.refresh(req)
    return {
        "message": f"Access request {req.status} successfully",
        "request": serialize_access_request(req),
    }


@router.get("/admin/users")
def admin_users(db: Session = Depends(get_db), _admin: User = Depends(require_admin)):
    users = db.execute(select(User).order_by(User.created_at.desc(), User.id.desc())).scalars().all()
    return [serialize_user(u) for u in users]


@router.put("/admin/users/status-bulk")
def bulk_status(body: BulkStatusBody, db: Session = Depends(get_db), _admin: User = Depends(require_admin)):
    if not body.userIds:
        raise bad_request("userIds array is required")
    if body.isActive is None:
        raise bad_request("isActive boolean is required")
    targets = db.execute(select(User).where(User.id.in_(body.userIds))).scalars().all()
    admin_ids = [u.id for u in targets if u.is_admin]
    others = [u for u in targets if not u.is_admin]
    modified = 0
    for u in others:
        if bool(u.is_active) != body.isActive:
            u.is_active = body.isActive
            modified += 1
    db.commit()
    verb = "activated" if body.isActive else "deactivated"
    skipped = f" (skipped {len(admin_ids)} admin account(s))" if admin_ids else ""
    return {
        "message": f"Users {verb} successfully{skipped}",
        "matched": len(others),
        "modified": modified,
        "skippedAdminIds": admin_ids,
    }


@router.put("/admin/users/{user_id}/status")
def set_status(user_id: int, body: StatusBody, db: Session = Depends(get_db), _admin: User = Depends(require_admin)):
    user = _get_user(db, user_id)
    if user.is_admin and body.isActive is False:
        raise bad_request("Cannot deactivate admin accounts")
    user.is_active = body.isActive
    db.commit()
    verb = "activated" if body.isActive else "deactivated"
    return {
        "message": f"User {verb} successfully",
        "user": {"username": user.username, "isActive": bool(user.is_active)},
    }


@router.put("/admin/users/{user_id}/phone")
def set_phone(user_id: int, body: PhoneBody, db: Session = Depends(get_db), _admin: User = Depends(require_admin)):
    user = _get_user(db, user_id)
    user.phone_country_code = _digits(body.phoneCountryCode)
    user.phone_number = _digits(body.phoneNumber)
    db.commit()
    return {"message": "Phone updated successfully"}


@router.put("/admin/users/{user_id}/password")
def set_password(user_id: int, body: PasswordBody, db: Session = Depends(get_db), _admin: User = Depends(require_admin)):
    if not body.password or len(body.password) < MIN_PASSWORD_LENGTH:
        raise bad_request(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    user = _get_user(db, user_id)
    user.password_hash = get_password_hash(body.password)
    db.commit()
    return {"message": "Password updated successfully"}


@router.put("/admin/users/{user_id}/expiry")
def set_expiry(user_id: int, body: ExpiryBody, db: Session = Depends(get_db), _admin: User = Depends(require_admin)):
    user = _get_user(db, user_id)
    if body.expiryDate:
        parsed = parse_datetime(body.expiryDate)
        if parsed is None:
            raise bad_request("Invalid expiry date")
        user.expiry_date = parsed
    else:
        user.expiry_date = None
    db.commit()
    return {
        "message": "Expiry date set successfully" if body.expiryDate else "Expiry date removed successfully"
    }


@router.put("/admin/users/{user_id}/websites")
def set_websites(
    user_id: int,
    body: PermissionsBody,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    if body.permissions is None:
        raise bad_request("Invalid permissions data")
    user = _get_user(db, user_id)
    replace_permissions(db, user, body.permissions, admin.username)
    return {"message": "Website permissions updated successfully"}
