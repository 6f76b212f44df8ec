"""Website permission gate.

Matching here is exact on the normalized hostname. The cookie matcher allows
parent and subdomain matches; the gate deliberately does not.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from apps.backend.models.user import User
from apps.backend.models.website_permission import WebsitePermission
from apps.backend.utils.dates import parse_datetime
from apps.backend.utils.domains import normalize_domain

logger = logging.getLogger(__name__)

DEFAULT_ALLOWED_CATEGORIES = ["authentication", "session", "preference", "functional"]


@dataclass
class AccessDecision:
    allowed: bool
    reason: str  # admin | granted | no_permission | access_denied | website_access_expired
    website: str
    permission: WebsitePermission | None = None


def find_permission(user: User, website: str) -> WebsitePermission | None:
    target = normalize_domain(website)
    for p in user.website_permissions:
        if p.website == target:
            return p
    return None


def is_expired(permission: WebsitePermission, now: datetime | None = None) -> bool:
    now = now or datetime.utcnow()
    return permission.expires_at is not None and permission.expires_at <= now


def evaluate_access(user: User, website: str, now: datetime | None = None) -> AccessDecision:
    target = normalize_domain(website)
    if user.is_admin:
        return AccessDecision(True, "admin", target)
    permission = find_permission(user, target)
    if permission is None:
        return AccessDecision(False, "no_permission", target)
    if not permission.has_access:
        return AccessDecision(False, "access_denied", target, permission)
    if is_expired(permission, now):
        return AccessDecision(False, "website_access_expired", target, permission)
    return AccessDecision(True, "granted", target, permission)


def has_access(user: User, website: str, now: datetime | None = None) -> bool:
    return evaluate_access(user, website, now).allowed


def record_access(db: Session, permission: WebsitePermission) -> None:
    """Bump access statistics in one statement instead of read-modify-write."""
    db.execute(
        update(WebsitePermission)
        .where(WebsitePermission.id == permission.id)
        .values(
            last_accessed=datetime.utcnow(),
            access_count=WebsitePermission.access_count + 1,
        )
    )
    db.commit()
    db.refresh(permission)


def authorize_website(db: Session, user: User, website: str) -> AccessDecision:
    decision = evaluate_access(user, website)
    if decision.allowed and decision.permission is not None:
        record_access(db, decision.permission)
    logger.info(
        "website access user=%s website=%s allowed=%s reason=%s",
        user.username, decision.website, decision.allowed, decision.reason,
    )
    return decision


def active_permissions(user: User, now: datetime | None = None) -> list[WebsitePermission]:
    return [p for p in user.website_permissions if p.has_access and not is_expired(p, now)]


def grant_access(
    user: User,
    website: str,
    *,
    approved_by: str | None,
    access_level: str = "read",
    allowed_categories: list[str] | None = None,
) -> tuple[WebsitePermission, bool]:
    """Grant one website to one user. Returns (permission, changed). No commit."""
    target = normalize_domain(website)
    now = datetime.utcnow()
    permission = find_permission(user, target)
    if permission is None:
        permission = WebsitePermission(
            website=target,
            has_access=True,
            access_level=access_level,
            approved_by=approved_by,
            approved_at=now,
            last_accessed=now,
            access_count=0,
            allowed_categories=allowed_categories,
        )
        user.website_permissions.append(permission)
        return permission, True
    if not permission.has_access:
        permission.has_access = True
        permission.approved_by = approved_by
        permission.approved_at = now
        return permission, True
    return permission, False


def auto_grant(
    db: Session,
    websites: Iterable[str],
    *,
    approved_by: str = "auto-admin",
    allowed_categories: list[str] | None = None,
) -> int:
    """Grant the websites to every active user. Returns the number of users considered."""
    targets = [w for w in {normalize_domain(w) for w in websites} if w]
    users = db.execute(select(User).where(User.is_active.is_(True))).scalars().all()
    if not targets:
        return len(users)
    for user in users:
        for website in sorted(targets):
            _, changed = grant_access(
                user,
                website,
                approved_by=approved_by,
                access_level="admin" if user.is_admin else "read",
                allowed_categories=list(allowed_categories) if allowed_categories else None,
            )
            if changed:
                logger.info("granted %s access to %s", website, user.username)
    db.commit()
    return len(users)


def replace_permissions(db: Session, user: User, entries: list[dict], approved_by: str | None) -> None:
    """Overwrite a user's permission list from API payload entries."""
    by_site: dict[str, WebsitePermission] = {}
    for entry in entries:
        website = normalize_domain(entry.get("website"))
        if not website:
            continue
        last_accessed = parse_datetime(entry.get("lastAccessed")) or datetime.utcnow()
        by_site[website] = WebsitePermission(
            website=website,
            has_access=bool(entry.get("hasAccess")),
            access_level=entry.get("accessLevel") or "read",
            expires_at=parse_datetime(entry.get("expiresAt")),
            last_accessed=last_accessed,
            access_count=int(entry.get("accessCount") or 0),
            approved_by=entry.get("approvedBy") or approved_by,
            allowed_categories=(entry.get("preferences") or {}).get("allowedCategories"),
        )
    user.website_permissions.clear()
    db.flush()
    user.website_permissions.extend(by_site.values())
    db.commit()

