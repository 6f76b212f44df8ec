"""Cookie bundle storage: flat snapshots and versioned per-website bundles."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Iterable

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from apps.backend.config import get_settings
from apps.backend.models.cookie_bundle import CookieBundle, WebsiteCookieBundle
from apps.backend.utils.dates import iso, parse_datetime, to_epoch
from apps.backend.utils.domains import normalize_domain

logger = logging.getLogger(__name__)

COOKIE_FIELDS = ("name", "value", "domain", "path", "secure", "httpOnly", "sameSite", "expirationDate")

COOKIE_CATEGORIES = ("authentication", "session", "preference", "tracking", "functional")

_ESSENTIAL_PATTERNS = ("__secure-", "__host-", "csrf", "xsrf", "session", "auth")


def normalize_cookie_record(cookie: dict[str, Any]) -> dict[str, Any]:
    """Keep the known cookie fields; ISO `expiry` becomes epoch `expirationDate`."""
    out = {k: cookie[k] for k in COOKIE_FIELDS if k in cookie}
    if out.get("expirationDate") is None:
        expiry = cookie.get("expiry")
        if isinstance(expiry, (int, float)) and not isinstance(expiry, bool):
            out["expirationDate"] = expiry
        elif isinstance(expiry, str):
            parsed = parse_datetime(expiry)
            if parsed is not None:
                out["expirationDate"] = to_epoch(parsed)
    return out


def extract_domains(cookies: Iterable[dict[str, Any]]) -> list[str]:
    domains: list[str] = []
    for cookie in cookies:
        d = normalize_domain(cookie.get("domain"))
        if d and d not in domains:
            domains.append(d)
    return domains


def categorize_cookie(name: str | None) -> str:
    n = (name or "").lower()
    if any(k in n for k in ("auth", "session", "login", "token")):
        return "authentication"
    if "sess" in n or "sid" in n:
        return "session"
    if any(k in n for k in ("pref", "setting", "config")):
        return "preference"
    if any(k in n for k in ("track", "analytics", "ga_", "_ga")):
        return "tracking"
    return "functional"


def is_essential_cookie(name: str | None) -> bool:
    n = (name or "").lower()
    return any(p in n for p in _ESSENTIAL_PATTERNS)


def filter_by_categories(cookies: list[dict[str, Any]], allowed: list[str] | None) -> list[dict[str, Any]]:
    if not allowed:
        return cookies
    return [c for c in cookies if c.get("category") in allowed or c.get("isEssential")]


def create_bundle(
    db: Session,
    cookies: list[dict[str, Any]],
    uploaded_by: int | None,
    website: str | None = None,
) -> CookieBundle:
    bundle = CookieBundle(
        cookies=[normalize_cookie_record(c) for c in cookies],
        uploaded_by=uploaded_by,
        uploaded_at=datetime.utcnow(),
        website=normalize_domain(website) or None,
    )
    db.add(bundle)
    db.commit()
    db.refresh(bundle)
    return bundle


def latest_bundle(db: Session) -> CookieBundle | None:
    return db.execute(
        select(CookieBundle).order_by(CookieBundle.uploaded_at.desc(), CookieBundle.id.desc()).limit(1)
    ).scalar_one_or_none()


def prepare_website_cookies(website: str, cookies: list[dict[str, Any]]) -> list[dict[str, Any]]:
    out = []
    for cookie in cookies:
        record = normalize_cookie_record(cookie)
        record["domain"] = (cookie.get("domain") or website).lower().strip()
        record["category"] = categorize_cookie(cookie.get("name"))
        record["isEssential"] = is_essential_cookie(cookie.get("name"))
        out.append(record)
    return out


def find_active_bundle(db: Session, website: str) -> WebsiteCookieBundle | None:
    return db.execute(
        select(WebsiteCookieBundle)
        .where(
            WebsiteCookieBundle.website == normalize_domain(website),
            WebsiteCookieBundle.is_active.is_(True),
        )
        .order_by(WebsiteCookieBundle.id.desc())
        .limit(1)
    ).scalar_one_or_none()


def create_website_bundle(
    db: Session, website: str, cookies: list[dict[str, Any]], uploaded_by: int | None
) -> WebsiteCookieBundle:
    now = datetime.utcnow()
    bundle = WebsiteCookieBundle(
        website=normalize_domain(website),
        cookies=list(cookies),
        version=1,
        previous_versions=[],
        uploaded_by=uploaded_by,
        uploaded_at=now,
        last_updated=now,
    )
    db.add(bundle)
    db.commit()
    db.refresh(bundle)
    return bundle


def replace_cookies_for_website(
    db: Session, website: str, cookies: list[dict[str, Any]], uploaded_by: int | None
) -> WebsiteCookieBundle:
    """Swap in a new cookie set; the old one moves to previous_versions (last N kept)."""
    bundle = find_active_bundle(db, website)
    if bundle is None:
        return create_website_bundle(db, website, cookies, uploaded_by)

    limit = get_settings().bundle_history_limit
    now = datetime.utcnow()
    history = list(bundle.previous_versions or [])
    history.append({
        "version": bundle.version,
        "cookies": list(bundle.cookies or []),
        "replacedAt": iso(now),
        "replacedBy": uploaded_by,
    })
    # reassign, JSON columns do not track in-place mutation
    bundle.previous_versions = history[-limit:] if limit > 0 else []
    bundle.cookies = list(cookies)
    bundle.version = (bundle.version or 1) + 1
    bundle.uploaded_by = uploaded_by
    bundle.uploaded_at = now
    bundle.last_updated = now
    db.commit()
    db.refresh(bundle)
    logger.info("replaced cookies website=%s version=%s", bundle.website, bundle.version)
    return bundle


def get_active_bundle(db: Session, website: str, accessed_by: int | None = None) -> WebsiteCookieBundle | None:
    bundle = find_active_bundle(db, website)
    if bundle is not None and accessed_by is not None:
        db.execute(
            update(WebsiteCookieBundle)
            .where(WebsiteCookieBundle.id == bundle.id)
            .values(
                access_count=WebsiteCookieBundle.access_count + 1,
                last_accessed=datetime.utcnow(),
                last_accessed_by=accessed_by,
            )
        )
        db.commit()
        db.refresh(bundle)
    return bundle


def list_active_bundles(db: Session) -> list[WebsiteCookieBundle]:
    return list(
        db.execute(
            select(WebsiteCookieBundle)
            .where(WebsiteCookieBundle.is_active.is_(True))
            .order_by(WebsiteCookieBundle.last_updated.desc())
        ).scalars().all()
    )


def deactivate_bundle(db: Session, website: str) -> WebsiteCookieBundle | None:
    bundle = find_active_bundle(db, website)
    if bundle is None:
        return None
    bundle.is_active = False
    bundle.last_updated = datetime.utcnow()
    db.commit()
    db.refresh(bundle)
    return bundle
