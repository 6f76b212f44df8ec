"""Flat cookie bundles: admin upload, user fetch filtered by website."""
import logging
from datetime import datetime
from typing import Any
from urllib.parse import unquote

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from apps.backend.auth import get_cookie_user, get_current_user, plan_expiry_warning, require_admin
from apps.backend.deps import get_db
from apps.backend.models.cookie_bundle import CookieBundle
from apps.backend.models.user import CookieInsertion, User
from apps.backend.services.access import auto_grant, authorize_website, find_permission
from apps.backend.services.cookie_bundles import create_bundle, extract_domains, latest_bundle
from apps.backend.services.cookie_matcher import match_cookies
from apps.backend.utils.api_errors import ApiError, bad_request, forbidden, not_found, server_error
from apps.backend.utils.dates import iso
from apps.backend.utils.domains import normalize_domain

logger = logging.getLogger(__name__)

router = APIRouter()

ACCESS_DENIED = "Access denied to this website. Please request access from an administrator."


class UploadBody(BaseModel):
    cookies: list[dict[str, Any]] | None = None


class InsertBody(BaseModel):
    website: str | None = None
    cookies: list[dict[str, Any]] | None = None


def _bundle_dict(bundle: CookieBundle) -> dict:
    return {
        "id": bundle.id,
        "cookies": list(bundle.cookies or []),
        "website": bundle.website,
        "uploadedBy": bundle.uploaded_by,
        "uploadedAt": iso(bundle.uploaded_at),
    }


def _denied(decision) -> ApiError:
    extra = {"success": False, "cookies": []}
    if decision.reason == "website_access_expired":
        return forbidden(
            f"Access to {decision.website} has expired. Please request renewed access.",
            reason=decision.reason,
            **extra,
        )
    return forbidden(ACCESS_DENIED, **extra)


@router.post("/upload")
def upload(body: UploadBody, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    if body.cookies is None:
        raise bad_request("Invalid cookies data")
    logger.info("admin %s uploading %s cookies", admin.username, len(body.cookies))
    domains = extract_domains(body.cookies)
    bundle = create_bundle(db, body.cookies, admin.id)
    if domains:
        users = auto_grant(db, domains)
        logger.info("granted %s domains to %s users", len(domains), users)
    return {
        "message": f"Cookies uploaded successfully. Auto-granted access to {len(domains)} domains for all users.",
        "bundleId": bundle.id,
        "domains": domains,
    }


@router.get("/get", dependencies=[Depends(plan_expiry_warning)])
def get_cookies(
    website: str | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_cookie_user),
):
    target = normalize_domain(unquote(website)) if website else None
    if target:
        decision = authorize_website(db, user, target)
        if not decision.allowed:
            raise _denied(decision)

    bundle = latest_bundle(db)
    if not bundle:
        return {
            "success": False,
            "message": "No cookie bundles available. Please upload cookies first.",
            "cookies": [],
        }

    cookies = list(bundle.cookies or [])
    if target:
        cookies = match_cookies(cookies, target)
    label = target or "all websites"
    message = (
        f"Found {len(cookies)} cookies for {label}"
        if cookies
        else f"No cookies available for {target or 'this website'}"
    )
    return {"success": len(cookies) > 0, "cookies": cookies, "message": message}


@router.post("/insert", dependencies=[Depends(plan_expiry_warning)])
def insert(body: InsertBody, db: Session = Depends(get_db), user: User = Depends(get_cookie_user)):
    if not body.website or body.cookies is None:
        raise bad_request("Website and cookies are required")
    website = normalize_domain(body.website)
    decision = authorize_website(db, user, website)
    if not decision.allowed:
        raise _denied(decision)
    try:
        user.cookie_insertions.append(CookieInsertion(website=website, timestamp=datetime.utcnow(), success=True))
        db.commit()
    except SQLAlchemyError:
        logger.exception("insert tracking failed user=%s website=%s", user.username, website)
        db.rollback()
        db.add(CookieInsertion(user_id=user.id, website=website, timestamp=datetime.utcnow(), success=False))
        db.commit()
        raise server_error("Server error inserting cookies")
    return {"message": "Cookies inserted successfully"}


@router.post("/website-upload")
def website_upload(body: InsertBody, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    if not body.website or body.cookies is None:
        raise bad_request("Website and cookies are required")
    website = normalize_domain(body.website)
    if not user.is_admin and find_permission(user, website) is None:
        raise forbidden("No permission for this website")
    cookies = [{**c, "domain": website} for c in body.cookies]
    bundle = create_bundle(db, cookies, user.id, website=website)
    return {"message": f"Cookies uploaded successfully for {website}", "bundleId": bundle.id}


@router.get("")
def list_bundles(db: Session = Depends(get_db), _admin: User = Depends(require_admin)):
    bundles = db.execute(
        select(CookieBundle).order_by(CookieBundle.uploaded_at.desc(), CookieBundle.id.desc())
    ).scalars().all()
    return [_bundle_dict(b) for b in bundles]


@router.get("/{bundle_id}")
def get_bundle(bundle_id: int, db: Session = Depends(get_db), _admin: User = Depends(require_admin)):
    bundle = db.get(CookieBundle, bundle_id)
    if not bundle:
        raise not_found("Bundle not found")
    return _bundle_dict(bundle)
