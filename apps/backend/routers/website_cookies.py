"""Per-website cookie bundles with version history."""
import logging
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from apps.backend.auth import get_cookie_user, get_enhanced_user, plan_expiry_warning, require_admin
from apps.backend.deps import get_db
from apps.backend.models.user import AccessRequest, User
from apps.backend.services.access import (
    DEFAULT_ALLOWED_CATEGORIES,
    authorize_website,
    auto_grant,
    find_permission,
)
from apps.backend.services.cookie_bundles import (
    create_website_bundle,
    deactivate_bundle,
    filter_by_categories,
    get_active_bundle,
    list_active_bundles,
    prepare_website_cookies,
    replace_cookies_for_website,
)
from apps.backend.utils.api_errors import bad_request, forbidden, not_found
from apps.backend.utils.dates import iso
from apps.backend.utils.domains import normalize_domain

logger = logging.getLogger(__name__)

router = APIRouter()


class WebsiteUploadBody(BaseModel):
    cookies: list[dict[str, Any]] | None = None
    replaceExisting: bool = True


class RequestAccessBody(BaseModel):
    reason: str | None = None


def _username(db: Session, user_id: int | None) -> str | None:
    if user_id is None:
        return None
    u = db.get(User, user_id)
    return u.username if u else None


@router.post("/upload/{website}")
def upload(
    website: str,
    body: WebsiteUploadBody,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    website = normalize_domain(website)
    if body.cookies is None:
        raise bad_request("Invalid cookies data")
    if not website:
        raise bad_request("Invalid website")
    logger.info("admin %s uploading %s cookies for %s", admin.username, len(body.cookies), website)

    cookies = prepare_website_cookies(website, body.cookies)
    if body.replaceExisting:
        bundle = replace_cookies_for_website(db, website, cookies, admin.id)
    else:
        bundle = create_website_bundle(db, website, cookies, admin.id)

    users = auto_grant(db, [website], allowed_categories=DEFAULT_ALLOWED_CATEGORIES)
    return {
        "success": True,
        "message": f"Cookies uploaded successfully for {website}",
        "bundleId": bundle.id,
        "website": website,
        "cookieCount": len(cookies),
        "version": bundle.version,
        "usersGrantedAccess": users,
    }


@router.get("/get/{website}", dependencies=[Depends(plan_expiry_warning)])
def get_website_cookies(
    website: str,
    includeMetadata: bool = False,
    db: Session = Depends(get_db),
    user: User = Depends(get_cookie_user),
):
    website = normalize_domain(website)
    decision = authorize_website(db, user, website)
    if not decision.allowed:
        if decision.reason == "website_access_expired":
            raise forbidden(
                f"Access to {website} has expired. Please request renewed access.",
                reason=decision.reason,
                success=False,
                cookies=[],
            )
        raise forbidden(
            f"Access denied to {website}. Please request access from an administrator.",
            success=False,
            cookies=[],
        )

    bundle = get_active_bundle(db, website, accessed_by=user.id)
    if not bundle:
        return {
            "success": False,
            "message": f"No cookies available for {website}. Please upload cookies first.",
            "cookies": [],
        }

    cookies = list(bundle.cookies or [])
    if not user.is_admin and decision.permission is not None:
        cookies = filter_by_categories(cookies, decision.permission.allowed_categories)

    out = {
        "success": len(cookies) > 0,
        "website": website,
        "cookies": cookies,
        "message": (
            f"Found {len(cookies)} cookies for {website}"
            if cookies
            else f"No accessible cookies for {website}"
        ),
    }
    if includeMetadata:
        out["metadata"] = {
            "bundleId": bundle.id,
            "version": bundle.version,
            "uploadedAt": iso(bundle.uploaded_at),
            "uploadedBy": _username(db, bundle.uploaded_by),
            "accessCount": bundle.access_count,
            "lastUpdated": iso(bundle.last_updated),
        }
    return out


@router.get("/websites")
def list_websites(db: Session = Depends(get_db), _admin: User = Depends(require_admin)):
    websites = [
        {
            "website": b.website,
            "cookieCount": len(b.cookies or []),
            "version": b.version,
            "uploadedAt": iso(b.uploaded_at),
            "uploadedBy": _username(db, b.uploaded_by),
            "lastUpdated": iso(b.last_updated),
            "accessCount": b.access_count,
            "lastAccessed": iso(b.last_accessed),
            "lastAccessedBy": _username(db, b.last_accessed_by),
        }
        for b in list_active_bundles(db)
    ]
    return {"success": True, "websites": websites, "totalWebsites": len(websites)}


@router.delete("/website/{website}")
def delete_website(website: str, db: Session = Depends(get_db), _admin: User = Depends(require_admin)):
    website = normalize_domain(website)
    if deactivate_bundle(db, website) is None:
        raise not_found(f"No active cookies found for {website}")
    logger.info("deactivated cookies for %s", website)
    return {"success": True, "message": f"Cookies for {website} have been deactivated", "website": website}


@router.post("/request-access/{website}", dependencies=[Depends(plan_expiry_warning)])
def request_access(
    website: str,
    body: RequestAccessBody | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_enhanced_user),
):
    website = normalize_domain(website)
    permission = find_permission(user, website)
    if permission is not None and permission.has_access:
        raise bad_request("You already have access to this website")
    if any(r.website == website and r.status == "pending" for r in user.access_requests):
        raise bad_request("Access request already pending for this website")
    user.access_requests.append(AccessRequest(
        website=website,
        reason=(body.reason if body and body.reason else "Cookie access needed"),
        requested_at=datetime.utcnow(),
        status="pending",
    ))
    db.commit()
    logger.info("access request for %s by %s", website, user.username)
    return {"success": True, "message": f"Access request submitted for {website}", "website": website}
