"""SQLAlchemy models."""
from apps.backend.models.user import User, LoginHistory, CookieInsertion, AccessRequest
from apps.backend.models.website_permission import WebsitePermission
from apps.backend.models.cookie_bundle import CookieBundle, WebsiteCookieBundle

__all__ = [
    "User",
    "LoginHistory",
    "CookieInsertion",
    "AccessRequest",
    "WebsitePermission",
    "CookieBundle",
    "WebsiteCookieBundle",
]
