"""Hostname normalization shared by the API and the extension runtime."""
from __future__ import annotations

import re
from urllib.parse import urlsplit

_SCHEME_RE = re.compile(r"^https?://")
_WWW_RE = re.compile(r"^www\.")
_PATH_RE = re.compile(r"/.*$")


def _strip_url(value: str) -> str:
    """Host part of a URL-ish string; regex fallback when urlsplit gives nothing."""
    if "://" in value:
        try:
            host = urlsplit(value).hostname
        except ValueError:
            host = None
        if host:
            return host
        value = _SCHEME_RE.sub("", value)
    return _PATH_RE.sub("", value)


def normalize_domain(raw: str | None) -> str:
    """Lowercase hostname without scheme, path, leading dot or leading www.

    Never raises: malformed input degrades to best-effort string munging.
    """
    if not raw:
        return ""
    value = _strip_url(str(raw).strip().lower())
    value = value.rstrip("/")
    value = value.lstrip(".")
    return _WWW_RE.sub("", value)


def cookie_domain_key(raw: str | None) -> str:
    """Cookie domain for matching. Keeps the leading dot of parent-domain cookies."""
    if not raw:
        return ""
    value = _strip_url(str(raw).strip().lower())
    return value.rstrip("/")


def is_same_or_subdomain(website: str, domain: str) -> bool:
    return website == domain or website.endswith("." + domain)


def host_permission_origin(domain: str) -> str:
    """Origin pattern requested from the browser before touching a domain's cookies."""
    bare = re.sub(r"^\*\.", "", domain.lstrip("."))
    return f"https://*.{bare}/*"
