"""Apply matched cookie records to the browser cookie store."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable

from apps.backend.utils.domains import host_permission_origin
from apps.extension.browser import BrowserError, CookieStore, HostPermissions

logger = logging.getLogger(__name__)

HOST_PREFIX = "__Host-"
DEFAULT_URL = "https://chatgpt.com"
FALLBACK_EXPIRY_SECONDS = 86400 * 365

EXTENSION_COOKIE_DOMAINS = ("chatgpt.com", ".chatgpt.com", "openai.com", ".openai.com", "api.openai.com")


class CookieApplyError(Exception):
    def __init__(self, cookie_name: str, message: str):
        super().__init__(f"{cookie_name}: {message}")
        self.cookie_name = cookie_name


@dataclass
class BatchResult:
    success_count: int = 0
    error_count: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.error_count == 0

    @property
    def message(self) -> str:
        if self.success:
            return f"All {self.success_count} cookies set successfully"
        return f"{self.success_count} cookies succeeded, {self.error_count} failed"

    def to_dict(self) -> dict[str, Any]:
        return {
            "successCount": self.success_count,
            "errorCount": self.error_count,
            "errors": list(self.errors),
            "success": self.success,
            "message": self.message,
        }


def _parse_iso_epoch(value: str) -> float | None:
    raw = value.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(raw)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.timestamp()


def resolve_expiration(cookie: dict[str, Any], now: float | None = None) -> float | None:
    """Epoch seconds for the cookie, or None for a session cookie."""
    expiry = cookie.get("expiry")
    if expiry is not None and expiry != "":
        if isinstance(expiry, (int, float)) and not isinstance(expiry, bool):
            return expiry
        parsed = _parse_iso_epoch(str(expiry))
        if parsed is not None:
            return parsed
        return (now if now is not None else time.time()) + FALLBACK_EXPIRY_SECONDS
    expiration = cookie.get("expirationDate")
    if isinstance(expiration, (int, float)) and not isinstance(expiration, bool):
        return expiration
    return None


def cookie_url(cookie: dict[str, Any], target_website: str | None = None) -> str:
    if target_website:
        return f"https://{target_website}"
    domain = cookie.get("domain") or ""
    if "openai.com" in domain:
        return "https://openai.com"
    if "chatgpt.com" in domain:
        return "https://chatgpt.com"
    return DEFAULT_URL


def build_cookie_details(cookie: dict[str, Any], target_website: str | None = None) -> dict[str, Any]:
    """Translate a stored cookie record into the browser set() call."""
    name = cookie.get("name") or ""
    if name.startswith(HOST_PREFIX):
        domain = None
        path = "/"
    else:
        domain = cookie.get("domain")
        if domain and domain.startswith("."):
            domain = domain[1:]
        if target_website:
            domain = target_website
        path = cookie.get("path") or "/"

    details: dict[str, Any] = {
        "url": cookie_url(cookie, target_website),
        "name": name,
        "value": cookie.get("value"),
        "domain": domain,
        "path": path,
        "secure": cookie.get("secure") is not False,
        "httpOnly": cookie.get("httpOnly") is not False,
        "sameSite": cookie.get("sameSite") or "Lax",
    }
    expiration = resolve_expiration(cookie)
    if expiration is not None:
        details["expirationDate"] = expiration
    return details


class CookieApplier:
    """Sets cookies one by one, requesting host permission per domain on first use."""

    def __init__(self, store: CookieStore, permissions: HostPermissions):
        self.store = store
        self.permissions = permissions
        self._granted: set[str] = set()

    def ensure_host_permission(self, domain: str) -> None:
        origin = host_permission_origin(domain)
        if origin in self._granted:
            return
        if self.permissions.contains(origin) or self.permissions.request(origin):
            self._granted.add(origin)
            return
        raise BrowserError(f"Host permission denied for {domain}")

    def apply(self, cookie: dict[str, Any], target_website: str | None = None) -> dict[str, Any]:
        name = cookie.get("name") or "<unnamed>"
        details = build_cookie_details(cookie, target_website)
        host = target_website or details["domain"] or cookie_url(cookie).removeprefix("https://")
        try:
            self.ensure_host_permission(host)
            result = self.store.set(details)
        except BrowserError as e:
            raise CookieApplyError(name, str(e)) from e
        if not result:
            raise CookieApplyError(name, "cookie store rejected the cookie")
        return result

    def apply_all(self, cookies: Iterable[dict[str, Any]], target_website: str | None = None) -> BatchResult:
        result = BatchResult()
        for cookie in cookies:
            try:
                self.apply(cookie, target_website)
            except CookieApplyError as e:
                logger.warning("cookie not set: %s", e)
                result.error_count += 1
                result.errors.append(f"Failed to set {e}")
            else:
                result.success_count += 1
        logger.info("cookie batch target=%s %s", target_website, result.message)
        return result

    def test_cookie(self, cookie: dict[str, Any]) -> dict[str, Any]:
        """Set one cookie and read it back."""
        details = build_cookie_details(cookie)
        name = details["name"]
        try:
            self.store.set(details)
            found = self.store.get(f"https://{details['domain'] or 'chatgpt.com'}{details['path']}", name)
        except BrowserError as e:
            raise CookieApplyError(name, str(e)) from e
        if not found:
            raise CookieApplyError(name, "cookie was not set properly")
        return {"success": True, "message": f"Cookie {name} set and verified"}

    def clear_extension_cookies(self) -> dict[str, Any]:
        cleared = 0
        errors: list[str] = []
        for domain in EXTENSION_COOKIE_DOMAINS:
            try:
                cookies = self.store.get_all(domain)
            except BrowserError as e:
                errors.append(f"Failed to get cookies for {domain}: {e}")
                continue
            for cookie in cookies:
                host = (cookie.get("domain") or "").lstrip(".")
                try:
                    self.store.remove(f"https://{host}{cookie.get('path') or '/'}", cookie.get("name"))
                    cleared += 1
                except BrowserError as e:
                    errors.append(f"Failed to remove {cookie.get('name')}: {e}")
        logger.info("cleared %s extension cookies", cleared)
        return {
            "success": True,
            "totalCleared": cleared,
            "errors": errors,
            "message": f"Cleared {cleared} extension-related cookies",
        }
