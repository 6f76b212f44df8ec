"""Applying cookie records to the browser cookie store."""
import pytest

from apps.extension.applier import (
    CookieApplier,
    CookieApplyError,
    FALLBACK_EXPIRY_SECONDS,
    build_cookie_details,
    resolve_expiration,
)
from tests.browser_fakes import FakePermissions, FakeStore


def test_host_prefixed_cookie_has_no_domain_and_root_path():
    details = build_cookie_details(
        {"name": "__Host-next-auth.csrf-token", "value": "v", "domain": ".chatgpt.com", "path": "/api"}
    )
    assert details["domain"] is None
    assert details["path"] == "/"
    assert details["url"] == "https://chatgpt.com"


def test_host_prefixed_cookie_ignores_target_domain():
    details = build_cookie_details({"name": "__Host-x", "value": "v"}, "example.com")
    assert details["domain"] is None
    assert details["url"] == "https://example.com"


def test_leading_dot_is_stripped_and_url_follows_domain():
    details = build_cookie_details({"name": "sid", "value": "v", "domain": ".openai.com"})
    assert details["domain"] == "openai.com"
    assert details["url"] == "https://openai.com"
    assert details["path"] == "/"


def test_target_website_overrides_domain():
    details = build_cookie_details({"name": "sid", "value": "v", "domain": ".chatgpt.com"}, "example.com")
    assert details["domain"] == "example.com"
    assert details["url"] == "https://example.com"


def test_flag_defaults():
    details = build_cookie_details({"name": "sid", "value": "v", "domain": "example.com"})
    assert details["secure"] is True
    assert details["httpOnly"] is True
    assert details["sameSite"] == "Lax"
    assert "expirationDate" not in details

    explicit = build_cookie_details(
        {"name": "sid", "value": "v", "secure": False, "httpOnly": False, "sameSite": "None"}
    )
    assert explicit["secure"] is False
    assert explicit["httpOnly"] is False
    assert explicit["sameSite"] == "None"


def test_resolve_expiration():
    assert resolve_expiration({"expiry": 1893456000}) == 1893456000
    assert resolve_expiration({"expiry": "2030-01-01T00:00:00Z"}) == 1893456000.0
    assert resolve_expiration({"expiry": "not a date"}, now=1000.0) == 1000.0 + FALLBACK_EXPIRY_SECONDS
    assert resolve_expiration({"expirationDate": 123}) == 123
    assert resolve_expiration({"name": "session-only"}) is None


def test_batch_with_one_failure_continues():
    store = FakeStore(fail={"b"})
    applier = CookieApplier(store, FakePermissions())
    cookies = [
        {"name": "a", "value": "1", "domain": ".chatgpt.com"},
        {"name": "b", "value": "2", "domain": ".chatgpt.com"},
        {"name": "c", "value": "3", "domain": ".chatgpt.com"},
    ]

    result = applier.apply_all(cookies).to_dict()

    assert result["successCount"] == 2
    assert result["errorCount"] == 1
    assert result["success"] is False
    assert len(result["errors"]) == 1
    assert "b" in result["errors"][0]
    assert result["message"] == "2 cookies succeeded, 1 failed"
    assert sorted(store.cookies) == ["a", "c"]


def test_all_succeeded_message():
    applier = CookieApplier(FakeStore(), FakePermissions())
    result = applier.apply_all([{"name": "a", "value": "1", "domain": "chatgpt.com"}])
    assert result.success
    assert result.message == "All 1 cookies set successfully"


def test_host_permission_requested_once_per_domain():
    permissions = FakePermissions()
    applier = CookieApplier(FakeStore(), permissions)
    applier.apply_all([
        {"name": "a", "value": "1", "domain": ".chatgpt.com"},
        {"name": "b", "value": "2", "domain": "chatgpt.com"},
    ])
    assert permissions.requested == ["https://*.chatgpt.com/*"]


def test_refused_host_permission_fails_each_cookie():
    store = FakeStore()
    applier = CookieApplier(store, FakePermissions(grant=False))
    result = applier.apply_all(
        [{"name": "a", "value": "1"}, {"name": "b", "value": "2"}],
        target_website="example.com",
    )
    assert result.error_count == 2
    assert all("Host permission denied for example.com" in e for e in result.errors)
    assert store.calls == []


def test_rejected_cookie_raises():
    applier = CookieApplier(FakeStore(reject={"a"}), FakePermissions())
    with pytest.raises(CookieApplyError) as exc:
        applier.apply({"name": "a", "value": "1", "domain": "chatgpt.com"})
    assert exc.value.cookie_name == "a"


def test_test_cookie_reads_back():
    applier = CookieApplier(FakeStore(), FakePermissions())
    out = applier.test_cookie({"name": "a", "value": "1", "domain": "chatgpt.com"})
    assert out == {"success": True, "message": "Cookie a set and verified"}


def test_test_cookie_not_found():
    applier = CookieApplier(FakeStore(reject={"a"}), FakePermissions())
    with pytest.raises(CookieApplyError):
        applier.test_cookie({"name": "a", "value": "1", "domain": "chatgpt.com"})


def test_clear_extension_cookies():
    store = FakeStore()
    store.cookies = {
        "a": {"name": "a", "domain": "chatgpt.com", "path": "/"},
        "b": {"name": "b", "domain": ".openai.com", "path": "/"},
        "c": {"name": "c", "domain": "example.com", "path": "/"},
    }
    out = CookieApplier(store, FakePermissions()).clear_extension_cookies()
    assert out["success"] is True
    assert out["totalCleared"] == 2
    assert list(store.cookies) == ["c"]


def test_epoch_zero_expiry_is_kept():
    details = build_cookie_details({"name": "old", "value": "1", "domain": ".chatgpt.com", "expiry": 0})
    assert details["expirationDate"] == 0
