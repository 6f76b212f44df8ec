"""Hostname normalization."""
import pytest

from apps.backend.utils.domains import (
    cookie_domain_key,
    host_permission_origin,
    is_same_or_subdomain,
    normalize_domain,
)


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("https://www.ChatGPT.com/c/123", "chatgpt.com"),
        ("http://example.com:8080/path?q=1", "example.com"),
        (".chatgpt.com", "chatgpt.com"),
        ("chatgpt.com/", "chatgpt.com"),
        ("WWW.Example.COM", "example.com"),
        ("chat.chatgpt.com/backend-api", "chat.chatgpt.com"),
        ("  openai.com  ", "openai.com"),
    ],
)
def test_normalize_domain(raw, expected):
    assert normalize_domain(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "   "])
def test_normalize_domain_empty(raw):
    assert normalize_domain(raw) == ""


def test_normalize_domain_is_idempotent():
    for raw in ("https://www.chatgpt.com/", ".openai.com", "Sub.Example.org/x"):
        once = normalize_domain(raw)
        assert normalize_domain(once) == once


def test_cookie_domain_key_keeps_leading_dot():
    assert cookie_domain_key(".ChatGPT.com") == ".chatgpt.com"
    assert cookie_domain_key("https://auth.openai.com/") == "auth.openai.com"
    assert cookie_domain_key(None) == ""


def test_is_same_or_subdomain_respects_label_boundary():
    assert is_same_or_subdomain("chatgpt.com", "chatgpt.com")
    assert is_same_or_subdomain("chat.chatgpt.com", "chatgpt.com")
    assert not is_same_or_subdomain("notchatgpt.com", "chatgpt.com")


def test_host_permission_origin():
    assert host_permission_origin("example.com") == "https://*.example.com/*"
    assert host_permission_origin(".example.com") == "https://*.example.com/*"
    assert host_permission_origin("*.example.com") == "https://*.example.com/*"
