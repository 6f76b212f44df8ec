"""Selecting stored cookies for a requested website."""
from apps.backend.services.cookie_matcher import cookie_matches, match_cookies

A = {"name": "a", "value": "1", "domain": "chatgpt.com"}
B = {"name": "b", "value": "2", "domain": ".chatgpt.com"}
C = {"name": "c", "value": "3", "domain": "notchatgpt.com"}
D = {"name": "d", "value": "4", "domain": ".openai.com"}


def _names(cookies):
    return [c["name"] for c in cookies]


def test_exact_and_parent_domain_match():
    assert _names(match_cookies([A, B, C, D], "chatgpt.com")) == ["a", "b"]


def test_subdomain_website_matches_parent_cookies():
    assert _names(match_cookies([A, B, C, D], "chat.chatgpt.com")) == ["a", "b"]


def test_website_is_normalized_before_matching():
    assert _names(match_cookies([A, B, C], "https://www.chatgpt.com/c/1")) == ["a", "b"]


def test_dotted_domain_does_not_match_unrelated_suffix():
    assert not cookie_matches(".chatgpt.com", "notchatgpt.com")
    assert match_cookies([B], "notchatgpt.com") == []


def test_bare_cookie_domain_does_not_match_parent_website():
    assert not cookie_matches("chat.chatgpt.com", "chatgpt.com")


def test_chatgpt_falls_back_to_openai_cookies():
    x = {"name": "x", "value": "1", "domain": ".openai.com"}
    y = {"name": "y", "value": "2", "domain": "auth.openai.com"}
    z = {"name": "z", "value": "3", "domain": "example.com"}
    assert _names(match_cookies([x, y, z], "chatgpt.com")) == ["x", "y"]


def test_fallback_only_when_regular_scan_is_empty():
    assert _names(match_cookies([A, D], "chatgpt.com")) == ["a"]


def test_no_fallback_for_other_sites():
    assert match_cookies([D], "example.org") == []


def test_empty_inputs():
    assert match_cookies([], "chatgpt.com") == []
    assert match_cookies(None, "chatgpt.com") == []
    assert not cookie_matches("", "chatgpt.com")
