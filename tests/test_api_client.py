"""Backend HTTP client used by the extension."""
import json

import httpx
import pytest

from apps.extension.api_client import BackendClient, BackendError, PlanExpiredError


def _client(handler, token=None):
    return BackendClient("http://backend.test", token=token, transport=httpx.MockTransport(handler))


def test_login_stores_token():
    def handler(request):
        assert request.url.path == "/api/auth/login"
        assert json.loads(request.content) == {"username": "alice", "password": "secret1"}
        return httpx.Response(200, json={"token": "jwt", "user": {"username": "alice"}})

    client = _client(handler)
    client.login("alice", "secret1")
    assert client.token == "jwt"


def test_bearer_header_is_sent():
    seen = {}

    def handler(request):
        seen["auth"] = request.headers.get("authorization")
        return httpx.Response(200, json={"status": "active"})

    assert _client(handler, token="jwt").check_plan() == {"status": "active"}
    assert seen["auth"] == "Bearer jwt"


def test_check_plan_fails_closed_on_expired_plan():
    def handler(request):
        return httpx.Response(403, json={"message": "expired", "reason": "plan_expired"})

    client = _client(handler, token="jwt")
    with pytest.raises(PlanExpiredError) as exc:
        client.check_plan()
    assert exc.value.reason == "plan_expired"
    assert client.token is None


def test_check_plan_fails_open_on_network_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    assert _client(handler, token="jwt").check_plan() == {"status": "unknown", "offline": True}


@pytest.mark.parametrize("status", [500, 401])
def test_check_plan_fails_open_on_http_error(status):
    def handler(request):
        return httpx.Response(status, json={"message": "Server error checking plan status"})

    client = _client(handler, token="jwt")
    assert client.check_plan() == {"status": "unknown", "offline": False}
    assert client.token == "jwt"



def test_other_forbidden_is_plain_backend_error():
    def handler(request):
        return httpx.Response(403, json={"message": "nope", "reason": "website_access_expired"})

    client = _client(handler, token="jwt")
    with pytest.raises(BackendError) as exc:
        client.fetch_cookies("chatgpt.com")
    assert not isinstance(exc.value, PlanExpiredError)
    assert exc.value.status_code == 403
    assert client.token == "jwt"


def test_fetch_cookies_and_permissions():
    def handler(request):
        if request.url.path == "/api/website-cookies/get/chatgpt.com":
            return httpx.Response(200, json={"success": True, "cookies": [{"name": "a"}]})
        if request.url.path == "/api/users/website-permissions":
            return httpx.Response(200, json=[{"website": "chatgpt.com"}])
        return httpx.Response(404, json={"message": "not found"})

    client = _client(handler, token="jwt")
    assert client.fetch_cookies("chatgpt.com") == [{"name": "a"}]
    assert client.website_permissions() == [{"website": "chatgpt.com"}]


def test_logout_clears_token_even_on_error():
    def handler(request):
        return httpx.Response(401, json={"message": "Session invalidated. Logged in elsewhere."})

    client = _client(handler, token="jwt")
    with pytest.raises(BackendError):
        client.logout("device-1")
    assert client.token is None
