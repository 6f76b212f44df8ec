"""HTTP client for the cookie backend, as used by the extension popup."""
from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:5000"
PLAN_EXPIRED = "plan_expired"


class BackendError(Exception):
    def __init__(self, status_code: int | None, message: str, payload: dict | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.payload = payload or {}

    @property
    def reason(self) -> str | None:
        return self.payload.get("reason")


class PlanExpiredError(BackendError):
    """Backend reported the plan as expired. The stored token must be dropped."""


class BackendClient:
    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        token: str | None = None,
        *,
        timeout: float = 15,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self._client = httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "BackendClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}

    def _request(self, method: str, path: str, **kwargs) -> dict[str, Any]:
        r = self._client.request(method, path, headers=self._headers(), **kwargs)
        try:
            payload = r.json() if r.content else {}
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {"data": payload}
        if r.status_code >= 400:
            message = payload.get("message") or f"HTTP {r.status_code}"
            if r.status_code == 403 and payload.get("reason") == PLAN_EXPIRED:
                self.token = None
                raise PlanExpiredError(r.status_code, message, payload)
            raise BackendError(r.status_code, message, payload)
        return payload

    def login(self, username: str, password: str) -> dict[str, Any]:
        payload = self._request("POST", "/api/auth/login", json={"username": username, "password": password})
        self.token = payload.get("token")
        return payload

    def check_plan(self) -> dict[str, Any]:
        """Fails closed only on an expired plan; any other failure lets the caller continue."""
        try:
            return self._request("POST", "/api/auth/check-plan")
        except PlanExpiredError:
            raise
        except BackendError as e:
            logger.warning("plan check failed with HTTP %s, continuing: %s", e.status_code, e.message)
            return {"status": "unknown", "offline": False}
        except httpx.TransportError as e:
            logger.warning("plan check unavailable, continuing: %s", e)
            return {"status": "unknown", "offline": True}

    def validate_session(self) -> dict[str, Any]:
        return self._request("POST", "/api/auth/validate-session")

    def fetch_cookies(self, website: str) -> list[dict[str, Any]]:
        payload = self._request("GET", f"/api/website-cookies/get/{quote(website, safe='')}")
        return list(payload.get("cookies") or [])

    def website_permissions(self) -> list[dict[str, Any]]:
        return list(self._request("GET", "/api/users/website-permissions").get("data") or [])

    def logout(self, device_id: str | None = None) -> None:
        try:
            self._request("POST", "/api/auth/logout", json={"deviceId": device_id})
        finally:
            self.token = None
