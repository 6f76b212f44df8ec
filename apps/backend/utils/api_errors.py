"""API error type and the `{message, reason, ...}` body clients branch on."""
from __future__ import annotations

from typing import Any

# 403 reason codes
REASON_PLAN_EXPIRED = "plan_expired"
REASON_WEBSITE_ACCESS_EXPIRED = "website_access_expired"
REASON_ACCOUNT_DEACTIVATED = "account_deactivated"
REASON_NO_ACTIVE_PERMISSIONS = "no_active_permissions"


def error_body(message: str, *, reason: str | None = None, **extra: Any) -> dict:
    out: dict[str, Any] = {"message": message}
    if reason:
        out["reason"] = reason
    out.update(extra)
    return out


class ApiError(Exception):
    def __init__(self, status_code: int, message: str, *, reason: str | None = None, **extra: Any):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.reason = reason
        self.extra = extra

    def body(self) -> dict:
        return error_body(self.message, reason=self.reason, **self.extra)


def bad_request(message: str, **extra: Any) -> ApiError:
    return ApiError(400, message, **extra)


def not_found(message: str = "User not found", **extra: Any) -> ApiError:
    return ApiError(404, message, **extra)


def forbidden(message: str, *, reason: str | None = None, **extra: Any) -> ApiError:
    return ApiError(403, message, reason=reason, **extra)


def server_error(message: str = "Server error", **extra: Any) -> ApiError:
    return ApiError(500, message, **extra)
