"""Message dispatch for the extension background runtime."""
from __future__ import annotations

import logging
from typing import Any

from apps.extension.api_client import BackendClient, BackendError, PlanExpiredError
from apps.extension.applier import CookieApplier, CookieApplyError
from apps.extension.browser import BrowserError, TabController

logger = logging.getLogger(__name__)


class ExtensionRuntime:
    def __init__(
        self,
        applier: CookieApplier,
        tabs: TabController | None = None,
        backend: BackendClient | None = None,
    ):
        self.applier = applier
        self.tabs = tabs
        self.backend = backend
        self._handlers = {
            "SET_COOKIES": self._set_cookies,
            "TEST_COOKIE": self._test_cookie,
            "CLEAR_EXTENSION_COOKIES": self._clear_cookies,
            "RELOAD_TAB": self._reload_tab,
            "COMMUNICATE_WITH_TAB": self._communicate_with_tab,
        }

    def handle(self, message: dict[str, Any]) -> dict[str, Any]:
        kind = message.get("type")
        logger.debug("message received: %s", kind)
        handler = self._handlers.get(kind)
        if handler is None:
            return {"success": False, "error": f"Unknown message type: {kind}"}
        try:
            return handler(message)
        except PlanExpiredError as e:
            return {"success": False, "error": e.message, "reason": e.reason, "forceLogout": True}
        except (CookieApplyError, BrowserError, BackendError) as e:
            logger.warning("%s failed: %s", kind, e)
            return {"success": False, "error": str(e)}

    def _set_cookies(self, message: dict[str, Any]) -> dict[str, Any]:
        if self.backend is not None and self.backend.token:
            self.backend.check_plan()
        result = self.applier.apply_all(message.get("cookies") or [], message.get("website"))
        return result.to_dict()

    def _test_cookie(self, message: dict[str, Any]) -> dict[str, Any]:
        self.applier.test_cookie(message.get("cookie") or {})
        return {"success": True, "message": "Cookie test completed"}

    def _clear_cookies(self, message: dict[str, Any]) -> dict[str, Any]:
        return self.applier.clear_extension_cookies()

    def _require_tabs(self) -> TabController:
        if self.tabs is None:
            raise BrowserError("Tab control unavailable")
        return self.tabs

    def _reload_tab(self, message: dict[str, Any]) -> dict[str, Any]:
        self._require_tabs().reload(message.get("tabId"))
        return {"success": True, "message": "Tab reloaded successfully"}

    def _communicate_with_tab(self, message: dict[str, Any]) -> dict[str, Any]:
        response = self._require_tabs().send_message(message.get("tabId"), message.get("message") or {})
        return {"success": True, "response": response}
