"""Browser primitives the extension runtime drives.

Concrete implementations wrap the browser's cookie, permission and tab APIs;
tests pass in-memory fakes.
"""
from typing import Any, Protocol


class BrowserError(Exception):
    """A browser primitive refused or failed the call."""


class CookieStore(Protocol):
    def set(self, details: dict[str, Any]) -> dict[str, Any] | None: ...

    def get(self, url: str, name: str) -> dict[str, Any] | None: ...

    def get_all(self, domain: str) -> list[dict[str, Any]]: ...

    def remove(self, url: str, name: str) -> None: ...


class HostPermissions(Protocol):
    def contains(self, origin: str) -> bool: ...

    def request(self, origin: str) -> bool: ...


class TabController(Protocol):
    def reload(self, tab_id: int) -> None: ...

    def send_message(self, tab_id: int, message: dict[str, Any]) -> Any: ...
