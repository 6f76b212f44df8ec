"""Cookie export files: a JSON array of cookie records."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any

REQUIRED_FIELDS = ("name", "value")


class CookieFileError(ValueError):
    pass


def parse_cookies(text: str) -> list[dict[str, Any]]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise CookieFileError(f"Invalid cookie file: {e.msg}") from e
    if isinstance(data, dict) and isinstance(data.get("cookies"), list):
        data = data["cookies"]
    if not isinstance(data, list):
        raise CookieFileError("Cookie file must contain a JSON array")
    out = []
    for i, item in enumerate(data):
        if not isinstance(item, dict) or any(f not in item for f in REQUIRED_FIELDS):
            raise CookieFileError(f"Cookie #{i} is missing name or value")
        out.append(item)
    return out


def load_cookies(path: str | Path) -> list[dict[str, Any]]:
    return parse_cookies(Path(path).read_text(encoding="utf-8"))


def dump_cookies(cookies: list[dict[str, Any]], path: str | Path) -> None:
    Path(path).write_text(json.dumps(cookies, ensure_ascii=False, indent=2), encoding="utf-8")
