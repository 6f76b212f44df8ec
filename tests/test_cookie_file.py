"""Cookie export file parsing."""
import pytest

from apps.extension.cookie_file import CookieFileError, dump_cookies, load_cookies, parse_cookies


def test_parse_array():
    cookies = parse_cookies('[{"name": "a", "value": "1", "expiry": "2030-01-01T00:00:00Z"}]')
    assert cookies[0]["expiry"] == "2030-01-01T00:00:00Z"


def test_parse_wrapped_object():
    assert parse_cookies('{"cookies": [{"name": "a", "value": ""}]}') == [{"name": "a", "value": ""}]


@pytest.mark.parametrize("text", ["not json", '{"a": 1}', '[{"name": "a"}]', "[1]"])
def test_parse_rejects_bad_files(text):
    with pytest.raises(CookieFileError):
        parse_cookies(text)


def test_dump_and_load(tmp_path):
    path = tmp_path / "cookies.json"
    cookies = [{"name": "a", "value": "1", "domain": ".chatgpt.com", "expirationDate": 1893456000}]
    dump_cookies(cookies, path)
    assert load_cookies(path) == cookies
