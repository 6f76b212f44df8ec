"""In-memory browser primitives for extension tests."""
from apps.extension.browser import BrowserError


class FakeStore:
    def __init__(self, fail=(), reject=()):
        self.cookies = {}
        self.fail = set(fail)
        self.reject = set(reject)
        self.calls = []

    def set(self, details):
        self.calls.append(details)
        if details["name"] in self.fail:
            raise BrowserError("store failure")
        if details["name"] in self.reject:
            return None
        self.cookies[details["name"]] = dict(details)
        return dict(details)

    def get(self, url, name):
        return self.cookies.get(name)

    def get_all(self, domain):
        return [c for c in self.cookies.values() if c.get("domain") == domain]

    def remove(self, url, name):
        self.cookies.pop(name, None)


class FakePermissions:
    def __init__(self, grant=True):
        self.grant = grant
        self.requested = []

    def contains(self, origin):
        return False

    def request(self, origin):
        self.requested.append(origin)
        return self.grant


class FakeTabs:
    def __init__(self):
        self.reloaded = []

    def reload(self, tab_id):
        self.reloaded.append(tab_id)

    def send_message(self, tab_id, message):
        return {"tab": tab_id, "echo": message}
