"""Flat cookie bundles: upload, gated fetch, insertion tracking."""
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from apps.backend.main import app
from apps.backend.deps import get_db
from apps.backend.database import get_test_engine, Base
from apps.backend.models.website_permission import WebsitePermission
from apps.backend.auth import create_access_token
from apps.backend.services.users import create_user

client = TestClient(app)

COOKIES = [
    {"name": "a", "value": "1", "domain": ".chatgpt.com", "expiry": "2030-01-01T00:00:00Z"},
    {"name": "b", "value": "2", "domain": "example.com"},
]


@pytest.fixture
def test_db_session():
    engine = get_test_engine()
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def override_get_db(test_db_session):
    def _get_db():
        try:
            yield test_db_session
        finally:
            pass
    app.dependency_overrides[get_db] = _get_db
    yield
    app.dependency_overrides.pop(get_db, None)


@pytest.fixture
def accounts(test_db_session):
    admin = create_user(test_db_session, "root", "secret1", is_admin=True)
    user = create_user(test_db_session, "alice", "secret1")
    return admin, user


def _bearer(user) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user)}"}


def _upload(admin):
    return client.post("/api/cookies/upload", json={"cookies": COOKIES}, headers=_bearer(admin))


@pytest.mark.timeout(15)
def test_upload_auto_grants_domains(test_db_session, override_get_db, accounts):
    admin, user = accounts
    r = _upload(admin)
    assert r.status_code == 200
    assert r.json()["domains"] == ["chatgpt.com", "example.com"]

    test_db_session.refresh(user)
    assert sorted(p.website for p in user.website_permissions) == ["chatgpt.com", "example.com"]
    assert all(p.has_access for p in user.website_permissions)


@pytest.mark.timeout(15)
def test_upload_requires_admin(test_db_session, override_get_db, accounts):
    _, user = accounts
    r = client.post("/api/cookies/upload", json={"cookies": COOKIES}, headers=_bearer(user))
    assert r.status_code == 403


@pytest.mark.timeout(15)
def test_get_returns_matching_cookies_and_counts_access(test_db_session, override_get_db, accounts):
    admin, user = accounts
    _upload(admin)

    r = client.get("/api/cookies/get", params={"website": "https://www.chatgpt.com/"}, headers=_bearer(user))
    assert r.status_code == 200
    data = r.json()
    assert data["success"] is True
    assert [c["name"] for c in data["cookies"]] == ["a"]
    assert data["cookies"][0]["expirationDate"] == 1893456000.0

    test_db_session.refresh(user)
    permission = next(p for p in user.website_permissions if p.website == "chatgpt.com")
    assert permission.access_count == 1


@pytest.mark.timeout(15)
def test_get_denies_website_without_permission(test_db_session, override_get_db, accounts):
    admin, user = accounts
    _upload(admin)

    r = client.get("/api/cookies/get", params={"website": "other.org"}, headers=_bearer(user))
    assert r.status_code == 403
    body = r.json()
    assert body["success"] is False
    assert body["cookies"] == []


@pytest.mark.timeout(15)
def test_get_without_any_permission(test_db_session, override_get_db, accounts):
    _, user = accounts
    r = client.get("/api/cookies/get", params={"website": "chatgpt.com"}, headers=_bearer(user))
    assert r.status_code == 403
    assert r.json()["reason"] == "no_active_permissions"


@pytest.mark.timeout(15)
def test_get_with_expired_website_permission(test_db_session, override_get_db, accounts):
    _, user = accounts
    user.website_permissions.append(WebsitePermission(
        website="chatgpt.com",
        has_access=True,
        access_count=0,
        expires_at=datetime.utcnow() - timedelta(hours=1),
    ))
    test_db_session.commit()

    r = client.get("/api/cookies/get", params={"website": "chatgpt.com"}, headers=_bearer(user))
    assert r.status_code == 403
    assert r.json()["reason"] == "website_access_expired"


@pytest.mark.timeout(15)
def test_plan_expiry_warning_headers(test_db_session, override_get_db, accounts):
    admin, user = accounts
    _upload(admin)
    user.expiry_date = datetime.utcnow() + timedelta(days=3)
    test_db_session.commit()

    r = client.get("/api/cookies/get", params={"website": "chatgpt.com"}, headers=_bearer(user))
    assert r.status_code == 200
    assert r.headers["X-Plan-Expiry-Warning"] == "Your plan expires in 3 days"
    assert r.headers["X-Plan-Expiry-Date"].endswith("Z")


@pytest.mark.timeout(15)
def test_insert_records_insertion(test_db_session, override_get_db, accounts):
    admin, user = accounts
    _upload(admin)

    r = client.post(
        "/api/cookies/insert",
        json={"website": "chatgpt.com", "cookies": COOKIES[:1]},
        headers=_bearer(user),
    )
    assert r.status_code == 200
    test_db_session.refresh(user)
    assert [(i.website, i.success) for i in user.cookie_insertions] == [("chatgpt.com", True)]

    r = client.post("/api/cookies/insert", json={"website": "chatgpt.com"}, headers=_bearer(user))
    assert r.status_code == 400


@pytest.mark.timeout(15)
def test_list_and_get_bundles(test_db_session, override_get_db, accounts):
    admin, _ = accounts
    bundle_id = _upload(admin).json()["bundleId"]

    r = client.get("/api/cookies", headers=_bearer(admin))
    assert r.status_code == 200
    assert [b["id"] for b in r.json()] == [bundle_id]

    assert client.get(f"/api/cookies/{bundle_id}", headers=_bearer(admin)).status_code == 200
    r = client.get("/api/cookies/9999", headers=_bearer(admin))
    assert r.status_code == 404
    assert r.json()["message"] == "Bundle not found"
