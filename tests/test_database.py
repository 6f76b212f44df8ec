"""Database URL and engine selection."""
import pytest
from sqlalchemy import text

from apps.backend.config import get_settings
from apps.backend.database import Base, get_database_url, get_engine
from apps.backend.models import WebsiteCookieBundle  # noqa: F401


@pytest.fixture
def settings_env(monkeypatch):
    get_settings.cache_clear()
    yield monkeypatch
    get_settings.cache_clear()


def test_url_is_assembled_from_postgres_parts(settings_env):
    settings_env.delenv("DATABASE_URL", raising=False)
    settings_env.setenv("POSTGRES_HOST", "db")
    settings_env.setenv("POSTGRES_PORT", "5432")
    settings_env.setenv("POSTGRES_DB", "vault")
    settings_env.setenv("POSTGRES_USER", "svc")
    settings_env.setenv("POSTGRES_PASSWORD", "pw")
    assert get_database_url() == "postgresql://svc:pw@db:5432/vault"


def test_sqlite_database_url_builds_usable_engine(settings_env, tmp_path):
    settings_env.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'vault.db'}")
    engine = get_engine()
    Base.metadata.create_all(engine)
    with engine.connect() as conn:
        assert conn.execute(text("SELECT count(*) FROM website_cookie_bundles")).scalar() == 0
    engine.dispose()
