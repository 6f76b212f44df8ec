"""Application configuration."""
from functools import lru_cache
from pydantic_settings import BaseSettings
from pydantic import ConfigDict


class Settings(BaseSettings):
    model_config = ConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")
    app_env: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    database_url: str | None = None
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_db: str = "cookie_vault"
    postgres_user: str = "cookie_vault"
    postgres_password: str = "changeme"

    jwt_secret: str = "your-jwt-secret-min-32-chars"
    jwt_algorithm: str = "HS256"
    jwt_expire_days: int = 7

    # empty password disables the bootstrap admin
    admin_default_username: str = "admin"
    admin_default_password: str = ""

    default_email_domain: str = "swami-tools.local"
    plan_warning_days: int = 7
    bundle_history_limit: int = 5


@lru_cache
def get_settings() -> Settings:
    return Settings()
