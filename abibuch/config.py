"""All settings, loaded from the .env file."""
from pydantic_settings import BaseSettings
from functools import lru_cache

APP_VERSION = "1.4.0"


class Settings(BaseSettings):
    # App
    app_url: str = "http://localhost:8000"
    app_env: str = "development"
    secret_key: str = "change-me"
    database_url: str = "sqlite:///./abibuch.db"
    session_max_age_seconds: int = 14 * 24 * 3600

    # School
    school_email_domain: str = "@lessing-ffm.net"

    # Uploads
    upload_dir: str = "uploads"
    max_image_size_mb: int = 5

    # Admin attribution
    admin_alias_timeout_minutes: int = 120

    # Rate limiting
    rate_limit_enabled: bool = True
    rate_limit_default: str = "300/minute"
    rate_limit_login: str = "10/minute"

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    class Config:
        env_file = ".env"


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
