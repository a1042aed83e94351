"""Application configuration helpers."""

from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    """Centralized configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=str(BASE_DIR / ".env"), env_file_encoding="utf-8")

    app_name: str = "Jersey Orders"
    environment: str = "dev"
    log_level: str = "INFO"

    # Database connection pieces (fallback to local sqlite for dev/testing)
    database_url: Optional[str] = None
    pg_host: str = "localhost"
    pg_port: int = 5432
    pg_db: str = "jersey_orders"
    pg_user: str = "jersey"
    pg_password: str = "secret"
    pg_sslmode: str = "prefer"

    # Readiness poll run before the app serves anything
    startup_timeout_seconds: float = 10.0
    startup_poll_interval: float = 0.1

    # API behavior
    allow_origins: List[str] = ["http://localhost:5173", "http://localhost:3000", "http://127.0.0.1:8080"]
    public_base_url: Optional[str] = None
    admin_username: str = "admin"
    admin_password: str = "change-me"

    # Mail relay
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_use_tls: bool = True
    smtp_from_name: str = "Jersey Orders Admin Panel"
    mail_admin_cc: Optional[str] = None
    mail_relay_url: str = "http://localhost:8000/sendmail"

    # Customer-side jersey buffer
    draft_store_dir: Path = Path.home() / ".jersey_orders" / "drafts"

    low_stock_threshold: int = 10

    def get_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        return (
            f"postgresql+psycopg2://{self.pg_user}:{self.pg_password}"
            f"@{self.pg_host}:{self.pg_port}/{self.pg_db}?sslmode={self.pg_sslmode}"
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
