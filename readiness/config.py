# readiness/config.py
import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

PACKAGE_DIR = Path(__file__).resolve().parent


class Settings(BaseSettings):
    """
    Application configuration for the AI Readiness site.
    Loads from environment variables and the .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── SITE IDENTITY ────────────────────────────────────────────────────────
    SITE_NAME: str = "Interon Blog"
    SITE_URL: str = "https://interon.co.za"
    SITE_DESCRIPTION: str = ""
    ORGANIZATION_NAME: str = "Interon"
    APP_VERSION: str = "1.0.0"

    # ── SECURITY & COOKIE SESSION ────────────────────────────────────────────
    SECRET_KEY: str = Field(
        default="change-me-readiness-site-secret-key-2026",
        min_length=32,
        description="Signs the admin session cookie",
    )
    JWT_ALGORITHM: str = "HS256"
    SESSION_COOKIE_NAME: str = "InteronBlog.Auth"
    SESSION_EXPIRE_DAYS: int = 7
    COOKIE_SECURE: bool = False
    DEFAULT_ADMIN_USERNAME: str = "admin"
    DEFAULT_ADMIN_PASSWORD: str = Field(default="change-me-admin", min_length=8)

    # ── STORAGE ──────────────────────────────────────────────────────────────
    DATA_DIR: Path = Path("data")
    STATIC_DIR: Path = PACKAGE_DIR / "static"
    UPLOAD_DIR: Optional[Path] = None
    BLOG_CACHE_SECONDS: int = 300

    # ── EXTERNAL SERVICES ────────────────────────────────────────────────────
    AUDIT_API_URL: str = "https://ai-auditor.interon.co.za"
    CRAWL_API_URL: str = "https://web-production-9ed67.up.railway.app"
    HTTP_TIMEOUT: float = 60.0

    # ── FLOWS ────────────────────────────────────────────────────────────────
    CRAWL_POLL_INTERVAL: float = 2.0
    # 0 keeps polling until a terminal status, like the hosted page always did
    CRAWL_MAX_POLL_SECONDS: float = 0.0
    CRAWL_SESSION_TTL_SECONDS: int = 3600
    AUDIT_RESULT_TTL_SECONDS: int = 3600
    SSE_HEARTBEAT_SECONDS: float = 10.0

    # ── PDF REPORT ───────────────────────────────────────────────────────────
    # brand images are deployment assets; unset means the report is drawn without them
    REPORT_LOGO_PATH: Optional[Path] = None
    REPORT_WHITE_LOGO_PATH: Optional[Path] = None
    CAPTURE_SCALE: float = 1.5
    CAPTURE_WINDOW_WIDTH: int = 1200
    CONTACT_EMAIL: str = "hello@interon.co.za"
    CONTACT_PHONE: str = "+27 83 326 9469"
    WHATSAPP_URL: str = "https://wa.me/27833269469"

    LOG_LEVEL: str = "INFO"

    @field_validator("SITE_URL", "AUDIT_API_URL", "CRAWL_API_URL")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def upload_dir(self) -> Path:
        return self.UPLOAD_DIR or (self.STATIC_DIR / "uploads" / "images")


# Cached singleton to avoid repeated instantiation
@lru_cache()
def get_settings() -> Settings:
    return Settings()
