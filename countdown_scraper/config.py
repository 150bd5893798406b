"""Configuration management from environment variables."""
import os
from datetime import timezone, tzinfo
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
from dotenv import load_dotenv

# Load .env file
load_dotenv()

# Relative paths resolve against the working directory the scraper runs from
DATA_DIR = Path(os.getenv("DATA_DIR", "data"))

STORAGE_BACKENDS = ("sqlite", "supabase", "frappe")


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Application configuration."""

    # Countdown
    SOURCE_SITE: str = os.getenv("SOURCE_SITE", "countdown.co.nz")
    URLS_FILE: Path = Path(os.getenv("URLS_FILE", "urls.txt"))

    # Scraper
    SECONDS_DELAY_BETWEEN_PAGES: float = float(os.getenv("SECONDS_DELAY_BETWEEN_PAGES", "11"))
    PAGE_TIMEOUT: int = int(os.getenv("PAGE_TIMEOUT", "30"))
    BROWSER: str = os.getenv("BROWSER", "webkit")
    HEADLESS: bool = _env_bool("HEADLESS", "true")
    TIMEOUT: int = int(os.getenv("TIMEOUT", "20"))

    # Storage
    STORAGE_BACKEND: str = os.getenv("STORAGE_BACKEND", "sqlite")
    SQLITE_PATH: Path = Path(os.getenv("SQLITE_PATH", str(DATA_DIR / "products.db")))

    # Supabase
    SUPABASE_URL: str | None = os.getenv("SUPABASE_URL")
    SUPABASE_SERVICE_ROLE: str | None = os.getenv("SUPABASE_SERVICE_ROLE")
    SUPABASE_TABLE: str = os.getenv("SUPABASE_TABLE", "products")

    # Frappe
    FRAPPE_URL: str | None = os.getenv("FRAPPE_URL")
    FRAPPE_API_KEY: str | None = os.getenv("FRAPPE_API_KEY")
    FRAPPE_API_SECRET: str | None = os.getenv("FRAPPE_API_SECRET")

    # Images
    UPLOAD_IMAGES: bool = _env_bool("UPLOAD_IMAGES", "false")
    IMAGE_MIRROR_URL: str | None = os.getenv("IMAGE_MIRROR_URL")
    CDN_CHECK_URL_BASE: str = os.getenv("CDN_CHECK_URL_BASE", "")

    # Reconciliation
    VALID_CATEGORIES: str | None = os.getenv("VALID_CATEGORIES")
    DAY_TIMEZONE: str = os.getenv("DAY_TIMEZONE", "UTC")

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    @classmethod
    def valid_categories(cls) -> set[str] | None:
        """Explicitly configured category tags, or None to derive them from the targets."""
        if not cls.VALID_CATEGORIES:
            return None
        return {c.strip() for c in cls.VALID_CATEGORIES.split(",") if c.strip()}

    @classmethod
    def day_timezone(cls) -> tzinfo:
        if cls.DAY_TIMEZONE.upper() == "UTC":
            return timezone.utc
        return ZoneInfo(cls.DAY_TIMEZONE)

    @classmethod
    def validate(cls, require_storage: bool = True) -> None:
        """Validate required configuration."""
        errors = []
        if require_storage:
            if cls.STORAGE_BACKEND not in STORAGE_BACKENDS:
                errors.append(f"STORAGE_BACKEND must be one of {', '.join(STORAGE_BACKENDS)}")
            elif cls.STORAGE_BACKEND == "supabase":
                if not cls.SUPABASE_URL:
                    errors.append("SUPABASE_URL is required")
                if not cls.SUPABASE_SERVICE_ROLE:
                    errors.append("SUPABASE_SERVICE_ROLE is required")
            elif cls.STORAGE_BACKEND == "frappe":
                if not cls.FRAPPE_URL:
                    errors.append("FRAPPE_URL is required")
                if not cls.FRAPPE_API_KEY or not cls.FRAPPE_API_SECRET:
                    errors.append("FRAPPE_API_KEY and FRAPPE_API_SECRET are required")
            if cls.UPLOAD_IMAGES and not (cls.IMAGE_MIRROR_URL and "http" in cls.IMAGE_MIRROR_URL):
                errors.append(
                    "IMAGE_MIRROR_URL is invalid, expected "
                    "https://<func-app>.azurewebsites.net/api/ImageToS3?code=<auth-code>"
                )
        if cls.PAGE_TIMEOUT <= 0:
            errors.append("PAGE_TIMEOUT must be positive")
        if cls.SECONDS_DELAY_BETWEEN_PAGES < 0:
            errors.append("SECONDS_DELAY_BETWEEN_PAGES must not be negative")
        try:
            cls.day_timezone()
        except (ZoneInfoNotFoundError, ValueError):
            errors.append(f"DAY_TIMEZONE {cls.DAY_TIMEZONE!r} is not a known timezone")
        if errors:
            raise ValueError(f"Configuration errors: {', '.join(errors)}")


config = Config()
