import os
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel


PLACEHOLDER_GITHUB_TOKEN = "your_github_token_here"
PLACEHOLDER_GITHUB_USERNAME = "your_github_username"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


class Settings(BaseModel):
    app_env: str = "development"
    host: str = "0.0.0.0"
    port: int = 8000

    db_path: str = os.path.join("data", "portfolio.json")

    github_token: Optional[str] = None
    github_username: Optional[str] = None
    github_api_url: str = "https://api.github.com"
    github_request_delay: float = 0.1

    admin_key: Optional[str] = None
    webhook_secret: Optional[str] = None

    frontend_url: str = "http://localhost:3000"
    force_https: bool = False

    rate_limit_enabled: bool = True
    rate_limit_max_requests: int = 100
    rate_limit_window_ms: int = 15 * 60 * 1000
    contact_rate_limit: str = "3/hour"
    like_rate_limit: str = "10/hour"

    turnstile_secret_key: Optional[str] = None
    turnstile_verify_url: str = "https://challenges.cloudflare.com/turnstile/v0/siteverify"
    geolocation_url: str = "http://ip-api.com/json"

    next_site_url: Optional[str] = None
    revalidate_secret: Optional[str] = None

    log_dir: str = "logs"
    log_level: str = "INFO"
    enable_file_logging: bool = False

    scheduler_enabled: bool = True
    full_sync_cron: str = "0 */6 * * *"
    activity_sync_cron: str = "0 * * * *"

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @property
    def github_configured(self) -> bool:
        if not self.github_token or not self.github_username:
            return False
        if self.github_token == PLACEHOLDER_GITHUB_TOKEN:
            return False
        if self.github_username == PLACEHOLDER_GITHUB_USERNAME:
            return False
        return True

    @property
    def api_rate_limit(self) -> str:
        """slowapi limit string for the general API window, e.g. ``100/900 seconds``."""
        window_seconds = max(1, self.rate_limit_window_ms // 1000)
        return f"{self.rate_limit_max_requests}/{window_seconds} seconds"

    @property
    def file_logging(self) -> bool:
        return self.enable_file_logging or self.is_production

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        return cls(
            app_env=os.getenv("APP_ENV") or os.getenv("NODE_ENV") or "development",
            host=os.getenv("HOST", "0.0.0.0"),
            port=_env_int("PORT", 8000),
            db_path=os.getenv("DB_PATH") or os.path.join("data", "portfolio.json"),
            github_token=os.getenv("GITHUB_TOKEN"),
            github_username=os.getenv("GITHUB_USERNAME"),
            github_api_url=os.getenv("GITHUB_API_URL", "https://api.github.com"),
            github_request_delay=_env_float("GITHUB_REQUEST_DELAY", 0.1),
            admin_key=os.getenv("ADMIN_KEY"),
            webhook_secret=os.getenv("WEBHOOK_SECRET"),
            frontend_url=os.getenv("FRONTEND_URL", "http://localhost:3000"),
            force_https=_env_bool("FORCE_HTTPS", False),
            rate_limit_enabled=_env_bool("RATE_LIMIT_ENABLED", True),
            rate_limit_max_requests=_env_int("RATE_LIMIT_MAX_REQUESTS", 100),
            rate_limit_window_ms=_env_int("RATE_LIMIT_WINDOW_MS", 15 * 60 * 1000),
            turnstile_secret_key=os.getenv("TURNSTILE_SECRET_KEY"),
            geolocation_url=os.getenv("GEOLOCATION_URL", "http://ip-api.com/json"),
            next_site_url=os.getenv("NEXT_SITE_URL") or os.getenv("NEXT_PUBLIC_SITE_URL"),
            revalidate_secret=os.getenv("REVALIDATE_SECRET"),
            log_dir=os.getenv("LOG_DIR", "logs"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            enable_file_logging=_env_bool("ENABLE_FILE_LOGGING", False),
            scheduler_enabled=_env_bool("SCHEDULER_ENABLED", True),
            full_sync_cron=os.getenv("FULL_SYNC_CRON", "0 */6 * * *"),
            activity_sync_cron=os.getenv("ACTIVITY_SYNC_CRON", "0 * * * *"),
        )


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
