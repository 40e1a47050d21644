import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict, Mapping

from core.config import Settings


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOG_FILE_NAME = "portfolio-backend.log"

SENSITIVE_HEADERS = {"authorization", "cookie", "x-api-key", "x-admin-key", "x-auth-token"}
SENSITIVE_FIELDS = {"password", "token", "secret", "key", "auth", "adminkey", "turnstiletoken"}

_file_handler: RotatingFileHandler | None = None


def configure_logging(settings: Settings) -> None:
    global _file_handler

    root = logging.getLogger()
    root.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
    if not root.handlers:
        console = logging.StreamHandler()
        console.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(console)

    if not settings.file_logging or _file_handler is not None:
        return

    log_dir = Path(settings.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    _file_handler = RotatingFileHandler(
        log_dir / LOG_FILE_NAME,
        maxBytes=5 * 1024 * 1024,
        backupCount=3,
    )
    _file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(_file_handler)


def sanitize_headers(headers: Mapping[str, str]) -> Dict[str, str]:
    return {
        key: "[REDACTED]" if key.lower() in SENSITIVE_HEADERS else value
        for key, value in headers.items()
    }


def sanitize_body(body):
    if not isinstance(body, dict):
        return body
    return {
        key: "[REDACTED]" if key.lower() in SENSITIVE_FIELDS and value else value
        for key, value in body.items()
    }
