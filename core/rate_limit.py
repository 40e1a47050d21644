from typing import Optional

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded

from core.config import Settings, get_settings
from services.analytics_service import get_client_ip


# Settings of the application the limiter is bound to; set by configure_limiter.
_bound_settings: Optional[Settings] = None


def _rate_limit_key(request: Request) -> str:
    return get_client_ip(request)


def _limit_settings() -> Settings:
    return _bound_settings or get_settings()


def _api_limit() -> str:
    return _limit_settings().api_rate_limit


def contact_limit() -> str:
    return _limit_settings().contact_rate_limit


def like_limit() -> str:
    return _limit_settings().like_rate_limit


limiter = Limiter(key_func=_rate_limit_key, default_limits=[_api_limit])


def configure_limiter(settings: Settings) -> Limiter:
    """Points the shared limiter at an application's settings and clears its counters.

    Limit strings are looked up on every check, so the API, contact and like
    limits follow ``settings`` from here on.
    """
    global _bound_settings
    _bound_settings = settings
    limiter.enabled = settings.rate_limit_enabled
    limiter.reset()
    return limiter


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content={
            "status_code": 429,
            "data": None,
            "detail": "Too many requests from this IP, please try again later.",
            "code": "RATE_LIMIT_ERROR",
            "retryAfter": str(exc.detail),
            "requestId": getattr(request.state, "request_id", None),
        },
    )
