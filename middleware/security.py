import logging
import secrets
import time

from fastapi import Request
from fastapi.responses import RedirectResponse


logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "camera=(), microphone=(), geolocation=()",
}


def generate_request_id() -> str:
    return f"req_{int(time.time() * 1000)}_{secrets.token_hex(5)[:9]}"


async def request_id_middleware(request: Request, call_next):
    request_id = request.headers.get("x-request-id") or generate_request_id()
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


async def security_headers_middleware(request: Request, call_next):
    settings = request.app.state.settings
    forwarded_proto = request.headers.get("x-forwarded-proto")

    if settings.is_production and settings.force_https and forwarded_proto != "https":
        host = request.headers.get("host", request.url.netloc)
        target = f"https://{host}{request.url.path}"
        if request.url.query:
            target = f"{target}?{request.url.query}"
        return RedirectResponse(target, status_code=301)

    if settings.is_production and forwarded_proto == "http":
        logger.warning(
            "HTTP request detected in production: path=%s x-real-ip=%s x-forwarded-for=%s",
            request.url.path,
            request.headers.get("x-real-ip"),
            request.headers.get("x-forwarded-for"),
        )

    response = await call_next(request)
    for header, value in SECURITY_HEADERS.items():
        response.headers[header] = value
    if "server" in response.headers:
        del response.headers["server"]
    return response
