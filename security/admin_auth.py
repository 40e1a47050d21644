import hmac
import json
from typing import Optional

from fastapi import Header, Request

from core.errors import AuthenticationError, ConfigurationError


async def _key_from_body(request: Request) -> Optional[str]:
    if request.method not in {"POST", "PUT", "PATCH"}:
        return None
    body = await request.body()
    if not body:
        return None
    try:
        payload = json.loads(body)
    except ValueError:
        return None
    if isinstance(payload, dict) and isinstance(payload.get("adminKey"), str):
        return payload["adminKey"]
    return None


async def verify_admin_key(
    request: Request,
    x_admin_key: Optional[str] = Header(default=None),
) -> bool:
    """Accepts the admin key from the ``X-Admin-Key`` header or a JSON body ``adminKey``."""
    admin_key = request.app.state.settings.admin_key
    if not admin_key:
        raise ConfigurationError("Admin access not configured")

    provided = x_admin_key or await _key_from_body(request)
    if not provided or not hmac.compare_digest(provided.encode("utf-8"), admin_key.encode("utf-8")):
        raise AuthenticationError("Invalid admin key")
    return True
