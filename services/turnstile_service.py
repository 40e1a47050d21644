import logging
from typing import Optional

import httpx

from core.config import Settings


logger = logging.getLogger(__name__)


async def verify_turnstile_token(
    settings: Settings,
    token: str,
    ip: Optional[str] = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> bool:
    """Verifies a Cloudflare Turnstile token. Any failure counts as "not verified"."""
    if not settings.turnstile_secret_key:
        logger.error("Turnstile verification unavailable: TURNSTILE_SECRET_KEY is not set")
        return False

    form = {"secret": settings.turnstile_secret_key, "response": token}
    if ip and ip != "unknown":
        form["remoteip"] = ip

    try:
        async with httpx.AsyncClient(timeout=10, transport=transport) as client:
            response = await client.post(settings.turnstile_verify_url, data=form)
    except httpx.HTTPError:
        logger.exception("Turnstile verification error")
        return False

    if response.status_code != 200:
        logger.error("Turnstile verification request failed: %s", response.status_code)
        return False

    try:
        payload = response.json()
    except ValueError:
        logger.error("Turnstile verification returned a non-JSON body")
        return False

    if not payload.get("success"):
        logger.error("Turnstile verification failed: %s", payload.get("error-codes"))
        return False
    return True
