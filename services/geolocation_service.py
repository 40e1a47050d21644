import ipaddress
import logging

import httpx

from core.config import Settings


logger = logging.getLogger(__name__)

UNKNOWN_LOCATION = "N/A"


def is_public_ip(ip: str) -> bool:
    try:
        address = ipaddress.ip_address(ip)
    except ValueError:
        return False
    return address.is_global


async def lookup_location(
    settings: Settings,
    ip: str,
    transport: httpx.AsyncBaseTransport | None = None,
) -> str:
    """Returns "City, Region, Country" for a public IP, or "N/A"."""
    if not is_public_ip(ip):
        return UNKNOWN_LOCATION

    url = f"{settings.geolocation_url.rstrip('/')}/{ip}"
    try:
        async with httpx.AsyncClient(timeout=3, transport=transport) as client:
            response = await client.get(url, params={"fields": "status,country,regionName,city"})
        response.raise_for_status()
        payload = response.json()
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("Geolocation lookup failed for %s: %s", ip, exc)
        return UNKNOWN_LOCATION

    if payload.get("status") != "success":
        return UNKNOWN_LOCATION
    parts = [payload.get("city"), payload.get("regionName"), payload.get("country")]
    location = ", ".join(part for part in parts if part)
    return location or UNKNOWN_LOCATION
