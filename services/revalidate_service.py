import logging
from typing import Iterable, Optional

import httpx

from core.config import Settings


logger = logging.getLogger(__name__)

# Frontend pages rendered from synced GitHub data.
GITHUB_PAGES = ("/", "/github", "/projects")


async def trigger_portfolio_revalidate(
    settings: Settings,
    paths: Iterable[str] = GITHUB_PAGES,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> bool:
    """Asks the Next.js frontend to rebuild the pages that show GitHub data."""
    if not settings.next_site_url or not settings.revalidate_secret:
        logger.warning("Next.js revalidate skipped: missing NEXT_SITE_URL/REVALIDATE_SECRET")
        return False

    paths = list(paths)
    endpoint = f"{settings.next_site_url.rstrip('/')}/api/revalidate"
    try:
        async with httpx.AsyncClient(timeout=5, transport=transport) as client:
            response = await client.post(
                endpoint,
                headers={"x-revalidate-token": settings.revalidate_secret},
                json={"paths": paths},
            )
    except httpx.HTTPError as exc:
        logger.error("Next.js revalidate error: %s", exc)
        return False

    if response.status_code != 200:
        logger.warning("Next.js revalidate failed: %s", response.status_code)
        return False
    logger.info("Next.js revalidated %s", ", ".join(paths))
    return True
