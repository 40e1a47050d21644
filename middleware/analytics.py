import logging
import time

from fastapi import Request

from repositories import analytics as analytics_repo
from services.analytics_service import generate_visitor_id, get_client_ip, should_exclude_path


logger = logging.getLogger(__name__)


async def analytics_middleware(request: Request, call_next):
    """
    Records one analytics hit per request once the response is ready.
    Health checks and static assets are skipped; recording errors are logged and swallowed
    so analytics can never fail a request.
    """
    path = request.url.path
    if should_exclude_path(path) or request.method == "OPTIONS":
        return await call_next(request)

    started = time.perf_counter()
    response = await call_next(request)
    response_time = round((time.perf_counter() - started) * 1000, 2)

    store = getattr(request.app.state, "datastore", None)
    if store is None:
        return response

    ip = get_client_ip(request)
    user_agent = request.headers.get("user-agent")
    try:
        await analytics_repo.record_request(
            store,
            visitor_id=generate_visitor_id(ip, user_agent),
            path=path,
            method=request.method,
            ip=ip,
            user_agent=user_agent,
            referrer=request.headers.get("referer"),
            status_code=response.status_code,
            response_time=response_time,
        )
    except Exception as exc:
        logger.error("Analytics logging error: %s", exc)
    return response
