from fastapi import APIRouter, Query, Request

from repositories import analytics as analytics_repo
from repositories.datastore import default_response_time_stats
from schemas.response_schema import APIResponse
from services.analytics_service import (
    browser_stats,
    get_analytics_summary,
    recent_daily_stats,
    recent_requests,
    top_pages,
    top_referrers,
)

router = APIRouter(prefix="/api/analytics", tags=["Analytics"])


async def _analytics(request: Request) -> dict:
    return await analytics_repo.get_analytics(request.app.state.datastore)


@router.get("/summary", response_model=APIResponse[dict])
async def summary(request: Request):
    """
    Totals, today's counters, the hourly histogram and the five most visited pages.
    """
    data = await get_analytics_summary(request.app.state.datastore)
    return APIResponse(status_code=200, data=data, detail="analytics summary fetched")


@router.get("/visits", response_model=APIResponse[dict])
async def visits(request: Request):
    analytics = await _analytics(request)
    return APIResponse(status_code=200, data={"totalVisits": analytics.get("totalVisits") or 0}, detail="visits fetched")


@router.get("/visitors", response_model=APIResponse[dict])
async def visitors(request: Request):
    analytics = await _analytics(request)
    return APIResponse(
        status_code=200,
        data={"uniqueVisitors": analytics.get("uniqueVisitors") or 0},
        detail="visitors fetched",
    )


@router.get("/daily", response_model=APIResponse[dict])
async def daily(request: Request, days: int = Query(30, ge=1, le=365)):
    analytics = await _analytics(request)
    daily_stats = recent_daily_stats(analytics.get("dailyStats") or {}, days)
    return APIResponse(
        status_code=200,
        data={"dailyStats": daily_stats, "period": f"{days} days"},
        detail="daily stats fetched",
        count=len(daily_stats),
    )


@router.get("/hourly", response_model=APIResponse[dict])
async def hourly(request: Request):
    analytics = await _analytics(request)
    return APIResponse(status_code=200, data={"hourlyStats": analytics.get("hourlyStats") or {}}, detail="hourly stats fetched")


@router.get("/pages", response_model=APIResponse[dict])
async def pages(request: Request, limit: int = Query(10, ge=1, le=50)):
    analytics = await _analytics(request)
    ranked = top_pages(analytics.get("popularPages") or {}, limit)
    return APIResponse(status_code=200, data={"topPages": ranked, "limit": limit}, detail="popular pages fetched", count=len(ranked))


@router.get("/referrers", response_model=APIResponse[dict])
async def referrers(request: Request, limit: int = Query(10, ge=1, le=100)):
    analytics = await _analytics(request)
    ranked = top_referrers(analytics.get("referrers") or {}, limit)
    return APIResponse(status_code=200, data={"topReferrers": ranked}, detail="referrers fetched", count=len(ranked))


@router.get("/browsers", response_model=APIResponse[dict])
async def browsers(request: Request, limit: int = Query(10, ge=1, le=100)):
    analytics = await _analytics(request)
    ranked = browser_stats(analytics.get("userAgents") or {}, limit)
    return APIResponse(status_code=200, data={"browserStats": ranked}, detail="browser stats fetched", count=len(ranked))


@router.get("/performance", response_model=APIResponse[dict])
async def performance(request: Request):
    analytics = await _analytics(request)
    stats = analytics.get("responseTimeStats") or default_response_time_stats()
    return APIResponse(status_code=200, data={"responseTimeStats": stats}, detail="performance stats fetched")


@router.get("/requests", response_model=APIResponse[dict])
async def requests_log(request: Request, limit: int = Query(50, ge=1, le=1000)):
    analytics = await _analytics(request)
    recent = recent_requests(analytics.get("requestLogs") or [], limit)
    return APIResponse(status_code=200, data={"recentRequests": recent}, detail="request logs fetched", count=len(recent))
