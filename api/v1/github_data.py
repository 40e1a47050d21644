import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Query, Request

from core.errors import NotFoundError
from repositories import github_data
from schemas.response_schema import APIResponse
from services.admin_service import peak_memory_kb
from services.github_service import get_featured_repositories

router = APIRouter(tags=["GitHub Data"])


def _store(request: Request):
    return request.app.state.datastore


@router.get("/", response_model=APIResponse[dict])
async def root():
    return APIResponse(
        status_code=200,
        data={
            "message": "Portfolio Backend API",
            "version": "1.0.0",
            "endpoints": {
                "api": "/api",
                "analytics": "/api/analytics",
                "admin": "/api/admin",
                "webhook": "/api/github/webhook",
                "health": "/api/health",
            },
        },
        detail="service is running",
    )


@router.get("/api/health", response_model=APIResponse[dict])
async def health(request: Request):
    """
    Liveness check with process uptime and peak memory.
    """
    return APIResponse(
        status_code=200,
        data={
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime": int(time.monotonic() - request.app.state.started_at),
            "maxRssKb": peak_memory_kb(),
            "version": "1.0.0",
        },
        detail="healthy",
    )


@router.get("/api/user", response_model=APIResponse[dict])
async def get_user(request: Request):
    user = await github_data.get_user(_store(request))
    if not user:
        raise NotFoundError("User data")
    return APIResponse(status_code=200, data=user, detail="user fetched")


@router.get("/api/repositories", response_model=APIResponse[List[Dict[str, Any]]])
async def list_repositories(request: Request):
    repositories = await github_data.get_repositories(_store(request))
    return APIResponse(status_code=200, data=repositories, detail="repositories fetched", count=len(repositories))


@router.get("/api/repositories/featured", response_model=APIResponse[List[Dict[str, Any]]])
async def list_featured_repositories(
    request: Request,
    limit: int = Query(6, ge=1, le=100, description="Number of featured repositories"),
):
    """
    Non-fork repositories ranked by stars, then by most recent update.
    """
    repositories = await github_data.get_repositories(_store(request))
    featured = get_featured_repositories(repositories, limit)
    return APIResponse(status_code=200, data=featured, detail="featured repositories fetched", count=len(featured))


@router.get("/api/languages", response_model=APIResponse[dict])
async def get_languages(request: Request):
    languages = await github_data.get_languages(_store(request))
    return APIResponse(status_code=200, data=languages, detail="languages fetched")


@router.get("/api/activity", response_model=APIResponse[List[Dict[str, Any]]])
async def list_activity(
    request: Request,
    limit: Optional[int] = Query(None, ge=1, description="Maximum number of events"),
):
    activity = await github_data.get_activity(_store(request))
    if limit:
        activity = activity[:limit]
    return APIResponse(status_code=200, data=activity, detail="activity fetched", count=len(activity))


@router.get("/api/workflows", response_model=APIResponse[List[Dict[str, Any]]])
async def list_workflows(request: Request):
    workflows = await github_data.get_workflows(_store(request))
    return APIResponse(status_code=200, data=workflows, detail="workflows fetched", count=len(workflows))


@router.get("/api/stats", response_model=APIResponse[dict])
async def get_stats(request: Request):
    stats = await github_data.get_stats(_store(request))
    return APIResponse(status_code=200, data=stats, detail="stats fetched")


@router.get("/api/all", response_model=APIResponse[dict])
async def get_all(request: Request):
    """
    Every GitHub section plus the last sync time. Analytics, contact
    submissions and likes are only exposed through the admin API.
    """
    data = await github_data.get_portfolio_data(_store(request))
    return APIResponse(status_code=200, data=data, detail="portfolio data fetched")
