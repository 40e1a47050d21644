import hashlib
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import Request

from core.errors import DatabaseError
from repositories import analytics as analytics_repo
from repositories.analytics import day_key
from repositories.datastore import JsonDatastore


EXCLUDED_PATHS = (
    "/health",
    "/api/health",
    "/favicon.ico",
    "/robots.txt",
    "/sitemap.xml",
    "/_next",
    "/static",
)


def generate_visitor_id(ip: str, user_agent: Optional[str]) -> str:
    """Stable 16-hex-char id for an (ip, user agent) pair."""
    data = f"{ip}-{user_agent or 'unknown'}"
    return hashlib.sha256(data.encode("utf-8")).hexdigest()[:16]


def should_exclude_path(path: str) -> bool:
    return any(path == excluded or path.startswith(excluded) for excluded in EXCLUDED_PATHS)


def get_client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def _ranked(counter: Dict[str, int], label: str, limit: int) -> List[Dict[str, Any]]:
    ranked = sorted(counter.items(), key=lambda item: item[1], reverse=True)[:limit]
    return [{label: key, "visits": visits} for key, visits in ranked]


async def get_analytics_summary(store: JsonDatastore, now: Optional[datetime] = None) -> Dict[str, Any]:
    analytics = await analytics_repo.get_analytics(store)
    if analytics.get("popularPages") is None:
        raise DatabaseError("Failed to fetch analytics summary", "getAnalytics")

    today = day_key(now or datetime.now(timezone.utc))
    today_stats = (analytics.get("dailyStats") or {}).get(today) or {"visits": 0, "uniqueVisitors": []}
    return {
        "totalVisits": analytics.get("totalVisits", 0),
        "uniqueVisitors": analytics.get("uniqueVisitors", 0),
        "dailyStats": {
            "today": today_stats.get("visits", 0),
            "todayUnique": len(today_stats.get("uniqueVisitors") or []),
        },
        "hourlyStats": analytics.get("hourlyStats") or {},
        "topPages": _ranked(analytics["popularPages"], "page", 5),
    }


def recent_daily_stats(daily_stats: Dict[str, Any], days: int) -> Dict[str, Any]:
    """Newest ``days`` buckets; ISO date keys sort chronologically as strings."""
    newest = sorted(daily_stats, reverse=True)[:days]
    return {day: daily_stats[day] for day in newest}


def top_pages(popular_pages: Dict[str, int], limit: int) -> List[Dict[str, Any]]:
    return _ranked(popular_pages, "path", limit)


def top_referrers(referrers: Dict[str, int], limit: int) -> List[Dict[str, Any]]:
    return _ranked(referrers, "source", limit)


def browser_stats(user_agents: Dict[str, int], limit: int) -> List[Dict[str, Any]]:
    return _ranked(user_agents, "browser", limit)


def recent_requests(request_logs: List[Dict[str, Any]], limit: int) -> List[Dict[str, Any]]:
    if limit <= 0:
        return []
    return list(reversed(request_logs[-limit:]))
