# ============================================================================
# ANALYTICS REPOSITORY
# ============================================================================
# Counter bookkeeping over the "analytics" section of the JSON datastore.
# Each public coroutine is one read-modify-write; record_request applies a
# whole request's worth of updates in a single write.
# ============================================================================

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from repositories.datastore import MAX_REQUEST_LOGS, JsonDatastore, default_analytics, default_response_time_stats


def _now(now: Optional[datetime]) -> datetime:
    return now or datetime.now(timezone.utc)


def day_key(now: datetime) -> str:
    """Daily buckets are keyed by the UTC calendar date."""
    return now.astimezone(timezone.utc).date().isoformat()


def hour_key(now: datetime) -> str:
    """Hourly buckets are keyed by the server's local hour, "0" to "23"."""
    return str(now.astimezone().hour)


def extract_browser_name(user_agent: Optional[str]) -> str:
    if not user_agent:
        return "Other"
    if "Edg/" in user_agent or "Edge/" in user_agent:
        return "Edge"
    if "OPR/" in user_agent or "Opera" in user_agent:
        return "Opera"
    if "Chrome/" in user_agent or "CriOS/" in user_agent:
        return "Chrome"
    if "Firefox/" in user_agent or "FxiOS/" in user_agent:
        return "Firefox"
    if "Safari/" in user_agent:
        return "Safari"
    return "Other"


def _analytics(data: Dict[str, Any]) -> Dict[str, Any]:
    analytics = data.get("analytics")
    if not isinstance(analytics, dict):
        analytics = default_analytics()
        data["analytics"] = analytics
    for key, value in default_analytics().items():
        analytics.setdefault(key, value)
    return analytics


# ------------------------------
# mutators
# ------------------------------
def _increment_visits(analytics: Dict[str, Any]) -> int:
    analytics["totalVisits"] = int(analytics.get("totalVisits") or 0) + 1
    return analytics["totalVisits"]


def _add_visitor(analytics: Dict[str, Any], visitor_id: str, user_agent: Optional[str], now: datetime) -> bool:
    today = day_key(now)
    day = analytics["dailyStats"].setdefault(today, {"visits": 0, "uniqueVisitors": []})
    day["visits"] = int(day.get("visits") or 0) + 1

    seen_at = now.isoformat()
    visitors = analytics["visitors"]
    if visitor_id not in visitors:
        visitors[visitor_id] = {"firstSeen": seen_at, "lastSeen": seen_at, "userAgent": user_agent}
        analytics["uniqueVisitors"] = int(analytics.get("uniqueVisitors") or 0) + 1
    else:
        visitors[visitor_id]["lastSeen"] = seen_at

    if visitor_id in day["uniqueVisitors"]:
        return False
    day["uniqueVisitors"].append(visitor_id)
    return True


def _bump(counter: Dict[str, int], key: str) -> int:
    counter[key] = int(counter.get(key) or 0) + 1
    return counter[key]


def _update_referrer(analytics: Dict[str, Any], referrer: Optional[str]) -> int:
    if not referrer or referrer == "direct":
        return 0
    return _bump(analytics["referrers"], referrer)


def _update_response_time(analytics: Dict[str, Any], response_time: float) -> Dict[str, float]:
    stats = analytics.get("responseTimeStats") or default_response_time_stats()
    samples = int(stats.get("samples") or 0)
    if samples == 0:
        stats = {"average": response_time, "min": response_time, "max": response_time, "samples": 1}
    else:
        stats = {
            "average": (stats["average"] * samples + response_time) / (samples + 1),
            "min": min(stats["min"], response_time),
            "max": max(stats["max"], response_time),
            "samples": samples + 1,
        }
    analytics["responseTimeStats"] = stats
    return stats


def _add_request_log(analytics: Dict[str, Any], entry: Dict[str, Any], now: datetime) -> int:
    log = dict(entry)
    if isinstance(log.get("timestamp"), datetime):
        log["timestamp"] = log["timestamp"].isoformat()
    log.setdefault("timestamp", now.isoformat())
    logs = analytics["requestLogs"]
    logs.append(log)
    if len(logs) > MAX_REQUEST_LOGS:
        del logs[: len(logs) - MAX_REQUEST_LOGS]
    return len(logs)


# ------------------------------
# repository functions
# ------------------------------
async def get_analytics(store: JsonDatastore) -> Dict[str, Any]:
    analytics = await store.read("analytics")
    if not isinstance(analytics, dict):
        return default_analytics()
    return {**default_analytics(), **analytics}


async def set_analytics(store: JsonDatastore, values: Dict[str, Any]) -> Dict[str, Any]:
    def apply(data):
        analytics = _analytics(data)
        analytics.update(values)
        return analytics

    return await store.update(apply)


async def increment_visits(store: JsonDatastore) -> int:
    return await store.update(lambda data: _increment_visits(_analytics(data)))


async def add_visitor(
    store: JsonDatastore,
    visitor_id: str,
    user_agent: Optional[str] = None,
    now: Optional[datetime] = None,
) -> bool:
    """Returns True when ``visitor_id`` has not been seen yet today."""
    moment = _now(now)
    return await store.update(lambda data: _add_visitor(_analytics(data), visitor_id, user_agent, moment))


async def update_page_stats(store: JsonDatastore, path: str) -> int:
    return await store.update(lambda data: _bump(_analytics(data)["popularPages"], path))


async def update_hourly_stats(store: JsonDatastore, now: Optional[datetime] = None) -> int:
    moment = _now(now)
    return await store.update(lambda data: _bump(_analytics(data)["hourlyStats"], hour_key(moment)))


async def update_referrer_stats(store: JsonDatastore, referrer: Optional[str]) -> int:
    return await store.update(lambda data: _update_referrer(_analytics(data), referrer))


async def update_user_agent_stats(store: JsonDatastore, user_agent: Optional[str]) -> Dict[str, int]:
    def apply(data):
        user_agents = _analytics(data)["userAgents"]
        _bump(user_agents, extract_browser_name(user_agent))
        return user_agents

    return await store.update(apply)


async def update_response_time_stats(store: JsonDatastore, response_time: float) -> Dict[str, float]:
    return await store.update(lambda data: _update_response_time(_analytics(data), response_time))


async def add_request_log(store: JsonDatastore, entry: Dict[str, Any], now: Optional[datetime] = None) -> int:
    moment = _now(now)
    return await store.update(lambda data: _add_request_log(_analytics(data), entry, moment))


async def record_request(
    store: JsonDatastore,
    *,
    visitor_id: str,
    path: str,
    method: str,
    ip: str,
    user_agent: Optional[str],
    referrer: Optional[str],
    status_code: int,
    response_time: float,
    now: Optional[datetime] = None,
) -> None:
    moment = _now(now)

    def apply(data):
        analytics = _analytics(data)
        _increment_visits(analytics)
        _add_visitor(analytics, visitor_id, user_agent, moment)
        _bump(analytics["popularPages"], path)
        _bump(analytics["hourlyStats"], hour_key(moment))
        _update_referrer(analytics, referrer)
        if user_agent:
            _bump(analytics["userAgents"], extract_browser_name(user_agent))
        _update_response_time(analytics, response_time)
        _add_request_log(
            analytics,
            {
                "timestamp": moment.isoformat(),
                "method": method,
                "url": path,
                "userAgent": user_agent,
                "ip": ip,
                "referrer": referrer,
                "responseTime": response_time,
                "statusCode": status_code,
                "visitorId": visitor_id,
            },
            moment,
        )

    await store.update(apply)
