"""Tests for the analytics counters kept in the datastore."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from repositories import analytics as analytics_repo
from repositories.analytics import day_key, extract_browser_name
from repositories.datastore import MAX_REQUEST_LOGS

NOON = datetime(2024, 3, 10, 12, 30, tzinfo=timezone.utc)

CHROME_UA = "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0 Safari/537.36"
EDGE_UA = CHROME_UA + " Edg/120.0"
FIREFOX_UA = "Mozilla/5.0 (X11; Linux x86_64; rv:121.0) Gecko/20100101 Firefox/121.0"
SAFARI_UA = "Mozilla/5.0 (Macintosh) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.0 Safari/605.1.15"
OPERA_UA = CHROME_UA + " OPR/105.0"


class TestKeys:
    def test_day_key_uses_utc_date(self):
        late_evening_west = datetime(2024, 3, 10, 23, 30, tzinfo=timezone(timedelta(hours=-5)))
        assert day_key(late_evening_west) == "2024-03-11"

    @pytest.mark.parametrize(
        "user_agent, expected",
        [
            (CHROME_UA, "Chrome"),
            (EDGE_UA, "Edge"),
            (OPERA_UA, "Opera"),
            (FIREFOX_UA, "Firefox"),
            (SAFARI_UA, "Safari"),
            ("curl/8.0", "Other"),
            (None, "Other"),
        ],
    )
    def test_extract_browser_name(self, user_agent, expected):
        assert extract_browser_name(user_agent) == expected


@pytest.mark.anyio
class TestCounters:
    async def test_increment_visits(self, store):
        assert await analytics_repo.increment_visits(store) == 1
        assert await analytics_repo.increment_visits(store) == 2
        assert (await analytics_repo.get_analytics(store))["totalVisits"] == 2

    async def test_add_visitor_deduplicates_per_day(self, store):
        """Same visitor twice on one day: counted once in the daily unique list."""
        assert await analytics_repo.add_visitor(store, "abc", CHROME_UA, now=NOON) is True
        assert await analytics_repo.add_visitor(store, "abc", CHROME_UA, now=NOON + timedelta(minutes=5)) is False

        analytics = await analytics_repo.get_analytics(store)
        today = analytics["dailyStats"]["2024-03-10"]
        assert today["visits"] == 2
        assert today["uniqueVisitors"] == ["abc"]
        assert analytics["uniqueVisitors"] == 1

    async def test_returning_visitor_is_not_unique_again(self, store):
        """The all-time unique count only grows for never-seen visitors."""
        await analytics_repo.add_visitor(store, "abc", now=NOON)
        assert await analytics_repo.add_visitor(store, "abc", now=NOON + timedelta(days=1)) is True
        await analytics_repo.add_visitor(store, "xyz", now=NOON + timedelta(days=1))

        analytics = await analytics_repo.get_analytics(store)
        assert analytics["uniqueVisitors"] == 2
        assert analytics["visitors"]["abc"]["firstSeen"] == NOON.isoformat()
        assert analytics["visitors"]["abc"]["lastSeen"] == (NOON + timedelta(days=1)).isoformat()

    async def test_page_and_hourly_counters(self, store):
        await analytics_repo.update_page_stats(store, "/api/user")
        assert await analytics_repo.update_page_stats(store, "/api/user") == 2

        await analytics_repo.update_hourly_stats(store, now=NOON)
        analytics = await analytics_repo.get_analytics(store)
        assert analytics["popularPages"] == {"/api/user": 2}
        assert sum(analytics["hourlyStats"].values()) == 1

    async def test_direct_referrers_are_ignored(self, store):
        assert await analytics_repo.update_referrer_stats(store, "direct") == 0
        assert await analytics_repo.update_referrer_stats(store, None) == 0
        assert await analytics_repo.update_referrer_stats(store, "https://news.ycombinator.com/") == 1

        analytics = await analytics_repo.get_analytics(store)
        assert analytics["referrers"] == {"https://news.ycombinator.com/": 1}

    async def test_user_agent_stats_group_by_browser(self, store):
        await analytics_repo.update_user_agent_stats(store, CHROME_UA)
        await analytics_repo.update_user_agent_stats(store, FIREFOX_UA)
        counts = await analytics_repo.update_user_agent_stats(store, CHROME_UA)

        assert counts == {"Chrome": 2, "Firefox": 1}

    async def test_response_time_running_average(self, store):
        first = await analytics_repo.update_response_time_stats(store, 10.0)
        assert first == {"average": 10.0, "min": 10.0, "max": 10.0, "samples": 1}

        await analytics_repo.update_response_time_stats(store, 30.0)
        stats = await analytics_repo.update_response_time_stats(store, 20.0)

        assert stats["samples"] == 3
        assert stats["average"] == pytest.approx(20.0)
        assert stats["min"] == 10.0
        assert stats["max"] == 30.0

    async def test_request_log_keeps_newest_entries(self, store):
        """The log is capped; the oldest entries are dropped first."""
        logs = [{"url": f"/page/{index}", "timestamp": NOON.isoformat()} for index in range(MAX_REQUEST_LOGS)]
        await analytics_repo.set_analytics(store, {"requestLogs": logs})

        size = await analytics_repo.add_request_log(store, {"url": "/newest"}, now=NOON)

        analytics = await analytics_repo.get_analytics(store)
        assert size == MAX_REQUEST_LOGS
        assert analytics["requestLogs"][0]["url"] == "/page/1"
        assert analytics["requestLogs"][-1] == {"url": "/newest", "timestamp": NOON.isoformat()}

    async def test_record_request_updates_everything_at_once(self, store):
        await analytics_repo.record_request(
            store,
            visitor_id="v1",
            path="/api/repositories",
            method="GET",
            ip="203.0.113.9",
            user_agent=CHROME_UA,
            referrer="https://example.com/",
            status_code=200,
            response_time=12.5,
            now=NOON,
        )

        analytics = await analytics_repo.get_analytics(store)
        assert analytics["totalVisits"] == 1
        assert analytics["uniqueVisitors"] == 1
        assert analytics["dailyStats"]["2024-03-10"] == {"visits": 1, "uniqueVisitors": ["v1"]}
        assert analytics["popularPages"] == {"/api/repositories": 1}
        assert analytics["referrers"] == {"https://example.com/": 1}
        assert analytics["userAgents"] == {"Chrome": 1}
        assert analytics["responseTimeStats"]["samples"] == 1
        entry = analytics["requestLogs"][0]
        assert entry["method"] == "GET"
        assert entry["statusCode"] == 200
        assert entry["ip"] == "203.0.113.9"
        assert entry["timestamp"] == NOON.isoformat()
