"""Tests for visitor identification and analytics aggregation."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from starlette.requests import Request

from repositories import analytics as analytics_repo
from services.analytics_service import (
    browser_stats,
    generate_visitor_id,
    get_analytics_summary,
    get_client_ip,
    recent_daily_stats,
    recent_requests,
    should_exclude_path,
    top_pages,
)


def _request(headers=None, client=("198.51.100.7", 5000)) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(key.lower().encode(), value.encode()) for key, value in (headers or {}).items()],
        "client": client,
    }
    return Request(scope)


class TestVisitorIdentity:
    def test_visitor_id_is_stable_and_short(self):
        first = generate_visitor_id("203.0.113.1", "Firefox")
        assert first == generate_visitor_id("203.0.113.1", "Firefox")
        assert len(first) == 16
        assert first != generate_visitor_id("203.0.113.2", "Firefox")

    def test_missing_user_agent_uses_placeholder(self):
        assert generate_visitor_id("203.0.113.1", None) == generate_visitor_id("203.0.113.1", "unknown")

    def test_client_ip_prefers_forwarded_for(self):
        request = _request({"X-Forwarded-For": "203.0.113.5, 10.0.0.1", "X-Real-IP": "10.0.0.2"})
        assert get_client_ip(request) == "203.0.113.5"

    def test_client_ip_falls_back_to_real_ip_then_peer(self):
        assert get_client_ip(_request({"X-Real-IP": "203.0.113.6"})) == "203.0.113.6"
        assert get_client_ip(_request()) == "198.51.100.7"
        assert get_client_ip(_request(client=None)) == "unknown"

    @pytest.mark.parametrize(
        "path, excluded",
        [
            ("/api/health", True),
            ("/health", True),
            ("/favicon.ico", True),
            ("/_next/static/chunk.js", True),
            ("/api/repositories", False),
            ("/", False),
        ],
    )
    def test_should_exclude_path(self, path, excluded):
        assert should_exclude_path(path) is excluded


class TestAggregation:
    def test_recent_daily_stats_newest_first(self):
        daily = {
            "2024-01-01": {"visits": 1},
            "2024-01-03": {"visits": 3},
            "2024-01-02": {"visits": 2},
        }
        recent = recent_daily_stats(daily, 2)
        assert list(recent) == ["2024-01-03", "2024-01-02"]

    def test_rankings(self):
        assert top_pages({"/a": 1, "/b": 5, "/c": 3}, 2) == [{"path": "/b", "visits": 5}, {"path": "/c", "visits": 3}]
        assert browser_stats({"Chrome": 4, "Firefox": 6}, 10) == [
            {"browser": "Firefox", "visits": 6},
            {"browser": "Chrome", "visits": 4},
        ]

    def test_recent_requests_newest_first(self):
        logs = [{"url": "/1"}, {"url": "/2"}, {"url": "/3"}]
        assert recent_requests(logs, 2) == [{"url": "/3"}, {"url": "/2"}]
        assert recent_requests(logs, 0) == []


@pytest.mark.anyio
async def test_summary_reports_today_and_top_pages(store):
    now = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)
    for visitor, path in [("v1", "/a"), ("v1", "/b"), ("v2", "/a")]:
        await analytics_repo.record_request(
            store,
            visitor_id=visitor,
            path=path,
            method="GET",
            ip="203.0.113.1",
            user_agent=None,
            referrer=None,
            status_code=200,
            response_time=1.0,
            now=now,
        )

    summary = await get_analytics_summary(store, now=now)

    assert summary["totalVisits"] == 3
    assert summary["uniqueVisitors"] == 2
    assert summary["dailyStats"] == {"today": 3, "todayUnique": 2}
    assert summary["topPages"][0] == {"page": "/a", "visits": 2}
    assert len(summary["topPages"]) == 2
