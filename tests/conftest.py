"""Shared fixtures: isolated settings, datastore and app per test."""

from __future__ import annotations

from typing import Any, Dict, List

import pytest
from fastapi.testclient import TestClient

from core.config import Settings
from core.errors import GitHubApiError
from main import create_app
from repositories.datastore import JsonDatastore

ADMIN_KEY = "test-admin-key"


class FakeGitHub:
    """Stands in for GitHubService; records calls and serves canned data."""

    def __init__(self):
        self.is_configured = True
        self.request_delay = 0
        self.fail = False
        self.calls: List[str] = []
        self.closed = False
        self.user: Dict[str, Any] = {"login": "octocat", "name": "The Octocat", "followers": 10, "following": 3}
        self.repositories: List[Dict[str, Any]] = [
            {"name": "alpha", "fork": False, "stargazers_count": 5, "forks_count": 1, "updated_at": "2024-01-02T00:00:00Z"},
            {"name": "beta", "fork": False, "stargazers_count": 9, "forks_count": 2, "updated_at": "2024-01-01T00:00:00Z"},
            {"name": "gamma", "fork": True, "stargazers_count": 50, "forks_count": 0, "updated_at": "2024-01-03T00:00:00Z"},
        ]
        self.languages: Dict[str, Dict[str, int]] = {
            "alpha": {"Python": 300, "Shell": 100},
            "beta": {"Python": 600},
        }
        self.events: List[Dict[str, Any]] = [
            {
                "id": "1",
                "type": "PushEvent",
                "repo": {"name": "octocat/alpha"},
                "created_at": "2024-01-02T00:00:00Z",
                "payload": {"commits": [{}, {}], "ref": "refs/heads/main"},
            },
            {"id": "2", "type": "GollumEvent", "repo": {"name": "octocat/alpha"}, "created_at": "2024-01-01T00:00:00Z"},
        ]
        self.workflow_runs: Dict[str, List[Dict[str, Any]]] = {
            "alpha": [{"id": 1, "name": "CI", "created_at": "2024-01-01T00:00:00Z"}],
            "beta": [{"id": 2, "name": "CI", "created_at": "2024-01-05T00:00:00Z"}],
        }

    async def fetch_user(self):
        self.calls.append("user")
        if self.fail:
            raise GitHubApiError("GitHub request failed with status 500", endpoint="/users/octocat", github_status_code=500)
        return dict(self.user)

    async def fetch_all_repositories(self):
        self.calls.append("repositories")
        return [dict(repo) for repo in self.repositories]

    async def aggregate_languages(self, repositories):
        self.calls.append("languages")
        totals: Dict[str, int] = {}
        for repo in repositories:
            if repo.get("fork"):
                continue
            for language, size in self.languages.get(repo["name"], {}).items():
                totals[language] = totals.get(language, 0) + size
        total = sum(totals.values())
        return {name: {"bytes": size, "percentage": round(size / total * 100, 2)} for name, size in totals.items()}

    async def fetch_user_events(self):
        self.calls.append("activity")
        return list(self.events)

    async def fetch_workflow_runs(self, repo_name):
        self.calls.append(f"workflows:{repo_name}")
        return list(self.workflow_runs.get(repo_name, []))

    async def aclose(self):
        self.closed = True


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        app_env="test",
        db_path=str(tmp_path / "data" / "portfolio.json"),
        admin_key=ADMIN_KEY,
        rate_limit_enabled=False,
        scheduler_enabled=False,
        log_dir=str(tmp_path / "logs"),
        github_request_delay=0,
    )


@pytest.fixture
def store(settings) -> JsonDatastore:
    return JsonDatastore(settings.db_path)


@pytest.fixture
def fake_github() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as test_client:
        yield test_client


@pytest.fixture
def make_client(settings):
    """Builds a started TestClient with overridden settings and an optional GitHub stand-in."""
    clients = []

    def _make(github_service=None, **overrides):
        app = create_app(settings.model_copy(update=overrides), github_service=github_service)
        test_client = TestClient(app)
        test_client.__enter__()
        clients.append(test_client)
        return test_client

    yield _make
    for test_client in clients:
        test_client.__exit__(None, None, None)


@pytest.fixture
def admin_headers() -> Dict[str, str]:
    return {"X-Admin-Key": ADMIN_KEY}
