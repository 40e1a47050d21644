import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import anyio
import httpx

from core.config import Settings
from core.errors import ConfigurationError, GitHubApiError


logger = logging.getLogger(__name__)

USER_AGENT = "Portfolio-Backend/1.0.0"
RELEVANT_EVENT_TYPES = {
    "PushEvent",
    "CreateEvent",
    "ReleaseEvent",
    "PullRequestEvent",
    "IssuesEvent",
    "WatchEvent",
    "ForkEvent",
}


def _parse_timestamp(value: Optional[str]) -> float:
    if not value:
        return 0.0
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp()
    except ValueError:
        return 0.0


class GitHubService:
    """
    Thin async client over the GitHub REST API for one user's public data.
    Unconfigured instances (missing or placeholder credentials) refuse to call out.
    """

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.username = settings.github_username
        self.base_url = settings.github_api_url.rstrip("/")
        self.request_delay = settings.github_request_delay
        self.is_configured = settings.github_configured
        self.client: Optional[httpx.AsyncClient] = None

        if not self.is_configured:
            logger.warning(
                "GitHub credentials not configured. Set GITHUB_TOKEN and GITHUB_USERNAME to enable GitHub integration."
            )
            return

        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "Authorization": f"Bearer {settings.github_token}",
                "Accept": "application/vnd.github.v3+json",
                "User-Agent": USER_AGENT,
            },
            timeout=10,
            transport=transport,
        )

    def _check_configuration(self) -> httpx.AsyncClient:
        if not self.is_configured or self.client is None:
            raise ConfigurationError(
                "GitHub service is not configured. Please set GITHUB_TOKEN and GITHUB_USERNAME environment variables."
            )
        return self.client

    async def _get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        client = self._check_configuration()
        try:
            response = await client.get(endpoint, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise GitHubApiError(
                f"GitHub request failed with status {exc.response.status_code}",
                endpoint=endpoint,
                github_status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise GitHubApiError(f"GitHub request failed: {exc}", endpoint=endpoint) from exc
        return response.json()

    async def aclose(self) -> None:
        if self.client is not None:
            await self.client.aclose()

    # ------------------------------
    # fetchers
    # ------------------------------
    async def fetch_user(self) -> Dict[str, Any]:
        try:
            return await self._get(f"/users/{self.username}")
        except GitHubApiError as exc:
            logger.error("Error fetching user data: %s", exc)
            raise

    async def fetch_repositories(self, page: int = 1, per_page: int = 100) -> List[Dict[str, Any]]:
        try:
            return await self._get(
                f"/users/{self.username}/repos",
                params={"sort": "updated", "direction": "desc", "per_page": per_page, "page": page},
            )
        except GitHubApiError as exc:
            logger.error("Error fetching repositories: %s", exc)
            raise

    async def fetch_all_repositories(self) -> List[Dict[str, Any]]:
        all_repos: List[Dict[str, Any]] = []
        page = 1
        while True:
            repos = await self.fetch_repositories(page, 100)
            all_repos.extend(repos)
            if len(repos) < 100:
                return all_repos
            page += 1

    async def fetch_repository_languages(self, repo_name: str) -> Dict[str, int]:
        try:
            return await self._get(f"/repos/{self.username}/{repo_name}/languages")
        except GitHubApiError as exc:
            logger.error("Error fetching languages for %s: %s", repo_name, exc)
            return {}

    async def fetch_user_events(self, page: int = 1, per_page: int = 30) -> List[Dict[str, Any]]:
        try:
            return await self._get(
                f"/users/{self.username}/events",
                params={"per_page": per_page, "page": page},
            )
        except GitHubApiError as exc:
            logger.error("Error fetching user events: %s", exc)
            raise

    async def fetch_workflow_runs(self, repo_name: str, page: int = 1, per_page: int = 10) -> List[Dict[str, Any]]:
        try:
            payload = await self._get(
                f"/repos/{self.username}/{repo_name}/actions/runs",
                params={"per_page": per_page, "page": page},
            )
        except GitHubApiError as exc:
            logger.error("Error fetching workflow runs for %s: %s", repo_name, exc)
            return []
        return payload.get("workflow_runs") or []

    # ------------------------------
    # aggregation
    # ------------------------------
    async def aggregate_languages(self, repositories: List[Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
        language_bytes: Dict[str, int] = {}
        for repo in repositories:
            if repo.get("fork"):
                continue
            languages = await self.fetch_repository_languages(repo["name"])
            for language, size in languages.items():
                language_bytes[language] = language_bytes.get(language, 0) + size
            if self.request_delay:
                await anyio.sleep(self.request_delay)
        return language_percentages(language_bytes)


def language_percentages(language_bytes: Dict[str, int]) -> Dict[str, Dict[str, Any]]:
    total = sum(language_bytes.values())
    return {
        language: {
            "bytes": size,
            "percentage": round(size / total * 100, 2) if total > 0 else 0,
        }
        for language, size in language_bytes.items()
    }


def calculate_stats(repositories: List[Dict[str, Any]], user: Optional[Dict[str, Any]]) -> Dict[str, int]:
    user = user or {}
    return {
        "totalStars": sum(repo.get("stargazers_count") or 0 for repo in repositories),
        "totalForks": sum(repo.get("forks_count") or 0 for repo in repositories),
        "totalRepos": len(repositories),
        "followers": user.get("followers") or 0,
        "following": user.get("following") or 0,
    }


def get_featured_repositories(repositories: List[Dict[str, Any]], limit: int = 6) -> List[Dict[str, Any]]:
    """Non-fork repositories, most stars first, ties broken by most recent update."""
    non_forks = [repo for repo in repositories if not repo.get("fork")]
    ranked = sorted(
        non_forks,
        key=lambda repo: (repo.get("stargazers_count") or 0, _parse_timestamp(repo.get("updated_at"))),
        reverse=True,
    )
    return ranked[:limit]


def simplify_payload(payload: Optional[Dict[str, Any]], event_type: str) -> Dict[str, Any]:
    payload = payload or {}
    if event_type == "PushEvent":
        return {"commits": len(payload.get("commits") or []), "ref": payload.get("ref")}
    if event_type == "CreateEvent":
        return {"ref_type": payload.get("ref_type"), "ref": payload.get("ref")}
    if event_type == "ReleaseEvent":
        release = payload.get("release") or {}
        return {"action": payload.get("action"), "release": release.get("name") or release.get("tag_name")}
    if event_type == "PullRequestEvent":
        pull_request = payload.get("pull_request") or {}
        return {
            "action": payload.get("action"),
            "number": pull_request.get("number"),
            "title": pull_request.get("title"),
        }
    if event_type == "IssuesEvent":
        issue = payload.get("issue") or {}
        return {"action": payload.get("action"), "number": issue.get("number"), "title": issue.get("title")}
    return {}


def process_recent_activity(events: List[Dict[str, Any]], limit: int = 10) -> List[Dict[str, Any]]:
    relevant = [event for event in events if event.get("type") in RELEVANT_EVENT_TYPES][:limit]
    return [
        {
            "id": event.get("id"),
            "type": event.get("type"),
            "repo": (event.get("repo") or {}).get("name"),
            "created_at": event.get("created_at"),
            "payload": simplify_payload(event.get("payload"), event.get("type")),
        }
        for event in relevant
    ]
