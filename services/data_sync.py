import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import anyio
from anyio.abc import TaskGroup

from core.config import Settings
from core.errors import ConflictError
from repositories import github_data
from repositories.datastore import JsonDatastore
from services.github_service import (
    GitHubService,
    calculate_stats,
    process_recent_activity,
)
from services.revalidate_service import trigger_portfolio_revalidate
from services.scheduler import CronScheduler


logger = logging.getLogger(__name__)

WORKFLOW_REPO_LIMIT = 10
WORKFLOW_RUN_LIMIT = 20


class SyncInProgressError(ConflictError):
    def __init__(self):
        super().__init__("Data sync is already in progress")


def _iso(moment: datetime) -> str:
    return moment.isoformat().replace("+00:00", "Z")


def build_mock_data() -> Dict[str, Any]:
    now = datetime.now(timezone.utc)
    return {
        "user": {
            "login": "developer",
            "name": "Portfolio Developer",
            "bio": "Full-stack developer passionate about creating amazing web experiences",
            "location": "Remote",
            "followers": 42,
            "following": 24,
            "public_repos": 15,
            "avatar_url": "https://github.com/identicons/developer.png",
            "html_url": "https://github.com/developer",
        },
        "repositories": [
            {
                "name": "portfolio-site",
                "description": "Personal portfolio website built with modern web technologies",
                "stargazers_count": 12,
                "forks_count": 3,
                "language": "JavaScript",
                "updated_at": _iso(now),
                "html_url": "https://github.com/developer/portfolio-site",
                "fork": False,
            },
            {
                "name": "react-dashboard",
                "description": "Modern React dashboard with real-time analytics",
                "stargazers_count": 8,
                "forks_count": 2,
                "language": "TypeScript",
                "updated_at": _iso(now - timedelta(days=1)),
                "html_url": "https://github.com/developer/react-dashboard",
                "fork": False,
            },
        ],
        "languages": {
            "JavaScript": {"bytes": 45000, "percentage": 60.0},
            "TypeScript": {"bytes": 20000, "percentage": 26.67},
            "CSS": {"bytes": 8000, "percentage": 10.67},
            "HTML": {"bytes": 2000, "percentage": 2.67},
        },
        "activity": [
            {
                "id": "1",
                "type": "PushEvent",
                "repo": "developer/portfolio-site",
                "created_at": _iso(now),
                "payload": {"commits": 1, "ref": "refs/heads/main"},
            }
        ],
        "workflows": [],
        "stats": {
            "totalStars": 20,
            "totalForks": 5,
            "totalRepos": 2,
            "followers": 42,
            "following": 24,
        },
    }


class DataSyncJob:
    """
    Pulls the configured user's GitHub data into the datastore.

    Only one full sync runs at a time; ``is_running`` guards it. Individual
    sections can also be refreshed on their own (webhooks, hourly activity).
    """

    def __init__(self, store: JsonDatastore, github: GitHubService, settings: Settings):
        self.store = store
        self.github = github
        self.settings = settings
        self.is_running = False
        self.is_github_configured = False
        self.last_sync_at: Optional[str] = None
        self.last_error: Optional[str] = None

    async def initialize(self) -> None:
        self.is_github_configured = self.github.is_configured
        if self.is_github_configured:
            logger.info("DataSync job initialized with GitHub integration")
            return
        logger.info("DataSync job initialized without GitHub integration (credentials not configured)")
        if await github_data.get_user(self.store) is None:
            await self.initialize_mock_data()

    async def initialize_mock_data(self) -> None:
        logger.info("Initializing with mock data for development...")
        mock = build_mock_data()
        await github_data.set_user(self.store, mock["user"])
        await github_data.set_repositories(self.store, mock["repositories"])
        await github_data.set_languages(self.store, mock["languages"])
        await github_data.set_activity(self.store, mock["activity"])
        await github_data.set_stats(self.store, mock["stats"])
        await github_data.set_workflows(self.store, mock["workflows"])
        logger.info("Mock data initialized successfully")

    async def sync_all_data(self, raise_if_running: bool = False) -> bool:
        """Runs every sync step in order. Returns True only when all steps succeed."""
        if self.is_running:
            logger.info("Data sync already in progress, skipping...")
            if raise_if_running:
                raise SyncInProgressError()
            return False

        if not self.is_github_configured:
            logger.warning("GitHub not configured, skipping data sync")
            return False

        self.is_running = True
        logger.info("Starting full data sync...")
        try:
            await self.sync_user_data()
            await self.sync_repositories()
            await self.sync_languages()
            await self.sync_activity()
            await self.sync_workflows()
            await self.update_stats()
        except Exception as exc:
            self.last_error = str(exc)
            logger.exception("Data sync failed")
            return False
        finally:
            self.is_running = False

        self.last_error = None
        self.last_sync_at = _iso(datetime.now(timezone.utc))
        logger.info("Full data sync completed successfully")
        await trigger_portfolio_revalidate(self.settings)
        return True

    async def sync_user_data(self) -> None:
        logger.info("Syncing user data...")
        user = await self.github.fetch_user()
        await github_data.set_user(self.store, user)
        logger.info("User data synced")

    async def sync_repositories(self) -> None:
        logger.info("Syncing repositories...")
        repositories = await self.github.fetch_all_repositories()
        await github_data.set_repositories(self.store, repositories)
        logger.info("Synced %d repositories", len(repositories))

    async def sync_languages(self) -> None:
        logger.info("Syncing languages...")
        repositories = await github_data.get_repositories(self.store)
        languages = await self.github.aggregate_languages(repositories)
        await github_data.set_languages(self.store, languages)
        logger.info("Synced %d languages", len(languages))

    async def sync_activity(self) -> None:
        logger.info("Syncing activity...")
        events = await self.github.fetch_user_events()
        activity = process_recent_activity(events)
        await github_data.set_activity(self.store, activity)
        logger.info("Synced %d activity items", len(activity))

    async def sync_workflows(self) -> None:
        logger.info("Syncing workflows...")
        repositories = await github_data.get_repositories(self.store)
        top_repos = sorted(
            (repo for repo in repositories if not repo.get("fork")),
            key=lambda repo: repo.get("stargazers_count") or 0,
            reverse=True,
        )[:WORKFLOW_REPO_LIMIT]

        runs: List[Dict[str, Any]] = []
        for repo in top_repos:
            workflow_runs = await self.github.fetch_workflow_runs(repo["name"])
            runs.extend({**run, "repo": repo["name"]} for run in workflow_runs)
            if self.github.request_delay:
                await anyio.sleep(self.github.request_delay * 2)

        runs.sort(key=lambda run: run.get("created_at") or "", reverse=True)
        latest = runs[:WORKFLOW_RUN_LIMIT]
        await github_data.set_workflows(self.store, latest)
        logger.info("Synced %d workflow runs", len(latest))

    async def update_stats(self) -> None:
        logger.info("Updating stats...")
        repositories = await github_data.get_repositories(self.store)
        user = await github_data.get_user(self.store)
        await github_data.set_stats(self.store, calculate_stats(repositories, user))
        logger.info("Stats updated")

    async def sync_activity_only(self) -> None:
        """Hourly refresh of the activity feed; yields to a running full sync."""
        if self.is_running or not self.is_github_configured:
            return
        try:
            await self.sync_activity()
        except Exception:
            logger.exception("Scheduled activity sync failed")

    async def sync_sections(self, *sections: str) -> None:
        """Refreshes the named sections (used by webhooks). Errors are logged, not raised."""
        if not self.is_github_configured:
            logger.warning("GitHub not configured, skipping %s sync", ", ".join(sections))
            return
        steps = {
            "repositories": self.sync_repositories,
            "activity": self.sync_activity,
            "workflows": self.sync_workflows,
            "languages": self.sync_languages,
            "stats": self.update_stats,
            "user": self.sync_user_data,
        }
        for section in sections:
            try:
                await steps[section]()
            except Exception:
                logger.exception("Failed to sync %s", section)

    async def perform_initial_sync(self) -> None:
        if not self.is_github_configured:
            logger.info("GitHub not configured, skipping initial sync (using mock data)")
            return
        logger.info("Performing initial data sync...")
        await self.sync_all_data()

    def start_scheduled_sync(self, scheduler: CronScheduler, task_group: TaskGroup) -> bool:
        if not self.is_github_configured:
            logger.warning("GitHub not configured, scheduled sync disabled")
            return False

        scheduler.add_job("full sync", self.settings.full_sync_cron, self.sync_all_data)
        scheduler.add_job("activity sync", self.settings.activity_sync_cron, self.sync_activity_only)
        scheduler.start(task_group)
        logger.info("Scheduled data sync jobs started")
        return True
