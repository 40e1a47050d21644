"""
Cron-style scheduler for the background sync jobs.

Each job is an async callable paired with a cron expression. A job runs as a
task in the caller's anyio task group: it sleeps until the next matching
minute, runs, and repeats. A failing run is logged and does not stop the
schedule.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable, Dict, List, Optional

import anyio
from anyio.abc import TaskGroup
from croniter import croniter


logger = logging.getLogger(__name__)


def validate_cron(expr: str) -> str:
    if not croniter.is_valid(expr):
        raise ValueError(f"Invalid cron expression '{expr}'")
    return expr


def compute_next_run(expr: str, now: Optional[datetime] = None) -> datetime:
    base = now or datetime.now().astimezone()
    return croniter(expr, base).get_next(datetime)


@dataclass
class ScheduledJob:
    name: str
    expr: str
    func: Callable[[], Awaitable[None]]
    last_run_at: Optional[datetime] = None
    next_run_at: Optional[datetime] = None
    runs: int = 0


@dataclass
class CronScheduler:
    jobs: Dict[str, ScheduledJob] = field(default_factory=dict)
    _scopes: List[anyio.CancelScope] = field(default_factory=list)

    def add_job(self, name: str, expr: str, func: Callable[[], Awaitable[None]]) -> ScheduledJob:
        job = ScheduledJob(name=name, expr=validate_cron(expr), func=func)
        self.jobs[name] = job
        return job

    @property
    def running(self) -> bool:
        return bool(self._scopes)

    async def run_job(self, job: ScheduledJob) -> None:
        logger.info("Scheduled %s triggered", job.name)
        job.last_run_at = datetime.now().astimezone()
        job.runs += 1
        try:
            await job.func()
        except Exception:
            logger.exception("Scheduled %s failed", job.name)

    async def _loop(self, job: ScheduledJob, scope: anyio.CancelScope) -> None:
        with scope:
            while True:
                job.next_run_at = compute_next_run(job.expr)
                delay = (job.next_run_at - datetime.now().astimezone()).total_seconds()
                await anyio.sleep(max(delay, 0))
                await self.run_job(job)

    def start(self, task_group: TaskGroup) -> None:
        """Runs every job in ``task_group`` until ``stop`` is called."""
        if self.running:
            return
        for job in self.jobs.values():
            scope = anyio.CancelScope()
            self._scopes.append(scope)
            task_group.start_soon(self._loop, job, scope, name=f"cron:{job.name}")
            logger.info("   - %s: %s", job.name, job.expr)

    def stop(self) -> None:
        for scope in self._scopes:
            scope.cancel()
        self._scopes = []
