import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from fastapi import APIRouter, BackgroundTasks, Header, Request

from core.errors import WebhookError
from security.webhook_signature import verify_github_signature

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/github", tags=["Webhooks"])

REPOSITORY_ACTIONS = {"created", "deleted", "edited", "publicized", "privatized"}
REPOSITORY_AND_ACTIVITY_EVENTS = {"push", "star", "fork", "release"}


def _repo_name(payload: Dict[str, Any]) -> str:
    repository = payload.get("repository") or {}
    return repository.get("name") or "unknown"


def sections_for_event(event: Optional[str], payload: Dict[str, Any]) -> Tuple[str, ...]:
    """Maps a GitHub webhook event to the datastore sections it invalidates."""
    if event in REPOSITORY_AND_ACTIVITY_EVENTS:
        if event == "push":
            logger.info("Push to %s/%s", _repo_name(payload), payload.get("ref"))
        elif event == "release":
            release = payload.get("release") or {}
            logger.info("Release %s %s for %s", release.get("tag_name"), payload.get("action"), _repo_name(payload))
        else:
            logger.info("Repository %s received %s event (%s)", _repo_name(payload), event, payload.get("action"))
        return ("repositories", "activity")

    if event == "repository":
        action = payload.get("action")
        logger.info("Repository %s: %s", action, _repo_name(payload))
        if action in REPOSITORY_ACTIONS:
            return ("repositories",)
        return ()

    if event == "workflow_run":
        run = payload.get("workflow_run") or {}
        logger.info("Workflow %s %s for %s", run.get("name"), payload.get("action"), _repo_name(payload))
        return ("workflows",)

    if event == "ping":
        logger.info("Webhook ping received")
        return ()

    logger.info("Unhandled webhook event: %s", event)
    return ()


@router.post("/webhook")
async def github_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    x_github_event: Optional[str] = Header(default=None),
    x_hub_signature_256: Optional[str] = Header(default=None),
):
    """
    Receives GitHub webhooks. The signature is checked against the raw body;
    affected sections are re-synced after the response is sent.
    """
    body = await request.body()
    try:
        payload = json.loads(body)
    except ValueError as exc:
        raise WebhookError("Invalid JSON payload", "github") from exc
    if not isinstance(payload, dict):
        raise WebhookError("Invalid JSON payload", "github")

    verify_github_signature(request.app.state.settings.webhook_secret, body, x_hub_signature_256)

    logger.info("Received GitHub webhook: %s", x_github_event)
    sections = sections_for_event(x_github_event, payload)
    if sections:
        background_tasks.add_task(request.app.state.sync_job.sync_sections, *sections)

    return {
        "message": "Webhook processed successfully",
        "event": x_github_event,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
