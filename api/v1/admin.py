import logging
from datetime import datetime, timezone
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Request, status

from core.errors import ExternalServiceError
from repositories import engagement, github_data
from schemas.response_schema import APIResponse
from security.admin_auth import verify_admin_key
from services.admin_service import get_recent_logs, get_system_info

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/admin",
    tags=["Admin"],
    dependencies=[Depends(verify_admin_key)],
)


@router.post("/verify", response_model=APIResponse[dict])
async def verify_access():
    return APIResponse(status_code=200, data={"verified": True}, detail="Admin access verified")


@router.get("/all", response_model=APIResponse[dict])
async def dashboard_data(request: Request):
    """
    The whole datastore document, analytics and contact submissions included.
    """
    data = await github_data.get_all_data(request.app.state.datastore)
    return APIResponse(status_code=200, data=data, detail="dashboard data fetched")


@router.post("/refresh", response_model=APIResponse[dict])
async def refresh_data(request: Request):
    """
    Runs a full GitHub sync inline.

    Raises:
        409 while another sync is running
        503 when GitHub credentials are not configured
        502 when the sync fails
    """
    sync_job = request.app.state.sync_job
    if not sync_job.is_github_configured:
        raise ExternalServiceError("GitHub", "GitHub integration not configured", status.HTTP_503_SERVICE_UNAVAILABLE)

    completed = await sync_job.sync_all_data(raise_if_running=True)
    if not completed:
        raise ExternalServiceError("GitHub", f"Failed to refresh data: {sync_job.last_error or 'unknown error'}")

    logger.info("Manual data refresh completed")
    return APIResponse(
        status_code=200,
        data={"timestamp": datetime.now(timezone.utc).isoformat(), "lastSyncAt": sync_job.last_sync_at},
        detail="Data refresh completed successfully",
    )


@router.get("/system", response_model=APIResponse[dict])
async def system_info(request: Request):
    return APIResponse(status_code=200, data=get_system_info(request.app.state.started_at), detail="system info fetched")


@router.get("/logs", response_model=APIResponse[dict])
async def recent_logs(request: Request):
    data = await get_recent_logs(request.app.state.settings.log_dir)
    return APIResponse(status_code=200, data=data, detail="logs fetched")


@router.get("/contacts", response_model=APIResponse[List[Dict[str, Any]]])
async def contact_submissions(request: Request):
    submissions = await engagement.get_contact_submissions(request.app.state.datastore)
    return APIResponse(status_code=200, data=submissions, detail="contact submissions fetched", count=len(submissions))
