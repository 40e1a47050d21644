from fastapi import APIRouter, Request, status

from core.rate_limit import contact_limit, limiter
from schemas.contact import ContactRequest
from schemas.response_schema import APIResponse
from services.analytics_service import get_client_ip
from services.contact_service import submit_contact_form

router = APIRouter(prefix="/api/contact", tags=["Contact"])


@router.post("", response_model=APIResponse[dict], status_code=status.HTTP_201_CREATED)
@limiter.limit(contact_limit)
async def submit_contact(request: Request, payload: ContactRequest):
    """
    Accepts a contact form submission protected by Cloudflare Turnstile.
    """
    submission = await submit_contact_form(
        request.app.state.datastore,
        request.app.state.settings,
        payload,
        get_client_ip(request),
    )
    return APIResponse(
        status_code=201,
        data={"id": submission.id, "timestamp": submission.timestamp},
        detail="Message sent successfully!",
    )
