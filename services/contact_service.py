import logging
import re
import uuid
from datetime import datetime, timezone

from core.config import Settings
from core.errors import ValidationError
from repositories import engagement
from repositories.datastore import JsonDatastore
from schemas.contact import ContactForm, ContactRequest, ContactSubmission
from services.geolocation_service import lookup_location
from services.turnstile_service import verify_turnstile_token


logger = logging.getLogger(__name__)

EMAIL_REGEX = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
TAG_REGEX = re.compile(r"<[^>]*>")
MAX_NAME_LENGTH = 100
MIN_MESSAGE_LENGTH = 10
MAX_MESSAGE_LENGTH = 2000


def sanitize_text(text: str) -> str:
    """Decodes the basic entities, then strips HTML tags."""
    decoded = (text or "").replace("&lt;", "<").replace("&gt;", ">").replace("&amp;", "&")
    return TAG_REGEX.sub("", decoded).strip()


def validate_contact_form(payload: ContactRequest) -> ContactForm:
    name = sanitize_text(payload.name)
    email = (payload.email or "").strip().lower()
    message = sanitize_text(payload.message)

    if not name:
        raise ValidationError("Name is required", "name")
    if len(name) > MAX_NAME_LENGTH:
        raise ValidationError(f"Name must be less than {MAX_NAME_LENGTH} characters", "name")

    if not email:
        raise ValidationError("Email is required", "email")
    if not EMAIL_REGEX.match(email):
        raise ValidationError("Invalid email format", "email")

    if not message:
        raise ValidationError("Message is required", "message")
    if len(message) < MIN_MESSAGE_LENGTH:
        raise ValidationError(f"Message must be at least {MIN_MESSAGE_LENGTH} characters", "message")
    if len(message) > MAX_MESSAGE_LENGTH:
        raise ValidationError(f"Message must be less than {MAX_MESSAGE_LENGTH} characters", "message")

    return ContactForm(name=name, email=email, message=message)


async def submit_contact_form(
    store: JsonDatastore,
    settings: Settings,
    payload: ContactRequest,
    ip: str,
) -> ContactSubmission:
    """
    Verifies the CAPTCHA, validates and sanitizes the form, resolves the
    sender's rough location and stores the submission.

    Raises:
        ValidationError 400: missing or rejected CAPTCHA, or invalid form fields
    """
    if not payload.turnstileToken:
        raise ValidationError("CAPTCHA verification is required", "turnstileToken")

    if not await verify_turnstile_token(settings, payload.turnstileToken, ip):
        raise ValidationError("Invalid CAPTCHA. Please try again.", "turnstileToken")

    form = validate_contact_form(payload)
    submission = ContactSubmission(
        id=uuid.uuid4().hex,
        timestamp=datetime.now(timezone.utc).isoformat(),
        ipAddress=ip,
        geolocation=await lookup_location(settings, ip),
        **form.model_dump(),
    )
    await engagement.add_contact_submission(store, submission.model_dump())
    logger.info("Contact submission %s stored (%s)", submission.id, submission.geolocation)
    return submission
