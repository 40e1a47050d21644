import hashlib
import hmac
import logging
from typing import Optional

from core.errors import AuthenticationError


logger = logging.getLogger(__name__)


def compute_signature(secret: str, body: bytes) -> str:
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"sha256={digest}"


def verify_github_signature(secret: Optional[str], body: bytes, signature: Optional[str]) -> None:
    """
    Checks ``X-Hub-Signature-256`` against the raw request body.
    Without a configured secret verification is skipped (with a warning).
    """
    if not secret:
        logger.warning("WEBHOOK_SECRET not configured - skipping signature verification")
        return
    if not signature:
        raise AuthenticationError("Missing signature")
    expected = compute_signature(secret, body)
    if not hmac.compare_digest(signature.encode("utf-8"), expected.encode("utf-8")):
        raise AuthenticationError("Invalid signature")
