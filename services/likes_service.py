import re
from typing import Optional

from core.errors import ValidationError
from repositories import engagement
from repositories.datastore import JsonDatastore
from schemas.posts import LikeStatus


POST_ID_REGEX = re.compile(r"^[A-Za-z0-9_-]{1,100}$")
FINGERPRINT_REGEX = re.compile(r"^[A-Za-z0-9]{1,50}$")


def validate_post_id(post_id: str) -> str:
    if not post_id or not POST_ID_REGEX.match(post_id):
        raise ValidationError("Invalid post ID", "postId")
    return post_id


def validate_fingerprint(fingerprint: Optional[str]) -> str:
    if not fingerprint:
        raise ValidationError("Fingerprint is required", "fingerprint")
    if not FINGERPRINT_REGEX.match(fingerprint):
        raise ValidationError("Invalid fingerprint format", "fingerprint")
    return fingerprint


async def toggle_post_like(store: JsonDatastore, post_id: str, fingerprint: Optional[str]) -> LikeStatus:
    validate_post_id(post_id)
    fingerprint = validate_fingerprint(fingerprint)
    liked, count = await engagement.toggle_like(store, post_id, fingerprint)
    return LikeStatus(liked=liked, count=count)


async def get_post_likes(store: JsonDatastore, post_id: str, fingerprint: Optional[str] = None) -> LikeStatus:
    validate_post_id(post_id)
    fingerprints = await engagement.get_likes(store, post_id)
    return LikeStatus(liked=bool(fingerprint) and fingerprint in fingerprints, count=len(fingerprints))
