from typing import Optional

from pydantic import BaseModel


class LikeRequest(BaseModel):
    fingerprint: Optional[str] = None


class LikeStatus(BaseModel):
    liked: bool
    count: int
