from typing import Optional

from fastapi import APIRouter, Path, Query, Request

from core.rate_limit import like_limit, limiter
from schemas.posts import LikeRequest, LikeStatus
from schemas.response_schema import APIResponse
from services.likes_service import get_post_likes, toggle_post_like

router = APIRouter(prefix="/api/posts", tags=["Posts"])


@router.post("/{post_id}/like", response_model=APIResponse[LikeStatus])
@limiter.limit(like_limit)
async def toggle_like(
    request: Request,
    payload: LikeRequest,
    post_id: str = Path(..., description="Post slug"),
):
    """
    Likes the post for this browser fingerprint, or removes an existing like.
    """
    result = await toggle_post_like(request.app.state.datastore, post_id, payload.fingerprint)
    return APIResponse(status_code=200, data=result, detail="liked" if result.liked else "unliked")


@router.get("/{post_id}/likes", response_model=APIResponse[LikeStatus])
async def get_likes(
    request: Request,
    post_id: str = Path(..., description="Post slug"),
    fingerprint: Optional[str] = Query(None),
):
    result = await get_post_likes(request.app.state.datastore, post_id, fingerprint)
    return APIResponse(status_code=200, data=result, detail="likes fetched")
