from fastapi import APIRouter, Depends, Query

from forum.database import Gateway, get_gateway
from forum.dependencies import get_current_actor
from forum.schemas import LikeState, LikeTargetRequest
from forum.services import like_service
from forum.services.access import Actor

# Target-agnostic variant of /posts/{id}/like and /comments/{id}/like.
router = APIRouter(prefix="/api/likes", tags=["likes"])


@router.post("", response_model=LikeState)
async def set_like(
    data: LikeTargetRequest,
    actor: Actor = Depends(get_current_actor),
    gateway: Gateway = Depends(get_gateway),
):
    return await like_service.set_like(
        gateway, actor, data.type, post_id=data.post_id, comment_id=data.comment_id
    )


@router.delete("", response_model=LikeState)
async def remove_like(
    post_id: int | None = Query(None, ge=1),
    comment_id: int | None = Query(None, ge=1),
    actor: Actor = Depends(get_current_actor),
    gateway: Gateway = Depends(get_gateway),
):
    return await like_service.remove_like(
        gateway, actor, post_id=post_id, comment_id=comment_id
    )
