from fastapi import APIRouter, Depends, Response

from forum.database import Gateway, get_gateway
from forum.dependencies import get_current_actor, get_optional_actor, list_params, require_admin
from forum.schemas import (
    CommentCreateForPost,
    CommentResponse,
    CommentUpdate,
    LikePage,
    LikeRequest,
    LikeState,
    ListParams,
    LockRequest,
)
from forum.services import comment_service, like_service
from forum.services.access import Actor

router = APIRouter(prefix="/api/comments", tags=["comments"])


@router.post("", status_code=201, response_model=CommentResponse)
async def create_comment(
    data: CommentCreateForPost,
    actor: Actor = Depends(get_current_actor),
    gateway: Gateway = Depends(get_gateway),
):
    return await comment_service.create_comment(gateway, actor, data.post_id, data.content)


@router.get("/{comment_id}", response_model=CommentResponse)
async def get_comment(
    comment_id: int,
    actor: Actor | None = Depends(get_optional_actor),
    gateway: Gateway = Depends(get_gateway),
):
    return await comment_service.get_comment(gateway, comment_id, actor)


@router.patch("/{comment_id}", response_model=CommentResponse)
async def update_comment(
    comment_id: int,
    data: CommentUpdate,
    actor: Actor = Depends(get_current_actor),
    gateway: Gateway = Depends(get_gateway),
):
    return await comment_service.update_comment(gateway, actor, comment_id, data)


@router.delete("/{comment_id}", status_code=204)
async def delete_comment(
    comment_id: int,
    actor: Actor = Depends(get_current_actor),
    gateway: Gateway = Depends(get_gateway),
):
    await comment_service.delete_comment(gateway, actor, comment_id)
    return Response(status_code=204)


@router.patch("/{comment_id}/lock", response_model=CommentResponse)
async def set_comment_lock(
    comment_id: int,
    data: LockRequest,
    actor: Actor = Depends(require_admin),
    gateway: Gateway = Depends(get_gateway),
):
    return await comment_service.set_comment_lock(gateway, actor, comment_id, data.locked)


# --- Reactions ---

@router.get("/{comment_id}/like", response_model=LikePage)
async def list_comment_likes(
    comment_id: int,
    params: ListParams = Depends(list_params),
    actor: Actor | None = Depends(get_optional_actor),
    gateway: Gateway = Depends(get_gateway),
):
    return await like_service.list_comment_likes(gateway, comment_id, params, actor)


@router.post("/{comment_id}/like", response_model=LikeState)
async def set_comment_like(
    comment_id: int,
    data: LikeRequest,
    actor: Actor = Depends(get_current_actor),
    gateway: Gateway = Depends(get_gateway),
):
    return await like_service.set_like(gateway, actor, data.type, comment_id=comment_id)


@router.delete("/{comment_id}/like", response_model=LikeState)
async def remove_comment_like(
    comment_id: int,
    actor: Actor = Depends(get_current_actor),
    gateway: Gateway = Depends(get_gateway),
):
    return await like_service.remove_like(gateway, actor, comment_id=comment_id)
