from fastapi import APIRouter, Depends, Response

from forum.database import Gateway, get_gateway
from forum.dependencies import (
    comment_filters,
    get_current_actor,
    get_optional_actor,
    list_params,
    post_filters,
    require_admin,
)
from forum.schemas import (
    CategoryResponse,
    CommentCreate,
    CommentFilters,
    CommentPage,
    CommentResponse,
    LikePage,
    LikeRequest,
    LikeState,
    ListParams,
    LockRequest,
    PostCreate,
    PostFilters,
    PostPage,
    PostResponse,
    PostUpdate,
)
from forum.services import comment_service, like_service, post_service
from forum.services.access import Actor

router = APIRouter(prefix="/api/posts", tags=["posts"])


@router.get("", response_model=PostPage)
async def list_posts(
    filters: PostFilters = Depends(post_filters),
    actor: Actor | None = Depends(get_optional_actor),
    gateway: Gateway = Depends(get_gateway),
):
    return await post_service.list_posts(gateway, filters, actor)


@router.post("", status_code=201, response_model=PostResponse)
async def create_post(
    data: PostCreate,
    actor: Actor = Depends(get_current_actor),
    gateway: Gateway = Depends(get_gateway),
):
    return await post_service.create_post(gateway, actor, data)


@router.get("/{post_id}", response_model=PostResponse)
async def get_post(
    post_id: int,
    actor: Actor | None = Depends(get_optional_actor),
    gateway: Gateway = Depends(get_gateway),
):
    return await post_service.get_post(gateway, post_id, actor)


@router.patch("/{post_id}", response_model=PostResponse)
async def update_post(
    post_id: int,
    data: PostUpdate,
    actor: Actor = Depends(get_current_actor),
    gateway: Gateway = Depends(get_gateway),
):
    return await post_service.update_post(gateway, actor, post_id, data)


@router.delete("/{post_id}", status_code=204)
async def delete_post(
    post_id: int,
    actor: Actor = Depends(get_current_actor),
    gateway: Gateway = Depends(get_gateway),
):
    await post_service.delete_post(gateway, actor, post_id)
    return Response(status_code=204)


@router.patch("/{post_id}/lock", response_model=PostResponse)
async def set_post_lock(
    post_id: int,
    data: LockRequest,
    actor: Actor = Depends(require_admin),
    gateway: Gateway = Depends(get_gateway),
):
    return await post_service.set_post_lock(gateway, actor, post_id, data.locked)


@router.get("/{post_id}/categories", response_model=list[CategoryResponse])
async def list_post_categories(
    post_id: int,
    actor: Actor | None = Depends(get_optional_actor),
    gateway: Gateway = Depends(get_gateway),
):
    return await post_service.list_post_categories(gateway, post_id, actor)


# --- Comments under a post ---

@router.get("/{post_id}/comments", response_model=CommentPage)
async def list_comments(
    post_id: int,
    filters: CommentFilters = Depends(comment_filters),
    actor: Actor | None = Depends(get_optional_actor),
    gateway: Gateway = Depends(get_gateway),
):
    return await comment_service.list_comments(gateway, post_id, filters, actor)


@router.post("/{post_id}/comments", status_code=201, response_model=CommentResponse)
async def create_comment(
    post_id: int,
    data: CommentCreate,
    actor: Actor = Depends(get_current_actor),
    gateway: Gateway = Depends(get_gateway),
):
    return await comment_service.create_comment(gateway, actor, post_id, data.content)


# --- Reactions ---

@router.get("/{post_id}/like", response_model=LikePage)
async def list_post_likes(
    post_id: int,
    params: ListParams = Depends(list_params),
    actor: Actor | None = Depends(get_optional_actor),
    gateway: Gateway = Depends(get_gateway),
):
    return await like_service.list_post_likes(gateway, post_id, params, actor)


@router.post("/{post_id}/like", response_model=LikeState)
async def set_post_like(
    post_id: int,
    data: LikeRequest,
    actor: Actor = Depends(get_current_actor),
    gateway: Gateway = Depends(get_gateway),
):
    return await like_service.set_like(gateway, actor, data.type, post_id=post_id)


@router.delete("/{post_id}/like", response_model=LikeState)
async def remove_post_like(
    post_id: int,
    actor: Actor = Depends(get_current_actor),
    gateway: Gateway = Depends(get_gateway),
):
    return await like_service.remove_like(gateway, actor, post_id=post_id)
