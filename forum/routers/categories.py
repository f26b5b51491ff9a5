from fastapi import APIRouter, Depends, Response

from forum.database import Gateway, get_gateway
from forum.dependencies import (
    category_filters,
    category_post_filters,
    get_optional_actor,
    require_admin,
)
from forum.schemas import (
    CategoryCreate,
    CategoryFilters,
    CategoryPage,
    CategoryResponse,
    CategoryUpdate,
    PostFilters,
    PostPage,
)
from forum.services import category_service
from forum.services.access import Actor

router = APIRouter(prefix="/api/categories", tags=["categories"])


@router.get("", response_model=CategoryPage)
async def list_categories(
    filters: CategoryFilters = Depends(category_filters),
    gateway: Gateway = Depends(get_gateway),
):
    return await category_service.list_categories(gateway, filters)


@router.get("/{category_id}", response_model=CategoryResponse)
async def get_category(category_id: int, gateway: Gateway = Depends(get_gateway)):
    return await category_service.get_category(gateway, category_id)


@router.get("/{category_id}/posts", response_model=PostPage)
async def list_category_posts(
    category_id: int,
    filters: PostFilters = Depends(category_post_filters),
    actor: Actor | None = Depends(get_optional_actor),
    gateway: Gateway = Depends(get_gateway),
):
    return await category_service.list_category_posts(gateway, category_id, filters, actor)


@router.post("", status_code=201, response_model=CategoryResponse)
async def create_category(
    data: CategoryCreate,
    actor: Actor = Depends(require_admin),
    gateway: Gateway = Depends(get_gateway),
):
    return await category_service.create_category(gateway, actor, data)


@router.patch("/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: int,
    data: CategoryUpdate,
    actor: Actor = Depends(require_admin),
    gateway: Gateway = Depends(get_gateway),
):
    return await category_service.update_category(gateway, actor, category_id, data)


@router.delete("/{category_id}", status_code=204)
async def delete_category(
    category_id: int,
    actor: Actor = Depends(require_admin),
    gateway: Gateway = Depends(get_gateway),
):
    await category_service.delete_category(gateway, actor, category_id)
    return Response(status_code=204)
