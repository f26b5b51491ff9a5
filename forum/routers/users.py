from fastapi import APIRouter, Depends, Response

from forum.database import Gateway, get_gateway
from forum.dependencies import get_current_actor, require_admin, user_filters
from forum.schemas import (
    MeUpdate,
    RoleUpdate,
    UserCreate,
    UserFilters,
    UserPage,
    UserPrivate,
    UserPublic,
    UserUpdate,
)
from forum.services import user_service
from forum.services.access import Actor

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("/me", response_model=UserPrivate)
async def get_me(
    actor: Actor = Depends(get_current_actor),
    gateway: Gateway = Depends(get_gateway),
):
    return await user_service.get_me(gateway, actor)


@router.patch("/me", response_model=UserPrivate)
async def update_me(
    data: MeUpdate,
    actor: Actor = Depends(get_current_actor),
    gateway: Gateway = Depends(get_gateway),
):
    return await user_service.update_me(gateway, actor, data)


@router.get("", response_model=UserPage)
async def list_users(
    filters: UserFilters = Depends(user_filters),
    actor: Actor = Depends(require_admin),
    gateway: Gateway = Depends(get_gateway),
):
    return await user_service.list_users(gateway, actor, filters)


@router.post("", status_code=201, response_model=UserPrivate)
async def create_user(
    data: UserCreate,
    actor: Actor = Depends(require_admin),
    gateway: Gateway = Depends(get_gateway),
):
    return await user_service.create_user(gateway, actor, data)


@router.get("/{user_id}", response_model=UserPublic)
async def get_user(user_id: int, gateway: Gateway = Depends(get_gateway)):
    return await user_service.get_public_user(gateway, user_id)


@router.patch("/{user_id}", response_model=UserPrivate)
async def update_user(
    user_id: int,
    data: UserUpdate,
    actor: Actor = Depends(require_admin),
    gateway: Gateway = Depends(get_gateway),
):
    return await user_service.update_user(gateway, actor, user_id, data)


@router.patch("/{user_id}/role", response_model=UserPrivate)
async def set_role(
    user_id: int,
    data: RoleUpdate,
    actor: Actor = Depends(require_admin),
    gateway: Gateway = Depends(get_gateway),
):
    return await user_service.set_role(gateway, actor, user_id, data)


@router.delete("/{user_id}", status_code=204)
async def delete_user(
    user_id: int,
    actor: Actor = Depends(require_admin),
    gateway: Gateway = Depends(get_gateway),
):
    await user_service.delete_user(gateway, actor, user_id)
    return Response(status_code=204)
