from datetime import datetime

from fastapi import Depends, Query
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from forum.database import Gateway, get_gateway
from forum.errors import UnauthorizedError
from forum.models import Role, Status
from forum.repositories import TokenRepository, UserRepository
from forum.schemas import (
    CategoryFilters,
    CommentFilters,
    ListParams,
    PostFilters,
    UserFilters,
)
from forum.security import TokenClaims, decode_access_token
from forum.services.access import Actor, ensure_admin

# auto_error=False: anonymous requests are allowed on public routes.
bearer_scheme = HTTPBearer(auto_error=False)


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

async def get_token_claims(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    gateway: Gateway = Depends(get_gateway),
) -> TokenClaims | None:
    """
    Claims of the bearer token, or None when no token was sent.

    A token that is present but malformed, expired or revoked is an
    error even on routes that allow anonymous access.
    """
    if credentials is None:
        return None
    claims = decode_access_token(credentials.credentials)
    async with gateway.session() as session:
        if await TokenRepository(session).is_access_token_revoked(claims.jti):
            raise UnauthorizedError("Token has been revoked")
    return claims


async def get_optional_actor(
    claims: TokenClaims | None = Depends(get_token_claims),
    gateway: Gateway = Depends(get_gateway),
) -> Actor | None:
    if claims is None:
        return None
    async with gateway.session() as session:
        user = await UserRepository(session).get_by_id(claims.user_id)
    if user is None:
        raise UnauthorizedError("User no longer exists")
    # The stored role wins over the claim so a demotion takes effect at once.
    return Actor(id=user.id, role=Role(user.role))


async def get_current_actor(actor: Actor | None = Depends(get_optional_actor)) -> Actor:
    if actor is None:
        raise UnauthorizedError("Not authenticated")
    return actor


async def get_current_claims(
    claims: TokenClaims | None = Depends(get_token_claims),
    actor: Actor = Depends(get_current_actor),
) -> TokenClaims:
    return claims


async def require_admin(actor: Actor = Depends(get_current_actor)) -> Actor:
    ensure_admin(actor)
    return actor


# ---------------------------------------------------------------------------
# Listing parameters
# ---------------------------------------------------------------------------

class PaginationParams:
    """
    Reusable dependency parsing paging and sorting query parameters.

    ``limit`` is clamped to ``PAGINATION_LIMIT_MAX`` by the repositories,
    so an oversized value is shortened rather than rejected.  Each
    listing decides which ``sort_by`` keys it honours; anything else
    falls back to that listing's default order.
    """

    def __init__(
        self,
        limit: int | None = Query(None, ge=1, description="Page size."),
        offset: int = Query(0, ge=0, description="Number of items to skip."),
        sort_by: str | None = Query(None, max_length=32, description="Sort key."),
        order: str | None = Query(None, pattern="^(asc|desc)$", description="'asc' or 'desc'."),
    ) -> None:
        self.limit = limit
        self.offset = offset
        self.sort_by = sort_by
        self.order = order

    def as_dict(self) -> dict:
        return {
            "limit": self.limit,
            "offset": self.offset,
            "sort_by": self.sort_by,
            "order": self.order,
        }


def list_params(pagination: PaginationParams = Depends()) -> ListParams:
    return ListParams(**pagination.as_dict())


def category_post_filters(
    pagination: PaginationParams = Depends(),
    q: str | None = Query(None, max_length=255, description="Search in title and content."),
    author_id: int | None = Query(None, ge=1),
    status: Status | None = Query(None, description="Honoured for admins only."),
    date_from: datetime | None = Query(None),
    date_to: datetime | None = Query(None),
) -> PostFilters:
    """Post filters for routes that take the category from the path."""
    return PostFilters(
        q=q,
        author_id=author_id,
        status=status,
        date_from=date_from,
        date_to=date_to,
        **pagination.as_dict(),
    )


def post_filters(
    filters: PostFilters = Depends(category_post_filters),
    category_id: int | None = Query(None, ge=1),
) -> PostFilters:
    return filters.model_copy(update={"category_id": category_id})


def comment_filters(
    pagination: PaginationParams = Depends(),
    status: Status | None = Query(None, description="Honoured for admins only."),
) -> CommentFilters:
    return CommentFilters(status=status, **pagination.as_dict())


def user_filters(
    pagination: PaginationParams = Depends(),
    q: str | None = Query(None, max_length=255),
    role: Role | None = Query(None),
) -> UserFilters:
    return UserFilters(q=q, role=role, **pagination.as_dict())


def category_filters(
    pagination: PaginationParams = Depends(),
    q: str | None = Query(None, max_length=255),
) -> CategoryFilters:
    return CategoryFilters(q=q, **pagination.as_dict())
