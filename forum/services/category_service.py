"""
Category service: the public catalogue and its admin maintenance.

Catalogue reads go through the Redis cache-aside layer; each write
invalidates it after the transaction commits.  Posts under a category
are never cached because what a caller may see depends on who they are.
"""
import logging

from forum.cache import cache
from forum.config import settings
from forum.database import Gateway
from forum.errors import BadRequestError, ConflictError, NotFoundError
from forum.repositories import CategoryRepository
from forum.schemas import CategoryCreate, CategoryFilters, CategoryUpdate, PostFilters
from forum.services import post_service
from forum.services.access import Actor, ensure_admin
from forum.services.serializers import category_to_dict, page_to_dict

logger = logging.getLogger(__name__)


async def _load(categories: CategoryRepository, category_id: int):
    category = await categories.get_by_id(category_id)
    if category is None:
        raise NotFoundError("Category not found")
    return category


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

async def list_categories(gateway: Gateway, filters: CategoryFilters) -> dict:
    key = (
        f"categories:list:{filters.q or ''}:{filters.limit}:{filters.offset}"
        f":{filters.sort_by}:{filters.order}"
    )

    async def load() -> dict:
        async with gateway.session() as session:
            page = await CategoryRepository(session).list_paged(
                q=filters.q,
                limit=filters.limit,
                offset=filters.offset,
                sort_by=filters.sort_by,
                order=filters.order,
            )
        return page_to_dict(page, category_to_dict)

    return await cache.get_or_load(key, load, ttl=settings.CACHE_TTL_LIST)


async def get_category(gateway: Gateway, category_id: int) -> dict:
    async def load() -> dict:
        async with gateway.session() as session:
            return category_to_dict(await _load(CategoryRepository(session), category_id))

    return await cache.get_or_load(
        f"categories:detail:{category_id}", load, ttl=settings.CACHE_TTL_DETAIL
    )


async def list_category_posts(
    gateway: Gateway, category_id: int, filters: PostFilters, actor: Actor | None = None
) -> dict:
    async with gateway.session() as session:
        await _load(CategoryRepository(session), category_id)
    filters = filters.model_copy(update={"category_id": category_id})
    return await post_service.list_posts(gateway, filters, actor)


# ---------------------------------------------------------------------------
# Administration
# ---------------------------------------------------------------------------

async def create_category(gateway: Gateway, actor: Actor, data: CategoryCreate) -> dict:
    ensure_admin(actor)
    async with gateway.transaction() as session:
        categories = CategoryRepository(session)
        if await categories.title_taken(data.title):
            raise ConflictError("Category title already exists")
        category_id = await categories.create(title=data.title, description=data.description)
        category = await _load(categories, category_id)

    await cache.invalidate_categories()
    logger.info("Category %d created by admin %d", category_id, actor.id)
    return category_to_dict(category)


async def update_category(
    gateway: Gateway, actor: Actor, category_id: int, data: CategoryUpdate
) -> dict:
    ensure_admin(actor)
    patch = data.model_dump(exclude_unset=True)
    if not patch:
        raise BadRequestError("No fields to update")
    if "title" in patch and patch["title"] is None:
        raise BadRequestError("title cannot be null")

    async with gateway.transaction() as session:
        categories = CategoryRepository(session)
        await _load(categories, category_id)
        if "title" in patch and await categories.title_taken(patch["title"], category_id):
            raise ConflictError("Category title already exists")
        await categories.update(category_id, patch)
        category = await _load(categories, category_id)

    await cache.invalidate_categories(category_id)
    logger.info("Category %d updated by admin %d", category_id, actor.id)
    return category_to_dict(category)


async def delete_category(gateway: Gateway, actor: Actor, category_id: int) -> None:
    """Delete a category; posts keep existing and only lose the association."""
    ensure_admin(actor)
    async with gateway.transaction() as session:
        categories = CategoryRepository(session)
        await _load(categories, category_id)
        await categories.delete(category_id)

    await cache.invalidate_categories(category_id)
    logger.info("Category %d deleted by admin %d", category_id, actor.id)
