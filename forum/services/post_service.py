"""
Post service: business logic for the Post aggregate.

Design notes
------------
- Every mutation runs inside one ``gateway.transaction()``; any error
  raised in the block rolls the whole unit of work back, including
  category links and rating recomputes.
- Reads use ``gateway.session()`` and apply the visibility policy from
  ``forum.services.access``: hidden posts are reported as not found.
- Lock checks only ever exempt admins; ownership does not unlock.
"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from forum.database import Gateway
from forum.errors import BadRequestError, NotFoundError
from forum.models import Post
from forum.repositories import CategoryRepository, CommentRepository, PostRepository
from forum.schemas import PostCreate, PostFilters, PostUpdate
from forum.services.access import (
    Actor,
    ensure_admin,
    ensure_owner_or_admin,
    ensure_unlocked,
    ensure_visible,
    is_admin,
    visibility_clause,
)
from forum.services.rating import refresh_ratings
from forum.services.serializers import category_to_dict, page_to_dict, post_row_to_dict

logger = logging.getLogger(__name__)

# Fields an admin may change on a post written by somebody else.
_ADMIN_FIELDS = frozenset({"status", "category_ids"})
# Post columns that may not be set to NULL through a patch.
_REQUIRED_FIELDS = ("title", "content", "status")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def _checked_category_ids(session: AsyncSession, category_ids) -> list[int]:
    """De-duplicate *category_ids*, preserving order; unknown ids are rejected."""
    ids = list(dict.fromkeys(category_ids or []))
    missing = set(ids) - await CategoryRepository(session).existing_ids(ids)
    if missing:
        raise BadRequestError(
            "Unknown category id(s): " + ", ".join(str(i) for i in sorted(missing))
        )
    return ids


async def _load_detail(posts: PostRepository, post_id: int) -> dict:
    row = await posts.get_detail(post_id)
    if row is None:
        raise NotFoundError("Post not found")
    return post_row_to_dict(row)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

async def list_posts(gateway: Gateway, filters: PostFilters, actor: Actor | None = None) -> dict:
    """
    Return one page of posts visible to *actor*.

    Non-admins see active posts plus their own; the ``status`` filter is
    honoured for admins only.
    """
    async with gateway.session() as session:
        page = await PostRepository(session).list_paged(
            visibility=visibility_clause(Post, actor, filters.status),
            q=filters.q,
            author_id=filters.author_id,
            category_id=filters.category_id,
            date_from=filters.date_from,
            date_to=filters.date_to,
            limit=filters.limit,
            offset=filters.offset,
            sort_by=filters.sort_by,
            order=filters.order,
        )
    return page_to_dict(page, post_row_to_dict)


async def get_post(gateway: Gateway, post_id: int, actor: Actor | None = None) -> dict:
    async with gateway.session() as session:
        row = await PostRepository(session).get_detail(post_id)
    ensure_visible(actor, row.Post if row is not None else None, "Post")
    return post_row_to_dict(row)


async def list_post_categories(
    gateway: Gateway, post_id: int, actor: Actor | None = None
) -> list[dict]:
    async with gateway.session() as session:
        posts = PostRepository(session)
        ensure_visible(actor, await posts.get_by_id(post_id), "Post")
        categories = await posts.list_categories(post_id)
    return [category_to_dict(c) for c in categories]


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------

async def create_post(gateway: Gateway, actor: Actor, data: PostCreate) -> dict:
    async with gateway.transaction() as session:
        posts = PostRepository(session)
        category_ids = await _checked_category_ids(session, data.category_ids)
        post_id = await posts.create(
            author_id=actor.id,
            title=data.title,
            content=data.content,
            image=data.image,
            status=data.status,
        )
        await posts.attach_categories(post_id, category_ids)
        result = await _load_detail(posts, post_id)

    logger.info("Post %d created by user %d", post_id, actor.id)
    return result


async def update_post(gateway: Gateway, actor: Actor, post_id: int, data: PostUpdate) -> dict:
    """
    Apply a partial update.

    The author may change any field.  An admin editing someone else's
    post may only change ``status`` and ``category_ids``; other fields in
    the patch are dropped.
    """
    patch = data.model_dump(exclude_unset=True)

    async with gateway.transaction() as session:
        posts = PostRepository(session)
        post = ensure_owner_or_admin(actor, await posts.get_by_id(post_id), "Post")
        ensure_unlocked(actor, post, "Post")

        if is_admin(actor) and post.author_id != actor.id:
            patch = {k: v for k, v in patch.items() if k in _ADMIN_FIELDS}
            if not patch:
                raise BadRequestError(
                    "No updatable fields: admins may only change status and category_ids"
                )
        elif not patch:
            raise BadRequestError("No fields to update")

        for field in _REQUIRED_FIELDS:
            if field in patch and patch[field] is None:
                raise BadRequestError(f"{field} cannot be null")

        if "category_ids" in patch:
            ids = await _checked_category_ids(session, patch.pop("category_ids"))
            await posts.replace_categories(post_id, ids)

        if patch:
            await posts.update(post_id, patch)
        result = await _load_detail(posts, post_id)

    logger.info("Post %d updated by user %d", post_id, actor.id)
    return result


async def delete_post(gateway: Gateway, actor: Actor, post_id: int) -> None:
    """
    Hard-delete a post; its comments and every like on either cascade.

    Ratings of the users who lose likes through the cascade are
    recomputed in the same transaction.
    """
    async with gateway.transaction() as session:
        posts = PostRepository(session)
        post = ensure_owner_or_admin(actor, await posts.get_by_id(post_id), "Post")
        ensure_unlocked(actor, post, "Post")

        affected = {post.author_id}
        affected.update(await CommentRepository(session).liked_author_ids(post_id))

        await posts.delete(post_id)
        await refresh_ratings(session, affected)

    logger.info("Post %d deleted by user %d", post_id, actor.id)


async def set_post_lock(gateway: Gateway, actor: Actor, post_id: int, locked: bool) -> dict:
    ensure_admin(actor)
    async with gateway.transaction() as session:
        posts = PostRepository(session)
        if not await posts.set_locked(post_id, locked):
            raise NotFoundError("Post not found")
        result = await _load_detail(posts, post_id)

    logger.info("Post %d %s by admin %d", post_id, "locked" if locked else "unlocked", actor.id)
    return result
