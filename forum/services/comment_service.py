"""
Comment service: business logic for comments under a post.

Comment content is write-once; after creation only ``status`` (by the
author or an admin) and ``locked`` (by an admin) change.  Mutations check
both the comment's own lock and the lock of its parent post.
"""
import logging

from forum.database import Gateway
from forum.errors import BadRequestError, ForbiddenError, NotFoundError
from forum.models import Comment, Status
from forum.repositories import CommentRepository, PostRepository
from forum.schemas import CommentFilters, CommentUpdate
from forum.services.access import (
    Actor,
    ensure_admin,
    ensure_owner_or_admin,
    ensure_unlocked,
    ensure_visible,
    visibility_clause,
)
from forum.services.rating import refresh_rating
from forum.services.serializers import comment_to_dict, page_to_dict

logger = logging.getLogger(__name__)


async def _load(comments: CommentRepository, comment_id: int) -> Comment:
    comment = await comments.get_by_id(comment_id)
    if comment is None:
        raise NotFoundError("Comment not found")
    return comment


async def _ensure_mutable(session, actor: Actor, comment: Comment) -> None:
    """Owner-or-admin, and neither the comment nor its post locked for non-admins."""
    ensure_owner_or_admin(actor, comment, "Comment")
    ensure_unlocked(actor, comment, "Comment")
    post = await PostRepository(session).get_by_id(comment.post_id)
    if post is not None:
        ensure_unlocked(actor, post, "Post")


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

async def get_comment(gateway: Gateway, comment_id: int, actor: Actor | None = None) -> dict:
    """Return the comment; its visibility does not depend on the parent post."""
    async with gateway.session() as session:
        comment = await CommentRepository(session).get_by_id(comment_id)
    return comment_to_dict(ensure_visible(actor, comment, "Comment"))


async def list_comments(
    gateway: Gateway, post_id: int, filters: CommentFilters, actor: Actor | None = None
) -> dict:
    async with gateway.session() as session:
        # Comment visibility is independent of the parent post status.
        if await PostRepository(session).get_by_id(post_id) is None:
            raise NotFoundError("Post not found")
        page = await CommentRepository(session).list_paged(
            post_id,
            visibility=visibility_clause(Comment, actor, filters.status),
            limit=filters.limit,
            offset=filters.offset,
            sort_by=filters.sort_by,
            order=filters.order,
        )
    return page_to_dict(page, comment_to_dict)


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------

async def create_comment(gateway: Gateway, actor: Actor, post_id: int, content: str) -> dict:
    """
    Add a comment to an active post.

    A locked post only accepts comments from admins.
    """
    async with gateway.transaction() as session:
        post = await PostRepository(session).get_by_id(post_id)
        if post is None:
            raise NotFoundError("Post not found")
        if post.status != Status.ACTIVE:
            raise BadRequestError("Cannot comment on an inactive post")
        ensure_unlocked(actor, post, "Post")

        comments = CommentRepository(session)
        comment_id = await comments.create(post_id=post_id, author_id=actor.id, content=content)
        comment = await _load(comments, comment_id)

    logger.info("Comment %d added to post %d by user %d", comment_id, post_id, actor.id)
    return comment_to_dict(comment)


async def update_comment(
    gateway: Gateway, actor: Actor, comment_id: int, data: CommentUpdate
) -> dict:
    patch = data.model_dump(exclude_unset=True)

    async with gateway.transaction() as session:
        comments = CommentRepository(session)
        comment = await _load(comments, comment_id)
        await _ensure_mutable(session, actor, comment)

        if "content" in patch:
            raise ForbiddenError("Comment content is immutable")
        if patch.get("status") is None:
            raise BadRequestError("Only status can be updated")

        await comments.update(comment_id, {"status": patch["status"]})
        comment = await _load(comments, comment_id)

    logger.info("Comment %d status set to %s by user %d", comment_id, comment.status.value, actor.id)
    return comment_to_dict(comment)


async def delete_comment(gateway: Gateway, actor: Actor, comment_id: int) -> None:
    """Hard-delete a comment; its likes cascade, so its author's rating is recomputed."""
    async with gateway.transaction() as session:
        comments = CommentRepository(session)
        comment = await _load(comments, comment_id)
        await _ensure_mutable(session, actor, comment)

        await comments.delete(comment_id)
        await refresh_rating(session, comment.author_id)

    logger.info("Comment %d deleted by user %d", comment_id, actor.id)


async def set_comment_lock(gateway: Gateway, actor: Actor, comment_id: int, locked: bool) -> dict:
    ensure_admin(actor)
    async with gateway.transaction() as session:
        comments = CommentRepository(session)
        if not await comments.set_locked(comment_id, locked):
            raise NotFoundError("Comment not found")
        comment = await _load(comments, comment_id)

    logger.info(
        "Comment %d %s by admin %d", comment_id, "locked" if locked else "unlocked", actor.id
    )
    return comment_to_dict(comment)
