"""
Like service: reactions on posts and comments.

A user holds at most one reaction per target.  Setting a reaction
overwrites the previous one in place; removing an absent reaction is a
no-op.  Either way the rating of the target's author is recomputed from
scratch inside the same transaction.

Concurrent reactions on the same author are not serialised: two
recomputes racing under READ COMMITTED may persist a stale total until
the next like mutation touching that author recomputes it again.
"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from forum.database import Gateway
from forum.errors import BadRequestError
from forum.models import LikeType
from forum.repositories import CommentRepository, LikeRepository, PostRepository
from forum.schemas import ListParams
from forum.services.access import Actor, ensure_visible
from forum.services.rating import refresh_rating
from forum.services.serializers import like_row_to_dict, page_to_dict

logger = logging.getLogger(__name__)


def _check_target(post_id: int | None, comment_id: int | None) -> None:
    if (post_id is None) == (comment_id is None):
        raise BadRequestError("Provide exactly one target: post_id XOR comment_id")


def _check_type(like_type) -> LikeType:
    try:
        return LikeType(like_type)
    except ValueError:
        raise BadRequestError("Like type must be 'like' or 'dislike'") from None


async def _load_target(
    session: AsyncSession, actor: Actor | None, post_id: int | None, comment_id: int | None
):
    if post_id is not None:
        return ensure_visible(actor, await PostRepository(session).get_by_id(post_id), "Post")
    return ensure_visible(
        actor, await CommentRepository(session).get_by_id(comment_id), "Comment"
    )


async def _state(
    session: AsyncSession, actor: Actor, target, post_id, comment_id, rating: int
) -> dict:
    likes = LikeRepository(session)
    like = await likes.get(author_id=actor.id, post_id=post_id, comment_id=comment_id)
    counts = await likes.counts(post_id=post_id, comment_id=comment_id)
    return {
        "post_id": post_id,
        "comment_id": comment_id,
        "type": like.type if like is not None else None,
        "target_author_id": target.author_id,
        "target_author_rating": rating,
        "likes_count": counts["likes"],
        "dislikes_count": counts["dislikes"],
    }


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------

async def set_like(
    gateway: Gateway,
    actor: Actor,
    like_type,
    post_id: int | None = None,
    comment_id: int | None = None,
) -> dict:
    like_type = _check_type(like_type)
    _check_target(post_id, comment_id)

    async with gateway.transaction() as session:
        target = await _load_target(session, actor, post_id, comment_id)
        await LikeRepository(session).upsert(
            author_id=actor.id, like_type=like_type, post_id=post_id, comment_id=comment_id
        )
        rating = await refresh_rating(session, target.author_id)
        result = await _state(session, actor, target, post_id, comment_id, rating)

    logger.info(
        "User %d set %s on %s %d",
        actor.id,
        like_type.value,
        "post" if post_id is not None else "comment",
        post_id if post_id is not None else comment_id,
    )
    return result


async def remove_like(
    gateway: Gateway,
    actor: Actor,
    post_id: int | None = None,
    comment_id: int | None = None,
) -> dict:
    _check_target(post_id, comment_id)

    async with gateway.transaction() as session:
        target = await _load_target(session, actor, post_id, comment_id)
        removed = await LikeRepository(session).remove(
            author_id=actor.id, post_id=post_id, comment_id=comment_id
        )
        rating = await refresh_rating(session, target.author_id)
        result = await _state(session, actor, target, post_id, comment_id, rating)

    if removed:
        logger.info(
            "User %d removed reaction on %s %d",
            actor.id,
            "post" if post_id is not None else "comment",
            post_id if post_id is not None else comment_id,
        )
    return result


# ---------------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------------

async def list_post_likes(
    gateway: Gateway, post_id: int, params: ListParams, actor: Actor | None = None
) -> dict:
    async with gateway.session() as session:
        ensure_visible(actor, await PostRepository(session).get_by_id(post_id), "Post")
        page = await LikeRepository(session).list_paged(
            post_id=post_id,
            limit=params.limit,
            offset=params.offset,
            sort_by=params.sort_by,
            order=params.order,
        )
    return page_to_dict(page, like_row_to_dict)


async def list_comment_likes(
    gateway: Gateway, comment_id: int, params: ListParams, actor: Actor | None = None
) -> dict:
    async with gateway.session() as session:
        ensure_visible(actor, await CommentRepository(session).get_by_id(comment_id), "Comment")
        page = await LikeRepository(session).list_paged(
            comment_id=comment_id,
            limit=params.limit,
            offset=params.offset,
            sort_by=params.sort_by,
            order=params.order,
        )
    return page_to_dict(page, like_row_to_dict)
