"""
Rating aggregator.

A user's rating is the net score (+1 per like, -1 per dislike) over every
reaction on their posts and comments.  It is always recomputed in full
from the likes table and then upserted into ``user_ratings``; there is no
incremental counter to drift.
"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from forum.repositories import RatingRepository

logger = logging.getLogger(__name__)


async def compute_rating(session: AsyncSession, user_id: int) -> int:
    return await RatingRepository(session).compute(user_id)


async def refresh_rating(session: AsyncSession, user_id: int) -> int:
    """Recompute and persist *user_id*'s rating inside the caller's transaction."""
    rating = await compute_rating(session, user_id)
    await RatingRepository(session).upsert(user_id, rating)
    logger.debug("Rating of user %d recomputed: %d", user_id, rating)
    return rating


async def refresh_ratings(session: AsyncSession, user_ids) -> None:
    for user_id in sorted(set(user_ids)):
        await refresh_rating(session, user_id)
