"""Data access for reactions on posts and comments."""
from __future__ import annotations

from sqlalchemy import delete, func, select

from forum.database import dialect_insert
from forum.models import Comment, Like, LikeType, Post, User, utcnow
from forum.repositories.base import Page, Repository, clamp_limit, clamp_offset, direction


class LikeRepository(Repository):
    async def upsert(
        self,
        *,
        author_id: int,
        like_type: LikeType,
        post_id: int | None = None,
        comment_id: int | None = None,
    ) -> None:
        """
        Insert or overwrite the reaction of *author_id* on the target.

        Keyed on (author_id, post_id) or (author_id, comment_id); an existing
        row keeps its id and gets the new type and a fresh timestamp.
        """
        now = utcnow()
        stmt = dialect_insert(self.session, Like).values(
            author_id=author_id,
            post_id=post_id,
            comment_id=comment_id,
            type=like_type,
            publish_date=now,
        )
        conflict_key = (
            [Like.author_id, Like.post_id] if post_id is not None else [Like.author_id, Like.comment_id]
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=conflict_key,
            set_={"type": like_type, "publish_date": now},
        )
        await self.session.execute(stmt)

    async def remove(
        self,
        *,
        author_id: int,
        post_id: int | None = None,
        comment_id: int | None = None,
    ) -> int:
        target = Like.post_id == post_id if post_id is not None else Like.comment_id == comment_id
        result = await self.session.execute(
            delete(Like).where(Like.author_id == author_id, target)
        )
        return result.rowcount

    async def get(
        self,
        *,
        author_id: int,
        post_id: int | None = None,
        comment_id: int | None = None,
    ) -> Like | None:
        target = Like.post_id == post_id if post_id is not None else Like.comment_id == comment_id
        result = await self.session.execute(
            select(Like)
            .where(Like.author_id == author_id, target)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def counts(self, *, post_id: int | None = None, comment_id: int | None = None) -> dict:
        target = Like.post_id == post_id if post_id is not None else Like.comment_id == comment_id
        result = await self.session.execute(
            select(Like.type, func.count(Like.id)).where(target).group_by(Like.type)
        )
        counts = {LikeType.LIKE: 0, LikeType.DISLIKE: 0}
        for like_type, n in result.all():
            counts[LikeType(like_type)] = n
        return {"likes": counts[LikeType.LIKE], "dislikes": counts[LikeType.DISLIKE]}

    async def target_author_ids(self, author_id: int) -> set[int]:
        """Authors of the posts and comments *author_id* has reacted to."""
        on_posts = await self.session.execute(
            select(Post.author_id).join(Like, Like.post_id == Post.id).where(Like.author_id == author_id)
        )
        on_comments = await self.session.execute(
            select(Comment.author_id)
            .join(Like, Like.comment_id == Comment.id)
            .where(Like.author_id == author_id)
        )
        return set(on_posts.scalars().all()) | set(on_comments.scalars().all())

    async def list_paged(
        self,
        *,
        post_id: int | None = None,
        comment_id: int | None = None,
        limit: int | None = None,
        offset: int | None = None,
        sort_by: str | None = None,
        order: str | None = None,
    ) -> Page:
        limit, offset = clamp_limit(limit), clamp_offset(offset)
        target = Like.post_id == post_id if post_id is not None else Like.comment_id == comment_id

        column = Like.id if sort_by == "id" else Like.publish_date

        total = (
            await self.session.execute(select(func.count()).select_from(Like).where(target))
        ).scalar_one()

        result = await self.session.execute(
            select(
                Like.id,
                Like.author_id.label("user_id"),
                User.login,
                User.full_name,
                Like.type,
                Like.publish_date,
            )
            .join(User, User.id == Like.author_id)
            .where(target)
            .order_by(direction(column, order), Like.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return Page(items=list(result.all()), total=total, limit=limit, offset=offset)
