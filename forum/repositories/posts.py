"""Data access for posts and their category associations."""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.orm import joinedload, selectinload

from forum.database import dialect_insert
from forum.models import Category, Comment, Like, LikeType, Post, Status, posts_categories
from forum.repositories.base import (
    Page,
    Repository,
    clamp_limit,
    clamp_offset,
    direction,
    escape_like,
)

# ``locked`` is deliberately absent: it only changes through ``set_locked``.
_UPDATABLE = frozenset({"title", "content", "image", "status", "publish_date"})


def _like_count(kind: LikeType):
    return (
        select(func.count(Like.id))
        .where(Like.post_id == Post.id, Like.type == kind)
        .correlate(Post)
        .scalar_subquery()
    )


def _active_comment_count():
    return (
        select(func.count(Comment.id))
        .where(Comment.post_id == Post.id, Comment.status == Status.ACTIVE)
        .correlate(Post)
        .scalar_subquery()
    )


def _with_stats():
    """
    SELECT a post together with its reaction and comment counters.

    Rows expose ``Post``, ``likes_count``, ``dislikes_count``, ``likes_net``
    and ``comments_count``.
    """
    likes = _like_count(LikeType.LIKE)
    dislikes = _like_count(LikeType.DISLIKE)
    return select(
        Post,
        likes.label("likes_count"),
        dislikes.label("dislikes_count"),
        (likes - dislikes).label("likes_net"),
        _active_comment_count().label("comments_count"),
    ).options(joinedload(Post.author), selectinload(Post.categories))


class PostRepository(Repository):
    async def get_by_id(self, post_id: int) -> Post | None:
        """Return the bare post row, or None."""
        result = await self.session.execute(
            select(Post).where(Post.id == post_id).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_detail(self, post_id: int):
        """Return the post with author, categories and counters, or None."""
        result = await self.session.execute(
            _with_stats()
            .where(Post.id == post_id)
            .execution_options(populate_existing=True)
        )
        return result.one_or_none()

    async def create(
        self,
        *,
        author_id: int,
        title: str,
        content: str,
        image: str | None = None,
        status: Status = Status.ACTIVE,
    ) -> int:
        post = Post(
            author_id=author_id,
            title=title,
            content=content,
            image=image,
            status=status,
        )
        self.session.add(post)
        await self.session.flush()
        return post.id

    async def update(self, post_id: int, patch: dict) -> int:
        values = {k: v for k, v in patch.items() if k in _UPDATABLE}
        if not values:
            return 0
        result = await self.session.execute(
            update(Post).where(Post.id == post_id).values(**values)
        )
        return result.rowcount

    async def delete(self, post_id: int) -> int:
        result = await self.session.execute(delete(Post).where(Post.id == post_id))
        return result.rowcount

    async def set_locked(self, post_id: int, locked: bool) -> int:
        result = await self.session.execute(
            update(Post).where(Post.id == post_id).values(locked=locked)
        )
        return result.rowcount

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    async def attach_categories(self, post_id: int, category_ids: list[int]) -> None:
        """Link categories to the post; pairs that already exist are skipped."""
        if not category_ids:
            return
        stmt = dialect_insert(self.session, posts_categories).values(
            [{"post_id": post_id, "category_id": cid} for cid in category_ids]
        )
        await self.session.execute(stmt.on_conflict_do_nothing())

    async def replace_categories(self, post_id: int, category_ids: list[int]) -> None:
        await self.session.execute(
            delete(posts_categories).where(posts_categories.c.post_id == post_id)
        )
        await self.attach_categories(post_id, category_ids)

    async def list_categories(self, post_id: int) -> list[Category]:
        result = await self.session.execute(
            select(Category)
            .join(posts_categories, posts_categories.c.category_id == Category.id)
            .where(posts_categories.c.post_id == post_id)
            .order_by(Category.title)
        )
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    async def list_paged(
        self,
        *,
        visibility: list | None = None,
        q: str | None = None,
        author_id: int | None = None,
        category_id: int | None = None,
        date_from: datetime | None = None,
        date_to: datetime | None = None,
        limit: int | None = None,
        offset: int | None = None,
        sort_by: str | None = None,
        order: str | None = None,
    ) -> Page:
        """
        Filtered, sorted page of posts with their counters.

        *visibility* carries the caller's access conditions (see
        ``forum.services.access.visibility_clause``) and is ANDed with the
        user-supplied filters.
        """
        limit, offset = clamp_limit(limit), clamp_offset(offset)

        conditions = list(visibility or [])
        if q and q.strip():
            pattern = f"%{escape_like(q.strip().lower())}%"
            conditions.append(
                or_(
                    func.lower(Post.title).like(pattern, escape="\\"),
                    func.lower(Post.content).like(pattern, escape="\\"),
                )
            )
        if author_id is not None:
            conditions.append(Post.author_id == author_id)
        if category_id is not None:
            conditions.append(
                Post.id.in_(
                    select(posts_categories.c.post_id).where(
                        posts_categories.c.category_id == category_id
                    )
                )
            )
        if date_from is not None:
            conditions.append(Post.publish_date >= date_from)
        if date_to is not None:
            conditions.append(Post.publish_date <= date_to)

        total = (
            await self.session.execute(
                select(func.count()).select_from(Post).where(*conditions)
            )
        ).scalar_one()

        stmt = _with_stats().where(*conditions)
        likes_net = stmt.selected_columns.likes_net
        sortable = {
            "likes": likes_net,
            "rating": likes_net,
            "publish_date": Post.publish_date,
            "title": Post.title,
            "id": Post.id,
        }
        if sort_by in sortable:
            ordering = [direction(sortable[sort_by], order), Post.id.desc()]
        else:
            ordering = [likes_net.desc(), Post.publish_date.desc(), Post.id.desc()]

        result = await self.session.execute(
            stmt.order_by(*ordering).offset(offset).limit(limit)
        )
        return Page(items=list(result.all()), total=total, limit=limit, offset=offset)
