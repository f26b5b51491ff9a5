"""Data access for comments."""
from __future__ import annotations

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import joinedload

from forum.models import Comment, Like, Status
from forum.repositories.base import Page, Repository, clamp_limit, clamp_offset, direction

_UPDATABLE = frozenset({"content", "status"})


class CommentRepository(Repository):
    async def get_by_id(self, comment_id: int) -> Comment | None:
        result = await self.session.execute(
            select(Comment)
            .where(Comment.id == comment_id)
            .options(joinedload(Comment.author))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def create(self, *, post_id: int, author_id: int, content: str) -> int:
        comment = Comment(
            post_id=post_id,
            author_id=author_id,
            content=content,
            status=Status.ACTIVE,
        )
        self.session.add(comment)
        await self.session.flush()
        return comment.id

    async def update(self, comment_id: int, patch: dict) -> int:
        values = {k: v for k, v in patch.items() if k in _UPDATABLE}
        if not values:
            return 0
        result = await self.session.execute(
            update(Comment).where(Comment.id == comment_id).values(**values)
        )
        return result.rowcount

    async def delete(self, comment_id: int) -> int:
        result = await self.session.execute(delete(Comment).where(Comment.id == comment_id))
        return result.rowcount

    async def set_locked(self, comment_id: int, locked: bool) -> int:
        result = await self.session.execute(
            update(Comment).where(Comment.id == comment_id).values(locked=locked)
        )
        return result.rowcount

    async def liked_author_ids(self, post_id: int) -> list[int]:
        """Authors of comments under *post_id* whose comments carry reactions."""
        result = await self.session.execute(
            select(Comment.author_id)
            .join(Like, Like.comment_id == Comment.id)
            .where(Comment.post_id == post_id)
            .distinct()
        )
        return list(result.scalars().all())

    async def list_paged(
        self,
        post_id: int,
        *,
        visibility: list | None = None,
        limit: int | None = None,
        offset: int | None = None,
        sort_by: str | None = None,
        order: str | None = None,
    ) -> Page:
        limit, offset = clamp_limit(limit), clamp_offset(offset)
        conditions = [Comment.post_id == post_id, *(visibility or [])]

        sortable = {"publish_date": Comment.publish_date, "id": Comment.id}
        if sort_by in sortable:
            ordering = [direction(sortable[sort_by], order), Comment.id.desc()]
        else:
            ordering = [Comment.publish_date.desc(), Comment.id.desc()]

        total = (
            await self.session.execute(
                select(func.count()).select_from(Comment).where(*conditions)
            )
        ).scalar_one()

        result = await self.session.execute(
            select(Comment)
            .where(*conditions)
            .options(joinedload(Comment.author))
            .order_by(*ordering)
            .offset(offset)
            .limit(limit)
        )
        return Page(items=list(result.scalars().all()), total=total, limit=limit, offset=offset)
