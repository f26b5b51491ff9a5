"""Data access for the category catalogue."""
from __future__ import annotations

from sqlalchemy import delete, func, or_, select, update

from forum.models import Category
from forum.repositories.base import (
    Page,
    Repository,
    clamp_limit,
    clamp_offset,
    direction,
    escape_like,
)


class CategoryRepository(Repository):
    async def get_by_id(self, category_id: int) -> Category | None:
        result = await self.session.execute(
            select(Category)
            .where(Category.id == category_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def existing_ids(self, category_ids: list[int]) -> set[int]:
        if not category_ids:
            return set()
        result = await self.session.execute(
            select(Category.id).where(Category.id.in_(category_ids))
        )
        return set(result.scalars().all())

    async def title_taken(self, title: str, exclude_id: int | None = None) -> bool:
        q = select(Category.id).where(Category.title == title)
        if exclude_id is not None:
            q = q.where(Category.id != exclude_id)
        return (await self.session.execute(q.limit(1))).first() is not None

    async def create(self, *, title: str, description: str | None = None) -> int:
        category = Category(title=title, description=description)
        self.session.add(category)
        await self.session.flush()
        return category.id

    async def update(self, category_id: int, patch: dict) -> int:
        values = {k: v for k, v in patch.items() if k in ("title", "description")}
        if not values:
            return 0
        result = await self.session.execute(
            update(Category).where(Category.id == category_id).values(**values)
        )
        return result.rowcount

    async def delete(self, category_id: int) -> int:
        result = await self.session.execute(delete(Category).where(Category.id == category_id))
        return result.rowcount

    async def list_paged(
        self,
        *,
        q: str | None = None,
        limit: int | None = None,
        offset: int | None = None,
        sort_by: str | None = None,
        order: str | None = None,
    ) -> Page:
        limit, offset = clamp_limit(limit), clamp_offset(offset)

        conditions = []
        if q and q.strip():
            pattern = f"%{escape_like(q.strip().lower())}%"
            conditions.append(
                or_(
                    func.lower(Category.title).like(pattern, escape="\\"),
                    func.lower(Category.description).like(pattern, escape="\\"),
                )
            )

        sortable = {"id": Category.id, "title": Category.title}
        column = sortable.get(sort_by or "title", Category.title)

        total = (
            await self.session.execute(
                select(func.count()).select_from(Category).where(*conditions)
            )
        ).scalar_one()

        result = await self.session.execute(
            select(Category)
            .where(*conditions)
            .order_by(direction(column, order, default="asc"), Category.id.asc())
            .offset(offset)
            .limit(limit)
        )
        return Page(items=list(result.scalars().all()), total=total, limit=limit, offset=offset)
