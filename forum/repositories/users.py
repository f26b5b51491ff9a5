"""Data access for users and their denormalised ratings."""
from __future__ import annotations

from sqlalchemy import case, delete, func, or_, select, update
from sqlalchemy.orm import selectinload

from forum.database import dialect_insert
from forum.models import Comment, Like, LikeType, Post, Role, User, UserRating, utcnow
from forum.repositories.base import (
    Page,
    Repository,
    clamp_limit,
    clamp_offset,
    direction,
    escape_like,
)

# Columns a user patch may touch; role and password have dedicated paths too.
_UPDATABLE = frozenset(
    {"login", "email", "full_name", "profile_picture", "role", "password_hash", "email_confirmed"}
)


class UserRepository(Repository):
    async def get_by_id(self, user_id: int) -> User | None:
        result = await self.session.execute(
            select(User)
            .where(User.id == user_id)
            .options(selectinload(User.rating_row))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_by_identifier(self, identifier: str) -> User | None:
        """Look a user up by login or email."""
        result = await self.session.execute(
            select(User)
            .where(or_(User.login == identifier, User.email == identifier))
            .options(selectinload(User.rating_row))
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> User | None:
        result = await self.session.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def login_taken(self, login: str, exclude_id: int | None = None) -> bool:
        q = select(User.id).where(User.login == login)
        if exclude_id is not None:
            q = q.where(User.id != exclude_id)
        return (await self.session.execute(q.limit(1))).first() is not None

    async def email_taken(self, email: str, exclude_id: int | None = None) -> bool:
        q = select(User.id).where(User.email == email)
        if exclude_id is not None:
            q = q.where(User.id != exclude_id)
        return (await self.session.execute(q.limit(1))).first() is not None

    async def create(
        self,
        *,
        login: str,
        email: str,
        password_hash: str,
        full_name: str | None = None,
        role: Role = Role.USER,
        email_confirmed: bool = False,
    ) -> int:
        user = User(
            login=login,
            email=email,
            password_hash=password_hash,
            full_name=full_name,
            role=role,
            email_confirmed=email_confirmed,
        )
        self.session.add(user)
        await self.session.flush()
        return user.id

    async def update(self, user_id: int, patch: dict) -> int:
        values = {k: v for k, v in patch.items() if k in _UPDATABLE}
        if not values:
            return 0
        result = await self.session.execute(
            update(User).where(User.id == user_id).values(**values)
        )
        return result.rowcount

    async def delete(self, user_id: int) -> int:
        result = await self.session.execute(delete(User).where(User.id == user_id))
        return result.rowcount

    async def list_paged(
        self,
        *,
        q: str | None = None,
        role: Role | None = None,
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
                    func.lower(User.login).like(pattern, escape="\\"),
                    func.lower(User.email).like(pattern, escape="\\"),
                    func.lower(User.full_name).like(pattern, escape="\\"),
                )
            )
        if role is not None:
            conditions.append(User.role == role)

        rating = func.coalesce(UserRating.rating, 0)
        sortable = {"rating": rating, "created_at": User.created_at, "login": User.login, "id": User.id}
        if sort_by in sortable:
            ordering = [direction(sortable[sort_by], order), User.id.desc()]
        else:
            ordering = [rating.desc(), User.created_at.desc(), User.id.desc()]

        total = (
            await self.session.execute(
                select(func.count()).select_from(User).where(*conditions)
            )
        ).scalar_one()

        result = await self.session.execute(
            select(User)
            .outerjoin(UserRating, UserRating.user_id == User.id)
            .where(*conditions)
            .options(selectinload(User.rating_row))
            .order_by(*ordering)
            .offset(offset)
            .limit(limit)
        )
        return Page(items=list(result.scalars().all()), total=total, limit=limit, offset=offset)


class RatingRepository(Repository):
    """Aggregate queries behind the denormalised ``user_ratings`` table."""

    @staticmethod
    def _score():
        return func.coalesce(
            func.sum(
                case(
                    (Like.type == LikeType.LIKE, 1),
                    (Like.type == LikeType.DISLIKE, -1),
                    else_=0,
                )
            ),
            0,
        )

    async def compute(self, user_id: int) -> int:
        """Net score over every like on the user's posts and comments."""
        on_posts = (
            await self.session.execute(
                select(self._score())
                .select_from(Like)
                .join(Post, Like.post_id == Post.id)
                .where(Post.author_id == user_id)
            )
        ).scalar_one()
        on_comments = (
            await self.session.execute(
                select(self._score())
                .select_from(Like)
                .join(Comment, Like.comment_id == Comment.id)
                .where(Comment.author_id == user_id)
            )
        ).scalar_one()
        return int(on_posts or 0) + int(on_comments or 0)

    async def upsert(self, user_id: int, rating: int) -> None:
        now = utcnow()
        stmt = dialect_insert(self.session, UserRating).values(
            user_id=user_id, rating=rating, updated_at=now
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[UserRating.user_id],
            set_={"rating": rating, "updated_at": now},
        )
        await self.session.execute(stmt)

    async def get(self, user_id: int) -> int:
        value = (
            await self.session.execute(
                select(UserRating.rating).where(UserRating.user_id == user_id)
            )
        ).scalar_one_or_none()
        return value or 0
