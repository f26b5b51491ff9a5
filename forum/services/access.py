"""
Authorization primitives shared by every service.

The visibility policy exists twice only in form: ``can_see`` judges a
loaded row, ``visibility_clause`` expresses the same rule as SQL for the
listing queries.  Hidden content is reported as not found so that its
existence is never disclosed.
"""
from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import or_

from forum.errors import ForbiddenError, NotFoundError
from forum.models import Role, Status


@dataclass(frozen=True)
class Actor:
    """The authenticated identity performing an operation."""

    id: int
    role: Role = Role.USER

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


def is_admin(actor: Actor | None) -> bool:
    return actor is not None and actor.is_admin


def is_owner(actor: Actor | None, entity) -> bool:
    return actor is not None and entity.author_id == actor.id


def can_see(actor: Actor | None, entity) -> bool:
    if entity.status == Status.ACTIVE:
        return True
    return is_admin(actor) or is_owner(actor, entity)


def ensure_visible(actor: Actor | None, entity, label: str):
    """Return *entity* or raise NotFoundError when it is absent or hidden."""
    if entity is None or not can_see(actor, entity):
        raise NotFoundError(f"{label} not found")
    return entity


def ensure_admin(actor: Actor | None) -> None:
    if not is_admin(actor):
        raise ForbiddenError("Admin privileges required")


def ensure_owner_or_admin(actor: Actor | None, entity, label: str):
    if entity is None:
        raise NotFoundError(f"{label} not found")
    if not (is_admin(actor) or is_owner(actor, entity)):
        raise ForbiddenError(f"Only the author or an admin can modify this {label.lower()}")
    return entity


def ensure_unlocked(actor: Actor | None, entity, label: str) -> None:
    if entity.locked and not is_admin(actor):
        raise ForbiddenError(f"{label} is locked")


def visibility_clause(model, actor: Actor | None, status: Status | None = None) -> list:
    """
    WHERE conditions restricting *model* rows to what *actor* may list.

    Admins see everything and may narrow by *status*; an explicit status
    from anyone else is ignored.
    """
    if is_admin(actor):
        return [model.status == status] if status is not None else []
    if actor is None:
        return [model.status == Status.ACTIVE]
    return [or_(model.status == Status.ACTIVE, model.author_id == actor.id)]
