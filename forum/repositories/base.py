from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import asc, desc
from sqlalchemy.ext.asyncio import AsyncSession

from forum.config import settings


@dataclass
class Page:
    """One page of a listing plus the clamped paging window that produced it."""

    items: list[Any] = field(default_factory=list)
    total: int = 0
    limit: int = 0
    offset: int = 0


class Repository:
    """Thin wrapper around a session; transactional or not is the caller's choice."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session


def clamp_limit(limit: int | None) -> int:
    if limit is None:
        return settings.PAGINATION_LIMIT_DEFAULT
    return max(1, min(int(limit), settings.PAGINATION_LIMIT_MAX))


def clamp_offset(offset: int | None) -> int:
    return max(0, int(offset or 0))


def escape_like(text: str) -> str:
    """Escape LIKE wildcards so user input only ever matches literally."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def direction(column, order: str | None, default: str = "desc"):
    order = (order or default).lower()
    return asc(column) if order == "asc" else desc(column)
