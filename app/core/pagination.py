"""Pagination helpers."""

from typing import Generic, Sequence, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    items: list[T]
    limit: int
    offset: int
    total: int | None = None


def paginate(limit: int, offset: int, max_limit: int = 500) -> tuple[int, int]:
    """Clamp limit/offset; return (limit, offset)."""
    limit = max(1, min(limit, max_limit))
    offset = max(0, offset)
    return limit, offset


def page_of(items: Sequence[T], limit: int, offset: int) -> Page[T]:
    """Slice an in-memory feed into a Page, keeping the full count."""
    limit, offset = paginate(limit, offset)
    return Page(items=list(items[offset:offset + limit]), limit=limit, offset=offset, total=len(items))
