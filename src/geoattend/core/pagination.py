"""
Pagination helpers for dashboard tables.

Two flavours exist:
- server-side pages described by the backend's `pagination` block,
- client-side slicing of an already-loaded list (location history).

`page_window` produces the page-number strip shown under tables: the current page
±2, always the first and last pages, with `None` marking an ellipsis gap.
"""

from __future__ import annotations

import math
from typing import Any, Generic, Sequence, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class PageInfo(BaseModel):
    current_page: int = Field(1, ge=1)
    last_page: int = Field(1, ge=1)
    total: int = Field(0, ge=0)
    per_page: int | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any] | None) -> "PageInfo":
        """Read the backend `pagination` block, tolerating missing/zero values."""
        block = (payload or {}).get("pagination") or {}
        per_page = block.get("per_page")
        return cls(
            current_page=int(block.get("current_page") or 1),
            last_page=int(block.get("last_page") or 1),
            total=int(block.get("total") or 0),
            per_page=int(per_page) if per_page else None,
        )


class Page(BaseModel, Generic[T]):
    items: list[T]
    info: PageInfo


def total_pages(count: int, per_page: int) -> int:
    if per_page <= 0:
        raise ValueError("per_page must be > 0")
    return math.ceil(count / per_page)


def paginate(items: Sequence[T], page: int, per_page: int) -> Page[T]:
    """Slice `items` client-side; an out-of-range page falls back to page 1."""
    pages = total_pages(len(items), per_page)
    if page < 1 or (pages > 0 and page > pages):
        page = 1
    start = (page - 1) * per_page
    return Page(
        items=list(items[start : start + per_page]),
        info=PageInfo(current_page=page, last_page=max(1, pages), total=len(items), per_page=per_page),
    )


def page_window(current: int, last: int, *, radius: int = 2) -> list[int | None]:
    """Page numbers to render; `None` marks a gap. Empty when there is a single page."""
    if last <= 1:
        return []
    current = max(1, min(current, last))
    pages = {1, last}
    pages.update(p for p in range(current - radius, current + radius + 1) if 1 <= p <= last)

    out: list[int | None] = []
    prev: int | None = None
    for p in sorted(pages):
        if prev is not None and p - prev > 1:
            out.append(None)
        out.append(p)
        prev = p
    return out
