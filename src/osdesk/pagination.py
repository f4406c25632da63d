from __future__ import annotations

import math
from dataclasses import dataclass

DEFAULT_PER_PAGE = 10


def _as_int(value, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class Page:
    page: int
    per_page: int
    total: int
    total_pages: int
    offset: int
    start: int
    end: int

    @classmethod
    def build(cls, page, per_page, total: int) -> Page:
        page = _as_int(page, 1)
        per_page = _as_int(per_page, DEFAULT_PER_PAGE)
        if page < 1:
            page = 1
        if per_page < 1:
            per_page = DEFAULT_PER_PAGE

        total_pages = math.ceil(total / per_page)
        if page > total_pages and total > 0:
            page = total_pages

        offset = (page - 1) * per_page
        start = offset + 1 if total > 0 else 0
        end = min(offset + per_page, total)
        return cls(
            page=page,
            per_page=per_page,
            total=total,
            total_pages=max(total_pages, 1),
            offset=offset,
            start=start,
            end=end,
        )

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "page": self.page,
            "total_pages": self.total_pages,
            "start": self.start,
            "end": self.end,
        }
