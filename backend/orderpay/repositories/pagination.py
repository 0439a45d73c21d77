# Overview: Offset pagination over SQLAlchemy queries.

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

DEFAULT_PER_PAGE = 15
MAX_PER_PAGE = 100


@dataclass
class Page:
    items: list
    total: int
    page: int
    per_page: int

    @property
    def last_page(self) -> int:
        return max(1, (self.total + self.per_page - 1) // self.per_page)

    def meta(self) -> dict:
        return {
            "current_page": self.page,
            "per_page": self.per_page,
            "total": self.total,
            "last_page": self.last_page,
        }


def paginate_query(query, page: int | None = 1, per_page: int | None = DEFAULT_PER_PAGE) -> Page:
    per_page = max(1, min(per_page or DEFAULT_PER_PAGE, MAX_PER_PAGE))
    page = max(page or 1, 1)

    total = query.order_by(None).count()
    items = query.offset((page - 1) * per_page).limit(per_page).all()
    return Page(items=items, total=total, page=page, per_page=per_page)


def like_pattern(term: str) -> str:
    """Substring LIKE pattern with wildcards escaped; pair with escape="\\"."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def apply_date_range(query, column, from_date: date | None, to_date: date | None):
    """Inclusive calendar-date bounds on a datetime column."""
    if from_date is not None:
        query = query.filter(column >= datetime.combine(from_date, time.min))
    if to_date is not None:
        query = query.filter(column < datetime.combine(to_date + timedelta(days=1), time.min))
    return query
