from __future__ import annotations

from dataclasses import dataclass
from math import ceil
from typing import Any, List

from fastapi import Request
from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from models.hateoas import HATEOASLink


@dataclass
class Page:
    items: List[Any]
    page: int
    size: int
    total: int

    @property
    def total_pages(self) -> int:
        return ceil(self.total / self.size) if self.total > 0 else 0

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1


async def paginate(db: AsyncSession, query: Select, page: int, size: int) -> Page:
    """Run `query` for one page; total is counted before pagination."""
    count_stmt = select(func.count()).select_from(query.order_by(None).subquery())
    total_result = await db.execute(count_stmt)
    total = total_result.scalar_one() or 0

    skip = (page - 1) * size
    result = await db.execute(query.offset(skip).limit(size))
    items = list(result.scalars().all())

    return Page(items=items, page=page, size=size, total=total)


def build_page_links(request: Request, page: Page) -> List[HATEOASLink]:
    """self/first/last plus prev/next where they exist; other query params are kept."""

    def href(number: int) -> str:
        return str(request.url.include_query_params(page=number, size=page.size))

    last = max(page.total_pages, 1)
    links = [
        HATEOASLink(rel="self", href=href(page.page), method="GET"),
        HATEOASLink(rel="first", href=href(1), method="GET"),
    ]
    if page.has_prev:
        links.append(HATEOASLink(rel="prev", href=href(min(page.page - 1, last)), method="GET"))
    if page.has_next:
        links.append(HATEOASLink(rel="next", href=href(page.page + 1), method="GET"))
    links.append(HATEOASLink(rel="last", href=href(last), method="GET"))
    return links
