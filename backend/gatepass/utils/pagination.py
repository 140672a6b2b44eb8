"""
Pagination Utility Module

Shared page/limit handling for listing endpoints.
"""
import math
from typing import Any, Dict, List, Tuple
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

MAX_PAGE_SIZE = 100


def normalize_page(page: int, limit: int) -> Tuple[int, int]:
    """Clamp page to >= 1 and limit to 1..MAX_PAGE_SIZE"""
    return max(1, page), max(1, min(MAX_PAGE_SIZE, limit))


async def paginate(
    db: AsyncSession,
    query: Select,
    page: int = 1,
    limit: int = 10,
) -> Tuple[List[Any], Dict[str, int]]:
    """
    Apply pagination to a SQLAlchemy query.

    ``query`` must already carry its ordering. Returns the page of scalars
    and a dict with page, limit, total and pages.
    """
    page, limit = normalize_page(page, limit)

    count_stmt = select(func.count()).select_from(query.order_by(None).subquery())
    total = (await db.execute(count_stmt)).scalar() or 0

    result = await db.execute(query.offset((page - 1) * limit).limit(limit))
    items = list(result.scalars().all())

    return items, {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if total else 0,
    }
