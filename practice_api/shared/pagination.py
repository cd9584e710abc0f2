"""Shared pagination helper for list endpoints"""

import math

from sqlalchemy.orm import Query

MAX_PAGE_SIZE = 100


def paginate(query: Query, page: int = 1, limit: int = 10) -> tuple[list, dict]:
    """Apply offset/limit and return ``(items, pagination)``"""
    page = max(1, page or 1)
    limit = max(1, min(limit or 10, MAX_PAGE_SIZE))

    total = query.count()
    items = query.offset((page - 1) * limit).limit(limit).all()

    return items, {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": math.ceil(total / limit) if total else 0,
    }
