"""
Pagination helpers shared by list endpoints
"""
import math
from typing import Tuple


def page_to_offset(page: int, limit: int) -> Tuple[int, int]:
    """Return (limit, offset) for a 1-based page number"""
    page = max(page, 1)
    return limit, (page - 1) * limit


def build_pagination(total: int, page: int, limit: int) -> dict:
    """Pagination metadata: {total, page, limit, pages}"""
    pages = math.ceil(total / limit) if limit else 0
    return {
        "total": total,
        "page": page,
        "limit": limit,
        "pages": pages,
    }
