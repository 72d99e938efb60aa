"""
Page/limit helpers shared by list endpoints
"""
import math

from buysell.core.constants import MAX_PAGE_SIZE


def clamp_limit(limit: int) -> int:
    return max(1, min(limit, MAX_PAGE_SIZE))


def page_offset(page: int, limit: int) -> int:
    return (max(page, 1) - 1) * clamp_limit(limit)


def pagination_meta(page: int, limit: int, total: int) -> dict:
    """{"page", "limit", "total", "pages"} block returned with list responses"""
    limit = clamp_limit(limit)
    return {
        'page': page,
        'limit': limit,
        'total': total,
        'pages': math.ceil(total / limit) if total else 0,
    }
