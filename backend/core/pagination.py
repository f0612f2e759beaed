"""
Page/limit pagination metadata in the aggregate-paginate response shape
"""
from typing import Any, Dict, List


def page_offset(page: int, limit: int) -> int:
    return (page - 1) * limit


def paginate_result(docs: List[Any], total: int, page: int, limit: int) -> Dict[str, Any]:
    """
    Wrap one page of documents with navigation metadata

    totalPages is never below 1 so an empty collection still reports page 1 of 1.
    """
    total_pages = max(1, (total + limit - 1) // limit)
    has_prev = page > 1
    has_next = page < total_pages

    return {
        "docs": docs,
        "totalDocs": total,
        "limit": limit,
        "page": page,
        "totalPages": total_pages,
        "pagingCounter": page_offset(page, limit) + 1,
        "hasPrevPage": has_prev,
        "hasNextPage": has_next,
        "prevPage": page - 1 if has_prev else None,
        "nextPage": page + 1 if has_next else None,
    }
