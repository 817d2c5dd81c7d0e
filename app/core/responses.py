"""
Response envelope and pagination helpers.

Every endpoint answers with::

    {"statusCode": int, "message": str, "data": ..., "meta": ..., "validationErrors": [...]}
"""

import math
from typing import Any, Dict, List, Optional

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100


def success_response(
    data: Any,
    message: str = "Success",
    status_code: int = 200,
    meta: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    return {
        "statusCode": status_code,
        "message": message,
        "data": data,
        "meta": meta,
        "validationErrors": [],
    }


def created_response(data: Any, message: str = "Resource created successfully") -> Dict[str, Any]:
    return success_response(data, message, 201)


def error_response(
    message: str,
    status_code: int = 400,
    validation_errors: Optional[List[Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    return {
        "statusCode": status_code,
        "message": message,
        "data": None,
        "meta": None,
        "validationErrors": validation_errors or [],
    }


def normalize_pagination(page: Optional[int], limit: Optional[int]) -> tuple[int, int]:
    """Clamp page/limit to sane values (page >= 1, 1 <= limit <= MAX_LIMIT)."""
    page = page if page and page > 0 else DEFAULT_PAGE
    limit = limit if limit and limit > 0 else DEFAULT_LIMIT
    return page, min(limit, MAX_LIMIT)


def skip_and_take(page: int, limit: int) -> tuple[int, int]:
    return (page - 1) * limit, limit


def pagination_meta(page: int, limit: int, total: int) -> Dict[str, Any]:
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": total_pages,
        "hasNextPage": page < total_pages,
        "hasPrevPage": page > 1,
        "nextPage": page + 1 if page < total_pages else None,
        "prevPage": page - 1 if page > 1 else None,
    }
