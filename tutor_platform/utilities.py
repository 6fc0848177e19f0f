from datetime import datetime, timezone
from math import ceil
from typing import Any, Optional, Tuple

MAX_PAGE_LIMIT = 100

def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column in this project stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)

def normalize_pagination(page: Any = 1, limit: Any = 10) -> Tuple[int, int]:
    """Clamp page to >= 1 and limit to [1, MAX_PAGE_LIMIT]; bad values fall back to the defaults."""
    try:
        page = int(page)
    except (TypeError, ValueError):
        page = 1
    try:
        limit = int(limit)
    except (TypeError, ValueError):
        limit = 10
    return max(1, page), min(MAX_PAGE_LIMIT, max(1, limit))

def split_csv(value: Optional[str]) -> list:
    """Turn 'a, b,,c' into ['a', 'b', 'c']."""
    if not value:
        return []
    return [part.strip() for part in value.split(',') if part.strip()]

def total_pages(total: int, limit: int) -> int:
    return ceil(total / limit) if limit else 0

##########################
### RESPONSE ENVELOPES ###
##########################

def success_response(data: Any = None, message: str = "Success") -> dict:
    """Standard success body: {success, message, data}."""
    return {"success": True, "message": message, "data": data}

def paginated_response(data: list, page: int, limit: int, total: int, message: str = "Success") -> dict:
    """Success body with page, limit, total and totalPages alongside the data."""
    return {
        "success": True,
        "message": message,
        "data": data,
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": total_pages(total, limit),
    }

def error_response(message: str, errors: Optional[list] = None) -> dict:
    """Standard error body: {success: false, message, errors?}."""
    response = {"success": False, "message": message}
    if errors:
        response["errors"] = errors
    return response
