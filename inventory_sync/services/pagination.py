import math

from sqlalchemy.orm import Query

from inventory_sync import errors


def validate_page(page: int, per_page: int, max_per_page: int) -> None:
    if page < 1:
        raise errors.ValidationError("Validation failed", errors={"page": ["The page must be at least 1."]})
    if per_page < 1 or per_page > max_per_page:
        raise errors.ValidationError(
            "Validation failed",
            errors={"per_page": [f"The per page must be between 1 and {max_per_page}."]},
        )


def page_info(total: int, page: int, per_page: int) -> dict:
    """Pagination block in the shape the admin panel expects.

    Computed from the total alone so every backend gives the same numbers:
    47 items, 10 per page, page 3 -> from 21, to 30, last_page 5.
    """
    last_page = math.ceil(total / per_page)
    from_ = (page - 1) * per_page + 1 if total > 0 else 0
    to = min(from_ + per_page - 1, total)
    return {
        "current_page": page,
        "per_page": per_page,
        "total": total,
        "last_page": last_page,
        "from": from_,
        "to": to,
        "has_more_pages": page < last_page,
    }


def paginate(query: Query, page: int, per_page: int) -> tuple[list, dict]:
    """Run ``query`` for one page. The query must already be ordered."""
    total = query.order_by(None).count()
    items = query.offset((page - 1) * per_page).limit(per_page).all()
    return items, page_info(total, page, per_page)
