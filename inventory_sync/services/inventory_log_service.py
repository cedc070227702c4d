from datetime import date

from sqlalchemy import Date, case, func
from sqlalchemy.orm import Query, Session, joinedload

from inventory_sync import errors
from inventory_sync.models.inventory_log import InventoryLog
from inventory_sync.schemas.inventory_log import LogFilters
from inventory_sync.services.pagination import paginate, validate_page


def escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _check_date_range(date_from: date | None, date_to: date | None) -> None:
    if date_from and date_to and date_from > date_to:
        raise errors.ValidationError(
            "Validation failed",
            errors={"date_to": ["The date to must be a date after or equal to date from."]},
        )


def _apply_date_range(q: Query, date_from: date | None, date_to: date | None) -> Query:
    # Inclusive on the calendar date of created_at
    if date_from:
        q = q.filter(func.date(InventoryLog.created_at, type_=Date) >= date_from)
    if date_to:
        q = q.filter(func.date(InventoryLog.created_at, type_=Date) <= date_to)
    return q


def _filtered_query(db: Session, filters: LogFilters) -> Query:
    _check_date_range(filters.date_from, filters.date_to)
    q = db.query(InventoryLog).options(joinedload(InventoryLog.product))
    if filters.product_id is not None:
        q = q.filter(InventoryLog.product_id == filters.product_id)
    q = _apply_date_range(q, filters.date_from, filters.date_to)
    if filters.user_source:
        q = q.filter(InventoryLog.user_source.ilike(f"%{escape_like(filters.user_source)}%", escape="\\"))
    # Newest first, ties broken by id so equal timestamps keep insertion order reversed
    return q.order_by(InventoryLog.created_at.desc(), InventoryLog.id.desc())


def list_logs(
    db: Session,
    filters: LogFilters,
    page: int = 1,
    per_page: int = 10,
    max_per_page: int = 100,
) -> tuple[list[InventoryLog], dict]:
    validate_page(page, per_page, max_per_page)
    return paginate(_filtered_query(db, filters), page, per_page)


def logs_for_product(db: Session, product_id: int, limit: int = 20) -> list[InventoryLog]:
    if limit < 1:
        raise errors.ValidationError("Validation failed", errors={"limit": ["The limit must be at least 1."]})
    return _filtered_query(db, LogFilters(product_id=product_id)).limit(limit).all()


def export_logs(db: Session, filters: LogFilters, limit: int = 1000) -> list[InventoryLog]:
    return _filtered_query(db, filters).limit(limit).all()


def get_statistics(
    db: Session,
    date_from: date | None = None,
    date_to: date | None = None,
    product_id: int | None = None,
) -> dict:
    """Totals over the logs in range. ``net_change`` always equals the sum of all deltas."""
    _check_date_range(date_from, date_to)
    increases = func.coalesce(
        func.sum(case((InventoryLog.change_amount > 0, InventoryLog.change_amount), else_=0)), 0
    )
    decreases = func.coalesce(
        func.sum(case((InventoryLog.change_amount < 0, InventoryLog.change_amount), else_=0)), 0
    )
    q = db.query(func.count(InventoryLog.id), increases, decreases)
    if product_id is not None:
        q = q.filter(InventoryLog.product_id == product_id)
    q = _apply_date_range(q, date_from, date_to)

    total_logs, total_increases, total_decreases = q.one()
    total_increases = int(total_increases)
    total_decreases = abs(int(total_decreases))
    return {
        "total_logs": int(total_logs),
        "total_stock_increases": total_increases,
        "total_stock_decreases": total_decreases,
        "net_change": total_increases - total_decreases,
    }


def delete_logs_for_product(db: Session, product_id: int) -> int:
    """Delete every log of a product. Does not commit; only used by product deletion."""
    return (
        db.query(InventoryLog)
        .filter(InventoryLog.product_id == product_id)
        .delete(synchronize_session="fetch")
    )
