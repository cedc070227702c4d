import csv
import io
from datetime import date, datetime
from typing import Literal

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from inventory_sync.config import settings
from inventory_sync.database import get_db
from inventory_sync.schemas.inventory_log import InventoryLogOut, LogFilters, StatisticsOut
from inventory_sync.services import inventory_log_service

router = APIRouter(prefix="/inventory-logs", tags=["Inventory Logs"])

CSV_COLUMNS = [
    "ID", "Product ID", "Product Name", "Previous Stock",
    "New Stock", "Change Amount", "User Source", "Date",
]


def _format_timestamp(value: datetime | None) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S") if value else ""


@router.get("")
def list_logs(
    product_id: int | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    user_source: str | None = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(settings.DEFAULT_PER_PAGE, ge=1),
    db: Session = Depends(get_db),
):
    filters = LogFilters(product_id=product_id, date_from=date_from, date_to=date_to, user_source=user_source)
    logs, pagination = inventory_log_service.list_logs(
        db, filters, page=page, per_page=per_page, max_per_page=settings.MAX_PER_PAGE
    )
    return {
        "success": True,
        "data": [InventoryLogOut.model_validate(log) for log in logs],
        "pagination": pagination,
        "filters_applied": filters.applied(),
    }


@router.get("/statistics")
def statistics(
    date_from: date | None = None,
    date_to: date | None = None,
    product_id: int | None = None,
    db: Session = Depends(get_db),
):
    stats = inventory_log_service.get_statistics(db, date_from=date_from, date_to=date_to, product_id=product_id)
    return {
        "success": True,
        "data": StatisticsOut(**stats),
        "period": {
            "from": date_from.isoformat() if date_from else "All time",
            "to": date_to.isoformat() if date_to else "Present",
        },
    }


@router.get("/export")
def export_logs(
    product_id: int | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    user_source: str | None = None,
    export_format: Literal["csv", "json"] = Query("csv", alias="format"),
    db: Session = Depends(get_db),
):
    filters = LogFilters(product_id=product_id, date_from=date_from, date_to=date_to, user_source=user_source)
    logs = inventory_log_service.export_logs(db, filters, limit=settings.EXPORT_MAX_ROWS)
    now = datetime.now()

    if export_format == "json":
        return {
            "success": True,
            "data": [InventoryLogOut.model_validate(log) for log in logs],
            "exported_at": _format_timestamp(now),
        }

    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(CSV_COLUMNS)
    for log in logs:
        writer.writerow([
            log.id,
            log.product_id,
            log.product_name,
            log.previous_stock,
            log.new_stock,
            log.change_amount,
            log.user_source,
            _format_timestamp(log.created_at),
        ])
    buf.seek(0)
    filename = f"inventory_logs_{now.strftime('%Y-%m-%d_%H-%M-%S')}.csv"
    return StreamingResponse(
        iter([buf.getvalue()]),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/product/{product_id}")
def logs_by_product(
    product_id: int,
    limit: int = Query(settings.DEFAULT_LOG_LIMIT, ge=1, le=settings.EXPORT_MAX_ROWS),
    db: Session = Depends(get_db),
):
    logs = inventory_log_service.logs_for_product(db, product_id, limit)
    return {
        "success": True,
        "product_id": product_id,
        "data": [InventoryLogOut.model_validate(log) for log in logs],
        "count": len(logs),
    }
