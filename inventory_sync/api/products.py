from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from inventory_sync import errors
from inventory_sync.config import settings
from inventory_sync.database import get_db
from inventory_sync.schemas.inventory_log import InventoryLogOut
from inventory_sync.schemas.product import (
    BulkStockUpdate,
    LowStockOut,
    ProductCreate,
    ProductFilters,
    ProductOut,
    ProductUpdate,
    StockChangeOut,
    StockUpdate,
    StockUpdateOut,
)
from inventory_sync.services import inventory_log_service, product_service, stock_service

router = APIRouter(prefix="/products", tags=["Products"])


@router.get("")
def list_products(
    page: int = Query(1, ge=1),
    per_page: int = Query(settings.PRODUCTS_PER_PAGE, ge=1),
    search: str | None = None,
    name: str | None = None,
    reference: str | None = None,
    min_stock: int | None = Query(None, ge=0),
    max_stock: int | None = Query(None, ge=0),
    db: Session = Depends(get_db),
):
    filters = ProductFilters(search=search, name=name, reference=reference, min_stock=min_stock, max_stock=max_stock)
    products, pagination = product_service.list_products(
        db, filters, page=page, per_page=per_page, max_per_page=settings.MAX_PER_PAGE
    )
    return {
        "success": True,
        "data": [ProductOut.model_validate(p) for p in products],
        "pagination": pagination,
    }


@router.post("", status_code=201)
def create_product(data: ProductCreate, db: Session = Depends(get_db)):
    product = stock_service.create_product(db, data, user_source=settings.CREATION_USER_SOURCE)
    return {
        "success": True,
        "data": ProductOut.model_validate(product),
        "message": "Product created successfully",
    }


@router.get("/low-stock")
def low_stock(threshold: int = Query(settings.LOW_STOCK_THRESHOLD, ge=0), db: Session = Depends(get_db)):
    alert = product_service.low_stock_alert(db, threshold)
    return {"success": True, "data": LowStockOut.model_validate(alert, from_attributes=True)}


@router.post("/bulk-update-stock")
def bulk_update_stock(data: BulkStockUpdate, db: Session = Depends(get_db)):
    result = stock_service.bulk_update_stock(
        db, data.updates, user_source=data.user_source or settings.BULK_USER_SOURCE
    )
    return {
        "success": True,
        "data": {
            "updated_count": result.updated_count,
            "results": [StockChangeOut.model_validate(r) for r in result.results],
        },
    }


@router.get("/{product_id}")
def get_product(product_id: int, db: Session = Depends(get_db)):
    product = product_service.get_product_or_404(db, product_id)
    return {"success": True, "data": ProductOut.model_validate(product)}


@router.put("/{product_id}")
@router.patch("/{product_id}")
def update_product(product_id: int, data: ProductUpdate, db: Session = Depends(get_db)):
    product = stock_service.update_product(db, product_id, data, user_source=settings.API_USER_SOURCE)
    return {
        "success": True,
        "data": ProductOut.model_validate(product),
        "message": "Product updated successfully",
    }


@router.delete("/{product_id}")
def delete_product(product_id: int, db: Session = Depends(get_db)):
    if not stock_service.delete_product(db, product_id):
        raise errors.NotFoundError()
    return {"success": True, "message": "Product deleted successfully"}


@router.patch("/{product_id}/stock")
def update_stock(product_id: int, data: StockUpdate, db: Session = Depends(get_db)):
    """Stock endpoint used by the CMS plugins. An unknown product answers 404."""
    result = stock_service.update_stock(
        db, product_id, data.stock, user_source=data.user_source or settings.API_USER_SOURCE
    )
    return {
        "success": True,
        "message": "Stock updated successfully",
        "data": StockUpdateOut(
            product_id=product_id,
            previous_stock=result.log.previous_stock,
            new_stock=result.product.current_stock,
            change_amount=result.change_amount,
        ),
    }


@router.get("/{product_id}/logs")
def product_logs(
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
