import uuid

from sqlalchemy import or_
from sqlalchemy.orm import Session

from inventory_sync import errors
from inventory_sync.models.product import Product
from inventory_sync.schemas.product import ProductFilters
from inventory_sync.services.inventory_log_service import escape_like
from inventory_sync.services.pagination import paginate, validate_page


def generate_reference() -> str:
    return f"REF-{uuid.uuid4().hex[:8].upper()}"


def get_product(db: Session, product_id: int) -> Product | None:
    return db.query(Product).filter(Product.id == product_id).first()


def get_product_or_404(db: Session, product_id: int) -> Product:
    product = get_product(db, product_id)
    if not product:
        raise errors.NotFoundError(f"Product with ID {product_id} not found")
    return product


def get_product_by_reference(db: Session, reference: str) -> Product | None:
    return db.query(Product).filter(Product.reference == reference).first()


def _contains(column, term: str):
    return column.ilike(f"%{escape_like(term)}%", escape="\\")


def list_products(
    db: Session,
    filters: ProductFilters,
    page: int = 1,
    per_page: int = 50,
    max_per_page: int = 100,
) -> tuple[list[Product], dict]:
    validate_page(page, per_page, max_per_page)
    if filters.min_stock is not None and filters.max_stock is not None and filters.min_stock > filters.max_stock:
        raise errors.ValidationError(
            "Validation failed",
            errors={"max_stock": ["The max stock must be greater than or equal to min stock."]},
        )

    q = db.query(Product)
    if filters.search:
        q = q.filter(or_(_contains(Product.name, filters.search), _contains(Product.reference, filters.search)))
    if filters.name:
        q = q.filter(_contains(Product.name, filters.name))
    if filters.reference:
        q = q.filter(_contains(Product.reference, filters.reference))
    if filters.min_stock is not None:
        q = q.filter(Product.current_stock >= filters.min_stock)
    if filters.max_stock is not None:
        q = q.filter(Product.current_stock <= filters.max_stock)

    return paginate(q.order_by(Product.id.desc()), page, per_page)


def get_low_stock(db: Session, threshold: int = 10) -> list[Product]:
    return (
        db.query(Product)
        .filter(Product.current_stock <= threshold)
        .order_by(Product.current_stock, Product.id)
        .all()
    )


def low_stock_alert(db: Session, threshold: int = 10) -> dict:
    products = get_low_stock(db, threshold)
    return {"threshold": threshold, "count": len(products), "products": products}
