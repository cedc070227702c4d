"""Stock mutations and the inventory log rows that go with them.

Every function here runs as a single transaction on the session it is given:
the product write and its log row are committed together or rolled back
together. Nothing is retried; failures are raised after the rollback.
"""

import logging
from dataclasses import dataclass, field

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from inventory_sync import errors
from inventory_sync.database import WRITE_TRANSACTION
from inventory_sync.models.inventory_log import InventoryLog
from inventory_sync.models.product import Product
from inventory_sync.schemas.product import BulkStockEntry, ProductCreate, ProductUpdate
from inventory_sync.services import inventory_log_service, product_service

logger = logging.getLogger(__name__)


@dataclass
class StockUpdateResult:
    product: Product
    log: InventoryLog
    change_amount: int


@dataclass
class BulkUpdateResult:
    updated_count: int
    results: list[StockUpdateResult] = field(default_factory=list)


def _validate_target(target_stock: int) -> None:
    if target_stock < 0:
        raise errors.ValidationError("Stock cannot be negative", errors={"stock": ["Stock cannot be negative"]})


def _begin_write(db: Session) -> None:
    """Open the session's transaction as a writer.

    A transaction still open from earlier reads is committed first; its snapshot
    may predate other writers' commits.
    """
    if db.in_transaction():
        db.commit()
    db.connection(execution_options=WRITE_TRANSACTION)


def _lock_product(db: Session, product_id: int) -> Product:
    """Read the product row under a row lock, discarding any stale copy held by the session."""
    product = (
        db.query(Product)
        .filter(Product.id == product_id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if not product:
        raise errors.NotFoundError(f"Product with ID {product_id} not found")
    return product


def _apply_stock_change(db: Session, product: Product, target_stock: int, user_source: str) -> StockUpdateResult:
    previous_stock = product.current_stock
    change_amount = target_stock - previous_stock

    product.current_stock = target_stock
    log = InventoryLog(
        product_id=product.id,
        previous_stock=previous_stock,
        new_stock=target_stock,
        change_amount=change_amount,
        user_source=user_source,
    )
    db.add(log)
    db.flush()
    return StockUpdateResult(product=product, log=log, change_amount=change_amount)


def _refresh(db: Session, result: StockUpdateResult) -> StockUpdateResult:
    db.refresh(result.product)
    db.refresh(result.log)
    return result


def update_stock(db: Session, product_id: int, target_stock: int, user_source: str = "system") -> StockUpdateResult:
    """Set a product's stock to ``target_stock`` and append one inventory log row."""
    _validate_target(target_stock)

    try:
        _begin_write(db)
        product = _lock_product(db, product_id)
        result = _apply_stock_change(db, product, target_stock, user_source)
        db.commit()
    except errors.InventoryError:
        db.rollback()
        raise
    except Exception as exc:
        db.rollback()
        logger.warning("Stock update for product %s rolled back: %s", product_id, exc)
        raise errors.MutationFailedError("Failed to update stock") from exc

    logger.info(
        "Stock of product %s changed %s -> %s (%+d) by %s",
        product_id, result.log.previous_stock, target_stock, result.change_amount, user_source,
    )
    return _refresh(db, result)


def _entry_fields(entry: BulkStockEntry | dict) -> tuple[int | None, int | None]:
    if isinstance(entry, dict):
        return entry.get("product_id"), entry.get("stock")
    return entry.product_id, entry.stock


def bulk_update_stock(
    db: Session,
    updates: list[BulkStockEntry | dict],
    user_source: str = "bulk_api",
) -> BulkUpdateResult:
    """Apply a batch of stock updates as one all-or-nothing transaction.

    Entries missing ``product_id`` or ``stock`` are all reported before anything
    is attempted. Unknown products and negative stock values are collected
    across the whole batch, then the batch is rolled back. A storage failure
    rolls back immediately and raises ``MutationFailedError``.
    """
    if not updates:
        raise errors.BulkValidationError(["No stock updates provided"])

    problems: list[str] = []
    entries: list[tuple[int, int]] = []
    for position, entry in enumerate(updates, start=1):
        product_id, stock = _entry_fields(entry)
        if product_id is None or stock is None:
            problems.append(f"Update #{position}: missing product_id or stock")
            continue
        entries.append((product_id, stock))

    if problems:
        raise errors.BulkValidationError(problems)

    results: list[StockUpdateResult] = []
    try:
        _begin_write(db)
        # Lock every touched row up front, in id order, so overlapping batches cannot deadlock
        product_ids = sorted({product_id for product_id, _ in entries})
        locked = {
            p.id: p
            for p in db.query(Product)
            .filter(Product.id.in_(product_ids))
            .order_by(Product.id)
            .with_for_update()
            .populate_existing()
            .all()
        }

        for product_id, stock in entries:
            if stock < 0:
                problems.append(f"Product {product_id}: Stock cannot be negative")
                continue
            product = locked.get(product_id)
            if product is None:
                problems.append(f"Product {product_id}: Product with ID {product_id} not found")
                continue
            results.append(_apply_stock_change(db, product, stock, user_source))

        if problems:
            raise errors.BulkValidationError(problems)

        db.commit()
    except errors.InventoryError:
        db.rollback()
        logger.warning("Bulk stock update of %d entries rejected", len(entries))
        raise
    except Exception as exc:
        db.rollback()
        logger.warning("Bulk stock update rolled back: %s", exc)
        raise errors.MutationFailedError("Bulk update failed") from exc

    logger.info("Bulk stock update applied %d changes by %s", len(results), user_source)
    for result in results:
        _refresh(db, result)
    return BulkUpdateResult(updated_count=len(results), results=results)


def _reference_taken(reference: str) -> errors.ConflictError:
    return errors.ConflictError(
        f"Product with reference {reference} already exists",
        errors={"reference": ["The reference has already been taken."]},
    )


def create_product(db: Session, data: ProductCreate, user_source: str = "creation") -> Product:
    """Create a product; a positive initial stock is logged as ``0 -> initial`` in the same transaction."""
    reference = data.reference or product_service.generate_reference()
    product = Product(name=data.name, reference=reference, current_stock=data.current_stock)
    try:
        _begin_write(db)
        if product_service.get_product_by_reference(db, reference):
            raise _reference_taken(reference)

        db.add(product)
        db.flush()

        if data.current_stock > 0:
            db.add(InventoryLog(
                product_id=product.id,
                previous_stock=0,
                new_stock=data.current_stock,
                change_amount=data.current_stock,
                user_source=user_source,
            ))

        db.commit()
    except errors.InventoryError:
        db.rollback()
        raise
    except IntegrityError as exc:
        db.rollback()
        raise _reference_taken(reference) from exc
    except Exception as exc:
        db.rollback()
        logger.warning("Product creation rolled back: %s", exc)
        raise errors.MutationFailedError("Failed to create product") from exc

    db.refresh(product)
    logger.info("Created product %s (%s) with stock %s", product.id, product.reference, product.current_stock)
    return product


def update_product(db: Session, product_id: int, data: ProductUpdate, user_source: str = "api") -> Product:
    """Update name/reference; a ``current_stock`` value goes through the logged stock path in the same transaction."""
    fields = {
        k: v
        for k, v in data.model_dump(exclude_unset=True, exclude={"current_stock", "user_source"}).items()
        if v is not None
    }

    try:
        _begin_write(db)
        product = _lock_product(db, product_id)

        reference = fields.get("reference")
        if reference and reference != product.reference:
            other = product_service.get_product_by_reference(db, reference)
            if other and other.id != product.id:
                raise _reference_taken(reference)

        for name, value in fields.items():
            setattr(product, name, value)

        if data.current_stock is not None:
            _validate_target(data.current_stock)
            _apply_stock_change(db, product, data.current_stock, data.user_source or user_source)

        db.commit()
    except errors.InventoryError:
        db.rollback()
        raise
    except IntegrityError as exc:
        db.rollback()
        raise _reference_taken(fields.get("reference", "")) from exc
    except Exception as exc:
        db.rollback()
        logger.warning("Update of product %s rolled back: %s", product_id, exc)
        raise errors.MutationFailedError("Failed to update product") from exc

    db.refresh(product)
    return product


def delete_product(db: Session, product_id: int) -> bool:
    """Delete a product and all its inventory logs. Returns False if it does not exist."""
    try:
        _begin_write(db)
        product = db.query(Product).filter(Product.id == product_id).with_for_update().first()
        if not product:
            db.rollback()
            return False

        removed = inventory_log_service.delete_logs_for_product(db, product_id)
        db.delete(product)
        db.commit()
    except Exception as exc:
        db.rollback()
        logger.warning("Deletion of product %s rolled back: %s", product_id, exc)
        raise errors.MutationFailedError("Failed to delete product") from exc

    logger.info("Deleted product %s and %d inventory logs", product_id, removed)
    return True
