from datetime import datetime

from pydantic import BaseModel, Field

from inventory_sync.schemas.inventory_log import InventoryLogOut


# --- Product schemas ---

class ProductCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    reference: str | None = Field(default=None, min_length=1, max_length=100)  # generated when omitted
    current_stock: int = Field(default=0, ge=0)


class ProductUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    reference: str | None = Field(default=None, min_length=1, max_length=100)
    current_stock: int | None = Field(default=None, ge=0)  # routed through the stock service
    user_source: str | None = None


class ProductOut(BaseModel):
    id: int
    name: str
    reference: str
    current_stock: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class ProductFilters(BaseModel):
    search: str | None = None
    name: str | None = None
    reference: str | None = None
    min_stock: int | None = Field(default=None, ge=0)
    max_stock: int | None = Field(default=None, ge=0)


# --- Stock schemas ---

class StockUpdate(BaseModel):
    stock: int  # negative values are rejected by the stock service
    user_source: str | None = None


class StockUpdateOut(BaseModel):
    product_id: int
    previous_stock: int
    new_stock: int
    change_amount: int


class BulkStockEntry(BaseModel):
    # Both optional so missing fields are reported per entry instead of rejecting the request
    product_id: int | None = None
    stock: int | None = None


class BulkStockUpdate(BaseModel):
    updates: list[BulkStockEntry] = Field(min_length=1)
    user_source: str | None = None


class StockChangeOut(BaseModel):
    product: ProductOut
    log: InventoryLogOut
    change_amount: int

    model_config = {"from_attributes": True}


class LowStockOut(BaseModel):
    threshold: int
    count: int
    products: list[ProductOut]
