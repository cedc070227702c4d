from datetime import date, datetime

from pydantic import BaseModel


class InventoryLogOut(BaseModel):
    id: int
    product_id: int
    product_name: str = "Unknown"
    product_reference: str = "Unknown"
    previous_stock: int
    new_stock: int
    change_amount: int
    formatted_change: str
    user_source: str
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class LogFilters(BaseModel):
    product_id: int | None = None
    date_from: date | None = None
    date_to: date | None = None
    user_source: str | None = None

    def applied(self) -> dict:
        return self.model_dump(exclude_none=True, mode="json")


class StatisticsOut(BaseModel):
    total_logs: int
    total_stock_increases: int
    total_stock_decreases: int
    net_change: int
