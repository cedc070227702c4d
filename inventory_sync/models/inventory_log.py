from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inventory_sync.database import Base
from inventory_sync.models.product import Product


class InventoryLog(Base):
    """Tracks every stock change for audit trail. Rows are append-only."""

    __tablename__ = "inventory_logs"
    __table_args__ = (
        Index("idx_product_date_composite", "product_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False
    )
    previous_stock: Mapped[int] = mapped_column(Integer, nullable=False)
    new_stock: Mapped[int] = mapped_column(Integer, nullable=False)
    change_amount: Mapped[int] = mapped_column(Integer, nullable=False, index=True)  # new_stock - previous_stock
    user_source: Mapped[str] = mapped_column(String(255), nullable=False, default="system", index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, server_default=func.now(), index=True)

    product: Mapped["Product"] = relationship("Product", back_populates="inventory_logs")

    @property
    def formatted_change(self) -> str:
        return f"+{self.change_amount}" if self.change_amount >= 0 else str(self.change_amount)

    @property
    def product_name(self) -> str:
        return self.product.name if self.product else "Unknown"

    @property
    def product_reference(self) -> str:
        return self.product.reference if self.product else "Unknown"
