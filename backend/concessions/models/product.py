"""Product model."""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from concessions.core.config import settings
from concessions.db.base import Base, TimestampMixin
from concessions.models.validators import non_negative


class Product(Base, TimestampMixin):
    """Concession product sold at a venue.

    ``current_stock`` is a denormalized copy of the latest ledger closing
    balance; only the stock ledger service writes it.
    """

    __tablename__ = "products"

    id: Mapped[int] = mapped_column(primary_key=True)
    venue_id: Mapped[int] = mapped_column(
        ForeignKey("venues.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    sku: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, index=True)
    unit: Mapped[str] = mapped_column(String(20), default="pcs", nullable=False)  # pcs, ml, L, kg
    track_stock: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    current_stock: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)
    min_stock: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Relationships
    venue: Mapped["Venue"] = relationship("Venue", back_populates="products")
    stock_ledgers: Mapped[list["MonthlyStockLedger"]] = relationship(
        "MonthlyStockLedger", back_populates="product", cascade="all, delete-orphan"
    )

    @validates("current_stock", "min_stock")
    def _validate_non_negative(self, key, value):
        return non_negative(key, value)

    @property
    def low_stock_threshold(self) -> Decimal:
        """Per-product minimum, falling back to the configured default."""
        if self.min_stock:
            return Decimal(self.min_stock)
        return settings.low_stock_default_threshold

    @property
    def stock_status(self) -> str:
        if self.track_stock is False:
            return "unlimited"
        current = Decimal(self.current_stock or 0)
        if current <= 0:
            return "out_of_stock"
        if current <= self.low_stock_threshold:
            return "low_stock"
        return "in_stock"


# Forward references
from concessions.models.venue import Venue
from concessions.models.stock_ledger import MonthlyStockLedger
