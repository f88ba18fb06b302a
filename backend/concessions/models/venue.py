"""Venue model."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from concessions.db.base import Base, TimestampMixin


class Venue(Base, TimestampMixin):
    """A venue operating one or more concession stands (tenant boundary)."""

    __tablename__ = "venues"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    code: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, unique=True)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Relationships
    products: Mapped[list["Product"]] = relationship(
        "Product", back_populates="venue", cascade="all, delete-orphan"
    )
    stock_ledgers: Mapped[list["MonthlyStockLedger"]] = relationship(
        "MonthlyStockLedger", back_populates="venue", cascade="all, delete-orphan"
    )


# Forward references
from concessions.models.product import Product
from concessions.models.stock_ledger import MonthlyStockLedger
