"""Monthly stock ledger models.

One ``MonthlyStockLedger`` row exists per (venue, product, year, month). Its
``entries`` are the movements recorded in that month, kept in insertion
order. Cross-month expiry bookings are tracked in ``StockExpiryCarryover``.
"""

from __future__ import annotations

import calendar
import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.ext.orderinglist import ordering_list
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from concessions.db.base import Base, TimestampMixin
from concessions.models.validators import month_number, non_negative

ZERO = Decimal("0")


class MovementType(str, Enum):
    """Kinds of stock movement recorded in a monthly ledger."""

    ADDED = "ADDED"  # Goods received
    RETURNED = "RETURNED"  # Customer/stand return back into stock
    SOLD = "SOLD"
    EXPIRED = "EXPIRED"  # Manually written off as expired
    DAMAGED = "DAMAGED"
    ADJUSTMENT = "ADJUSTMENT"  # Signed quantity


# Only received/returned batches carry an expiry that the recognizer acts on
EXPIRABLE_TYPES = frozenset({MovementType.ADDED, MovementType.RETURNED})


class MonthlyStockLedger(Base, TimestampMixin):
    """Stock book for one product at one venue for one calendar month."""

    __tablename__ = "monthly_stock_ledgers"
    __table_args__ = (
        UniqueConstraint(
            "venue_id", "product_id", "year", "month_number", name="uq_stock_ledger_period"
        ),
        CheckConstraint("month_number BETWEEN 1 AND 12", name="month"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    venue_id: Mapped[int] = mapped_column(
        ForeignKey("venues.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id: Mapped[int] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True
    )
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month_number: Mapped[int] = mapped_column(Integer, nullable=False)
    month_name: Mapped[str] = mapped_column(String(12), nullable=False)

    # Opening balance; equals the previous period's closing balance
    carry_forward: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)
    # Expired this month from batches added in an earlier month
    expired_carry_forward_stock: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=0, nullable=False
    )

    # Cached totals, written only by the balance recalculator
    total_added: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)
    total_used: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)
    total_expired: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)
    total_damaged: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)
    closing_balance: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)

    # Relationships
    venue: Mapped["Venue"] = relationship("Venue", back_populates="stock_ledgers")
    product: Mapped["Product"] = relationship("Product", back_populates="stock_ledgers")
    entries: Mapped[list["StockLedgerEntry"]] = relationship(
        "StockLedgerEntry",
        back_populates="ledger",
        order_by="StockLedgerEntry.position",
        collection_class=ordering_list("position"),
        cascade="all, delete-orphan",
    )

    @validates("month_number")
    def _validate_month(self, key, value):
        return month_number(key, value)

    @validates("carry_forward", "expired_carry_forward_stock", "closing_balance")
    def _validate_non_negative(self, key, value):
        return non_negative(key, value)

    @staticmethod
    def name_for_month(month: int) -> str:
        return calendar.month_name[month]

    @property
    def period(self) -> tuple[int, int]:
        return (self.year, self.month_number)

    def get_entry(self, entry_id: int) -> Optional["StockLedgerEntry"]:
        for entry in self.entries:
            if entry.id == entry_id:
                return entry
        return None

    def __repr__(self) -> str:
        return (
            f"<MonthlyStockLedger venue={self.venue_id} product={self.product_id} "
            f"{self.year}-{self.month_number:02d} closing={self.closing_balance}>"
        )


class StockLedgerEntry(Base):
    """A single stock movement inside a monthly ledger."""

    __tablename__ = "stock_ledger_entries"

    id: Mapped[int] = mapped_column(primary_key=True)
    ledger_id: Mapped[int] = mapped_column(
        ForeignKey("monthly_stock_ledgers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    type: Mapped[MovementType] = mapped_column(
        SQLEnum(MovementType, name="stock_movement_type"), nullable=False
    )
    quantity: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    stock_added: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)
    used_stock: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)
    expired_stock: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)
    damage_stock: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)

    opening_balance: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)
    balance: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)

    expire_date: Mapped[Optional[dt.date]] = mapped_column(Date, nullable=True, index=True)
    batch_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    # Set once the recognizer has processed this batch past its expiry boundary
    expiry_recognized_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # Relationships
    ledger: Mapped["MonthlyStockLedger"] = relationship(
        "MonthlyStockLedger", back_populates="entries"
    )
    carryovers: Mapped[list["StockExpiryCarryover"]] = relationship(
        "StockExpiryCarryover", back_populates="entry", cascade="all, delete-orphan"
    )

    @validates("stock_added", "used_stock", "expired_stock", "damage_stock", "balance")
    def _validate_non_negative(self, key, value):
        return non_negative(key, value)

    @property
    def carried_over_stock(self) -> Decimal:
        """Quantity of this batch already booked as expired in a later month."""
        return sum((Decimal(c.quantity) for c in self.carryovers), ZERO)

    @property
    def remaining_stock(self) -> Decimal:
        """Unconsumed part of the batch that could still expire."""
        remaining = (
            Decimal(self.stock_added or 0)
            - Decimal(self.used_stock or 0)
            - Decimal(self.expired_stock or 0)
            - Decimal(self.damage_stock or 0)
            - self.carried_over_stock
        )
        return max(ZERO, remaining)


class StockExpiryCarryover(Base):
    """Expired remainder of a batch booked into a different month's ledger."""

    __tablename__ = "stock_expiry_carryovers"

    id: Mapped[int] = mapped_column(primary_key=True)
    entry_id: Mapped[int] = mapped_column(
        ForeignKey("stock_ledger_entries.id", ondelete="CASCADE"), nullable=False, index=True
    )
    ledger_id: Mapped[int] = mapped_column(
        ForeignKey("monthly_stock_ledgers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    quantity: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    recognized_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # Relationships
    entry: Mapped["StockLedgerEntry"] = relationship("StockLedgerEntry", back_populates="carryovers")
    ledger: Mapped["MonthlyStockLedger"] = relationship("MonthlyStockLedger")

    @validates("quantity")
    def _validate_non_negative(self, key, value):
        return non_negative(key, value)


# Forward references
from concessions.models.venue import Venue
from concessions.models.product import Product
