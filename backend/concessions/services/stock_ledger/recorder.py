"""Entry Recorder - validates movements and appends them to a monthly ledger.

Each movement type maps to exactly one ``MovementEffect``:

    ADDED / RETURNED      stock_added   += qty
    SOLD                  used_stock    += qty
    EXPIRED               expired_stock += qty
    DAMAGED               damage_stock  += qty
    ADJUSTMENT (qty > 0)  stock_added   += qty
    ADJUSTMENT (qty < 0)  used_stock    += |qty|

Only the edited ledger is recalculated. Later months pick up the new closing
balance from the carry-forward chain on their next access.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Tuple

from sqlalchemy.orm import Session

from concessions.models.stock_ledger import MonthlyStockLedger, MovementType, StockLedgerEntry
from concessions.schemas.stock_ledger import MovementCreate, MovementUpdate
from concessions.services.stock_ledger.errors import MovementValidationError
from concessions.services.stock_ledger.recalculator import recalculate

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass(frozen=True)
class MovementEffect:
    """Stock fields contributed by one movement."""

    stock_added: Decimal = ZERO
    used_stock: Decimal = ZERO
    expired_stock: Decimal = ZERO
    damage_stock: Decimal = ZERO

    @property
    def delta(self) -> Decimal:
        return self.stock_added - self.used_stock - self.expired_stock - self.damage_stock


_EFFECT_FIELD = {
    MovementType.ADDED: "stock_added",
    MovementType.RETURNED: "stock_added",
    MovementType.SOLD: "used_stock",
    MovementType.EXPIRED: "expired_stock",
    MovementType.DAMAGED: "damage_stock",
}


def coerce_movement_type(value: Any) -> MovementType:
    if value is None or value == "":
        raise MovementValidationError("Movement type is required")
    try:
        return MovementType(value)
    except ValueError:
        raise MovementValidationError(f"Unknown movement type '{value}'")


def coerce_quantity(movement_type: MovementType, value: Any) -> Decimal:
    """Parse a quantity and apply the sign rule for its movement type."""
    if value is None or value == "":
        raise MovementValidationError("Quantity is required")
    try:
        qty = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise MovementValidationError(f"Quantity must be a number, got {value!r}")
    if not qty.is_finite():
        raise MovementValidationError(f"Quantity must be a finite number, got {value!r}")

    if movement_type is MovementType.ADJUSTMENT:
        if qty == 0:
            raise MovementValidationError("Adjustment quantity cannot be zero")
    elif qty <= 0:
        raise MovementValidationError("Quantity must be greater than 0")
    return qty


def check_expire_date(movement_date, expire_date) -> None:
    """A batch cannot expire before the day it was received."""
    if movement_date is None or expire_date is None:
        return
    if expire_date < movement_date:
        raise MovementValidationError(
            f"Expire date {expire_date.isoformat()} is before movement date {movement_date.isoformat()}"
        )


def derive_effect(movement_type: Any, quantity: Any) -> Tuple[MovementType, Decimal, MovementEffect]:
    """Validate a (type, quantity) pair and return its stock effect."""
    movement_type = coerce_movement_type(movement_type)
    qty = coerce_quantity(movement_type, quantity)

    if movement_type is MovementType.ADJUSTMENT:
        if qty > 0:
            return movement_type, qty, MovementEffect(stock_added=qty)
        return movement_type, qty, MovementEffect(used_stock=-qty)

    return movement_type, qty, MovementEffect(**{_EFFECT_FIELD[movement_type]: qty})


class EntryRecorder:
    """Appends and rewrites ledger entries."""

    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def _check_period(ledger: MonthlyStockLedger, movement_date) -> None:
        if movement_date is None:
            raise MovementValidationError("Movement date is required")
        if (movement_date.year, movement_date.month) != ledger.period:
            raise MovementValidationError(
                f"Movement dated {movement_date.isoformat()} does not belong to "
                f"ledger period {ledger.year}-{ledger.month_number:02d}"
            )

    def record(self, ledger: MonthlyStockLedger, movement: MovementCreate) -> StockLedgerEntry:
        """Validate ``movement``, append it to ``ledger`` and rebalance the ledger."""
        movement_type, qty, effect = derive_effect(movement.type, movement.quantity)
        self._check_period(ledger, movement.date)
        check_expire_date(movement.date, movement.expire_date)

        # Initial estimate only; recalculate() owns the final balance
        previous = ledger.entries[-1].balance if ledger.entries else ledger.carry_forward
        previous = Decimal(previous or 0)

        entry = StockLedgerEntry(
            date=movement.date,
            type=movement_type,
            quantity=qty,
            stock_added=effect.stock_added,
            used_stock=effect.used_stock,
            expired_stock=effect.expired_stock,
            damage_stock=effect.damage_stock,
            opening_balance=previous,
            balance=max(ZERO, previous + effect.delta),
            expire_date=movement.expire_date,
            batch_number=movement.batch_number,
            notes=movement.notes,
        )
        ledger.entries.append(entry)
        recalculate(ledger)
        self.db.flush()

        logger.info(
            f"Recorded {movement_type.value} x{qty} on {movement.date.isoformat()} "
            f"(venue={ledger.venue_id} product={ledger.product_id}), "
            f"closing balance now {ledger.closing_balance}"
        )
        return entry

    def apply_update(self, entry: StockLedgerEntry, patch: MovementUpdate) -> StockLedgerEntry:
        """Replace an entry's fields and rebalance its whole ledger.

        Stock fields are re-derived from type and quantity unless the patch
        supplies explicit ``used_stock``, ``expired_stock`` or ``damage_stock``.
        """
        provided = patch.model_fields_set
        ledger = entry.ledger

        movement_type, qty, effect = derive_effect(
            patch.type if patch.type is not None else entry.type,
            patch.quantity if patch.quantity is not None else entry.quantity,
        )
        self._check_period(ledger, patch.date)
        expire_date = patch.expire_date if "expire_date" in provided else entry.expire_date
        check_expire_date(patch.date, expire_date)

        entry.date = patch.date
        entry.type = movement_type
        entry.quantity = qty
        entry.stock_added = effect.stock_added
        entry.used_stock = self._override(patch.used_stock, effect.used_stock)
        entry.expired_stock = self._override(patch.expired_stock, effect.expired_stock)
        entry.damage_stock = self._override(patch.damage_stock, effect.damage_stock)
        for field in ("expire_date", "batch_number", "notes"):
            if field in provided:
                setattr(entry, field, getattr(patch, field))

        recalculate(ledger)
        self.db.flush()

        logger.info(
            f"Updated stock entry {entry.id} ({movement_type.value} x{qty}) in "
            f"{ledger.year}-{ledger.month_number:02d}, closing balance now {ledger.closing_balance}"
        )
        return entry

    @staticmethod
    def _override(value: Optional[Decimal], derived: Decimal) -> Decimal:
        return Decimal(value) if value is not None else derived
