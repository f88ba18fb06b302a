"""Stock Ledger Service - request-level operations on monthly stock ledgers.

Every operation on a (venue, product) runs the same sequence inside one
transaction:

1. Expiry recognition across all months of the product.
2. Carry-forward chain update, oldest month first.
3. The requested read or mutation (mutations rebalance only their own month).
4. Write the resulting closing balance to ``Product.current_stock``.

There is no locking: two writers on the same venue/product race and the last
commit wins. Any failure rolls back the whole request; re-running it is safe
because each pass is idempotent.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterator, List, Optional

from sqlalchemy.orm import Session

from concessions.models.product import Product
from concessions.models.stock_ledger import MonthlyStockLedger, StockLedgerEntry
from concessions.schemas.stock_ledger import MovementCreate, MovementUpdate
from concessions.services.product_stock import get_venue_product, sync_product_stock
from concessions.services.stock_ledger.carry_forward import CarryForwardChain
from concessions.services.stock_ledger.errors import (
    LedgerEntryNotFoundError,
    LedgerPeriodNotFoundError,
    MovementValidationError,
    StockLedgerError,
)
from concessions.services.stock_ledger.expiry import ExpiryRecognizer, local_now
from concessions.services.stock_ledger.recalculator import recalculate
from concessions.services.stock_ledger.recorder import EntryRecorder, check_expire_date, derive_effect
from concessions.services.stock_ledger.store import LedgerStore

logger = logging.getLogger(__name__)


@dataclass
class LedgerSnapshot:
    """A resolved period plus the product's denormalized stock."""

    ledger: MonthlyStockLedger
    current_stock: Optional[Decimal]
    stock_status: Optional[str]
    expiry_recognized: bool


@dataclass
class MovementResult:
    ledger: MonthlyStockLedger
    entry: StockLedgerEntry
    current_stock: Decimal


@dataclass
class LedgerChangeResult:
    ledger: MonthlyStockLedger
    affected: int
    current_stock: Decimal


class StockLedgerService:
    """Read and mutate monthly stock ledgers for one venue/product at a time."""

    def __init__(self, db: Session):
        self.db = db
        self.store = LedgerStore(db)
        self.recorder = EntryRecorder(db)
        self.chain = CarryForwardChain(db, self.store)
        self.expiry = ExpiryRecognizer(db, self.store, self.chain)

    # ===== TRANSACTION HANDLING =====

    @contextmanager
    def _unit_of_work(self, operation: str) -> Iterator[None]:
        try:
            yield
            self.db.commit()
        except StockLedgerError as e:
            self.db.rollback()
            logger.info(f"Stock ledger {operation} rejected: {e}")
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Stock ledger {operation} failed: {e}")
            raise

    def _prepare(self, venue_id: int, product_id: int, now: Optional[datetime]) -> bool:
        """Run expiry recognition then the carry-forward chain update."""
        recognized = self.expiry.run(venue_id, product_id, now=now)
        self.chain.update(venue_id, product_id)
        return recognized

    def _require_ledger(
        self, venue_id: int, product_id: int, year: int, month: int
    ) -> MonthlyStockLedger:
        ledger = self.store.find(venue_id, product_id, year, month)
        if ledger is None:
            raise LedgerPeriodNotFoundError(venue_id, product_id, year, month)
        return ledger

    @staticmethod
    def _require_entry(ledger: MonthlyStockLedger, entry_id: int) -> StockLedgerEntry:
        entry = ledger.get_entry(entry_id)
        if entry is None:
            raise LedgerEntryNotFoundError(entry_id, ledger.year, ledger.month_number)
        return entry

    def _push_current_stock(
        self, venue_id: int, product_id: int, ledger: MonthlyStockLedger
    ) -> Optional[Product]:
        return sync_product_stock(self.db, venue_id, product_id, ledger.closing_balance)

    @staticmethod
    def _current_stock(product: Optional[Product], ledger: MonthlyStockLedger) -> Decimal:
        if product is not None:
            return Decimal(product.current_stock)
        return Decimal(ledger.closing_balance)

    # ===== READS =====

    def read_period(
        self,
        venue_id: int,
        product_id: int,
        year: Optional[int] = None,
        month: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> LedgerSnapshot:
        """Resolve one period, defaulting to the current calendar month.

        The period is created from the previous closing balance on first
        access. The product's current stock is refreshed only when expiry
        recognition booked something.
        """
        now = local_now(now)
        year = year or now.year
        month = month or now.month

        with self._unit_of_work("read"):
            recognized = self._prepare(venue_id, product_id, now)
            ledger = self.store.get_or_create_with_carry_forward(venue_id, product_id, year, month)
            if recognized:
                product = self._push_current_stock(venue_id, product_id, ledger)
            else:
                product = get_venue_product(self.db, venue_id, product_id)

        return LedgerSnapshot(
            ledger=ledger,
            current_stock=Decimal(product.current_stock) if product is not None else None,
            stock_status=product.stock_status if product is not None else None,
            expiry_recognized=recognized,
        )

    def period_history(
        self, venue_id: int, product_id: int, now: Optional[datetime] = None
    ) -> List[MonthlyStockLedger]:
        """All periods of the venue/product, oldest first, after the usual passes."""
        with self._unit_of_work("history"):
            self._prepare(venue_id, product_id, local_now(now))
            ledgers = self.store.history(venue_id, product_id)
        return ledgers

    # ===== MUTATIONS =====

    def record_movement(
        self,
        venue_id: int,
        product_id: int,
        movement: MovementCreate,
        now: Optional[datetime] = None,
    ) -> MovementResult:
        """Append a movement to the month of ``movement.date``."""
        if movement.date is None:
            raise MovementValidationError("Movement date is required")
        # Reject bad input before any pass writes
        derive_effect(movement.type, movement.quantity)
        check_expire_date(movement.date, movement.expire_date)

        with self._unit_of_work("record"):
            self._prepare(venue_id, product_id, local_now(now))
            ledger = self.store.get_or_create_with_carry_forward(
                venue_id, product_id, movement.date.year, movement.date.month
            )
            entry = self.recorder.record(ledger, movement)
            product = self._push_current_stock(venue_id, product_id, ledger)

        return MovementResult(ledger=ledger, entry=entry, current_stock=self._current_stock(product, ledger))

    def update_movement(
        self,
        venue_id: int,
        product_id: int,
        entry_id: int,
        patch: MovementUpdate,
        now: Optional[datetime] = None,
    ) -> MovementResult:
        """Rewrite an entry found in the month implied by ``patch.date``."""
        if patch.date is None:
            raise MovementValidationError("Movement date is required")

        with self._unit_of_work("update"):
            self._prepare(venue_id, product_id, local_now(now))
            ledger = self._require_ledger(venue_id, product_id, patch.date.year, patch.date.month)
            entry = self._require_entry(ledger, entry_id)
            self.recorder.apply_update(entry, patch)
            product = self._push_current_stock(venue_id, product_id, ledger)

        return MovementResult(ledger=ledger, entry=entry, current_stock=self._current_stock(product, ledger))

    def delete_movement(
        self,
        venue_id: int,
        product_id: int,
        year: int,
        month: int,
        entry_id: int,
        now: Optional[datetime] = None,
    ) -> LedgerChangeResult:
        """Remove one entry and rebalance the remaining sequence."""
        with self._unit_of_work("delete"):
            self._prepare(venue_id, product_id, local_now(now))
            ledger = self._require_ledger(venue_id, product_id, year, month)
            entry = self._require_entry(ledger, entry_id)
            ledger.entries.remove(entry)
            recalculate(ledger)
            self.db.flush()
            product = self._push_current_stock(venue_id, product_id, ledger)
            logger.info(
                f"Deleted stock entry {entry_id} from {year}-{month:02d} "
                f"(venue={venue_id} product={product_id})"
            )

        return LedgerChangeResult(ledger=ledger, affected=1, current_stock=self._current_stock(product, ledger))

    def clear_period(
        self,
        venue_id: int,
        product_id: int,
        year: int,
        month: int,
        now: Optional[datetime] = None,
    ) -> LedgerChangeResult:
        """Remove every entry of one period. The period itself is kept."""
        with self._unit_of_work("clear"):
            self._prepare(venue_id, product_id, local_now(now))
            ledger = self._require_ledger(venue_id, product_id, year, month)
            cleared = len(ledger.entries)
            ledger.entries.clear()
            recalculate(ledger)
            self.db.flush()
            product = self._push_current_stock(venue_id, product_id, ledger)
            logger.info(
                f"Cleared {cleared} entries from {year}-{month:02d} "
                f"(venue={venue_id} product={product_id})"
            )

        return LedgerChangeResult(ledger=ledger, affected=cleared, current_stock=self._current_stock(product, ledger))
