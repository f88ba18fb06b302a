"""Expiry Recognizer - books the unconsumed remainder of expired batches.

A batch becomes expiry-eligible at 00:01 on the day after its expire_date
(the grace minutes are configurable). Each batch is processed once; the
entry's ``expiry_recognized_at`` marks it as done. The quantity booked is the
batch remainder capped at the stock actually on hand, so sales recorded as
separate entries are never expired a second time:

- expiry in the movement's own month: added to the entry's own
  ``expired_stock``, capped at that month's closing balance;
- expiry in a later month: added to that month's
  ``expired_carry_forward_stock``, capped at the later month's closing
  balance. The source entry is left untouched so an already reported month
  does not change, and a ``StockExpiryCarryover`` row records the booking.
"""

import logging
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from concessions.core.config import settings
from concessions.models.stock_ledger import (
    EXPIRABLE_TYPES,
    MonthlyStockLedger,
    StockExpiryCarryover,
    StockLedgerEntry,
)
from concessions.services.stock_ledger.carry_forward import CarryForwardChain
from concessions.services.stock_ledger.recalculator import recalculate
from concessions.services.stock_ledger.store import LedgerStore

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def expiry_boundary(expire_date: date, grace_minutes: Optional[int] = None) -> datetime:
    """Instant after which stock labelled ``expire_date`` counts as expired."""
    if grace_minutes is None:
        grace_minutes = settings.expiry_grace_minutes
    day_after = expire_date + timedelta(days=1)
    return datetime.combine(day_after, time.min) + timedelta(minutes=grace_minutes)


def local_now(now: Optional[datetime] = None) -> datetime:
    """Naive server-local time; aware datetimes are converted first."""
    if now is None:
        return datetime.now()
    if now.tzinfo is not None:
        return now.astimezone().replace(tzinfo=None)
    return now


def is_expiry_eligible(entry: StockLedgerEntry, now: datetime) -> bool:
    if entry.expire_date is None or entry.type not in EXPIRABLE_TYPES:
        return False
    if entry.expiry_recognized_at is not None:
        return False
    return now >= expiry_boundary(entry.expire_date)


def expires_in_own_month(entry: StockLedgerEntry) -> bool:
    # An expire_date before the movement month is booked on the entry itself
    expiry_period = (entry.expire_date.year, entry.expire_date.month)
    return expiry_period <= (entry.date.year, entry.date.month)


class ExpiryRecognizer:
    """Scans every ledger of a venue/product and books newly expired stock."""

    def __init__(
        self,
        db: Session,
        store: Optional[LedgerStore] = None,
        chain: Optional[CarryForwardChain] = None,
    ):
        self.db = db
        self.store = store or LedgerStore(db)
        self.chain = chain or CarryForwardChain(db, self.store)

    def _candidates(
        self, venue_id: int, product_id: int, now: datetime
    ) -> List[Tuple[MonthlyStockLedger, StockLedgerEntry]]:
        candidates = [
            (ledger, entry)
            for ledger in self.store.history(venue_id, product_id)
            for entry in ledger.entries
            if is_expiry_eligible(entry, now)
        ]
        # Earliest expiry first so each cap sees the stock left by earlier bookings
        candidates.sort(
            key=lambda c: (c[1].expire_date, c[0].year, c[0].month_number, c[1].position)
        )
        return candidates

    def run(self, venue_id: int, product_id: int, now: Optional[datetime] = None) -> bool:
        """Recognize expiries as of ``now``. Returns True if any stock was booked."""
        now = local_now(now)
        candidates = self._candidates(venue_id, product_id, now)
        booked_any = False

        for ledger, entry in candidates:
            # Openings must be current before a closing balance is used as a cap
            self.chain.update(venue_id, product_id)
            if expires_in_own_month(entry):
                booked = self._book_same_month(ledger, entry)
            else:
                booked = self._book_carry_forward(venue_id, product_id, entry)
            entry.expiry_recognized_at = now
            booked_any = booked_any or booked > 0

        if candidates:
            self.db.flush()
        return booked_any

    def _book_same_month(self, ledger: MonthlyStockLedger, entry: StockLedgerEntry) -> Decimal:
        recalculate(ledger)
        quantity = min(entry.remaining_stock, Decimal(ledger.closing_balance or 0))
        if quantity <= 0:
            logger.debug(f"Entry {entry.id} expired with no stock left on hand")
            return ZERO

        entry.expired_stock = Decimal(entry.expired_stock or 0) + quantity
        recalculate(ledger)
        logger.info(
            f"Expired {quantity} of entry {entry.id} (batch {entry.batch_number or '-'}) "
            f"in {ledger.year}-{ledger.month_number:02d}"
        )
        return quantity

    def _book_carry_forward(
        self, venue_id: int, product_id: int, entry: StockLedgerEntry
    ) -> Decimal:
        expire_date = entry.expire_date
        target = self.store.get_or_create_with_carry_forward(
            venue_id, product_id, expire_date.year, expire_date.month
        )
        recalculate(target)
        quantity = min(entry.remaining_stock, Decimal(target.closing_balance or 0))
        if quantity <= 0:
            logger.debug(
                f"Entry {entry.id} expired with no stock left on hand in "
                f"{target.year}-{target.month_number:02d}"
            )
            return ZERO

        target.expired_carry_forward_stock = (
            Decimal(target.expired_carry_forward_stock or 0) + quantity
        )
        entry.carryovers.append(StockExpiryCarryover(ledger=target, quantity=quantity))
        recalculate(target)

        logger.info(
            f"Expired {quantity} of entry {entry.id} added {entry.date.isoformat()}; "
            f"booked as carry-forward expiry in {target.year}-{target.month_number:02d}"
        )
        return quantity
