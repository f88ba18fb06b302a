"""Persistence access for monthly stock ledgers."""

import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import and_, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from concessions.models.stock_ledger import MonthlyStockLedger
from concessions.services.stock_ledger.errors import MovementValidationError

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def _check_period(year: int, month: int) -> None:
    if not 1 <= month <= 12:
        raise MovementValidationError(f"Month must be between 1 and 12, got {month}")
    if year < 1:
        raise MovementValidationError(f"Invalid year {year}")


class LedgerStore:
    """Fetch-or-create and ordered lookups for (venue, product, month) ledgers."""

    def __init__(self, db: Session):
        self.db = db

    def _key_filter(self, venue_id: int, product_id: int):
        return and_(
            MonthlyStockLedger.venue_id == venue_id,
            MonthlyStockLedger.product_id == product_id,
        )

    def find(
        self, venue_id: int, product_id: int, year: int, month: int
    ) -> Optional[MonthlyStockLedger]:
        """Return the ledger for a period, or None if it was never created."""
        _check_period(year, month)
        return (
            self.db.query(MonthlyStockLedger)
            .filter(
                self._key_filter(venue_id, product_id),
                MonthlyStockLedger.year == year,
                MonthlyStockLedger.month_number == month,
            )
            .first()
        )

    def get_or_create(
        self,
        venue_id: int,
        product_id: int,
        year: int,
        month: int,
        opening_balance: Decimal,
    ) -> MonthlyStockLedger:
        """Return the period's ledger, creating it with ``opening_balance`` if absent.

        Creation runs in a savepoint. If a concurrent request inserted the same
        period first, the unique constraint fires, the savepoint is rolled back
        and the row that won is returned instead.
        """
        existing = self.find(venue_id, product_id, year, month)
        if existing is not None:
            return existing

        opening = max(ZERO, Decimal(opening_balance or 0))
        ledger = MonthlyStockLedger(
            venue_id=venue_id,
            product_id=product_id,
            year=year,
            month_number=month,
            month_name=MonthlyStockLedger.name_for_month(month),
            carry_forward=opening,
            expired_carry_forward_stock=ZERO,
            total_added=ZERO,
            total_used=ZERO,
            total_expired=ZERO,
            total_damaged=ZERO,
            closing_balance=opening,
        )
        try:
            with self.db.begin_nested():
                self.db.add(ledger)
                self.db.flush()
        except IntegrityError:
            logger.info(
                f"Ledger {year}-{month:02d} for venue={venue_id} product={product_id} "
                f"was created concurrently, reusing existing row"
            )
            existing = self.find(venue_id, product_id, year, month)
            if existing is None:
                raise
            return existing

        logger.info(
            f"Created stock ledger {year}-{month:02d} for venue={venue_id} "
            f"product={product_id} with opening balance {opening}"
        )
        return ledger

    def previous_closing_balance(
        self, venue_id: int, product_id: int, year: int, month: int
    ) -> Decimal:
        """Closing balance of the latest ledger strictly before (year, month), else 0."""
        _check_period(year, month)
        previous = (
            self.db.query(MonthlyStockLedger)
            .filter(
                self._key_filter(venue_id, product_id),
                or_(
                    MonthlyStockLedger.year < year,
                    and_(
                        MonthlyStockLedger.year == year,
                        MonthlyStockLedger.month_number < month,
                    ),
                ),
            )
            .order_by(MonthlyStockLedger.year.desc(), MonthlyStockLedger.month_number.desc())
            .first()
        )
        if previous is None:
            return ZERO
        return Decimal(previous.closing_balance or 0)

    def history(self, venue_id: int, product_id: int) -> List[MonthlyStockLedger]:
        """Every ledger for the venue/product, oldest period first."""
        return (
            self.db.query(MonthlyStockLedger)
            .filter(self._key_filter(venue_id, product_id))
            .order_by(MonthlyStockLedger.year.asc(), MonthlyStockLedger.month_number.asc())
            .all()
        )

    def get_or_create_with_carry_forward(
        self, venue_id: int, product_id: int, year: int, month: int
    ) -> MonthlyStockLedger:
        """Fetch-or-create seeded with the previous period's closing balance."""
        opening = self.previous_closing_balance(venue_id, product_id, year, month)
        return self.get_or_create(venue_id, product_id, year, month, opening)
