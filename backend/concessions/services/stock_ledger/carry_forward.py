"""Carry-Forward Chain Updater.

Walks a venue/product's ledgers oldest first and makes each opening balance
equal the previous period's closing balance. A corrected ledger is
recalculated and flushed before the next one is compared, so one historical
edit ripples through every later month in a single pass.
"""

import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from concessions.services.stock_ledger.recalculator import recalculate
from concessions.services.stock_ledger.store import LedgerStore

logger = logging.getLogger(__name__)


class CarryForwardChain:
    def __init__(self, db: Session, store: Optional[LedgerStore] = None):
        self.db = db
        self.store = store or LedgerStore(db)

    def update(self, venue_id: int, product_id: int) -> bool:
        """Re-sync every opening balance. Returns True if any ledger changed."""
        expected = Decimal("0")
        changed = False

        for ledger in self.store.history(venue_id, product_id):
            current = Decimal(ledger.carry_forward or 0)
            if current != expected:
                logger.info(
                    f"Carry forward for {ledger.year}-{ledger.month_number:02d} "
                    f"(venue={venue_id} product={product_id}) corrected {current} -> {expected}"
                )
                ledger.carry_forward = expected
                recalculate(ledger)
                self.db.flush()
                changed = True
            expected = Decimal(ledger.closing_balance or 0)

        return changed
