"""Balance recalculation for a single monthly ledger.

Entries are processed in stored order, not sorted by movement date, so a
backdated entry keeps the position it was recorded at. The running balance
is clamped at zero after every entry and the clamped value seeds the next
one; a shortfall is never carried as negative stock.
"""

from decimal import Decimal
from typing import Iterable

from concessions.models.stock_ledger import MonthlyStockLedger, StockLedgerEntry

ZERO = Decimal("0")


def _qty(value) -> Decimal:
    return Decimal(value) if value is not None else ZERO


def entry_delta(entry: StockLedgerEntry) -> Decimal:
    """Net balance effect of an entry, read from its current stock fields."""
    return (
        _qty(entry.stock_added)
        - _qty(entry.used_stock)
        - _qty(entry.expired_stock)
        - _qty(entry.damage_stock)
    )


def closing_balance_for(
    carry_forward: Decimal,
    total_added: Decimal,
    total_used: Decimal,
    total_expired: Decimal,
    total_damaged: Decimal,
    expired_carry_forward_stock: Decimal,
) -> Decimal:
    closing = (
        carry_forward
        + total_added
        - total_used
        - total_expired
        - total_damaged
        - expired_carry_forward_stock
    )
    return max(ZERO, closing)


def _sum(entries: Iterable[StockLedgerEntry], field: str) -> Decimal:
    return sum((_qty(getattr(e, field)) for e in entries), ZERO)


def recalculate(ledger: MonthlyStockLedger) -> MonthlyStockLedger:
    """Recompute every entry balance and the ledger totals in one pass."""
    running = _qty(ledger.carry_forward)

    for entry in ledger.entries:
        entry.opening_balance = running
        running = max(ZERO, running + entry_delta(entry))
        entry.balance = running

    entries = list(ledger.entries)
    ledger.total_added = _sum(entries, "stock_added")
    ledger.total_used = _sum(entries, "used_stock")
    ledger.total_expired = _sum(entries, "expired_stock")
    ledger.total_damaged = _sum(entries, "damage_stock")
    ledger.closing_balance = closing_balance_for(
        _qty(ledger.carry_forward),
        ledger.total_added,
        ledger.total_used,
        ledger.total_expired,
        ledger.total_damaged,
        _qty(ledger.expired_carry_forward_stock),
    )
    return ledger
