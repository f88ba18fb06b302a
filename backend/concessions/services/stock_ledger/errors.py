"""Exceptions raised by the stock ledger engine."""


class StockLedgerError(Exception):
    """Base class for stock ledger failures reported to callers."""


class MovementValidationError(StockLedgerError):
    """Raised when a movement is rejected before anything is written."""


class LedgerPeriodNotFoundError(StockLedgerError):
    """Raised when no monthly ledger exists for the requested period."""

    def __init__(self, venue_id: int, product_id: int, year: int, month: int):
        self.venue_id = venue_id
        self.product_id = product_id
        self.year = year
        self.month = month
        super().__init__(
            f"Monthly ledger not found for venue {venue_id}, product {product_id}, "
            f"period {year}-{month:02d}"
        )


class LedgerEntryNotFoundError(StockLedgerError):
    """Raised when the ledger exists but does not contain the entry."""

    def __init__(self, entry_id: int, year: int, month: int):
        self.entry_id = entry_id
        self.year = year
        self.month = month
        super().__init__(f"Stock entry {entry_id} not found in period {year}-{month:02d}")
