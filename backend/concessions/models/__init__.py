# Models module - import every model so Base.metadata is complete

from concessions.models.venue import Venue
from concessions.models.product import Product
from concessions.models.stock_ledger import (
    EXPIRABLE_TYPES,
    MonthlyStockLedger,
    MovementType,
    StockExpiryCarryover,
    StockLedgerEntry,
)

__all__ = [
    "Venue",
    "Product",
    "EXPIRABLE_TYPES",
    "MonthlyStockLedger",
    "MovementType",
    "StockExpiryCarryover",
    "StockLedgerEntry",
]
