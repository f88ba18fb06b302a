# Monthly stock ledger and expiry recognition engine

from concessions.services.stock_ledger.carry_forward import CarryForwardChain
from concessions.services.stock_ledger.errors import (
    LedgerEntryNotFoundError,
    LedgerPeriodNotFoundError,
    MovementValidationError,
    StockLedgerError,
)
from concessions.services.stock_ledger.expiry import ExpiryRecognizer, expiry_boundary
from concessions.services.stock_ledger.recalculator import recalculate
from concessions.services.stock_ledger.recorder import EntryRecorder, MovementEffect, derive_effect
from concessions.services.stock_ledger.service import (
    LedgerChangeResult,
    LedgerSnapshot,
    MovementResult,
    StockLedgerService,
)
from concessions.services.stock_ledger.store import LedgerStore

__all__ = [
    "CarryForwardChain",
    "EntryRecorder",
    "ExpiryRecognizer",
    "LedgerChangeResult",
    "LedgerEntryNotFoundError",
    "LedgerPeriodNotFoundError",
    "LedgerSnapshot",
    "LedgerStore",
    "MovementEffect",
    "MovementResult",
    "MovementValidationError",
    "StockLedgerError",
    "StockLedgerService",
    "derive_effect",
    "expiry_boundary",
    "recalculate",
]
