"""Stock ledger schemas."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from concessions.models.stock_ledger import MovementType


class MovementCreate(BaseModel):
    """A stock movement as submitted by a stand operator.

    ``quantity`` is signed for ADJUSTMENT and a positive magnitude for every
    other type; the sign rule is enforced by the entry recorder.
    """

    date: dt.date
    type: MovementType
    quantity: Decimal
    expire_date: Optional[dt.date] = None
    batch_number: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = Field(None, max_length=500)


class MovementUpdate(BaseModel):
    """Replacement values for an existing entry.

    ``date`` selects the monthly ledger that holds the entry. Omitted fields
    keep their stored value. The stock fields override what would otherwise
    be derived from type and quantity.
    """

    date: dt.date
    type: Optional[MovementType] = None
    quantity: Optional[Decimal] = None
    expire_date: Optional[dt.date] = None
    batch_number: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = Field(None, max_length=500)
    used_stock: Optional[Decimal] = Field(None, ge=0)
    expired_stock: Optional[Decimal] = Field(None, ge=0)
    damage_stock: Optional[Decimal] = Field(None, ge=0)


class StockLedgerEntryResponse(BaseModel):
    """Ledger entry response schema."""

    id: int
    position: int
    date: dt.date
    type: MovementType
    quantity: Decimal
    stock_added: Decimal
    used_stock: Decimal
    expired_stock: Decimal
    damage_stock: Decimal
    opening_balance: Decimal
    balance: Decimal
    expire_date: Optional[dt.date] = None
    batch_number: Optional[str] = None
    notes: Optional[str] = None
    expiry_recognized_at: Optional[dt.datetime] = None

    model_config = {"from_attributes": True}


class LedgerPeriodSummary(BaseModel):
    """Monthly ledger header without its entries."""

    id: int
    venue_id: int
    product_id: int
    year: int
    month_number: int
    month_name: str
    carry_forward: Decimal
    expired_carry_forward_stock: Decimal
    total_added: Decimal
    total_used: Decimal
    total_expired: Decimal
    total_damaged: Decimal
    closing_balance: Decimal

    model_config = {"from_attributes": True}


class MonthlyStockLedgerResponse(LedgerPeriodSummary):
    """Monthly ledger with its entries in recorded order."""

    entries: List[StockLedgerEntryResponse] = []


class StockLedgerReadResponse(BaseModel):
    """Result of reading one period."""

    ledger: MonthlyStockLedgerResponse
    current_stock: Optional[Decimal] = None
    stock_status: Optional[str] = None
    expiry_recognized: bool = False


class MovementResultResponse(BaseModel):
    """Result of recording or updating a movement."""

    entry: StockLedgerEntryResponse
    ledger: MonthlyStockLedgerResponse
    current_stock: Decimal


class MovementDeletedResponse(BaseModel):
    """Result of deleting a movement."""

    deleted_entry_id: int
    ledger: MonthlyStockLedgerResponse
    current_stock: Decimal


class PeriodClearedResponse(BaseModel):
    """Result of clearing every entry from a period."""

    cleared_count: int
    ledger: MonthlyStockLedgerResponse
    current_stock: Decimal


class LedgerHistoryResponse(BaseModel):
    """All periods recorded for one venue/product, oldest first."""

    items: List[LedgerPeriodSummary]
    total: int
