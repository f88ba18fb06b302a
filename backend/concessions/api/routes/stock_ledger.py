"""Stock ledger routes - thin HTTP handlers over StockLedgerService.

Monthly stock books per venue and product: read a period, record, update
and delete movements, clear a period, and list the period history. All
business rules live in ``concessions.services.stock_ledger``.
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request

from concessions.core.config import settings
from concessions.core.rate_limit import limiter
from concessions.db.session import DbSession
from concessions.schemas.stock_ledger import (
    LedgerHistoryResponse,
    LedgerPeriodSummary,
    MonthlyStockLedgerResponse,
    MovementCreate,
    MovementDeletedResponse,
    MovementResultResponse,
    MovementUpdate,
    PeriodClearedResponse,
    StockLedgerEntryResponse,
    StockLedgerReadResponse,
)
from concessions.services.stock_ledger import (
    LedgerEntryNotFoundError,
    LedgerPeriodNotFoundError,
    StockLedgerError,
    StockLedgerService,
)

logger = logging.getLogger(__name__)

router = APIRouter()

RATE_LIMIT = settings.rate_limit_default


def _to_http_error(error: StockLedgerError) -> HTTPException:
    if isinstance(error, LedgerPeriodNotFoundError):
        return HTTPException(status_code=404, detail="Monthly ledger not found")
    if isinstance(error, LedgerEntryNotFoundError):
        return HTTPException(status_code=404, detail="Stock entry not found")
    return HTTPException(status_code=400, detail=str(error))


@router.get("/{venue_id}/{product_id}", response_model=StockLedgerReadResponse)
@limiter.limit(RATE_LIMIT)
def read_stock_ledger(
    request: Request,
    venue_id: int,
    product_id: int,
    db: DbSession,
    year: Optional[int] = Query(None, ge=1),
    month: Optional[int] = Query(None, ge=1, le=12),
):
    """Get the monthly ledger (defaults to the current month)."""
    try:
        snapshot = StockLedgerService(db).read_period(venue_id, product_id, year, month)
    except StockLedgerError as e:
        raise _to_http_error(e) from e

    return StockLedgerReadResponse(
        ledger=MonthlyStockLedgerResponse.model_validate(snapshot.ledger),
        current_stock=snapshot.current_stock,
        stock_status=snapshot.stock_status,
        expiry_recognized=snapshot.expiry_recognized,
    )


@router.get("/{venue_id}/{product_id}/history", response_model=LedgerHistoryResponse)
@limiter.limit(RATE_LIMIT)
def get_stock_ledger_history(
    request: Request,
    venue_id: int,
    product_id: int,
    db: DbSession,
):
    """List every recorded period for a product, oldest first."""
    try:
        ledgers = StockLedgerService(db).period_history(venue_id, product_id)
    except StockLedgerError as e:
        raise _to_http_error(e) from e

    items = [LedgerPeriodSummary.model_validate(ledger) for ledger in ledgers]
    return LedgerHistoryResponse(items=items, total=len(items))


@router.post("/{venue_id}/{product_id}", response_model=MovementResultResponse, status_code=201)
@limiter.limit(RATE_LIMIT)
def record_stock_movement(
    request: Request,
    venue_id: int,
    product_id: int,
    data: MovementCreate,
    db: DbSession,
):
    """Record a stock movement in the month of its date."""
    try:
        result = StockLedgerService(db).record_movement(venue_id, product_id, data)
    except StockLedgerError as e:
        raise _to_http_error(e) from e

    return MovementResultResponse(
        entry=StockLedgerEntryResponse.model_validate(result.entry),
        ledger=MonthlyStockLedgerResponse.model_validate(result.ledger),
        current_stock=result.current_stock,
    )


@router.put("/{venue_id}/{product_id}/entries/{entry_id}", response_model=MovementResultResponse)
@limiter.limit(RATE_LIMIT)
def update_stock_movement(
    request: Request,
    venue_id: int,
    product_id: int,
    entry_id: int,
    data: MovementUpdate,
    db: DbSession,
):
    """Update a stock entry; the whole month is rebalanced."""
    try:
        result = StockLedgerService(db).update_movement(venue_id, product_id, entry_id, data)
    except StockLedgerError as e:
        raise _to_http_error(e) from e

    return MovementResultResponse(
        entry=StockLedgerEntryResponse.model_validate(result.entry),
        ledger=MonthlyStockLedgerResponse.model_validate(result.ledger),
        current_stock=result.current_stock,
    )


@router.delete("/{venue_id}/{product_id}/entries/{entry_id}", response_model=MovementDeletedResponse)
@limiter.limit(RATE_LIMIT)
def delete_stock_movement(
    request: Request,
    venue_id: int,
    product_id: int,
    entry_id: int,
    db: DbSession,
    year: int = Query(..., ge=1),
    month: int = Query(..., ge=1, le=12),
):
    """Delete a stock entry from a month."""
    try:
        result = StockLedgerService(db).delete_movement(venue_id, product_id, year, month, entry_id)
    except StockLedgerError as e:
        raise _to_http_error(e) from e

    return MovementDeletedResponse(
        deleted_entry_id=entry_id,
        ledger=MonthlyStockLedgerResponse.model_validate(result.ledger),
        current_stock=result.current_stock,
    )


@router.delete("/{venue_id}/{product_id}/periods/{year}/{month}", response_model=PeriodClearedResponse)
@limiter.limit(RATE_LIMIT)
def clear_stock_period(
    request: Request,
    venue_id: int,
    product_id: int,
    year: int,
    month: int,
    db: DbSession,
):
    """Clear all entries of one month."""
    try:
        result = StockLedgerService(db).clear_period(venue_id, product_id, year, month)
    except StockLedgerError as e:
        raise _to_http_error(e) from e

    return PeriodClearedResponse(
        cleared_count=result.affected,
        ledger=MonthlyStockLedgerResponse.model_validate(result.ledger),
        current_stock=result.current_stock,
    )
