"""API routes."""

from fastapi import APIRouter

from concessions.api.routes import stock_ledger

api_router = APIRouter()

api_router.include_router(stock_ledger.router, prefix="/stock-ledger", tags=["stock-ledger", "stock"])
