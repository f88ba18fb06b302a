"""Tests for monthly ledger lookup and creation."""

import pytest
from decimal import Decimal

from concessions.models.stock_ledger import MonthlyStockLedger
from concessions.services.stock_ledger import LedgerStore, MovementValidationError


class TestLedgerStore:
    def test_get_or_create_is_idempotent(self, db_session, test_product):
        store = LedgerStore(db_session)
        first = store.get_or_create(test_product.venue_id, test_product.id, 2024, 1, Decimal("12"))
        second = store.get_or_create(test_product.venue_id, test_product.id, 2024, 1, Decimal("99"))
        db_session.commit()

        assert first.id == second.id
        assert second.carry_forward == Decimal("12")
        assert second.closing_balance == Decimal("12")
        assert second.month_name == "January"
        assert db_session.query(MonthlyStockLedger).count() == 1

    def test_negative_opening_balance_is_clamped(self, db_session, test_product):
        ledger = LedgerStore(db_session).get_or_create(
            test_product.venue_id, test_product.id, 2024, 2, Decimal("-3")
        )
        assert ledger.carry_forward == Decimal("0")

    def test_find_returns_none_for_missing_period(self, db_session, test_product):
        assert LedgerStore(db_session).find(test_product.venue_id, test_product.id, 2024, 5) is None

    @pytest.mark.parametrize("year,month", [(2024, 0), (2024, 13), (0, 5)])
    def test_invalid_period_rejected(self, db_session, test_product, year, month):
        with pytest.raises(MovementValidationError):
            LedgerStore(db_session).find(test_product.venue_id, test_product.id, year, month)

    def test_previous_closing_balance_defaults_to_zero(self, db_session, test_product):
        store = LedgerStore(db_session)
        assert store.previous_closing_balance(test_product.venue_id, test_product.id, 2024, 1) == 0

    def test_previous_closing_balance_skips_gaps(self, db_session, test_product):
        store = LedgerStore(db_session)
        venue_id, product_id = test_product.venue_id, test_product.id
        store.get_or_create(venue_id, product_id, 2023, 11, Decimal("8"))
        store.get_or_create(venue_id, product_id, 2024, 1, Decimal("30"))
        store.get_or_create(venue_id, product_id, 2024, 6, Decimal("55"))
        db_session.commit()

        # Latest ledger strictly before the period, across a year boundary and gaps
        assert store.previous_closing_balance(venue_id, product_id, 2024, 1) == Decimal("8")
        assert store.previous_closing_balance(venue_id, product_id, 2024, 4) == Decimal("30")
        assert store.previous_closing_balance(venue_id, product_id, 2024, 6) == Decimal("30")
        assert store.previous_closing_balance(venue_id, product_id, 2025, 1) == Decimal("55")

    def test_history_is_ordered_oldest_first(self, db_session, test_product):
        store = LedgerStore(db_session)
        venue_id, product_id = test_product.venue_id, test_product.id
        for year, month in [(2024, 3), (2023, 12), (2024, 1)]:
            store.get_or_create(venue_id, product_id, year, month, Decimal("0"))
        db_session.commit()

        assert [l.period for l in store.history(venue_id, product_id)] == [
            (2023, 12), (2024, 1), (2024, 3)
        ]

    def test_history_is_scoped_to_product(self, db_session, test_product):
        store = LedgerStore(db_session)
        store.get_or_create(test_product.venue_id, test_product.id, 2024, 1, Decimal("0"))
        db_session.commit()

        assert store.history(test_product.venue_id, test_product.id + 1) == []

    def test_carry_forward_creation_uses_previous_closing(self, db_session, test_product):
        store = LedgerStore(db_session)
        venue_id, product_id = test_product.venue_id, test_product.id
        store.get_or_create(venue_id, product_id, 2024, 1, Decimal("42"))

        ledger = store.get_or_create_with_carry_forward(venue_id, product_id, 2024, 2)

        assert ledger.carry_forward == Decimal("42")
        assert ledger.closing_balance == Decimal("42")
