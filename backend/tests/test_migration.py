"""Tests for the Alembic schema revision."""

import importlib.util
from pathlib import Path

import pytest
from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy import CheckConstraint, create_engine, inspect
from sqlalchemy.pool import StaticPool

from concessions.db.base import Base
import concessions.models  # noqa: F401

REVISION_PATH = Path(__file__).resolve().parents[1] / "alembic" / "versions" / "001_initial_schema.py"


@pytest.fixture
def revision():
    spec = importlib.util.spec_from_file_location("initial_schema", REVISION_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def migration_engine():
    engine = create_engine(
        "sqlite:///:memory:", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    yield engine
    engine.dispose()


def run(engine, step):
    with engine.begin() as connection:
        context = MigrationContext.configure(connection)
        with Operations.context(context):
            step()


class TestInitialSchema:
    def test_upgrade_matches_models(self, revision, migration_engine):
        run(migration_engine, revision.upgrade)

        inspector = inspect(migration_engine)
        for table in Base.metadata.sorted_tables:
            assert inspector.has_table(table.name), table.name
            migrated = {c["name"] for c in inspector.get_columns(table.name)}
            assert migrated == set(table.columns.keys()), table.name

    def test_period_unique_constraint(self, revision, migration_engine):
        run(migration_engine, revision.upgrade)

        constraints = inspect(migration_engine).get_unique_constraints("monthly_stock_ledgers")
        assert {
            "name": "uq_stock_ledger_period",
            "columns": ["venue_id", "product_id", "year", "month_number"],
        } in [{"name": c["name"], "columns": c["column_names"]} for c in constraints]

    def test_month_check_matches_model(self, revision, migration_engine):
        run(migration_engine, revision.upgrade)

        migrated = {c["name"] for c in inspect(migration_engine).get_check_constraints("monthly_stock_ledgers")}
        table = Base.metadata.tables["monthly_stock_ledgers"]
        expected = {c.name for c in table.constraints if isinstance(c, CheckConstraint)}
        assert expected == {"ck_monthly_stock_ledgers_month"}
        assert expected <= migrated

    def test_downgrade_drops_everything(self, revision, migration_engine):
        run(migration_engine, revision.upgrade)
        run(migration_engine, revision.downgrade)

        assert inspect(migration_engine).get_table_names() == []
