"""
Pytest configuration and fixtures for the stock reporting test suite.

The database is an in-memory SQLite engine unless DATABASE_URL points at
a PostgreSQL instance.  Tables are created once per session; every test
that touches the database gets a fresh session and all rows are deleted
afterwards, so services that commit stay isolated.
"""

import json
import logging
import os
from datetime import datetime, timezone
from io import StringIO

import pytest
from sqlalchemy.orm import Session, sessionmaker

from stock_kernel.db.base import Base
from stock_kernel.db.engine import create_tables, init_engine_from_url
from stock_kernel.domain.clock import DeterministicClock
from stock_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from stock_kernel.services.snapshot_cache import SnapshotCache
from stock_modules.raw_materials.config import RawMaterialsConfig
from stock_modules.raw_materials.service import RawMaterialService
from stock_modules.reporting.config import ReportingConfig
from stock_modules.reporting.service import RawMaterialReportingService
from stock_modules.sales.service import ProfitLossService, StoreDiscountService

DEFAULT_DATABASE_URL = "sqlite://"

# 2024-06-15 12:00 UTC; every DB-backed test runs "today" at this instant.
TEST_NOW = datetime(2024, 6, 15, 12, 0, 0, tzinfo=timezone.utc)


def get_database_url() -> str:
    """Get database URL from environment, or use in-memory SQLite."""
    return os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "postgres: mark test as requiring PostgreSQL"
    )


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG, stream=StringIO())
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture stock_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, reporting_service):
            reporting_service.valuation()
            logs = captured_logs()
            assert any(r["message"] == "valuation_generated" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("stock_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture(scope="session")
def db_engine():
    """Engine and tables, created once per test session."""
    engine = init_engine_from_url(get_database_url(), echo=False)
    create_tables()
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session(db_engine) -> Session:
    """A session per test; every table is emptied afterwards."""
    factory = sessionmaker(bind=db_engine, expire_on_commit=False)
    sess = factory()
    yield sess
    sess.rollback()
    sess.close()
    with db_engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


# =============================================================================
# Domain fixtures
# =============================================================================


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock(TEST_NOW)


@pytest.fixture
def snapshot_cache() -> SnapshotCache:
    return SnapshotCache()


@pytest.fixture
def reporting_config() -> ReportingConfig:
    return ReportingConfig.with_defaults()


@pytest.fixture
def raw_material_service(session, deterministic_clock, snapshot_cache) -> RawMaterialService:
    """RawMaterialService sharing the test cache with the reporting services."""
    return RawMaterialService(
        session=session,
        clock=deterministic_clock,
        config=RawMaterialsConfig.with_defaults(),
        cache=snapshot_cache,
    )


@pytest.fixture
def reporting_service(
    session,
    deterministic_clock,
    reporting_config,
    snapshot_cache,
) -> RawMaterialReportingService:
    return RawMaterialReportingService(
        session=session,
        clock=deterministic_clock,
        config=reporting_config,
        cache=snapshot_cache,
    )


@pytest.fixture
def discount_service(
    session,
    deterministic_clock,
    reporting_config,
    snapshot_cache,
) -> StoreDiscountService:
    return StoreDiscountService(
        session=session,
        clock=deterministic_clock,
        config=reporting_config,
        cache=snapshot_cache,
    )


@pytest.fixture
def profit_loss_service(
    session,
    deterministic_clock,
    reporting_config,
    snapshot_cache,
) -> ProfitLossService:
    return ProfitLossService(
        session=session,
        clock=deterministic_clock,
        config=reporting_config,
        cache=snapshot_cache,
    )
