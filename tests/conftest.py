"""Shared test fixtures."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.api import admin, routes
from src.calculators.income_tax import ProgressiveTaxCalculator
from src.db.models import DeductionConfigRow


def make_config_row(
    personal: str = "60000",
    k_receipt: str = "50000",
) -> DeductionConfigRow:
    return DeductionConfigRow(id=1, personal=Decimal(personal), k_receipt=Decimal(k_receipt))


@pytest.fixture
def mock_store() -> AsyncMock:
    """Async mock of DeductionConfigStore returning the default caps."""
    store = AsyncMock()
    store.get.return_value = make_config_row()
    return store


@pytest.fixture
def app(mock_store: AsyncMock) -> FastAPI:
    """Create a test app with both routers but no lifespan (no DB)."""
    test_app = FastAPI()
    test_app.include_router(routes.router)
    test_app.include_router(admin.router)
    test_app.state.deduction_store = mock_store
    test_app.state.calculator = ProgressiveTaxCalculator()
    return test_app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


@pytest.fixture
def mock_db_conn() -> AsyncMock:
    conn = AsyncMock()
    conn.fetchrow.return_value = None
    return conn


@pytest.fixture
def mock_db_pool(mock_db_conn: AsyncMock) -> MagicMock:
    """Mock of asyncpg.Pool with context-managed acquire().

    asyncpg.Pool.acquire() returns an async context manager (not a coroutine),
    so we use MagicMock for the pool and configure __aenter__/__aexit__ manually.
    """
    acm = MagicMock()
    acm.__aenter__ = AsyncMock(return_value=mock_db_conn)
    acm.__aexit__ = AsyncMock(return_value=False)

    pool = MagicMock()
    pool.acquire.return_value = acm
    return pool
