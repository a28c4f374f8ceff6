import logging
import os
import sys
from datetime import date
from pathlib import Path
from typing import Any, AsyncGenerator, Callable, Dict
from unittest.mock import AsyncMock, Mock

import pytest
import pytest_asyncio
from _pytest.monkeypatch import MonkeyPatch

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from src.weather_engine.services.db_service_async import (  # noqa: E402
    AsyncDBService,
)

FIXED_TODAY = date(2024, 6, 10)


@pytest.fixture(scope="session", autouse=True)  # type: ignore[misc]
def configure_logging() -> None:
    """Configure root logging for tests if not already set up.

    Side effects:
        Ensures DEBUG level logging is configured once for the session.
    """
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=logging.DEBUG)


@pytest_asyncio.fixture  # type: ignore[misc]
async def db_service(tmp_path: Path) -> AsyncGenerator[AsyncDBService, None]:
    """Provide an AsyncDBService backed by a fresh SQLite file.

    A file database is used instead of `:memory:` because the service runs
    every query on a worker thread.

    Yields:
        AsyncDBService: Service with all tables created.
    """
    service = AsyncDBService(f"sqlite:///{tmp_path / 'weather.db'}")
    await service.create_tables()
    try:
        yield service
    finally:
        await service.dispose()


@pytest.fixture  # type: ignore[misc]
def fixed_today() -> Callable[[], date]:
    """Clock returning a constant date so forecast windows are predictable."""
    return lambda: FIXED_TODAY


@pytest.fixture  # type: ignore[misc]
def mock_db() -> Mock:
    """Provide a database service mock with common async methods.

    Returns:
        Mock: Object with async lookup/insert methods used by tests.
    """
    m = Mock()
    m.find_location_near = AsyncMock(return_value=None)
    m.get_location_by_coordinates = AsyncMock(return_value=None)
    m.get_location_by_city = AsyncMock(return_value=None)
    m.find_location_by_city_or_coordinates = AsyncMock(return_value=None)
    m.insert_or_get_location = AsyncMock()
    m.search_locations = AsyncMock(return_value=[])
    m.get_condition_by_name = AsyncMock(return_value=None)
    m.insert_or_get_condition = AsyncMock()
    m.list_conditions = AsyncMock(return_value=[])
    m.get_conditions_by_ids = AsyncMock(return_value=[])
    m.get_forecasts_between = AsyncMock(return_value=[])
    m.add_daily_forecasts = AsyncMock(return_value=[])
    return m


@pytest.fixture  # type: ignore[misc]
def env_vars(monkeypatch: MonkeyPatch) -> Callable[[Dict[str, Any]], None]:
    """Fixture to set environment variables for the duration of a test.

    Args:
        monkeypatch (MonkeyPatch): Pytest monkeypatch fixture used internally.

    Returns:
        Callable[[Dict[str, Any]], None]: Function that accepts a mapping of
        names to values and sets them in os.environ for the test.
    """

    def _setter(mapping: Dict[str, Any]) -> None:
        for k, v in mapping.items():
            monkeypatch.setenv(k, str(v))

    return _setter
