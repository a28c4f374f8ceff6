import json
import random
from datetime import date, datetime, timedelta, timezone
from typing import Callable

import pytest
from pytest_mock import MockerFixture

from src.weather_engine.exceptions import NotFoundError
from src.weather_engine.services.db_service_async import AsyncDBService
from src.weather_engine.services.weather_api_service_async import (
    WeatherApiService,
)
from src.weather_engine.services.weather_source import SyntheticWeatherSource

OBSERVED_AT = datetime(2024, 6, 10, 9, 30, tzinfo=timezone.utc)


def _service(
    db_service: AsyncDBService, fixed_today: Callable[[], date]
) -> WeatherApiService:
    return WeatherApiService(
        db_service,
        weather_source=SyntheticWeatherSource(random.Random(5)),
        now=lambda: OBSERVED_AT,
        today=fixed_today,
    )


@pytest.mark.asyncio  # type: ignore[misc]
async def test_get_current_weather_materializes_full_response(
    db_service: AsyncDBService, fixed_today: Callable[[], date]
) -> None:
    # Arrange
    service = _service(db_service, fixed_today)

    # Act
    response = await service.get_current_weather(52.2297, 21.0122)

    # Assert
    location = response["location"]
    assert location["country"] == "Unknown"
    assert response["current"]["location_id"] == location["id"]
    assert response["current"]["condition"]["name"] == "Clear"
    assert len(response["forecast"]) == 5
    assert response["forecast"][0]["date"] == fixed_today() + timedelta(1)
    assert all(
        row["temperature_max"] > row["temperature_min"]
        for row in response["forecast"]
    )
    json.dumps(response, default=str)


@pytest.mark.asyncio  # type: ignore[misc]
async def test_get_current_weather_twice_reuses_location_and_forecast(
    db_service: AsyncDBService, fixed_today: Callable[[], date]
) -> None:
    # Arrange
    service = _service(db_service, fixed_today)

    # Act
    first = await service.get_current_weather(52.2297, 21.0122)
    second = await service.get_current_weather(52.2301, 21.0119)

    # Assert
    assert second["location"]["id"] == first["location"]["id"]
    assert second["current"]["id"] != first["current"]["id"]
    assert [r["id"] for r in second["forecast"]] == [
        r["id"] for r in first["forecast"]
    ]
    assert await db_service.count_locations() == 1


@pytest.mark.asyncio  # type: ignore[misc]
async def test_get_daily_forecast_twice_does_not_insert_again(
    db_service: AsyncDBService,
    fixed_today: Callable[[], date],
    mocker: MockerFixture,
) -> None:
    # Arrange
    service = _service(db_service, fixed_today)
    first = await service.get_daily_forecast(40.7128, -74.006, 5)
    spy_add = mocker.spy(db_service, "add_daily_forecasts")

    # Act
    second = await service.get_daily_forecast(40.7128, -74.006, 5)

    # Assert
    assert {r["location_id"] for r in first} == {
        r["location_id"] for r in second
    }
    assert [r["id"] for r in second] == [r["id"] for r in first]
    spy_add.assert_not_called()


@pytest.mark.asyncio  # type: ignore[misc]
async def test_get_daily_forecast_extending_window_adds_only_new_days(
    db_service: AsyncDBService, fixed_today: Callable[[], date]
) -> None:
    # Arrange
    service = _service(db_service, fixed_today)
    short = await service.get_daily_forecast(10.0, 10.0, 3)

    # Act
    longer = await service.get_daily_forecast(10.0, 10.0, 7)

    # Assert
    assert len(longer) == 7
    assert [r["id"] for r in longer[:3]] == [r["id"] for r in short]
    assert [r["date"] for r in longer] == [
        fixed_today() + timedelta(days=i) for i in range(1, 8)
    ]


@pytest.mark.asyncio  # type: ignore[misc]
async def test_get_weather_by_city_returns_latest_current_weather(
    db_service: AsyncDBService, fixed_today: Callable[[], date]
) -> None:
    # Arrange
    service = _service(db_service, fixed_today)
    location = await service.create_location("Oslo", "Norway", 59.91, 10.75)
    condition = await service.conditions.get_or_create_default()
    reading = SyntheticWeatherSource().current_weather(59.91, 10.75)
    newer = await db_service.add_current_weather(
        location["id"],
        condition.id,
        {**reading, "timestamp": OBSERVED_AT},
    )
    await db_service.add_current_weather(
        location["id"],
        condition.id,
        {**reading, "timestamp": OBSERVED_AT - timedelta(hours=3)},
    )

    # Act
    response = await service.get_weather_by_city("Oslo", "Norway")

    # Assert
    assert response["location"]["id"] == location["id"]
    assert response["current"]["id"] == newer.id
    assert response["forecast"] == []


@pytest.mark.asyncio  # type: ignore[misc]
async def test_get_weather_by_city_returns_five_latest_forecasts_in_order(
    db_service: AsyncDBService, fixed_today: Callable[[], date]
) -> None:
    # Arrange
    service = _service(db_service, fixed_today)
    response = await service.get_current_weather(59.91, 10.75)
    city = response["location"]["city"]
    await service.get_daily_forecast(59.91, 10.75, 7)

    # Act
    by_city = await service.get_weather_by_city(city)

    # Assert
    dates = [row["date"] for row in by_city["forecast"]]
    assert dates == [fixed_today() + timedelta(days=i) for i in range(3, 8)]


@pytest.mark.asyncio  # type: ignore[misc]
async def test_get_weather_by_city_forecast_keeps_row_condition(
    db_service: AsyncDBService, fixed_today: Callable[[], date]
) -> None:
    # Arrange
    service = _service(db_service, fixed_today)
    location = await service.create_location("Bergen", "Norway", 60.39, 5.32)
    clear = await service.conditions.get_or_create_default()
    rain = await service.conditions.get_or_create("Rain", "Rain", "10d")
    reading = SyntheticWeatherSource().current_weather(60.39, 5.32)
    await db_service.add_current_weather(
        location["id"], clear.id, {**reading, "timestamp": OBSERVED_AT}
    )
    forecast = SyntheticWeatherSource().daily_forecast(60.39, 5.32, 1)
    await db_service.add_daily_forecasts(
        location["id"],
        rain.id,
        [{**forecast, "date": fixed_today() + timedelta(days=1)}],
    )

    # Act
    response = await service.get_weather_by_city("Bergen")

    # Assert
    assert response["current"]["condition"]["name"] == "Clear"
    assert response["forecast"][0]["condition"]["name"] == "Rain"


@pytest.mark.asyncio  # type: ignore[misc]
async def test_get_weather_by_city_unknown_raises_not_found(
    db_service: AsyncDBService, fixed_today: Callable[[], date]
) -> None:
    # Arrange
    service = _service(db_service, fixed_today)

    # Act / Assert
    with pytest.raises(NotFoundError) as exc_info:
        await service.get_weather_by_city("Nowhere", "Neverland")

    assert "Nowhere" in str(exc_info.value)
    assert "Neverland" in str(exc_info.value)


@pytest.mark.asyncio  # type: ignore[misc]
async def test_get_weather_by_city_without_current_raises_not_found(
    db_service: AsyncDBService, fixed_today: Callable[[], date]
) -> None:
    # Arrange
    service = _service(db_service, fixed_today)
    await service.create_location("Reykjavik", "Iceland", 64.14, -21.94)

    # Act / Assert
    with pytest.raises(NotFoundError, match="No current weather"):
        await service.get_weather_by_city("Reykjavik")


@pytest.mark.asyncio  # type: ignore[misc]
async def test_search_locations_and_conditions_return_dicts(
    db_service: AsyncDBService, fixed_today: Callable[[], date]
) -> None:
    # Arrange
    service = _service(db_service, fixed_today)
    await service.create_location("Lisbon", "Portugal", 38.72, -9.14)
    await service.get_current_weather(38.72, -9.14)

    # Act
    found = await service.search_locations("lis")
    blank = await service.search_locations("   ")
    conditions = await service.get_weather_conditions()

    # Assert
    assert [loc["city"] for loc in found] == ["Lisbon"]
    assert blank == []
    assert [c["name"] for c in conditions] == ["Clear"]


@pytest.mark.asyncio  # type: ignore[misc]
async def test_get_current_weather_propagates_storage_errors(
    db_service: AsyncDBService,
    fixed_today: Callable[[], date],
    mocker: MockerFixture,
) -> None:
    # Arrange
    service = _service(db_service, fixed_today)
    mocker.patch.object(
        db_service,
        "add_current_weather",
        side_effect=RuntimeError("disk full"),
    )

    # Act / Assert
    with pytest.raises(RuntimeError, match="disk full"):
        await service.get_current_weather(1.0, 1.0)
