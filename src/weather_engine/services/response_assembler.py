from datetime import date, datetime
from typing import List, Mapping, Optional, Sequence, TypedDict

from src.weather_engine.exceptions import IncompleteDataError
from src.weather_engine.models import (
    CurrentWeather,
    DailyForecast,
    Location,
    WeatherCondition,
)


class LocationData(TypedDict):
    id: int
    city: str
    country: str
    latitude: float
    longitude: float
    created_at: datetime


class ConditionData(TypedDict):
    id: int
    name: str
    description: str
    icon_code: str
    created_at: datetime


class CurrentWeatherData(TypedDict):
    id: int
    location_id: int
    condition_id: int
    temperature: float
    humidity: int
    wind_speed: float
    pressure: float
    feels_like: float
    visibility: float
    uv_index: float
    timestamp: datetime
    created_at: datetime
    condition: ConditionData


class ForecastData(TypedDict):
    id: int
    location_id: int
    condition_id: int
    date: date
    temperature_min: float
    temperature_max: float
    humidity: int
    wind_speed: float
    precipitation_chance: int
    created_at: datetime
    condition: ConditionData


class WeatherResponse(TypedDict):
    """Combined view of a location, its current weather and its forecast."""

    location: LocationData
    current: CurrentWeatherData
    forecast: List[ForecastData]


def location_to_dict(location: Location) -> LocationData:
    return LocationData(
        id=location.id,
        city=location.city,
        country=location.country,
        latitude=float(location.latitude),
        longitude=float(location.longitude),
        created_at=location.created_at,
    )


def condition_to_dict(condition: WeatherCondition) -> ConditionData:
    return ConditionData(
        id=condition.id,
        name=condition.name,
        description=condition.description,
        icon_code=condition.icon_code,
        created_at=condition.created_at,
    )


def current_to_dict(
    current: CurrentWeather, condition: WeatherCondition
) -> CurrentWeatherData:
    return CurrentWeatherData(
        id=current.id,
        location_id=current.location_id,
        condition_id=current.condition_id,
        temperature=float(current.temperature),
        humidity=current.humidity,
        wind_speed=float(current.wind_speed),
        pressure=float(current.pressure),
        feels_like=float(current.feels_like),
        visibility=float(current.visibility),
        uv_index=float(current.uv_index),
        timestamp=current.timestamp,
        created_at=current.created_at,
        condition=condition_to_dict(condition),
    )


def forecast_to_dict(
    forecast: DailyForecast, condition: WeatherCondition
) -> ForecastData:
    return ForecastData(
        id=forecast.id,
        location_id=forecast.location_id,
        condition_id=forecast.condition_id,
        date=forecast.date,
        temperature_min=float(forecast.temperature_min),
        temperature_max=float(forecast.temperature_max),
        humidity=forecast.humidity,
        wind_speed=float(forecast.wind_speed),
        precipitation_chance=forecast.precipitation_chance,
        created_at=forecast.created_at,
        condition=condition_to_dict(condition),
    )


def attach_conditions(
    forecast: Sequence[DailyForecast],
    conditions: Mapping[int, WeatherCondition],
) -> List[ForecastData]:
    """Pair each forecast row with the condition it references.

    Raises:
        IncompleteDataError: If a row's condition is not in `conditions`.
    """
    result: List[ForecastData] = []
    for row in forecast:
        condition = conditions.get(row.condition_id)
        if condition is None:
            raise IncompleteDataError(
                f"Condition id={row.condition_id} missing for forecast "
                f"id={row.id}"
            )
        result.append(forecast_to_dict(row, condition))
    return result


def build_response(
    location: Location,
    condition: WeatherCondition,
    current: Optional[CurrentWeather],
    forecast: Sequence[DailyForecast],
    conditions: Optional[Mapping[int, WeatherCondition]] = None,
) -> WeatherResponse:
    """Compose a WeatherResponse from already-loaded records.

    `condition` is attached to the current reading. Each forecast row keeps
    its own `condition_id` and is paired with the matching entry of
    `conditions`; `condition` itself is always available for that lookup.

    Args:
        location (Location): Resolved location.
        condition (WeatherCondition): Condition of the current reading.
        current (Optional[CurrentWeather]): Latest reading for the location.
        forecast (Sequence[DailyForecast]): Forecast rows, in output order.
        conditions (Optional[Mapping[int, WeatherCondition]]): Conditions
        referenced by the forecast rows, keyed by id.

    Returns:
        WeatherResponse: The assembled response.

    Raises:
        IncompleteDataError: If `current` is None or a forecast row
        references a condition that was not supplied.
    """
    if current is None:
        raise IncompleteDataError(
            f"No current weather for location id={location.id}"
        )

    available = {condition.id: condition}
    if conditions:
        available.update(conditions)

    return WeatherResponse(
        location=location_to_dict(location),
        current=current_to_dict(current, condition),
        forecast=attach_conditions(forecast, available),
    )
