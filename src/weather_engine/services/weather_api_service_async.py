import logging
from datetime import date, datetime
from typing import Callable, List, Optional

from src.weather_engine.exceptions import NotFoundError
from src.weather_engine.services.condition_registry import ConditionRegistry
from src.weather_engine.services.db_service_async import AsyncDBService
from src.weather_engine.services.forecast_cache import ForecastCache
from src.weather_engine.services.location_resolver import LocationResolver
from src.weather_engine.services.response_assembler import (
    ConditionData,
    ForecastData,
    LocationData,
    WeatherResponse,
    attach_conditions,
    build_response,
    condition_to_dict,
    location_to_dict,
)
from src.weather_engine.services.weather_source import (
    SyntheticWeatherSource,
    WeatherSource,
)
from src.weather_engine.utils.common import utc_now, utc_today

logger = logging.getLogger(__name__)

CURRENT_WEATHER_FORECAST_DAYS = 5
CITY_FORECAST_LIMIT = 5


class WeatherApiService:
    """Operations exposed to the transport layer.

    Wires the location resolver, condition registry, weather source and
    forecast cache around a single `AsyncDBService`. Inputs are expected to
    be validated already (see `utils.validation`). Storage errors are logged
    and re-raised unchanged.

    Attributes:
        db_service (AsyncDBService): Shared storage.
        locations (LocationResolver): Location lookup and creation.
        conditions (ConditionRegistry): Weather condition lookup.
        weather_source (WeatherSource): Producer of new readings.
        forecasts (ForecastCache): Forecast freshness policy.
    """

    def __init__(
        self,
        db_service: AsyncDBService,
        weather_source: Optional[WeatherSource] = None,
        now: Callable[[], datetime] = utc_now,
        today: Callable[[], date] = utc_today,
    ) -> None:
        self.db_service = db_service
        self.weather_source: WeatherSource = (
            weather_source or SyntheticWeatherSource()
        )
        self.now = now
        self.locations = LocationResolver(db_service)
        self.conditions = ConditionRegistry(db_service)
        self.forecasts = ForecastCache(
            db_service, self.weather_source, today=today
        )

    async def create_location(
        self, city: str, country: str, latitude: float, longitude: float
    ) -> LocationData:
        location = await self.locations.create_location(
            city, country, latitude, longitude
        )
        return location_to_dict(location)

    async def get_current_weather(
        self, latitude: float, longitude: float
    ) -> WeatherResponse:
        """Materialize and return weather for a coordinate.

        Resolves the point within tolerance (creating the location when
        new), stores a fresh current reading and makes sure the next five
        days of forecast exist.

        Args:
            latitude (float): Validated latitude.
            longitude (float): Validated longitude.

        Returns:
            WeatherResponse: Location, the new reading and a 5-day forecast.
        """
        try:
            location = await self.locations.resolve_by_coordinates(
                latitude, longitude
            )
            condition = await self.conditions.get_or_create_default()

            reading = self.weather_source.current_weather(
                location.latitude, location.longitude
            )
            current = await self.db_service.add_current_weather(
                location.id,
                condition.id,
                {**reading, "timestamp": self.now()},
            )

            forecast = await self.forecasts.get_forecast(
                location, CURRENT_WEATHER_FORECAST_DAYS, condition
            )
            conditions = await self.conditions.by_ids(
                row.condition_id for row in forecast
            )
            return build_response(
                location, condition, current, forecast, conditions
            )
        except Exception as e:
            logger.exception(
                f"❌ Get current weather failed for "
                f"({latitude}, {longitude}): {e}"
            )
            raise

    async def get_weather_by_city(
        self, city: str, country: Optional[str] = None
    ) -> WeatherResponse:
        """Return stored weather for a known city without creating data.

        The current reading is the one with the latest timestamp. The
        forecast holds up to five rows with the latest dates, returned in
        ascending date order.

        Raises:
            NotFoundError: If the city is unknown or has no current reading.
        """
        try:
            location = await self.locations.resolve_by_city(city, country)

            current = await self.db_service.get_latest_current_weather(
                location.id
            )
            if current is None:
                raise NotFoundError(
                    city,
                    country,
                    message=f"No current weather data found for city: {city}",
                )

            recent = await self.db_service.get_recent_forecasts(
                location.id, CITY_FORECAST_LIMIT
            )
            forecast = sorted(recent, key=lambda row: row.date)

            conditions = await self.conditions.by_ids(
                [current.condition_id, *(row.condition_id for row in forecast)]
            )
            return build_response(
                location,
                conditions[current.condition_id],
                current,
                forecast,
                conditions,
            )
        except NotFoundError as e:
            logger.warning(f"🔎 {e}")
            raise
        except Exception as e:
            logger.exception(f"❌ Get weather by city failed for {city}: {e}")
            raise

    async def get_daily_forecast(
        self, latitude: float, longitude: float, days: int = 5
    ) -> List[ForecastData]:
        """Return `days` forecast rows starting tomorrow.

        The location is matched on exact coordinates (no tolerance) and
        created when absent. Stored rows are reused when they cover the
        whole window.
        """
        try:
            location = await self.locations.resolve_by_exact_coordinates(
                latitude, longitude
            )
            condition = await self.conditions.get_or_create_default()
            forecast = await self.forecasts.get_forecast(
                location, days, condition
            )
            conditions = await self.conditions.by_ids(
                row.condition_id for row in forecast
            )
            return attach_conditions(forecast, conditions)
        except Exception as e:
            logger.exception(
                f"❌ Daily forecast failed for ({latitude}, {longitude}): {e}"
            )
            raise

    async def search_locations(self, query: str) -> List[LocationData]:
        locations = await self.locations.search(query)
        return [location_to_dict(location) for location in locations]

    async def get_weather_conditions(self) -> List[ConditionData]:
        conditions = await self.conditions.list()
        return [condition_to_dict(condition) for condition in conditions]
