import logging
from datetime import date, timedelta
from typing import Any, Callable, Dict, List

from src.weather_engine.exceptions import InvalidInputError
from src.weather_engine.models import DailyForecast, Location, WeatherCondition
from src.weather_engine.services.db_service_async import AsyncDBService
from src.weather_engine.services.weather_source import WeatherSource
from src.weather_engine.utils.common import utc_today

logger = logging.getLogger(__name__)


def forecast_window(today: date, days: int) -> List[date]:
    """Return the consecutive dates tomorrow ... today + `days`."""
    return [today + timedelta(days=offset) for offset in range(1, days + 1)]


class ForecastCache:
    """Serves daily forecasts from storage, synthesizing only what is missing.

    A request for N days covers the calendar dates tomorrow through
    today + N (UTC). It is a hit when every one of those dates already has a
    stored row for the location; rows for today or earlier never count.
    On a miss, only the missing dates are produced by the weather source and
    persisted, and the whole window is returned.

    Attributes:
        db_service (AsyncDBService): Storage for forecast rows.
        weather_source (WeatherSource): Producer of new forecast values.
        today (Callable[[], date]): Clock returning the current UTC date.
    """

    def __init__(
        self,
        db_service: AsyncDBService,
        weather_source: WeatherSource,
        today: Callable[[], date] = utc_today,
    ) -> None:
        self.db_service = db_service
        self.weather_source = weather_source
        self.today = today

    async def get_forecast(
        self,
        location: Location,
        requested_days: int,
        condition: WeatherCondition,
    ) -> List[DailyForecast]:
        """Return one forecast row per day of the requested window.

        Args:
            location (Location): Resolved location.
            requested_days (int): Number of days starting tomorrow (>= 1).
            condition (WeatherCondition): Condition given to new rows.

        Returns:
            List[DailyForecast]: Rows ordered by date, one per window day.

        Raises:
            InvalidInputError: If `requested_days` is lower than 1.
        """
        if requested_days < 1:
            raise InvalidInputError(
                f"requested_days must be at least 1, got {requested_days}"
            )

        window = forecast_window(self.today(), requested_days)
        stored = await self.db_service.get_forecasts_between(
            location.id, window[0], window[-1]
        )
        by_date = {row.date: row for row in stored}

        missing = [
            (offset, day)
            for offset, day in enumerate(window, start=1)
            if day not in by_date
        ]
        if not missing:
            logger.debug(
                f"Forecast cache hit for location_id={location.id}, "
                f"days={requested_days}"
            )
            return [by_date[day] for day in window]

        rows: List[Dict[str, Any]] = []
        for offset, day in missing:
            reading = self.weather_source.daily_forecast(
                location.latitude, location.longitude, offset
            )
            rows.append({"date": day, **reading})

        created = await self.db_service.add_daily_forecasts(
            location.id, condition.id, rows
        )
        logger.info(
            f"🌦️ Stored {len(created)} forecast day(s) for "
            f"location_id={location.id}"
        )
        for row in created:
            by_date[row.date] = row
        return [by_date[day] for day in window]
