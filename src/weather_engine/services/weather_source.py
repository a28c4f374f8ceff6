import random
from typing import Optional, Protocol, TypedDict

from src.weather_engine.exceptions import InvalidInputError

HIGH_LATITUDE = 60.0
HIGH_LATITUDE_PENALTY = 15.0


class CurrentReading(TypedDict):
    """Measurements for a single current-weather observation.

    Keys:
        temperature (float): Celsius.
        humidity (int): Percentage, 0-100.
        wind_speed (float): m/s, non-negative.
        pressure (float): hPa, non-negative.
        feels_like (float): Celsius.
        visibility (float): km, non-negative.
        uv_index (float): Non-negative.
    """

    temperature: float
    humidity: int
    wind_speed: float
    pressure: float
    feels_like: float
    visibility: float
    uv_index: float


class ForecastReading(TypedDict):
    """Measurements for one forecast day; `temperature_max` is always
    strictly greater than `temperature_min`."""

    temperature_min: float
    temperature_max: float
    humidity: int
    wind_speed: float
    precipitation_chance: int


class WeatherSource(Protocol):
    """Provider of weather readings for a coordinate.

    Implementations may call a real weather API; the response assembly code
    only depends on this interface.
    """

    def current_weather(
        self, latitude: float, longitude: float
    ) -> CurrentReading: ...

    def daily_forecast(
        self, latitude: float, longitude: float, day_offset: int
    ) -> ForecastReading: ...


class SyntheticWeatherSource:
    """Weather source producing bounded pseudo-random readings.

    Stands in for a real provider. Values are not meant to be meteorologically
    accurate, only internally consistent: every field stays within its range
    and forecast maxima exceed minima. Locations poleward of 60 degrees run
    15 degrees colder.

    Attributes:
        rng (random.Random): Generator used for every draw; pass a seeded one
        for reproducible output.
    """

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self.rng = rng or random.Random()

    @staticmethod
    def _latitude_bias(latitude: float) -> float:
        return -HIGH_LATITUDE_PENALTY if abs(latitude) > HIGH_LATITUDE else 0.0

    def current_weather(
        self, latitude: float, longitude: float
    ) -> CurrentReading:
        temperature = (
            20.0 + self._latitude_bias(latitude) + self.rng.uniform(0, 10)
        )
        return CurrentReading(
            temperature=round(temperature, 1),
            humidity=self.rng.randrange(40, 80),
            wind_speed=round(self.rng.uniform(2, 10), 1),
            pressure=round(self.rng.uniform(1000, 1050), 1),
            feels_like=round(temperature + self.rng.uniform(-2, 2), 1),
            visibility=round(self.rng.uniform(5, 20), 1),
            uv_index=round(self.rng.uniform(0, 10), 1),
        )

    def daily_forecast(
        self, latitude: float, longitude: float, day_offset: int
    ) -> ForecastReading:
        """Produce a forecast for the day `day_offset` days from today.

        Args:
            latitude (float): Latitude of the location.
            longitude (float): Longitude of the location.
            day_offset (int): 1 for tomorrow, 2 for the day after, ...

        Returns:
            ForecastReading: Bounded forecast values.

        Raises:
            InvalidInputError: If `day_offset` is lower than 1.
        """
        if day_offset < 1:
            raise InvalidInputError(
                f"day_offset must be at least 1, got {day_offset}"
            )
        temperature_min = round(
            15.0 + self._latitude_bias(latitude) + self.rng.uniform(0, 10), 1
        )
        # the spread is at least 5 degrees, so rounding cannot collapse it
        temperature_max = round(
            temperature_min + 5.0 + self.rng.uniform(0, 10), 1
        )
        return ForecastReading(
            temperature_min=temperature_min,
            temperature_max=temperature_max,
            humidity=self.rng.randrange(30, 80),
            wind_speed=round(self.rng.uniform(1, 7), 1),
            precipitation_chance=self.rng.randrange(0, 60),
        )
