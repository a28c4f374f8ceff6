from .base import Base
from .current_weather import CurrentWeather
from .daily_forecast import DailyForecast
from .location import Location
from .weather_condition import WeatherCondition

__all__ = [
    "Base",
    "CurrentWeather",
    "DailyForecast",
    "Location",
    "WeatherCondition",
]
