from typing import Optional


class WeatherEngineError(Exception):
    """Base class for errors raised by the weather engine."""


class NotFoundError(WeatherEngineError):
    """Raised when a city lookup or its current weather comes up empty.

    Attributes:
        city (str): City that was queried.
        country (Optional[str]): Country that was queried, if any.
    """

    def __init__(
        self,
        city: str,
        country: Optional[str] = None,
        message: Optional[str] = None,
    ) -> None:
        self.city = city
        self.country = country
        if message is None:
            suffix = f", {country}" if country else ""
            message = f"Weather data not found for city: {city}{suffix}"
        super().__init__(message)


class InvalidInputError(WeatherEngineError, ValueError):
    """Raised when coordinates, day counts or text inputs are invalid."""


class IncompleteDataError(WeatherEngineError):
    """Raised when a response is assembled without the data it needs."""
