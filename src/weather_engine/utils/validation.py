from typing import Any, Optional, Tuple

from src.weather_engine.exceptions import InvalidInputError

MIN_FORECAST_DAYS = 1
MAX_FORECAST_DAYS = 7
DEFAULT_FORECAST_DAYS = 5


def _as_number(name: str, value: Any) -> float:
    # bool is an int subclass; True must not pass as latitude 1.0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidInputError(f"{name} must be a number, got {value!r}")
    return float(value)


def validate_coordinates(latitude: Any, longitude: Any) -> Tuple[float, float]:
    """Check a latitude/longitude pair and return it as floats.

    Args:
        latitude (Any): Latitude in decimal degrees, within [-90, 90].
        longitude (Any): Longitude in decimal degrees, within [-180, 180].

    Returns:
        Tuple[float, float]: The validated (latitude, longitude) pair.

    Raises:
        InvalidInputError: If either value is not a number or out of range.
    """
    lat = _as_number("latitude", latitude)
    lon = _as_number("longitude", longitude)
    if not -90.0 <= lat <= 90.0:
        raise InvalidInputError(f"latitude out of range [-90, 90]: {lat}")
    if not -180.0 <= lon <= 180.0:
        raise InvalidInputError(f"longitude out of range [-180, 180]: {lon}")
    return lat, lon


def validate_days(days: Any = None) -> int:
    """Return a forecast day count in 1..7, defaulting to 5 when missing."""
    if days is None:
        return DEFAULT_FORECAST_DAYS
    if isinstance(days, bool) or not isinstance(days, int):
        raise InvalidInputError(f"days must be an integer, got {days!r}")
    if not MIN_FORECAST_DAYS <= days <= MAX_FORECAST_DAYS:
        raise InvalidInputError(
            f"days must be between {MIN_FORECAST_DAYS} and "
            f"{MAX_FORECAST_DAYS}, got {days}"
        )
    return days


def require_text(name: str, value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidInputError(f"{name} must be a non-empty string")
    return value.strip()


def optional_text(name: str, value: Any) -> Optional[str]:
    if value is None:
        return None
    return require_text(name, value)
