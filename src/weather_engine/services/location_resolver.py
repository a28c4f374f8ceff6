import logging
from typing import List, Optional

from src.weather_engine.exceptions import NotFoundError
from src.weather_engine.models import Location
from src.weather_engine.services.db_service_async import AsyncDBService

logger = logging.getLogger(__name__)

# Degrees on each axis, roughly 1 km at the equator.
COORDINATE_TOLERANCE = 0.01
SEARCH_RESULT_LIMIT = 20
UNKNOWN_COUNTRY = "Unknown"


def placeholder_city(latitude: float, longitude: float) -> str:
    """Label for a place known only by coordinates, rounded to the
    tolerance grid so nearby points share it."""
    return f"Location {latitude:.2f}, {longitude:.2f}"


def exact_placeholder_city(latitude: float, longitude: float) -> str:
    """Label for a place created by exact lookup. The suffix keeps it off
    the rounded grid of `placeholder_city`."""
    return f"Location {latitude!r}, {longitude!r} (exact)"


class LocationResolver:
    """Maps coordinates or city names onto canonical Location rows.

    Coordinate resolution deduplicates against existing rows within
    `COORDINATE_TOLERANCE` degrees on both axes, so GPS jitter does not
    create near-duplicate places. City resolution only reads; it never
    creates rows.

    New rows are written through `AsyncDBService.insert_or_get_location`,
    which is keyed on the unique (city, country) pair. Placeholder labels
    are derived from the coordinates, so two requests racing to create the
    same place end up with one row.

    Attributes:
        db_service (AsyncDBService): Storage used for lookups and inserts.
        tolerance (float): Per-axis match tolerance in degrees.
    """

    def __init__(
        self,
        db_service: AsyncDBService,
        tolerance: float = COORDINATE_TOLERANCE,
    ) -> None:
        self.db_service = db_service
        self.tolerance = tolerance

    async def resolve_by_coordinates(
        self, latitude: float, longitude: float
    ) -> Location:
        """Return the location within tolerance of the point, creating one
        if none exists.

        Args:
            latitude (float): Validated latitude in [-90, 90].
            longitude (float): Validated longitude in [-180, 180].

        Returns:
            Location: Existing location (unchanged) or the new one.
        """
        existing = await self.db_service.find_location_near(
            latitude, longitude, self.tolerance
        )
        if existing is not None:
            return existing

        location = await self.db_service.insert_or_get_location(
            city=placeholder_city(latitude, longitude),
            country=UNKNOWN_COUNTRY,
            latitude=latitude,
            longitude=longitude,
        )
        logger.info(
            "📍 Resolved coordinates to new location",
            extra={
                "context": {
                    "location_id": location.id,
                    "latitude": latitude,
                    "longitude": longitude,
                }
            },
        )
        return location

    async def resolve_by_exact_coordinates(
        self, latitude: float, longitude: float
    ) -> Location:
        """Like `resolve_by_coordinates` but without tolerance: only a row
        with exactly these coordinates is reused."""
        existing = await self.db_service.get_location_by_coordinates(
            latitude, longitude
        )
        if existing is not None:
            return existing

        location = await self.db_service.insert_or_get_location(
            city=exact_placeholder_city(latitude, longitude),
            country=UNKNOWN_COUNTRY,
            latitude=latitude,
            longitude=longitude,
        )
        logger.info(
            "📍 Created location for exact coordinates",
            extra={
                "context": {
                    "location_id": location.id,
                    "latitude": latitude,
                    "longitude": longitude,
                }
            },
        )
        return location

    async def resolve_by_city(
        self, city: str, country: Optional[str] = None
    ) -> Location:
        """Return the stored location for a city (and country, if given).

        Raises:
            NotFoundError: If no such location has been stored.
        """
        location = await self.db_service.get_location_by_city(city, country)
        if location is None:
            raise NotFoundError(city, country)
        return location

    async def create_location(
        self, city: str, country: str, latitude: float, longitude: float
    ) -> Location:
        """Create a named location unless it already exists.

        An existing row matching the exact (city, country) pair or the exact
        coordinates is returned as is, keeping its original labels. No
        coordinate tolerance applies here.
        """
        existing = await self.db_service.find_location_by_city_or_coordinates(
            city, country, latitude, longitude
        )
        if existing is not None:
            return existing

        location = await self.db_service.insert_or_get_location(
            city=city,
            country=country,
            latitude=latitude,
            longitude=longitude,
        )
        logger.info(
            f"🆕 Location {city}, {country}",
            extra={"context": {"location_id": location.id}},
        )
        return location

    async def search(self, query: str) -> List[Location]:
        """Case-insensitive substring search over city and country.

        A blank query returns an empty list without querying storage.
        """
        term = query.strip()
        if not term:
            return []
        return await self.db_service.search_locations(
            term, SEARCH_RESULT_LIMIT
        )
