import asyncio
import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Sequence, TypeVar

from sqlalchemy import Select, create_engine, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from src.weather_engine.models import (
    Base,
    CurrentWeather,
    DailyForecast,
    Location,
    WeatherCondition,
)

logger = logging.getLogger(__name__)

T = TypeVar("T", Location, WeatherCondition, DailyForecast)


def escape_like(term: str, escape_char: str = "\\") -> str:
    """Escape LIKE wildcards so a search term matches literally."""
    return (
        term.replace(escape_char, escape_char * 2)
        .replace("%", f"{escape_char}%")
        .replace("_", f"{escape_char}_")
    )


class AsyncDBService:
    """Async database helper for the location and weather tables.

    This service provides asynchronous-friendly methods to interact with the
    application's SQL database using SQLAlchemy's synchronous engine by
    delegating blocking calls to a threadpool via `asyncio.to_thread`. Every
    method opens its own short-lived session, so the service holds no state
    besides the engine and may be shared across requests.

    Rows that carry a natural key (locations by city/country, conditions by
    name, forecasts by location/date) are written through an insert-or-fetch
    step: the insert relies on the table's unique constraint, and a conflict
    returns the row that won instead of creating a duplicate.

    Attributes:
        db_url (str): Database connection URL.
        _engine: SQLAlchemy Engine instance.
        _SessionLocal: Session factory.
    """

    def __init__(self, db_url: str) -> None:
        self.db_url: str = db_url
        connect_args: Dict[str, Any] = {}
        if db_url.startswith("sqlite"):
            # sessions run on worker threads via asyncio.to_thread
            connect_args["check_same_thread"] = False
        self._engine = create_engine(
            db_url, echo=False, future=True, connect_args=connect_args
        )
        self._SessionLocal = sessionmaker(
            bind=self._engine, expire_on_commit=False
        )

    async def create_tables(self) -> None:
        """Create all tables declared on the models' metadata if missing."""
        await asyncio.to_thread(Base.metadata.create_all, self._engine)

    async def dispose(self) -> None:
        await asyncio.to_thread(self._engine.dispose)

    @staticmethod
    def _insert_or_get(
        session: Session, record: T, lookup: Select[tuple[T]]
    ) -> T:
        """Insert `record`; on a unique-constraint conflict return the
        existing row matched by `lookup` instead.

        Raises:
            IntegrityError: If the insert fails and `lookup` finds nothing,
            i.e. the conflict was not on the natural key.
        """
        try:
            session.add(record)
            session.commit()
            session.refresh(record)
        except IntegrityError:
            session.rollback()
            existing = session.execute(lookup).scalars().first()
            if existing is None:
                raise
            logger.debug(
                f"Insert conflict on {type(record).__name__}, "
                f"reusing id={existing.id}"
            )
            record = existing
        # a later rollback in the same session must not expire returned rows
        session.expunge(record)
        return record

    # Locations

    async def find_location_near(
        self, latitude: float, longitude: float, tolerance: float
    ) -> Optional[Location]:
        """Return the oldest location within `tolerance` degrees on both axes.

        Args:
            latitude (float): Latitude to match.
            longitude (float): Longitude to match.
            tolerance (float): Maximum absolute difference per axis, inclusive.

        Returns:
            Optional[Location]: Matching location with the lowest id, or None.
        """

        def _query() -> Optional[Location]:
            with self._SessionLocal() as session:
                result = session.execute(
                    select(Location)
                    .where(
                        Location.latitude.between(
                            latitude - tolerance, latitude + tolerance
                        ),
                        Location.longitude.between(
                            longitude - tolerance, longitude + tolerance
                        ),
                    )
                    .order_by(Location.id)
                    .limit(1)
                )
                return result.scalar_one_or_none()

        return await asyncio.to_thread(_query)

    async def get_location_by_coordinates(
        self, latitude: float, longitude: float
    ) -> Optional[Location]:
        def _query() -> Optional[Location]:
            with self._SessionLocal() as session:
                result = session.execute(
                    select(Location)
                    .filter_by(latitude=latitude, longitude=longitude)
                    .order_by(Location.id)
                    .limit(1)
                )
                return result.scalar_one_or_none()

        return await asyncio.to_thread(_query)

    async def get_location_by_city(
        self, city: str, country: Optional[str] = None
    ) -> Optional[Location]:
        """Lookup a Location by exact city name and, optionally, country.

        Args:
            city (str): City name to match exactly.
            country (Optional[str]): Country to match exactly when given.

        Returns:
            Optional[Location]: Matching location with the lowest id, or None.
        """

        def _query() -> Optional[Location]:
            with self._SessionLocal() as session:
                stmt = select(Location).where(Location.city == city)
                if country is not None:
                    stmt = stmt.where(Location.country == country)
                result = session.execute(
                    stmt.order_by(Location.id).limit(1)
                )
                return result.scalar_one_or_none()

        return await asyncio.to_thread(_query)

    async def find_location_by_city_or_coordinates(
        self, city: str, country: str, latitude: float, longitude: float
    ) -> Optional[Location]:
        """Return a location matching exact (city, country) OR exact
        (latitude, longitude), lowest id first."""

        def _query() -> Optional[Location]:
            with self._SessionLocal() as session:
                result = session.execute(
                    select(Location)
                    .where(
                        or_(
                            (Location.city == city)
                            & (Location.country == country),
                            (Location.latitude == latitude)
                            & (Location.longitude == longitude),
                        )
                    )
                    .order_by(Location.id)
                    .limit(1)
                )
                return result.scalar_one_or_none()

        return await asyncio.to_thread(_query)

    async def insert_or_get_location(
        self, city: str, country: str, latitude: float, longitude: float
    ) -> Location:
        """Insert a location, or return the row already holding
        (city, country)."""

        def _query() -> Location:
            with self._SessionLocal() as session:
                record = Location(
                    city=city,
                    country=country,
                    latitude=latitude,
                    longitude=longitude,
                )
                lookup = select(Location).filter_by(city=city, country=country)
                return self._insert_or_get(session, record, lookup)

        return await asyncio.to_thread(_query)

    async def search_locations(self, term: str, limit: int) -> List[Location]:
        """Case-insensitive substring search over city and country.

        Args:
            term (str): Non-empty search term, matched literally.
            limit (int): Maximum number of rows to return.

        Returns:
            List[Location]: Matches ordered by id.
        """
        pattern = f"%{escape_like(term)}%"

        def _query() -> List[Location]:
            with self._SessionLocal() as session:
                result = session.execute(
                    select(Location)
                    .where(
                        or_(
                            Location.city.ilike(pattern, escape="\\"),
                            Location.country.ilike(pattern, escape="\\"),
                        )
                    )
                    .order_by(Location.id)
                    .limit(limit)
                )
                return list(result.scalars().all())

        return await asyncio.to_thread(_query)

    async def count_locations(self) -> int:
        def _query() -> int:
            with self._SessionLocal() as session:
                return session.execute(
                    select(func.count()).select_from(Location)
                ).scalar_one()

        return await asyncio.to_thread(_query)

    # Weather conditions

    async def get_condition_by_name(
        self, name: str
    ) -> Optional[WeatherCondition]:
        def _query() -> Optional[WeatherCondition]:
            with self._SessionLocal() as session:
                result = session.execute(
                    select(WeatherCondition).filter_by(name=name)
                )
                return result.scalar_one_or_none()

        return await asyncio.to_thread(_query)

    async def insert_or_get_condition(
        self, name: str, description: str, icon_code: str
    ) -> WeatherCondition:
        def _query() -> WeatherCondition:
            with self._SessionLocal() as session:
                record = WeatherCondition(
                    name=name, description=description, icon_code=icon_code
                )
                lookup = select(WeatherCondition).filter_by(name=name)
                return self._insert_or_get(session, record, lookup)

        return await asyncio.to_thread(_query)

    async def list_conditions(self) -> List[WeatherCondition]:
        def _query() -> List[WeatherCondition]:
            with self._SessionLocal() as session:
                result = session.execute(
                    select(WeatherCondition).order_by(WeatherCondition.id)
                )
                return list(result.scalars().all())

        return await asyncio.to_thread(_query)

    async def get_conditions_by_ids(
        self, condition_ids: Iterable[int]
    ) -> List[WeatherCondition]:
        ids = sorted(set(condition_ids))

        def _query() -> List[WeatherCondition]:
            if not ids:
                return []
            with self._SessionLocal() as session:
                result = session.execute(
                    select(WeatherCondition)
                    .where(WeatherCondition.id.in_(ids))
                    .order_by(WeatherCondition.id)
                )
                return list(result.scalars().all())

        return await asyncio.to_thread(_query)

    # Current weather

    async def add_current_weather(
        self,
        location_id: int,
        condition_id: int,
        reading: Dict[str, Any],
    ) -> CurrentWeather:
        """Insert a CurrentWeather record and return the persisted object.

        Args:
            location_id (int): Reference to the location id.
            condition_id (int): Reference to the weather condition id.
            reading (Dict[str, Any]): Mapping of measurement fields
            (temperature, humidity, ..., timestamp).

        Returns:
            CurrentWeather: The created and refreshed model instance.
        """

        def _query() -> CurrentWeather:
            with self._SessionLocal() as session:
                record = CurrentWeather(
                    location_id=location_id,
                    condition_id=condition_id,
                    **reading,
                )
                session.add(record)
                session.commit()
                session.refresh(record)
                return record

        return await asyncio.to_thread(_query)

    async def get_latest_current_weather(
        self, location_id: int
    ) -> Optional[CurrentWeather]:
        """Return the location's CurrentWeather row with the latest
        `timestamp`, or None when it has none."""

        def _query() -> Optional[CurrentWeather]:
            with self._SessionLocal() as session:
                result = session.execute(
                    select(CurrentWeather)
                    .filter_by(location_id=location_id)
                    .order_by(
                        CurrentWeather.timestamp.desc(),
                        CurrentWeather.id.desc(),
                    )
                    .limit(1)
                )
                return result.scalar_one_or_none()

        return await asyncio.to_thread(_query)

    # Daily forecast

    async def get_forecasts_between(
        self, location_id: int, start: date, end: date
    ) -> List[DailyForecast]:
        """Return forecast rows with `start <= date <= end`, by date."""

        def _query() -> List[DailyForecast]:
            with self._SessionLocal() as session:
                result = session.execute(
                    select(DailyForecast)
                    .where(
                        DailyForecast.location_id == location_id,
                        DailyForecast.date.between(start, end),
                    )
                    .order_by(DailyForecast.date)
                )
                return list(result.scalars().all())

        return await asyncio.to_thread(_query)

    async def get_recent_forecasts(
        self, location_id: int, limit: int
    ) -> List[DailyForecast]:
        """Return up to `limit` rows with the latest dates, newest first."""

        def _query() -> List[DailyForecast]:
            with self._SessionLocal() as session:
                result = session.execute(
                    select(DailyForecast)
                    .filter_by(location_id=location_id)
                    .order_by(DailyForecast.date.desc())
                    .limit(limit)
                )
                return list(result.scalars().all())

        return await asyncio.to_thread(_query)

    async def add_daily_forecasts(
        self,
        location_id: int,
        condition_id: int,
        rows: Sequence[Dict[str, Any]],
    ) -> List[DailyForecast]:
        """Insert forecast rows, keeping any row already stored for the
        same (location, date).

        Args:
            location_id (int): Reference to the location id.
            condition_id (int): Condition applied to every new row.
            rows (Sequence[Dict[str, Any]]): Mappings with a `date` key and
            the forecast measurements.

        Returns:
            List[DailyForecast]: One persisted row per input, in input order.
        """

        def _query() -> List[DailyForecast]:
            persisted: List[DailyForecast] = []
            with self._SessionLocal() as session:
                for row in rows:
                    record = DailyForecast(
                        location_id=location_id,
                        condition_id=condition_id,
                        **row,
                    )
                    lookup = select(DailyForecast).filter_by(
                        location_id=location_id, date=row["date"]
                    )
                    persisted.append(
                        self._insert_or_get(session, record, lookup)
                    )
            return persisted

        return await asyncio.to_thread(_query)
