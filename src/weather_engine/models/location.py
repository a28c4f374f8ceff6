from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, List

from sqlalchemy import DateTime, Float, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.weather_engine.models.base import Base

if TYPE_CHECKING:
    from .current_weather import CurrentWeather
    from .daily_forecast import DailyForecast


class Location(Base):
    """Canonical record for a place, identified by coordinates and city.

    Rows are created the first time a new place is resolved and are never
    mutated afterwards. The `(city, country)` pair is unique, which is what
    makes concurrent inserts of the same place collapse onto one row.

    Attributes:
        id (int): Primary key.
        city (str): City name or a placeholder derived from the coordinates.
        country (str): Country name, "Unknown" for coordinate-only places.
        latitude (float): Latitude in decimal degrees.
        longitude (float): Longitude in decimal degrees.
        created_at (datetime): Record creation timestamp (UTC).
    """

    __tablename__ = "locations"
    __table_args__ = (
        UniqueConstraint(
            "city", "country", name="uq_locations_city_country"
        ),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    city: Mapped[str] = mapped_column(String(120), nullable=False)
    country: Mapped[str] = mapped_column(String(120), nullable=False)
    latitude: Mapped[float] = mapped_column(Float, nullable=False, index=True)
    longitude: Mapped[float] = mapped_column(
        Float, nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    current_weather: Mapped[List["CurrentWeather"]] = relationship(
        "CurrentWeather",
        back_populates="location",
        cascade="all, delete-orphan",
    )
    daily_forecasts: Mapped[List["DailyForecast"]] = relationship(
        "DailyForecast",
        back_populates="location",
        cascade="all, delete-orphan",
    )
