from datetime import datetime, timezone
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Float, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.weather_engine.models.base import Base

if TYPE_CHECKING:
    from .location import Location


class CurrentWeather(Base):
    """A single observation for a location.

    A location accumulates many rows over time; the current one is the row
    with the latest `timestamp`.

    Attributes:
        id (int): Primary key.
        location_id (int): Foreign key to `locations.id`.
        condition_id (int): Foreign key to `weather_conditions.id`.
        temperature (float): Air temperature in Celsius.
        humidity (int): Relative humidity percentage (0-100).
        wind_speed (float): Wind speed in m/s.
        pressure (float): Atmospheric pressure in hPa.
        feels_like (float): Apparent temperature in Celsius.
        visibility (float): Visibility in km.
        uv_index (float): UV index.
        timestamp (datetime): Observation time.
        created_at (datetime): Record creation timestamp (UTC).
    """

    __tablename__ = "current_weather"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    location_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("locations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    condition_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("weather_conditions.id"), nullable=False
    )
    temperature: Mapped[float] = mapped_column(Float, nullable=False)
    humidity: Mapped[int] = mapped_column(Integer, nullable=False)
    wind_speed: Mapped[float] = mapped_column(Float, nullable=False)
    pressure: Mapped[float] = mapped_column(Float, nullable=False)
    feels_like: Mapped[float] = mapped_column(Float, nullable=False)
    visibility: Mapped[float] = mapped_column(Float, nullable=False)
    uv_index: Mapped[float] = mapped_column(Float, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    location: Mapped["Location"] = relationship(
        "Location", back_populates="current_weather"
    )
