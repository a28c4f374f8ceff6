import datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.weather_engine.models.base import Base

if TYPE_CHECKING:
    from .location import Location


class DailyForecast(Base):
    __tablename__ = "daily_forecast"
    __table_args__ = (
        UniqueConstraint(
            "location_id", "date", name="uq_daily_forecast_location_id_date"
        ),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    location_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("locations.id", ondelete="CASCADE"),
        nullable=False,
    )
    condition_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("weather_conditions.id"), nullable=False
    )
    # Calendar day only, stored without a time component.
    date: Mapped[datetime.date] = mapped_column(Date, nullable=False)
    temperature_min: Mapped[float] = mapped_column(Float, nullable=False)
    temperature_max: Mapped[float] = mapped_column(Float, nullable=False)
    humidity: Mapped[int] = mapped_column(Integer, nullable=False)
    wind_speed: Mapped[float] = mapped_column(Float, nullable=False)
    precipitation_chance: Mapped[int] = mapped_column(
        Integer, nullable=False
    )
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.datetime.now(datetime.timezone.utc),
        nullable=False,
    )
    location: Mapped["Location"] = relationship(
        "Location", back_populates="daily_forecasts"
    )
