"""
SQLAlchemy ORM Model: ParkWeatherReading
Current weather at each park per collection run (hot table, pruned by retention).
"""

from sqlalchemy import String, Integer, BigInteger, Float, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column
from models.base import Base
from datetime import datetime
from typing import Optional


class ParkWeatherReading(Base):
    """
    Open-Meteo current conditions stored alongside a park's wait times.

    Shares recorded_at with the ride readings of the same collection run.
    """
    __tablename__ = "park_weather_history"

    # Primary Key (BIGINT on MySQL, rowid alias on SQLite)
    weather_id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True
    )

    park_id: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="parks.park_id the observation belongs to"
    )

    # Conditions (metric units)
    temperature: Mapped[Optional[float]] = mapped_column(Float, comment="Air temperature in Celsius")
    feels_like: Mapped[Optional[float]] = mapped_column(Float, comment="Apparent temperature in Celsius")
    humidity: Mapped[Optional[float]] = mapped_column(Float, comment="Relative humidity in percent")
    precipitation: Mapped[Optional[float]] = mapped_column(Float, comment="Precipitation in mm")
    wind_speed: Mapped[Optional[float]] = mapped_column(Float, comment="Wind speed in km/h")
    wind_direction: Mapped[Optional[float]] = mapped_column(Float, comment="Wind direction in degrees")
    uv_index: Mapped[Optional[float]] = mapped_column(Float)
    weather_code: Mapped[Optional[int]] = mapped_column(Integer, comment="WMO weather code")
    weather_type: Mapped[str] = mapped_column(String(30), nullable=False, default='unknown')

    source: Mapped[str] = mapped_column(String(20), nullable=False, default='open_meteo')
    recorded_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        comment="UTC timestamp of the collection run"
    )

    __table_args__ = (
        Index('idx_weather_recorded_at', 'recorded_at'),
        Index('idx_weather_park_recorded', 'park_id', 'recorded_at'),
        {'extend_existing': True}
    )

    def __repr__(self) -> str:
        return (
            f"<ParkWeatherReading(park_id={self.park_id}, temperature={self.temperature}, "
            f"weather_type='{self.weather_type}', recorded_at={self.recorded_at})>"
        )
