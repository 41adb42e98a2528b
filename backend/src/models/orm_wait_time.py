"""
SQLAlchemy ORM Model: WaitTimeReading
Reconciled wait time per ride per collection run (hot table, pruned by retention).
"""

from sqlalchemy import String, Boolean, Integer, BigInteger, Float, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column
from models.base import Base
from datetime import datetime
from typing import Optional


class WaitTimeReading(Base):
    """
    One AggregatedReading as stored by the collector.

    Retained for RETENTION_HOURS before the prune job deletes it.
    """
    __tablename__ = "ride_wait_time_history"

    # Primary Key (BIGINT on MySQL, rowid alias on SQLite)
    reading_id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True
    )

    park_id: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="parks.park_id the ride belongs to"
    )
    ride_id: Mapped[str] = mapped_column(
        String(36),
        nullable=False,
        comment="Queue-Times ride ID when available, else ThemeParks.wiki UUID"
    )
    ride_name: Mapped[str] = mapped_column(String(255), nullable=False, default='')

    # Reconciled values
    wait_time: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Aggregated wait time in minutes"
    )
    confidence_score: Mapped[float] = mapped_column(Float, nullable=False)
    confidence_tier: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        comment="high, medium, low or none at collection time"
    )
    is_open: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Raw per-source values
    queue_times_wait: Mapped[Optional[int]] = mapped_column(Integer)
    themeparks_wait: Mapped[Optional[int]] = mapped_column(Integer)
    single_rider_time: Mapped[Optional[int]] = mapped_column(Integer)
    source: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="dual, single-source-A or single-source-B"
    )

    recorded_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        comment="UTC timestamp of the collection run"
    )

    __table_args__ = (
        Index('idx_wait_time_recorded_at', 'recorded_at'),
        Index('idx_wait_time_park_recorded', 'park_id', 'recorded_at'),
        {'extend_existing': True}
    )

    def __repr__(self) -> str:
        return (
            f"<WaitTimeReading(ride_id='{self.ride_id}', wait_time={self.wait_time}, "
            f"confidence={self.confidence_score}, recorded_at={self.recorded_at})>"
        )
