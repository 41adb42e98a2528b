"""
SQLAlchemy ORM Model: RideMapping
Links a Queue-Times.com ride to the ThemeParks.wiki entity for the same ride.
"""

from sqlalchemy import String, DateTime, func
from sqlalchemy.orm import Mapped, mapped_column
from models.base import Base
from datetime import datetime


class RideMapping(Base):
    """
    Cross-source ride identity, maintained outside the collector.

    The reconciler only reads these rows; it never infers new ones.
    """
    __tablename__ = "ride_mappings"
    __table_args__ = {'extend_existing': True}

    mapping_id: Mapped[int] = mapped_column(primary_key=True)

    queue_times_ride_id: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        unique=True,
        comment="Queue-Times.com ride ID (Source A)"
    )
    themeparks_wiki_id: Mapped[str] = mapped_column(
        String(36),
        nullable=False,
        index=True,
        comment="ThemeParks.wiki entity UUID (Source B)"
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, server_default=func.now())

    def __repr__(self) -> str:
        return f"<RideMapping({self.queue_times_ride_id} -> {self.themeparks_wiki_id})>"
