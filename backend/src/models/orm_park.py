"""
SQLAlchemy ORM Model: Park
Represents theme park master data and its provider identifiers.
"""

from sqlalchemy import String, Boolean, Float, DateTime, func
from sqlalchemy.orm import Mapped, mapped_column
from models.base import Base
from datetime import datetime
from typing import Optional


class Park(Base):
    __tablename__ = "parks"
    __table_args__ = {'extend_existing': True}

    # Primary Key
    park_id: Mapped[int] = mapped_column(primary_key=True)

    # Source A: Queue-Times.com
    queue_times_id: Mapped[int] = mapped_column(
        nullable=False,
        unique=True,
        comment="External ID from Queue-Times.com API"
    )

    # Source B: ThemeParks.wiki
    themeparks_wiki_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        nullable=True,
        unique=True,
        comment="ThemeParks.wiki park UUID; NULL when the park is Queue-Times only"
    )

    # Basic Information
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    latitude: Mapped[Optional[float]] = mapped_column(Float)
    longitude: Mapped[Optional[float]] = mapped_column(Float)

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        comment="Only active parks are collected"
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<Park(park_id={self.park_id}, name='{self.name}', queue_times_id={self.queue_times_id})>"
