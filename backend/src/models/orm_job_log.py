"""
SQLAlchemy ORM Model: JobRunLog
Tracks collector and prune job runs for the collection health report.
"""

from sqlalchemy import Integer, String, DateTime, Text, JSON, Enum, Index
from sqlalchemy.orm import Mapped, mapped_column
from models.base import Base
from datetime import datetime
from typing import Any, Dict, Optional
import enum


class JobStatus(str, enum.Enum):
    """Job run status"""
    STARTED = "started"
    COMPLETED = "completed"
    FAILED = "failed"


class JobRunLog(Base):
    """
    One status event of a scheduled job.

    Purpose:
    - Coverage checks count completed collector runs per window
    - Run details carry per-run stats (parks targeted, errors, tiers)
    - Audit trail for retention prunes
    """
    __tablename__ = "job_run_log"

    log_id: Mapped[int] = mapped_column(primary_key=True)

    job_name: Mapped[str] = mapped_column(String(64), nullable=False)
    status: Mapped[JobStatus] = mapped_column(
        Enum(
            JobStatus,
            values_callable=lambda x: [e.value for e in x]
        ),
        nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        comment="UTC time the status was recorded"
    )
    execution_time_ms: Mapped[Optional[int]] = mapped_column(Integer)
    error_message: Mapped[Optional[str]] = mapped_column(Text)
    details: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON)

    __table_args__ = (
        Index('idx_job_run_log_job_created', 'job_name', 'created_at'),
        {'extend_existing': True}
    )

    def __repr__(self) -> str:
        return f"<JobRunLog(job_name='{self.job_name}', status={self.status}, created_at={self.created_at})>"
