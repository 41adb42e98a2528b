"""
Theme Park Wait Time Reconciler - Job Run Log Repository
Records job status events and serves them to the health report.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from sqlalchemy import select
from sqlalchemy.orm import Session

from models.orm_job_log import JobRunLog, JobStatus


class JobRunLogRepository:
    """Repository for job_run_log rows."""

    def __init__(self, session: Session):
        self.session = session

    def record(
        self,
        job_name: str,
        status: JobStatus,
        started_at: datetime,
        details: Optional[Dict[str, Any]] = None,
        error_message: Optional[str] = None
    ) -> JobRunLog:
        """
        Record a job status event.

        Args:
            job_name: Job identifier (e.g., 'collect-wait-times')
            status: started, completed or failed
            started_at: When the run began (UTC); used for execution time
            details: JSON-serializable run details
            error_message: Failure reason, if any

        Returns:
            The stored JobRunLog
        """
        now = datetime.now(timezone.utc).replace(tzinfo=None)
        started = started_at.replace(tzinfo=None) if started_at.tzinfo else started_at

        entry = JobRunLog(
            job_name=job_name,
            status=JobStatus(status),
            created_at=now,
            execution_time_ms=int((now - started).total_seconds() * 1000),
            error_message=error_message,
            details=details
        )
        self.session.add(entry)
        self.session.flush()
        return entry

    def get_runs_since(self, job_name: str, since: datetime) -> List[JobRunLog]:
        """
        Fetch a job's status events since a point in time, oldest first.

        Args:
            job_name: Job identifier
            since: Lower bound (inclusive) on created_at

        Returns:
            List of JobRunLog
        """
        stmt = (
            select(JobRunLog)
            .where(JobRunLog.job_name == job_name, JobRunLog.created_at >= since)
            .order_by(JobRunLog.created_at, JobRunLog.log_id)
        )
        return list(self.session.execute(stmt).scalars().all())
