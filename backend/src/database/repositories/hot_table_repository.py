"""
Theme Park Wait Time Reconciler - Hot Table Repository Base
Retention and freshness queries shared by every table pruned by RETENTION_HOURS.
"""

from datetime import datetime
from typing import Dict, Optional
from sqlalchemy import select, func, delete
from sqlalchemy.orm import Session

from utils.logger import log_database_error


class HotTableRepository:
    """
    Base repository for a table keyed by an integer primary key with
    park_id and recorded_at columns.

    Subclasses set ``model`` to their ORM class.
    """

    model = None

    def __init__(self, session: Session):
        self.session = session

    @property
    def table_name(self) -> str:
        return self.model.__tablename__

    @property
    def _primary_key(self):
        return self.model.__mapper__.primary_key[0]

    def count_older_than(self, cutoff: datetime) -> int:
        """Count rows recorded before cutoff."""
        stmt = select(func.count(self._primary_key)).where(self.model.recorded_at < cutoff)
        return self.session.execute(stmt).scalar_one()

    def oldest_recorded_at(self) -> Optional[datetime]:
        """Timestamp of the oldest remaining row, or None if the table is empty."""
        stmt = select(func.min(self.model.recorded_at))
        return self.session.execute(stmt).scalar_one_or_none()

    def delete_older_than(self, cutoff: datetime, batch_size: int) -> int:
        """
        Delete up to batch_size of the oldest rows recorded before cutoff.

        Args:
            cutoff: Rows strictly older than this are eligible
            batch_size: Maximum rows deleted in this call

        Returns:
            Number of rows deleted (0 when nothing is left)
        """
        id_stmt = (
            select(self._primary_key)
            .where(self.model.recorded_at < cutoff)
            .order_by(self.model.recorded_at)
            .limit(batch_size)
        )
        ids = list(self.session.execute(id_stmt).scalars().all())
        if not ids:
            return 0

        try:
            self.session.execute(
                delete(self.model)
                .where(self._primary_key.in_(ids))
                .execution_options(synchronize_session=False)
            )
            self.session.flush()
        except Exception as e:
            log_database_error(e, f"Failed to delete expired rows from {self.table_name}")
            raise

        return len(ids)

    def latest_recorded_at_by_park(self) -> Dict[int, datetime]:
        """
        Most recent row timestamp for each park with data.

        Returns:
            Dictionary of park_id -> latest recorded_at
        """
        stmt = (
            select(self.model.park_id, func.max(self.model.recorded_at))
            .group_by(self.model.park_id)
        )
        return {park_id: latest for park_id, latest in self.session.execute(stmt).all()}
