"""
Theme Park Wait Time Reconciler - Park Repository
Provides data access for parks and their provider identifiers.
"""

from typing import Any, Dict, List, Optional
from sqlalchemy import select
from sqlalchemy.orm import Session

from models.orm_park import Park
from utils.logger import logger, log_database_error


# Fields a reference data file may set on a park
PARK_FIELDS = ('name', 'themeparks_wiki_id', 'latitude', 'longitude', 'is_active')


class ParkRepository:
    """Repository for park lookups used by the collection jobs."""

    def __init__(self, session: Session):
        """
        Initialize repository with SQLAlchemy session.

        Args:
            session: SQLAlchemy session object
        """
        self.session = session

    def get_by_id(self, park_id: int) -> Optional[Park]:
        """Fetch a park by internal ID, or None."""
        return self.session.get(Park, park_id)

    def get_by_queue_times_id(self, queue_times_id: int) -> Optional[Park]:
        """Fetch a park by its Queue-Times.com ID, or None."""
        stmt = select(Park).where(Park.queue_times_id == queue_times_id)
        return self.session.execute(stmt).scalar_one_or_none()

    def get_active(self) -> List[Park]:
        """
        Fetch all active parks ordered by name.

        Returns:
            List of Park ORM objects
        """
        stmt = select(Park).where(Park.is_active.is_(True)).order_by(Park.name)
        return list(self.session.execute(stmt).scalars().all())

    def upsert(self, park_data: Dict[str, Any]) -> Park:
        """
        Create a park or update the one with the same Queue-Times ID.

        Args:
            park_data: Dictionary with queue_times_id, name and optionally
                       themeparks_wiki_id, latitude, longitude, is_active

        Returns:
            The stored Park
        """
        queue_times_id = int(park_data['queue_times_id'])
        values = {field: park_data[field] for field in PARK_FIELDS if field in park_data}

        try:
            park = self.get_by_queue_times_id(queue_times_id)
            if park is None:
                park = Park(queue_times_id=queue_times_id, **values)
                self.session.add(park)
                self.session.flush()
                logger.info(f"Created park: {park.name} (ID: {park.park_id})")
            else:
                for field, value in values.items():
                    setattr(park, field, value)
                self.session.flush()
        except Exception as e:
            log_database_error(e, f"Failed to upsert park with Queue-Times ID {queue_times_id}")
            raise

        return park
