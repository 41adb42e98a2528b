"""
Theme Park Wait Time Reconciler - Ride Mapping Repository
Loads the Queue-Times -> ThemeParks.wiki ride identity mapping.
"""

from typing import Dict
from sqlalchemy import select
from sqlalchemy.orm import Session

from models.orm_ride_mapping import RideMapping


class RideMappingRepository:
    """
    Repository for cross-source ride identity.

    The mapping is maintained externally; the collector only reads it.
    """

    def __init__(self, session: Session):
        self.session = session

    def get_mapping(self) -> Dict[str, str]:
        """
        Load the full identity mapping.

        Returns:
            Dictionary of Queue-Times ride ID -> ThemeParks.wiki entity UUID
        """
        stmt = select(RideMapping.queue_times_ride_id, RideMapping.themeparks_wiki_id)
        return {
            queue_times_id: themeparks_id
            for queue_times_id, themeparks_id in self.session.execute(stmt).all()
        }

    def upsert(self, queue_times_ride_id: str, themeparks_wiki_id: str) -> RideMapping:
        """
        Create or repoint the mapping for one Queue-Times ride.

        Args:
            queue_times_ride_id: Queue-Times.com ride ID
            themeparks_wiki_id: ThemeParks.wiki entity UUID

        Returns:
            The stored RideMapping
        """
        queue_times_ride_id = str(queue_times_ride_id)
        stmt = select(RideMapping).where(RideMapping.queue_times_ride_id == queue_times_ride_id)
        mapping = self.session.execute(stmt).scalar_one_or_none()

        if mapping is None:
            mapping = RideMapping(
                queue_times_ride_id=queue_times_ride_id,
                themeparks_wiki_id=themeparks_wiki_id
            )
            self.session.add(mapping)
        else:
            mapping.themeparks_wiki_id = themeparks_wiki_id

        self.session.flush()
        return mapping
