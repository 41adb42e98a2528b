"""
Theme Park Wait Time Reconciler - Park Weather Repository
Stores per-park weather observations in the park_weather_history hot table.
"""

from datetime import datetime
from typing import Any, Dict

from database.repositories.hot_table_repository import HotTableRepository
from models.orm_weather import ParkWeatherReading
from utils.logger import log_database_error


class WeatherRepository(HotTableRepository):
    """Repository for park_weather_history; retention queries come from HotTableRepository."""

    model = ParkWeatherReading

    def insert_observation(
        self,
        park_id: int,
        observation: Dict[str, Any],
        recorded_at: datetime
    ) -> ParkWeatherReading:
        """
        Insert one observation.

        Args:
            park_id: Park the observation belongs to
            observation: Column values from to_weather_observation()
            recorded_at: Collection timestamp shared with the park's wait times

        Returns:
            The flushed ParkWeatherReading
        """
        row = ParkWeatherReading(park_id=park_id, recorded_at=recorded_at, **observation)

        try:
            self.session.add(row)
            self.session.flush()
        except Exception as e:
            log_database_error(e, f"Failed to insert weather observation for park {park_id}")
            raise

        return row
