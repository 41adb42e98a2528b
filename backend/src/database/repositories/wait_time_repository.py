"""
Theme Park Wait Time Reconciler - Wait Time Repository
Stores reconciled readings and serves the retention and freshness queries.
"""

from datetime import datetime
from typing import Iterable

from classifier.confidence_tier import classify
from database.repositories.hot_table_repository import HotTableRepository
from models.orm_wait_time import WaitTimeReading
from models.ride_record import AggregatedReading
from utils.logger import log_database_error


class WaitTimeRepository(HotTableRepository):
    """
    Repository for the ride_wait_time_history hot table.

    Implements:
    - Batched insert of AggregatedReadings
    - Retention queries (count, oldest, batched delete)
    - Per-park freshness query
    """

    model = WaitTimeReading

    def insert_readings(
        self,
        readings: Iterable[AggregatedReading],
        park_id: int,
        recorded_at: datetime
    ) -> int:
        """
        Insert one row per reading.

        Args:
            readings: Readings from one reconciliation pass
            park_id: Park the readings belong to
            recorded_at: Collection timestamp shared by the batch

        Returns:
            Number of rows inserted
        """
        rows = [
            WaitTimeReading(
                park_id=park_id,
                ride_id=reading.ride_id,
                ride_name=reading.ride_name,
                wait_time=reading.aggregated_wait,
                confidence_score=reading.confidence_score,
                confidence_tier=classify(reading.confidence_score).tier,
                is_open=reading.is_open,
                queue_times_wait=reading.source_a_wait,
                themeparks_wait=reading.source_b_wait,
                single_rider_time=reading.single_rider_time,
                source=reading.source,
                recorded_at=recorded_at
            )
            for reading in readings
        ]

        try:
            self.session.add_all(rows)
            self.session.flush()
        except Exception as e:
            log_database_error(e, f"Failed to insert wait time readings for park {park_id}")
            raise

        return len(rows)
