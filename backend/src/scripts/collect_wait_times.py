#!/usr/bin/env python3
"""
Theme Park Wait Time Reconciler - Dual-Source Wait Time Collection Script
Collects current wait times from Queue-Times.com and ThemeParks.wiki,
reconciles them into one reading per ride and stores the readings.

Parks with a themeparks_wiki_id are collected from both providers; others
are collected from Queue-Times.com alone (single-source readings). Parks
with coordinates also get an Open-Meteo weather observation stamped with
the same recorded_at as their wait times.

This script should be run every COLLECTION_INTERVAL_MINUTES via cron.

Usage:
    python -m scripts.collect_wait_times
    python -m scripts.collect_wait_times --park-id 3 --dry-run
    python -m scripts.collect_wait_times --skip-weather

Cron example (every 5 minutes):
    */5 * * * * cd /path/to/backend/src && python -m scripts.collect_wait_times
"""

import argparse
import sys
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from classifier.confidence_tier import summarize_readings
from collector.open_meteo_client import OpenMeteoClient, get_open_meteo_client, to_weather_observation
from collector.queue_times_client import QueueTimesClient, get_queue_times_client
from collector.themeparks_wiki_client import ThemeParksWikiClient, get_themeparks_wiki_client
from database.connection import get_db_session
from database.repositories.job_log_repository import JobRunLogRepository
from database.repositories.park_repository import ParkRepository
from database.repositories.ride_mapping_repository import RideMappingRepository
from database.repositories.wait_time_repository import WaitTimeRepository
from database.repositories.weather_repository import WeatherRepository
from models.orm_job_log import JobStatus
from models.orm_park import Park
from models.ride_record import AggregatedReading, RideRecord
from processor.wait_time_aggregator import WaitTimeAggregator, aggregator as default_aggregator
from utils.config import COLLECT_WEATHER
from utils.logger import (
    logger, log_collection_start, log_collection_complete,
    log_collection_error, log_reconciliation, log_database_error
)


JOB_NAME = 'collect-wait-times'

Observation = Optional[Dict[str, Any]]


class WaitTimeCollector:
    """
    Collects and reconciles wait times (and weather) for every active park.

    Usage:
        ```python
        with get_db_session() as session:
            stats = WaitTimeCollector(session).run()
        ```
    """

    def __init__(
        self,
        session,
        queue_times_client: Optional[QueueTimesClient] = None,
        themeparks_wiki_client: Optional[ThemeParksWikiClient] = None,
        aggregator: Optional[WaitTimeAggregator] = None,
        open_meteo_client: Optional[OpenMeteoClient] = None,
        collect_weather: bool = COLLECT_WEATHER,
        dry_run: bool = False
    ):
        """
        Args:
            session: SQLAlchemy ORM session
            queue_times_client: Source A client (defaults to singleton)
            themeparks_wiki_client: Source B client (defaults to singleton)
            aggregator: Reconciliation engine (defaults to standard weights)
            open_meteo_client: Weather client (defaults to singleton)
            collect_weather: Fetch weather for parks with coordinates
            dry_run: Reconcile and count but do not store readings
        """
        self.session = session
        self.queue_times_client = queue_times_client or get_queue_times_client()
        self.themeparks_wiki_client = themeparks_wiki_client or get_themeparks_wiki_client()
        self.aggregator = aggregator or default_aggregator
        self.collect_weather = collect_weather
        self.open_meteo_client = None
        if collect_weather:
            self.open_meteo_client = open_meteo_client or get_open_meteo_client()
        self.dry_run = dry_run

        self.park_repo = ParkRepository(session)
        self.mapping_repo = RideMappingRepository(session)
        self.wait_time_repo = WaitTimeRepository(session)
        self.weather_repo = WeatherRepository(session)

        self.stats = {
            'parks_targeted': 0,
            'parks_processed': 0,
            'source_a_rides': 0,
            'source_b_rides': 0,
            'readings': 0,
            'stored': 0,
            'high': 0,
            'medium': 0,
            'low': 0,
            'none': 0,
            'weather': 0,
            'errors': 0
        }

    def run(self, park_id: Optional[int] = None) -> Dict[str, int]:
        """
        Collect every active park (or a single park).

        Reading, tier and weather counts only include parks whose rows were
        stored (or, in a dry run, reconciled) without error.

        Args:
            park_id: Restrict the run to this internal park ID

        Returns:
            Run statistics
        """
        start = time.monotonic()
        parks = self._get_parks(park_id)
        ride_mapping = self.mapping_repo.get_mapping()
        recorded_at = datetime.now(timezone.utc).replace(tzinfo=None)

        self.stats['parks_targeted'] = len(parks)
        log_collection_start(len(parks))

        for park in parks:
            try:
                readings, observation = self.collect_park(park, ride_mapping)
                self._store(park, readings, observation, recorded_at)
                self._count(readings, observation)
                self.stats['parks_processed'] += 1
            except Exception as e:
                log_collection_error(e, park_id=park.park_id)
                self.stats['errors'] += 1

        log_collection_complete(
            duration_seconds=round(time.monotonic() - start, 2),
            parks_processed=self.stats['parks_processed'],
            readings_stored=self.stats['stored']
        )
        return dict(self.stats)

    def collect_park(
        self,
        park: Park,
        ride_mapping: Mapping[str, str]
    ) -> Tuple[List[AggregatedReading], Observation]:
        """
        Fetch both providers (and weather) for a park and reconcile the snapshots.

        Args:
            park: Park ORM object
            ride_mapping: Queue-Times ride ID -> ThemeParks.wiki UUID

        Returns:
            (aggregated readings, weather observation or None); readings are
            empty if neither provider returned rides
        """
        source_a, source_b, observation = self._fetch_snapshots(park)
        self.stats['source_a_rides'] += len(source_a)
        self.stats['source_b_rides'] += len(source_b)

        if not source_a and not source_b:
            logger.info(f"No ride data for {park.name}")
            return [], observation

        readings = self.aggregator.reconcile(source_a, source_b, ride_mapping)
        log_reconciliation(park.park_id, len(source_a), len(source_b), summarize_readings(readings))
        return readings, observation

    def _fetch_snapshots(self, park: Park) -> Tuple[List[RideRecord], List[RideRecord], Observation]:
        """Fetch provider snapshots and weather concurrently; a failed fetch yields no data."""
        with ThreadPoolExecutor(max_workers=3) as executor:
            source_a_future = executor.submit(
                self.queue_times_client.get_park_ride_records, park.queue_times_id
            )
            source_b_future = None
            if park.themeparks_wiki_id:
                source_b_future = executor.submit(
                    self.themeparks_wiki_client.get_park_ride_records, park.themeparks_wiki_id
                )
            weather_future = None
            if self._has_weather(park):
                weather_future = executor.submit(
                    self.open_meteo_client.get_current_weather, park.latitude, park.longitude
                )

            source_a = self._snapshot_result(source_a_future, 'Queue-Times', park, [])
            source_b = self._snapshot_result(source_b_future, 'ThemeParks.wiki', park, []) if source_b_future else []
            current = self._snapshot_result(weather_future, 'Open-Meteo', park, None) if weather_future else None

        observation = to_weather_observation(current) if current is not None else None
        return source_a, source_b, observation

    def _has_weather(self, park: Park) -> bool:
        return (
            self.collect_weather
            and park.latitude is not None
            and park.longitude is not None
        )

    def _snapshot_result(self, future, provider: str, park: Park, fallback):
        try:
            return future.result()
        except Exception as e:
            logger.warning(f"{provider} fetch failed for {park.name}: {e}", extra={
                "park_id": park.park_id,
                "provider": provider,
                "error_type": type(e).__name__
            })
            return fallback

    def _store(
        self,
        park: Park,
        readings: List[AggregatedReading],
        observation: Observation,
        recorded_at: datetime
    ) -> None:
        if self.dry_run or (not readings and observation is None):
            return

        # Savepoint per park so one failed insert does not discard other parks
        with self.session.begin_nested():
            stored = 0
            if readings:
                stored = self.wait_time_repo.insert_readings(readings, park.park_id, recorded_at)
            if observation is not None:
                self.weather_repo.insert_observation(park.park_id, observation, recorded_at)

        self.stats['stored'] += stored

    def _count(self, readings: List[AggregatedReading], observation: Observation) -> None:
        summary = summarize_readings(readings)
        for tier in ('high', 'medium', 'low', 'none'):
            self.stats[tier] += summary[tier]
        self.stats['readings'] += summary['readings']
        if observation is not None:
            self.stats['weather'] += 1

    def _get_parks(self, park_id: Optional[int]) -> List[Park]:
        if park_id is None:
            return self.park_repo.get_active()
        park = self.park_repo.get_by_id(park_id)
        if park is None:
            logger.warning(f"Park {park_id} not found")
            return []
        return [park]


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point; returns the process exit code."""
    parser = argparse.ArgumentParser(description='Collect and reconcile ride wait times')
    parser.add_argument('--park-id', type=int, help='Only collect this internal park ID')
    parser.add_argument('--dry-run', action='store_true', help='Reconcile without storing readings')
    parser.add_argument('--skip-weather', action='store_true', help='Do not collect park weather')
    args = parser.parse_args(argv)

    started_at = datetime.now(timezone.utc)

    try:
        with get_db_session() as session:
            collector = WaitTimeCollector(
                session,
                collect_weather=COLLECT_WEATHER and not args.skip_weather,
                dry_run=args.dry_run
            )
            stats = collector.run(park_id=args.park_id)
            JobRunLogRepository(session).record(JOB_NAME, JobStatus.COMPLETED, started_at, details=stats)
    except Exception as e:
        logger.error(f"Fatal error during wait time collection: {e}", exc_info=True)
        try:
            with get_db_session() as session:
                JobRunLogRepository(session).record(
                    JOB_NAME, JobStatus.FAILED, started_at, error_message=str(e)
                )
        except Exception as log_error:
            # Run outcome is already decided; the failed row is best effort
            log_database_error(log_error, f"Failed to record {JOB_NAME} failure")
        return 1

    logger.info(
        f"Collected {stats['readings']} readings from {stats['parks_processed']}/{stats['parks_targeted']} parks "
        f"(high={stats['high']}, medium={stats['medium']}, low={stats['low']}, "
        f"weather={stats['weather']}, errors={stats['errors']})"
    )
    return 0


if __name__ == '__main__':
    sys.exit(main())
