"""
Theme Park Wait Time Reconciler - Collection Script Unit Tests

Tests WaitTimeCollector with mocked provider clients and an in-memory database:
- Dual-source reconciliation and storage
- Queue-Times-only parks
- Provider failures degrade to single-source readings
- Per-park failures are counted and do not stop the run
- A failed insert rolls back only its own park (savepoint) and its counts
- Weather observations for parks with coordinates
- Dry runs and single-park runs
- main() job log rows and exit codes
"""

from contextlib import contextmanager
from unittest.mock import Mock, patch

import pytest
import requests

from database.repositories.wait_time_repository import WaitTimeRepository
from models import JobRunLog, JobStatus, ParkWeatherReading, WaitTimeReading
from scripts.collect_wait_times import WaitTimeCollector, main, JOB_NAME


def _insert_failing_for_park(failing_park_id):
    """insert_readings replacement that flushes the rows, then fails for one park."""
    real_insert = WaitTimeRepository.insert_readings

    def _insert(repo, readings, park_id, recorded_at):
        inserted = real_insert(repo, readings, park_id, recorded_at)
        if park_id == failing_park_id:
            raise RuntimeError("deadlock detected")
        return inserted

    return _insert


@pytest.fixture
def queue_times_client(source_a_rides):
    client = Mock()
    client.get_park_ride_records.return_value = source_a_rides
    return client


@pytest.fixture
def themeparks_wiki_client(source_b_rides):
    client = Mock()
    client.get_park_ride_records.return_value = source_b_rides
    return client


@pytest.fixture
def open_meteo_client(open_meteo_payload):
    client = Mock()
    client.get_current_weather.return_value = open_meteo_payload['current']
    return client


@pytest.fixture
def seeded_session(db_session, db_helpers, ride_mapping):
    """One dual-source park with the sample ride mapping."""
    db_helpers.park(db_session, park_id=1, name='Magic Kingdom', themeparks_wiki_id='park-uuid')
    for queue_times_id, themeparks_id in ride_mapping.items():
        db_helpers.mapping(db_session, queue_times_id, themeparks_id)
    return db_session


class TestWaitTimeCollector:
    """Test WaitTimeCollector.run()."""

    def test_dual_source_park(self, seeded_session, queue_times_client, themeparks_wiki_client):
        collector = WaitTimeCollector(
            seeded_session,
            queue_times_client=queue_times_client,
            themeparks_wiki_client=themeparks_wiki_client
        )

        stats = collector.run()

        queue_times_client.get_park_ride_records.assert_called_once_with(101)
        themeparks_wiki_client.get_park_ride_records.assert_called_once_with('park-uuid')

        assert stats['parks_targeted'] == 1
        assert stats['parks_processed'] == 1
        assert stats['source_a_rides'] == 3
        assert stats['source_b_rides'] == 3
        assert stats['readings'] == 4
        assert stats['stored'] == 4
        assert stats['high'] == 1
        assert stats['low'] == 3
        assert stats['errors'] == 0

        rows = seeded_session.query(WaitTimeReading).order_by(WaitTimeReading.reading_id).all()
        assert [row.ride_id for row in rows] == ['1', '2', '3', 'uuid-tiki']
        assert rows[0].wait_time == 47
        assert rows[0].source == 'dual'
        assert len({row.recorded_at for row in rows}) == 1

    def test_park_without_themeparks_id(self, db_session, db_helpers, queue_times_client, themeparks_wiki_client):
        db_helpers.park(db_session, park_id=1, themeparks_wiki_id=None)

        stats = WaitTimeCollector(
            db_session,
            queue_times_client=queue_times_client,
            themeparks_wiki_client=themeparks_wiki_client
        ).run()

        themeparks_wiki_client.get_park_ride_records.assert_not_called()
        assert stats['readings'] == 3
        assert {row.source for row in db_session.query(WaitTimeReading).all()} == {'single-source-A'}

    def test_provider_failure_yields_single_source(self, seeded_session, queue_times_client, themeparks_wiki_client):
        themeparks_wiki_client.get_park_ride_records.side_effect = requests.ConnectionError("down")

        stats = WaitTimeCollector(
            seeded_session,
            queue_times_client=queue_times_client,
            themeparks_wiki_client=themeparks_wiki_client
        ).run()

        assert stats['errors'] == 0
        assert stats['source_b_rides'] == 0
        assert stats['readings'] == 3
        assert all(row.confidence_score == 0.5 for row in seeded_session.query(WaitTimeReading).all())

    def test_no_ride_data(self, seeded_session, queue_times_client, themeparks_wiki_client):
        queue_times_client.get_park_ride_records.return_value = []
        themeparks_wiki_client.get_park_ride_records.return_value = []

        stats = WaitTimeCollector(
            seeded_session,
            queue_times_client=queue_times_client,
            themeparks_wiki_client=themeparks_wiki_client
        ).run()

        assert stats['parks_processed'] == 1
        assert stats['readings'] == 0
        assert seeded_session.query(WaitTimeReading).count() == 0

    def test_park_failure_does_not_stop_run(self, db_session, db_helpers, queue_times_client,
                                            themeparks_wiki_client):
        db_helpers.park(db_session, park_id=1, name='Alpha Park', themeparks_wiki_id=None)
        db_helpers.park(db_session, park_id=2, name='Beta Park', themeparks_wiki_id=None)

        aggregator = Mock()
        aggregator.reconcile.side_effect = [RuntimeError("bad snapshot"), []]

        stats = WaitTimeCollector(
            db_session,
            queue_times_client=queue_times_client,
            themeparks_wiki_client=themeparks_wiki_client,
            aggregator=aggregator
        ).run()

        assert stats['parks_targeted'] == 2
        assert stats['parks_processed'] == 1
        assert stats['errors'] == 1

    def test_failed_insert_rolls_back_only_that_park(self, db_session, db_helpers, queue_times_client,
                                                     themeparks_wiki_client):
        """Park 1's rows are flushed then its insert fails; park 2's rows survive."""
        db_helpers.park(db_session, park_id=1, name='Alpha Park', themeparks_wiki_id=None)
        db_helpers.park(db_session, park_id=2, name='Beta Park', themeparks_wiki_id=None)

        with patch.object(WaitTimeRepository, 'insert_readings', _insert_failing_for_park(1)):
            stats = WaitTimeCollector(
                db_session,
                queue_times_client=queue_times_client,
                themeparks_wiki_client=themeparks_wiki_client,
                collect_weather=False
            ).run()

        rows = db_session.query(WaitTimeReading).all()
        assert len(rows) == 3
        assert {row.park_id for row in rows} == {2}

        assert stats['errors'] == 1
        assert stats['parks_processed'] == 1
        assert stats['stored'] == 3

    def test_counts_exclude_rolled_back_park(self, db_session, db_helpers, queue_times_client,
                                             themeparks_wiki_client):
        """Reading and tier counts match the rows that were actually stored."""
        db_helpers.park(db_session, park_id=1, name='Alpha Park', themeparks_wiki_id=None)
        db_helpers.park(db_session, park_id=2, name='Beta Park', themeparks_wiki_id=None)

        with patch.object(WaitTimeRepository, 'insert_readings', _insert_failing_for_park(1)):
            stats = WaitTimeCollector(
                db_session,
                queue_times_client=queue_times_client,
                themeparks_wiki_client=themeparks_wiki_client,
                collect_weather=False
            ).run()

        assert stats['readings'] == stats['stored'] == 3
        assert stats['high'] + stats['medium'] + stats['low'] + stats['none'] == 3
        assert stats['low'] == 3

    def test_dry_run_stores_nothing(self, seeded_session, queue_times_client, themeparks_wiki_client):
        stats = WaitTimeCollector(
            seeded_session,
            queue_times_client=queue_times_client,
            themeparks_wiki_client=themeparks_wiki_client,
            dry_run=True
        ).run()

        assert stats['readings'] == 4
        assert stats['stored'] == 0
        assert seeded_session.query(WaitTimeReading).count() == 0

    def test_single_park(self, seeded_session, db_helpers, queue_times_client, themeparks_wiki_client):
        db_helpers.park(seeded_session, park_id=2, name='Epcot', themeparks_wiki_id='epcot-uuid')

        stats = WaitTimeCollector(
            seeded_session,
            queue_times_client=queue_times_client,
            themeparks_wiki_client=themeparks_wiki_client
        ).run(park_id=2)

        assert stats['parks_targeted'] == 1
        themeparks_wiki_client.get_park_ride_records.assert_called_once_with('epcot-uuid')

    def test_unknown_park(self, seeded_session, queue_times_client, themeparks_wiki_client):
        stats = WaitTimeCollector(
            seeded_session,
            queue_times_client=queue_times_client,
            themeparks_wiki_client=themeparks_wiki_client
        ).run(park_id=999)

        assert stats['parks_targeted'] == 0
        queue_times_client.get_park_ride_records.assert_not_called()


class TestWeatherCollection:
    """Test weather observations collected alongside wait times."""

    @pytest.fixture
    def park_with_coordinates(self, seeded_session, db_helpers):
        return db_helpers.park(seeded_session, park_id=2, name='Epcot', themeparks_wiki_id=None,
                               latitude=28.3747, longitude=-81.5494)

    def _collector(self, session, queue_times_client, themeparks_wiki_client, open_meteo_client, **kwargs):
        return WaitTimeCollector(
            session,
            queue_times_client=queue_times_client,
            themeparks_wiki_client=themeparks_wiki_client,
            open_meteo_client=open_meteo_client,
            **kwargs
        )

    def test_stores_observation_with_run_timestamp(self, seeded_session, park_with_coordinates,
                                                   queue_times_client, themeparks_wiki_client,
                                                   open_meteo_client):
        stats = self._collector(
            seeded_session, queue_times_client, themeparks_wiki_client, open_meteo_client
        ).run(park_id=2)

        open_meteo_client.get_current_weather.assert_called_once_with(28.3747, -81.5494)
        assert stats['weather'] == 1
        assert stats['errors'] == 0

        observation = seeded_session.query(ParkWeatherReading).one()
        assert observation.park_id == 2
        assert observation.temperature == 31.4
        assert observation.feels_like == 36.2
        assert observation.weather_code == 2
        assert observation.weather_type == 'partly_cloudy'
        assert observation.source == 'open_meteo'

        recorded = {row.recorded_at for row in seeded_session.query(WaitTimeReading).filter_by(park_id=2)}
        assert recorded == {observation.recorded_at}

    def test_park_without_coordinates_skips_weather(self, seeded_session, queue_times_client,
                                                    themeparks_wiki_client, open_meteo_client):
        stats = self._collector(
            seeded_session, queue_times_client, themeparks_wiki_client, open_meteo_client
        ).run()

        open_meteo_client.get_current_weather.assert_not_called()
        assert stats['weather'] == 0
        assert seeded_session.query(ParkWeatherReading).count() == 0

    def test_weather_failure_keeps_wait_times(self, seeded_session, park_with_coordinates,
                                              queue_times_client, themeparks_wiki_client,
                                              open_meteo_client):
        open_meteo_client.get_current_weather.side_effect = requests.Timeout("slow")

        stats = self._collector(
            seeded_session, queue_times_client, themeparks_wiki_client, open_meteo_client
        ).run(park_id=2)

        assert stats['errors'] == 0
        assert stats['weather'] == 0
        assert stats['stored'] == 3
        assert seeded_session.query(ParkWeatherReading).count() == 0

    def test_weather_disabled(self, seeded_session, park_with_coordinates, queue_times_client,
                              themeparks_wiki_client, open_meteo_client):
        stats = self._collector(
            seeded_session, queue_times_client, themeparks_wiki_client, open_meteo_client,
            collect_weather=False
        ).run(park_id=2)

        open_meteo_client.get_current_weather.assert_not_called()
        assert stats['weather'] == 0

    def test_weather_stored_without_ride_data(self, seeded_session, park_with_coordinates,
                                              queue_times_client, themeparks_wiki_client,
                                              open_meteo_client):
        queue_times_client.get_park_ride_records.return_value = []

        stats = self._collector(
            seeded_session, queue_times_client, themeparks_wiki_client, open_meteo_client
        ).run(park_id=2)

        assert stats['readings'] == 0
        assert stats['weather'] == 1
        assert seeded_session.query(ParkWeatherReading).count() == 1

    def test_dry_run_counts_but_stores_no_weather(self, seeded_session, park_with_coordinates,
                                                  queue_times_client, themeparks_wiki_client,
                                                  open_meteo_client):
        stats = self._collector(
            seeded_session, queue_times_client, themeparks_wiki_client, open_meteo_client,
            dry_run=True
        ).run(park_id=2)

        assert stats['weather'] == 1
        assert seeded_session.query(ParkWeatherReading).count() == 0

    def test_failed_weather_insert_rolls_back_park(self, seeded_session, park_with_coordinates,
                                                   queue_times_client, themeparks_wiki_client,
                                                   open_meteo_client):
        collector = self._collector(
            seeded_session, queue_times_client, themeparks_wiki_client, open_meteo_client
        )

        with patch.object(collector.weather_repo, 'insert_observation', side_effect=RuntimeError("disk full")):
            stats = collector.run(park_id=2)

        assert stats['errors'] == 1
        assert stats['stored'] == 0
        assert stats['readings'] == 0
        assert seeded_session.query(WaitTimeReading).count() == 0


class TestMain:
    """Test main() entry point."""

    @pytest.fixture
    def patched_session(self, seeded_session):
        @contextmanager
        def _session():
            yield seeded_session
            seeded_session.flush()

        with patch('scripts.collect_wait_times.get_db_session', _session):
            yield seeded_session

    def test_main_records_completed_run(self, patched_session, queue_times_client, themeparks_wiki_client):
        with patch('scripts.collect_wait_times.get_queue_times_client', return_value=queue_times_client), \
                patch('scripts.collect_wait_times.get_themeparks_wiki_client', return_value=themeparks_wiki_client):
            exit_code = main([])

        assert exit_code == 0
        run = patched_session.query(JobRunLog).filter_by(job_name=JOB_NAME).one()
        assert run.status == JobStatus.COMPLETED
        assert run.details['readings'] == 4
        assert run.details['parks_targeted'] == 1

    def test_main_dry_run(self, patched_session, queue_times_client, themeparks_wiki_client):
        with patch('scripts.collect_wait_times.get_queue_times_client', return_value=queue_times_client), \
                patch('scripts.collect_wait_times.get_themeparks_wiki_client', return_value=themeparks_wiki_client):
            exit_code = main(['--dry-run'])

        assert exit_code == 0
        assert patched_session.query(WaitTimeReading).count() == 0

    def test_main_fatal_error_records_failed_run(self, patched_session):
        with patch('scripts.collect_wait_times.WaitTimeCollector') as mock_collector:
            mock_collector.return_value.run.side_effect = RuntimeError("database unavailable")
            exit_code = main([])

        assert exit_code == 1
        run = patched_session.query(JobRunLog).filter_by(job_name=JOB_NAME).one()
        assert run.status == JobStatus.FAILED
        assert run.error_message == "database unavailable"

    def test_main_skip_weather(self, patched_session, db_helpers, queue_times_client, themeparks_wiki_client):
        db_helpers.park(patched_session, park_id=2, name='Epcot', themeparks_wiki_id=None,
                        latitude=28.3747, longitude=-81.5494)

        with patch('scripts.collect_wait_times.get_queue_times_client', return_value=queue_times_client), \
                patch('scripts.collect_wait_times.get_themeparks_wiki_client', return_value=themeparks_wiki_client), \
                patch('scripts.collect_wait_times.get_open_meteo_client') as mock_weather_client:
            exit_code = main(['--skip-weather'])

        assert exit_code == 0
        mock_weather_client.assert_not_called()
        assert patched_session.query(ParkWeatherReading).count() == 0
        run = patched_session.query(JobRunLog).filter_by(job_name=JOB_NAME).one()
        assert run.details['weather'] == 0
