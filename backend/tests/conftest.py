"""
Theme Park Wait Time Reconciler - pytest Configuration and Fixtures

Provides shared test fixtures for:
- Sample provider snapshots (RideRecords for Source A and Source B)
- Sample provider payloads (Queue-Times, ThemeParks.wiki and Open-Meteo JSON)
- In-memory SQLite ORM session with all tables created
- Helper functions for test data insertion
"""

import sys
from datetime import datetime
from pathlib import Path

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Add src to path for imports
backend_src = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(backend_src.absolute()))

from models import Base, Park, ParkWeatherReading, RideMapping, WaitTimeReading, RideRecord  # noqa: E402


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture
def sqlite_engine():
    """
    In-memory SQLite engine with every ORM table created.

    pysqlite's own transaction handling is disabled so SAVEPOINTs
    (session.begin_nested) behave as they do on MySQL.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(sqlite_engine):
    """ORM session bound to the in-memory database."""
    factory = sessionmaker(bind=sqlite_engine, expire_on_commit=False, autoflush=True)
    session = factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


# ============================================================================
# Sample Data Fixtures
# ============================================================================

@pytest.fixture
def source_a_rides():
    """
    Queue-Times.com (Source A) snapshot for a small park.

    Returns:
        List of RideRecord
    """
    return [
        RideRecord(id='1', name='Space Mountain', wait_time=45, is_open=True),
        RideRecord(id='2', name='Haunted Mansion', wait_time=20, is_open=True),
        RideRecord(id='3', name='Jungle Cruise', wait_time=0, is_open=False),
    ]


@pytest.fixture
def source_b_rides():
    """
    ThemeParks.wiki (Source B) snapshot for the same park.

    Returns:
        List of RideRecord (ids are entity UUIDs)
    """
    return [
        RideRecord(id='uuid-space', name='Space Mountain', wait_time=50, is_open=True,
                   single_rider_time=10),
        RideRecord(id='uuid-mansion', name='Haunted Mansion', wait_time=40, is_open=True),
        RideRecord(id='uuid-tiki', name='Enchanted Tiki Room', wait_time=0, is_open=True),
    ]


@pytest.fixture
def ride_mapping():
    """Queue-Times ride ID -> ThemeParks.wiki UUID for the sample park."""
    return {
        '1': 'uuid-space',
        '2': 'uuid-mansion',
    }


@pytest.fixture
def queue_times_payload():
    """
    Sample queue_times.json payload.

    Ride 1 is reported inside a land and again at the top level.
    """
    return {
        'lands': [
            {
                'id': 10,
                'name': 'Tomorrowland',
                'rides': [
                    {'id': 1, 'name': 'Space Mountain', 'is_open': True, 'wait_time': 40},
                    {'id': 4, 'name': 'Astro Orbiter', 'is_open': False, 'wait_time': None},
                ]
            },
            {
                'id': 11,
                'name': 'Liberty Square',
                'rides': [
                    {'id': 2, 'name': 'Haunted Mansion', 'is_open': True, 'wait_time': 20},
                ]
            }
        ],
        'rides': [
            {'id': 1, 'name': 'Space Mountain', 'is_open': True, 'wait_time': 45},
        ]
    }


@pytest.fixture
def themeparks_live_payload():
    """Sample ThemeParks.wiki /entity/{id}/live payload."""
    return {
        'id': 'park-uuid',
        'name': 'Magic Kingdom Park',
        'liveData': [
            {
                'id': 'uuid-space',
                'name': 'Space Mountain',
                'entityType': 'ATTRACTION',
                'status': 'OPERATING',
                'queue': {
                    'STANDBY': {'waitTime': 50},
                    'SINGLE_RIDER': {'waitTime': 10}
                }
            },
            {
                'id': 'uuid-mansion',
                'name': 'Haunted Mansion',
                'entityType': 'ATTRACTION',
                'status': 'DOWN',
                'queue': {'STANDBY': {'waitTime': None}}
            },
            {
                'id': 'uuid-tiki',
                'name': 'Enchanted Tiki Room',
                'entityType': 'SHOW',
                'status': 'OPERATING'
            }
        ]
    }


@pytest.fixture
def open_meteo_payload():
    """Open-Meteo forecast response with a current conditions block."""
    return {
        'latitude': 28.42,
        'longitude': -81.58,
        'timezone': 'GMT',
        'current': {
            'time': '2026-07-04T12:00',
            'interval': 900,
            'temperature_2m': 31.4,
            'relative_humidity_2m': 68,
            'apparent_temperature': 36.2,
            'precipitation': 0.0,
            'weather_code': 2,
            'wind_speed_10m': 11.2,
            'wind_direction_10m': 135,
            'uv_index': 9.1
        }
    }


# ============================================================================
# Helper Functions
# ============================================================================

def insert_park(session, park_id: int = 1, name: str = 'Magic Kingdom',
                themeparks_wiki_id: str = 'park-uuid', is_active: bool = True,
                latitude: float = None, longitude: float = None) -> Park:
    """Insert a park and flush so it is visible to queries."""
    park = Park(
        park_id=park_id,
        queue_times_id=100 + park_id,
        themeparks_wiki_id=themeparks_wiki_id,
        name=name,
        latitude=latitude,
        longitude=longitude,
        is_active=is_active
    )
    session.add(park)
    session.flush()
    return park


def insert_mapping(session, queue_times_ride_id: str, themeparks_wiki_id: str) -> RideMapping:
    """Insert one ride identity mapping row."""
    mapping = RideMapping(queue_times_ride_id=queue_times_ride_id, themeparks_wiki_id=themeparks_wiki_id)
    session.add(mapping)
    session.flush()
    return mapping


def insert_reading(session, park_id: int, recorded_at: datetime, ride_id: str = '1',
                   wait_time: int = 30) -> WaitTimeReading:
    """Insert a single stored reading."""
    reading = WaitTimeReading(
        park_id=park_id,
        ride_id=ride_id,
        ride_name='Test Ride',
        wait_time=wait_time,
        confidence_score=0.5,
        confidence_tier='low',
        is_open=True,
        queue_times_wait=wait_time,
        source='single-source-A',
        recorded_at=recorded_at
    )
    session.add(reading)
    session.flush()
    return reading


def insert_weather(session, park_id: int, recorded_at: datetime, temperature: float = 25.0) -> ParkWeatherReading:
    """Insert a single stored weather observation."""
    observation = ParkWeatherReading(
        park_id=park_id,
        temperature=temperature,
        weather_code=0,
        weather_type='clear',
        recorded_at=recorded_at
    )
    session.add(observation)
    session.flush()
    return observation


@pytest.fixture
def db_helpers():
    """Insertion helpers bundled for tests that build database state."""
    class Helpers:
        park = staticmethod(insert_park)
        mapping = staticmethod(insert_mapping)
        reading = staticmethod(insert_reading)
        weather = staticmethod(insert_weather)
    return Helpers
