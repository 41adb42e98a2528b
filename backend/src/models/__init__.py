# Theme Park Wait Time Reconciler - Models Package

# Import all ORM models to register them with SQLAlchemy's declarative base
# IMPORTANT: Use relative imports to avoid duplicate module loading issues
from .base import Base, create_session, get_session_factory
from .orm_park import Park
from .orm_ride_mapping import RideMapping
from .orm_wait_time import WaitTimeReading
from .orm_weather import ParkWeatherReading
from .orm_job_log import JobRunLog, JobStatus
from .ride_record import RideRecord, AggregatedReading, InvalidRideRecordError

__all__ = [
    'Base',
    'create_session',
    'get_session_factory',
    'Park',
    'RideMapping',
    'WaitTimeReading',
    'ParkWeatherReading',
    'JobRunLog',
    'JobStatus',
    'RideRecord',
    'AggregatedReading',
    'InvalidRideRecordError',
]
