"""
Theme Park Wait Time Reconciler - Ride Record and Aggregated Reading Models
Per-source ride reports and the reconciled reading produced from them.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional


SOURCE_DUAL = 'dual'
SOURCE_SINGLE_A = 'single-source-A'
SOURCE_SINGLE_B = 'single-source-B'
SOURCE_NONE = 'none'


class InvalidRideRecordError(ValueError):
    """Raised when a provider ride report fails boundary validation."""
    pass


def _check_minutes(field_name: str, value: Any, ride_id: str) -> None:
    # bool is an int subclass; True must not pass as a 1-minute wait
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidRideRecordError(
            f"Ride {ride_id!r}: {field_name} must be an integer, got {value!r}"
        )
    if value < 0:
        raise InvalidRideRecordError(
            f"Ride {ride_id!r}: {field_name} must be non-negative, got {value}"
        )


@dataclass(frozen=True)
class RideRecord:
    """
    One provider's report of a single ride.

    Identity is provider-local: equal ids only mean the same ride within
    the same source.

    Attributes:
        id: Provider-local ride identifier
        name: Ride name as reported by the provider
        wait_time: Standby wait in minutes (>= 0)
        is_open: Provider's open/closed flag
        single_rider_time: Single rider wait in minutes, if the provider reports one
    """
    id: str
    name: str
    wait_time: int
    is_open: bool
    single_rider_time: Optional[int] = None

    def __post_init__(self):
        if not isinstance(self.id, str):
            object.__setattr__(self, 'id', str(self.id))
        _check_minutes('wait_time', self.wait_time, self.id)
        if self.single_rider_time is not None:
            _check_minutes('single_rider_time', self.single_rider_time, self.id)
        object.__setattr__(self, 'is_open', bool(self.is_open))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RideRecord':
        """
        Build a RideRecord from an already-decoded provider dictionary.

        Args:
            data: Dictionary with id, name, wait_time, is_open and
                  optionally single_rider_time

        Returns:
            Validated RideRecord

        Raises:
            InvalidRideRecordError: If a required field is missing or invalid
        """
        if data.get('id') is None:
            raise InvalidRideRecordError(f"Ride record has no id: {data!r}")
        if 'wait_time' not in data:
            raise InvalidRideRecordError(f"Ride {data['id']!r} has no wait_time")

        return cls(
            id=str(data['id']),
            name=data.get('name') or '',
            wait_time=data['wait_time'],
            is_open=bool(data.get('is_open', False)),
            single_rider_time=data.get('single_rider_time')
        )


@dataclass(frozen=True)
class AggregatedReading:
    """
    Reconciled wait time for one ride.

    Created fresh on every reconciliation call and never mutated.

    Attributes:
        ride_id: Source A id when the ride was seen there, else Source B id
        ride_name: Ride name from the source that drove the reading
        source_a_wait: Source A wait, when Source A reported the ride
        source_b_wait: Source B wait, when Source B reported the ride
        aggregated_wait: Single reconciled wait in minutes
        confidence_score: Agreement-derived trust in [0.0, 1.0]
        is_open: True if either source reports the ride open
        single_rider_time: Passed through from Source B only
    """
    ride_id: str
    ride_name: str
    aggregated_wait: int
    confidence_score: float
    is_open: bool
    source_a_wait: Optional[int] = None
    source_b_wait: Optional[int] = None
    single_rider_time: Optional[int] = None

    @property
    def source(self) -> str:
        """
        Storage source tag derived from which source waits are populated.

        Returns:
            'dual', 'single-source-A', 'single-source-B' or 'none'
        """
        if self.source_a_wait is not None and self.source_b_wait is not None:
            return SOURCE_DUAL
        if self.source_a_wait is not None:
            return SOURCE_SINGLE_A
        if self.source_b_wait is not None:
            return SOURCE_SINGLE_B
        return SOURCE_NONE

    def to_dict(self) -> dict:
        """
        Convert reading to dictionary for sinks and reports.

        Returns:
            Dictionary representation of the reading
        """
        return {
            "ride_id": self.ride_id,
            "ride_name": self.ride_name,
            "source_a_wait": self.source_a_wait,
            "source_b_wait": self.source_b_wait,
            "aggregated_wait": self.aggregated_wait,
            "confidence_score": self.confidence_score,
            "is_open": self.is_open,
            "single_rider_time": self.single_rider_time,
            "source": self.source
        }
