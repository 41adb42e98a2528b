"""
Theme Park Wait Time Reconciler - Multi-Source Wait Time Aggregator
Reconciles Queue-Times.com (Source A) and ThemeParks.wiki (Source B) ride
snapshots into one reading per ride with an agreement-based confidence score.

The aggregator is pure: no I/O, no logging, no state kept between calls.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Mapping, Optional, Set

from models.ride_record import AggregatedReading, RideRecord


# Blend weights for rides reported by both sources. Source A gets a slight
# edge based on its historical reliability.
SOURCE_A_WEIGHT = Decimal('0.55')
SOURCE_B_WEIGHT = Decimal('0.45')

# (max percent difference, confidence) pairs, checked in order
AGREEMENT_BREAKPOINTS = (
    (10, 1.0),
    (20, 0.9),
    (30, 0.8),
    (50, 0.6),
)
POOR_AGREEMENT_CONFIDENCE = 0.4
SINGLE_SOURCE_CONFIDENCE = 0.5
NO_DATA_CONFIDENCE = 0.0
# Only reachable if a negative wait slipped past RideRecord validation
ZERO_AVERAGE_DISAGREEMENT_CONFIDENCE = 0.3


@dataclass(frozen=True)
class AggregateResult:
    """Reconciled wait value for one ride and the confidence behind it."""
    value: int
    confidence: float


def round_half_up(value: Decimal) -> int:
    """
    Round to the nearest integer, halves away from zero.

    Matches JavaScript Math.round for the non-negative wait domain, so
    stored values agree with readings produced by earlier collectors.

    Examples:
        >>> round_half_up(Decimal('47.25'))
        47
        >>> round_half_up(Decimal('4.50'))
        5
    """
    return int(value.quantize(Decimal('1'), rounding=ROUND_HALF_UP))


class WaitTimeAggregator:
    """
    Combines wait times from two independent providers.

    Usage:
        ```python
        aggregator = WaitTimeAggregator()
        readings = aggregator.reconcile(queue_times_rides, themeparks_rides, ride_mapping)
        ```
    """

    def __init__(
        self,
        source_a_weight: Decimal = SOURCE_A_WEIGHT,
        source_b_weight: Decimal = SOURCE_B_WEIGHT
    ):
        """
        Args:
            source_a_weight: Blend weight for Source A (Queue-Times.com)
            source_b_weight: Blend weight for Source B (ThemeParks.wiki)
        """
        self.source_a_weight = Decimal(str(source_a_weight))
        self.source_b_weight = Decimal(str(source_b_weight))

    def calculate_confidence(self, value_a: Optional[int], value_b: Optional[int]) -> float:
        """
        Score how much the two sources agree on a ride's wait time.

        Args:
            value_a: Source A wait in minutes, or None if not reported
            value_b: Source B wait in minutes, or None if not reported

        Returns:
            0.0 with no data, 0.5 with one source, 0.4-1.0 by percent
            difference when both sources report

        Examples:
            >>> WaitTimeAggregator().calculate_confidence(45, 50)
            0.9
            >>> WaitTimeAggregator().calculate_confidence(None, 30)
            0.5
            >>> WaitTimeAggregator().calculate_confidence(0, 0)
            1.0
        """
        if value_a is None and value_b is None:
            return NO_DATA_CONFIDENCE

        if value_a is None or value_b is None:
            return SINGLE_SOURCE_CONFIDENCE

        # Both sources agreeing the ride is idle counts as full agreement
        if value_a == 0 and value_b == 0:
            return 1.0

        difference = abs(value_a - value_b)
        average = (value_a + value_b) / 2

        if average == 0:
            return 1.0 if difference == 0 else ZERO_AVERAGE_DISAGREEMENT_CONFIDENCE

        percent_diff = difference / average * 100

        for max_percent, confidence in AGREEMENT_BREAKPOINTS:
            if percent_diff <= max_percent:
                return confidence
        return POOR_AGREEMENT_CONFIDENCE

    def aggregate(self, value_a: Optional[int], value_b: Optional[int]) -> AggregateResult:
        """
        Derive the single reported wait time from two optional source values.

        Args:
            value_a: Source A wait in minutes, or None
            value_b: Source B wait in minutes, or None

        Returns:
            AggregateResult with the reconciled value and its confidence

        Examples:
            >>> WaitTimeAggregator().aggregate(45, 50)
            AggregateResult(value=47, confidence=0.9)
        """
        confidence = self.calculate_confidence(value_a, value_b)

        if value_a is None and value_b is None:
            return AggregateResult(value=0, confidence=confidence)
        if value_a is None:
            return AggregateResult(value=value_b, confidence=confidence)
        if value_b is None:
            return AggregateResult(value=value_a, confidence=confidence)

        blended = Decimal(value_a) * self.source_a_weight + Decimal(value_b) * self.source_b_weight
        return AggregateResult(value=round_half_up(blended), confidence=confidence)

    def reconcile(
        self,
        source_a: Iterable[RideRecord],
        source_b: Iterable[RideRecord],
        ride_mapping: Optional[Mapping[str, str]] = None
    ) -> List[AggregatedReading]:
        """
        Produce one reading per distinct ride across both snapshots.

        Source A rides come first in Source A order, matched to Source B
        through ride_mapping. Source B rides that no Source A ride claimed
        follow in Source B order. A mapped id missing from the Source B
        snapshot counts as unmatched.

        Args:
            source_a: Queue-Times.com ride records
            source_b: ThemeParks.wiki ride records
            ride_mapping: Source A ride id -> Source B ride id

        Returns:
            List of AggregatedReading (empty when both snapshots are empty)
        """
        source_b = list(source_b)
        ride_mapping = ride_mapping or {}

        # First occurrence wins when a Source B id repeats
        source_b_by_id: Dict[str, RideRecord] = {}
        for ride in source_b:
            source_b_by_id.setdefault(ride.id, ride)

        readings: List[AggregatedReading] = []
        # Ids are provider-local, so each source keeps its own seen set
        seen_a: Set[str] = set()
        seen_b: Set[str] = set()

        for ride in source_a:
            if ride.id in seen_a:
                continue

            matched_id = ride_mapping.get(ride.id)
            matched = source_b_by_id.get(matched_id) if matched_id is not None else None
            matched_wait = matched.wait_time if matched else None

            result = self.aggregate(ride.wait_time, matched_wait)

            readings.append(AggregatedReading(
                ride_id=ride.id,
                ride_name=ride.name,
                source_a_wait=ride.wait_time,
                source_b_wait=matched_wait,
                aggregated_wait=result.value,
                confidence_score=result.confidence,
                is_open=ride.is_open or (matched.is_open if matched else False),
                single_rider_time=matched.single_rider_time if matched else None
            ))

            seen_a.add(ride.id)
            if matched_id is not None:
                seen_b.add(matched_id)

        for ride in source_b:
            if ride.id in seen_b:
                continue
            seen_b.add(ride.id)

            result = self.aggregate(None, ride.wait_time)

            readings.append(AggregatedReading(
                ride_id=ride.id,
                ride_name=ride.name,
                source_b_wait=ride.wait_time,
                aggregated_wait=result.value,
                confidence_score=result.confidence,
                is_open=ride.is_open,
                single_rider_time=ride.single_rider_time
            ))

        return readings


# Default instance with the standard weights
aggregator = WaitTimeAggregator()


def score(value_a: Optional[int] = None, value_b: Optional[int] = None) -> float:
    """Confidence score for one ride using the default weights."""
    return aggregator.calculate_confidence(value_a, value_b)


def aggregate(value_a: Optional[int] = None, value_b: Optional[int] = None) -> AggregateResult:
    """Reconciled wait value and confidence using the default weights."""
    return aggregator.aggregate(value_a, value_b)


def reconcile(
    source_a: Iterable[RideRecord],
    source_b: Iterable[RideRecord],
    ride_mapping: Optional[Mapping[str, str]] = None
) -> List[AggregatedReading]:
    """Reconcile two ride snapshots using the default weights."""
    return aggregator.reconcile(source_a, source_b, ride_mapping)
