"""
Theme Park Wait Time Reconciler - Confidence Tier Classifier
Buckets a reading's confidence score into a display tier.
"""

from dataclasses import dataclass
from typing import Dict, Iterable

from models.ride_record import (
    AggregatedReading, SOURCE_DUAL, SOURCE_SINGLE_A, SOURCE_SINGLE_B
)


TIER_HIGH = 'high'
TIER_MEDIUM = 'medium'
TIER_LOW = 'low'
TIER_NONE = 'none'

HIGH_CONFIDENCE_THRESHOLD = 0.8
MEDIUM_CONFIDENCE_THRESHOLD = 0.6


@dataclass(frozen=True)
class ConfidenceTier:
    """Display tier for a confidence score."""
    tier: str
    description: str
    indicator: str


HIGH = ConfidenceTier(TIER_HIGH, 'High confidence - multiple sources agree', '✓')
MEDIUM = ConfidenceTier(TIER_MEDIUM, 'Medium confidence - sources partially agree', '?')
LOW = ConfidenceTier(TIER_LOW, 'Low confidence - limited or conflicting data', '⚠')
NONE = ConfidenceTier(TIER_NONE, 'No data available', '✗')


def classify(score: float) -> ConfidenceTier:
    """
    Map a confidence score to its display tier.

    - score >= 0.8 -> high
    - 0.6 <= score < 0.8 -> medium
    - 0 < score < 0.6 -> low
    - score == 0 -> none

    Args:
        score: Confidence score in [0.0, 1.0]

    Returns:
        ConfidenceTier with tier name, description and indicator

    Examples:
        >>> classify(0.8).tier
        'high'
        >>> classify(0.5).tier
        'low'
        >>> classify(0.0).tier
        'none'
    """
    if score >= HIGH_CONFIDENCE_THRESHOLD:
        return HIGH
    if score >= MEDIUM_CONFIDENCE_THRESHOLD:
        return MEDIUM
    if score > 0:
        return LOW
    return NONE


def summarize_readings(readings: Iterable[AggregatedReading]) -> Dict[str, int]:
    """
    Count readings per source tag and per confidence tier.

    Args:
        readings: Aggregated readings from one reconciliation pass

    Returns:
        Dictionary of counts keyed by 'readings', source tag and tier
    """
    counts = {
        'readings': 0,
        'dual': 0,
        'single_source_a': 0,
        'single_source_b': 0,
        TIER_HIGH: 0,
        TIER_MEDIUM: 0,
        TIER_LOW: 0,
        TIER_NONE: 0,
    }
    source_keys = {
        SOURCE_DUAL: 'dual',
        SOURCE_SINGLE_A: 'single_source_a',
        SOURCE_SINGLE_B: 'single_source_b',
    }

    for reading in readings:
        counts['readings'] += 1
        source_key = source_keys.get(reading.source)
        if source_key:
            counts[source_key] += 1
        counts[classify(reading.confidence_score).tier] += 1

    return counts
