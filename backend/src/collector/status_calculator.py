"""
Theme Park Wait Time Reconciler - Provider Value Sanitizing
Validates raw wait values before they become RideRecords.
"""

from typing import Any, Optional


def validate_wait_time(wait_time: Any) -> Optional[int]:
    """
    Validate and sanitize a raw wait time value from a provider payload.

    Args:
        wait_time: Raw wait time from API

    Returns:
        Validated wait time or None if missing or invalid

    Examples:
        >>> validate_wait_time(45)
        45
        >>> validate_wait_time(-1)  # Negative values invalid
        >>> validate_wait_time(12.0)  # Whole floats are accepted
        12
        >>> validate_wait_time("15")
        >>> validate_wait_time(None)
    """
    if wait_time is None or isinstance(wait_time, bool):
        return None

    if isinstance(wait_time, float):
        if not wait_time.is_integer():
            return None
        wait_time = int(wait_time)

    if not isinstance(wait_time, int):
        return None

    # Negative wait times are invalid
    if wait_time < 0:
        return None

    # Very large wait times are suspicious but possible; leave them to reporting
    return wait_time
