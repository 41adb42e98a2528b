"""
Theme Park Wait Time Reconciler - Queue-Times.com API Client (Source A)
Fetches ride wait times with retry logic using tenacity.
"""

import requests
from typing import Dict, List, Optional
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from collector.status_calculator import validate_wait_time
from models.ride_record import InvalidRideRecordError, RideRecord
from utils.config import QUEUE_TIMES_API_BASE_URL, MAX_RETRY_ATTEMPTS, RETRY_BACKOFF_MULTIPLIER
from utils.logger import logger


class QueueTimesClient:
    """
    Client for Queue-Times.com API with automatic retry logic.

    Implements exponential backoff for transient failures (network, timeouts).
    """

    def __init__(self, base_url: str = QUEUE_TIMES_API_BASE_URL):
        self.base_url = base_url.rstrip('/')
        self.session = requests.Session()
        self.session.headers.update({
            'User-Agent': 'WaitTimeReconciler/1.0 (Data Collection Bot)',
            'Accept': 'application/json'
        })

    @retry(
        stop=stop_after_attempt(MAX_RETRY_ATTEMPTS),
        wait=wait_exponential(multiplier=RETRY_BACKOFF_MULTIPLIER, min=4, max=60),
        retry=retry_if_exception_type((requests.Timeout, requests.ConnectionError))
    )
    def get_park_wait_times(self, park_id: int) -> Dict:
        """
        Fetch current wait times for all rides at a specific park.

        Args:
            park_id: Queue-Times.com park ID

        Returns:
            Dictionary with top-level rides and rides grouped by land

        Raises:
            requests.HTTPError: If API returns error status
            requests.Timeout: If request times out (after retries)
        """
        url = f"{self.base_url}/parks/{park_id}/queue_times.json"
        logger.debug(f"Fetching wait times for park {park_id}")

        response = self.session.get(url, timeout=10)
        response.raise_for_status()

        return response.json()

    def get_park_ride_records(self, park_id: int) -> List[RideRecord]:
        """
        Fetch a park's rides as validated Source A ride records.

        Rides are reported both at the top level and inside lands; the same
        ride id can appear in both places. The last report wins but keeps the
        position of the first.

        Args:
            park_id: Queue-Times.com park ID

        Returns:
            List of RideRecord in provider order
        """
        data = self.get_park_wait_times(park_id)
        return parse_queue_times_rides(data)

    def close(self):
        """Close the HTTP session."""
        self.session.close()


def parse_queue_times_rides(data: Dict) -> List[RideRecord]:
    """
    Flatten a queue_times.json payload into RideRecords.

    Args:
        data: Decoded queue_times.json payload

    Returns:
        De-duplicated list of RideRecord; invalid rides are skipped with a warning
    """
    items = list(data.get('rides') or [])
    for land in data.get('lands') or []:
        items.extend(land.get('rides') or [])

    unique: Dict[str, Dict] = {}
    for item in items:
        if item.get('id') is None:
            continue
        unique[str(item['id'])] = item

    records = []
    for ride_id, item in unique.items():
        raw_wait = item.get('wait_time')
        wait_time = 0 if raw_wait is None else validate_wait_time(raw_wait)
        if wait_time is None:
            logger.warning(f"Skipping Queue-Times ride {ride_id}: invalid wait_time {raw_wait!r}")
            continue

        try:
            records.append(RideRecord(
                id=ride_id,
                name=item.get('name') or '',
                wait_time=wait_time,
                is_open=bool(item.get('is_open', False))
            ))
        except InvalidRideRecordError as e:
            logger.warning(f"Skipping Queue-Times ride {ride_id}: {e}")

    logger.debug(f"Parsed {len(records)} rides from Queue-Times payload")
    return records


# Singleton instance
_client: Optional[QueueTimesClient] = None


def get_queue_times_client() -> QueueTimesClient:
    """
    Get or create singleton Queue-Times API client.

    Returns:
        QueueTimesClient instance
    """
    global _client
    if _client is None:
        _client = QueueTimesClient()
    return _client
