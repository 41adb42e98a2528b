"""
Theme Park Wait Time Reconciler - ThemeParks.wiki API Client (Source B)
Fetches live attraction data with retry logic using tenacity.

API Documentation: https://api.themeparks.wiki/docs/v1/
"""

import requests
from typing import Dict, List, Optional
from enum import Enum
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from collector.status_calculator import validate_wait_time
from models.ride_record import InvalidRideRecordError, RideRecord
from utils.cache import TTLCache
from utils.config import (
    THEMEPARKS_WIKI_API_BASE_URL, THEMEPARKS_WIKI_CACHE_SECONDS,
    MAX_RETRY_ATTEMPTS, RETRY_BACKOFF_MULTIPLIER
)
from utils.logger import logger


class RideStatus(Enum):
    """Ride status values from ThemeParks.wiki API."""
    OPERATING = "OPERATING"
    DOWN = "DOWN"
    CLOSED = "CLOSED"
    REFURBISHMENT = "REFURBISHMENT"


# Entity types kept when falling back to the children endpoint
RIDE_ENTITY_TYPES = ("ATTRACTION", "SHOW")


class ThemeParksWikiClient:
    """
    Client for ThemeParks.wiki API with automatic retry logic.

    Implements exponential backoff for transient failures (network, timeouts)
    and caches each park's attraction list for a few minutes.
    """

    def __init__(
        self,
        base_url: str = THEMEPARKS_WIKI_API_BASE_URL,
        cache_seconds: int = THEMEPARKS_WIKI_CACHE_SECONDS
    ):
        self.base_url = base_url.rstrip('/')
        self.session = requests.Session()
        self.session.headers.update({
            'User-Agent': 'WaitTimeReconciler/1.0 (Data Collection Bot)',
            'Accept': 'application/json'
        })
        self.cache = TTLCache(ttl_seconds=cache_seconds)

    @retry(
        stop=stop_after_attempt(MAX_RETRY_ATTEMPTS),
        wait=wait_exponential(multiplier=RETRY_BACKOFF_MULTIPLIER, min=4, max=60),
        retry=retry_if_exception_type((requests.Timeout, requests.ConnectionError))
    )
    def _get_entity(self, entity_id: str, endpoint: str) -> Dict:
        """
        GET /entity/{entity_id}/{endpoint}, retrying timeouts and dropped connections.

        Raises:
            requests.HTTPError: On an error status (not retried)
            requests.Timeout: When every attempt timed out
        """
        logger.debug(f"Fetching ThemeParks.wiki {endpoint} for entity {entity_id}")
        response = self.session.get(f"{self.base_url}/entity/{entity_id}/{endpoint}", timeout=15)
        response.raise_for_status()
        return response.json()

    def get_entity_children(self, entity_id: str) -> List[Dict]:
        """Child entities (attractions, shows, restaurants) of a park or destination."""
        return self._get_entity(entity_id, "children").get("children", [])

    def get_entity_live(self, entity_id: str) -> Dict:
        """Live document for a park; its liveData array holds every attraction."""
        return self._get_entity(entity_id, "live")

    def get_park_attractions(self, park_entity_id: str) -> List[Dict]:
        """
        Get raw live attraction entries for a park.

        Uses the live endpoint; when the park has no live document (HTTP 404)
        falls back to the park's attraction and show children.

        Args:
            park_entity_id: ThemeParks.wiki park UUID

        Returns:
            List of attraction dictionaries

        Raises:
            requests.HTTPError: For errors other than a live-endpoint 404
        """
        return self.cache.get_or_fetch(
            f"waittimes:{park_entity_id}",
            lambda: self._fetch_park_attractions(park_entity_id)
        )

    def _fetch_park_attractions(self, park_entity_id: str) -> List[Dict]:
        try:
            return self.get_entity_live(park_entity_id).get("liveData", [])
        except requests.HTTPError as e:
            if e.response is None or e.response.status_code != 404:
                raise
            logger.info(f"No live data for park {park_entity_id}, falling back to children")
            return [
                child for child in self.get_entity_children(park_entity_id)
                if child.get("entityType") in RIDE_ENTITY_TYPES
            ]

    def get_park_ride_records(self, park_entity_id: str) -> List[RideRecord]:
        """
        Get a park's attractions as validated Source B ride records.

        Args:
            park_entity_id: ThemeParks.wiki park UUID

        Returns:
            List of RideRecord in provider order
        """
        records = []
        for attraction in self.get_park_attractions(park_entity_id):
            record = to_ride_record(attraction)
            if record is not None:
                records.append(record)

        logger.debug(f"Parsed {len(records)} rides from ThemeParks.wiki live data")
        return records

    def clear_cache(self):
        """Drop all cached attraction lists."""
        self.cache.invalidate()

    def close(self):
        """Close the HTTP session."""
        self.session.close()


def _queue_wait(attraction: Dict, queue_type: str) -> Optional[int]:
    queue = attraction.get("queue") or {}
    return validate_wait_time((queue.get(queue_type) or {}).get("waitTime"))


def to_ride_record(attraction: Dict) -> Optional[RideRecord]:
    """
    Convert a ThemeParks.wiki attraction entry into a RideRecord.

    Args:
        attraction: Entry from liveData or children

    Returns:
        RideRecord, or None when the entry carries no usable data
        (no standby or single rider wait and not operating) or no id

    Examples:
        >>> to_ride_record({"id": "abc", "name": "Pirates", "status": "OPERATING",
        ...                 "queue": {"STANDBY": {"waitTime": 15}}}).wait_time
        15
    """
    standby = _queue_wait(attraction, "STANDBY")
    single_rider = _queue_wait(attraction, "SINGLE_RIDER")
    is_operating = attraction.get("status") == RideStatus.OPERATING.value

    if standby is None and single_rider is None and not is_operating:
        return None

    if not attraction.get("id"):
        logger.warning(f"Skipping ThemeParks.wiki entry without id: {attraction.get('name')!r}")
        return None

    try:
        return RideRecord(
            id=attraction["id"],
            name=attraction.get("name") or "",
            wait_time=standby or 0,
            is_open=is_operating,
            single_rider_time=single_rider or None
        )
    except InvalidRideRecordError as e:
        logger.warning(f"Skipping ThemeParks.wiki ride {attraction['id']}: {e}")
        return None


# Singleton instance
_client: Optional[ThemeParksWikiClient] = None


def get_themeparks_wiki_client() -> ThemeParksWikiClient:
    """
    Get or create singleton ThemeParks.wiki API client.

    Returns:
        ThemeParksWikiClient instance
    """
    global _client
    if _client is None:
        _client = ThemeParksWikiClient()
    return _client
