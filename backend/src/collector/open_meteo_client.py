"""
Theme Park Wait Time Reconciler - Open-Meteo Weather API Client
Fetches current conditions at a park's coordinates with retry logic using tenacity.

API Documentation: https://open-meteo.com/en/docs
"""

import requests
from typing import Any, Dict, Optional
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from utils.config import OPEN_METEO_API_BASE_URL, MAX_RETRY_ATTEMPTS, RETRY_BACKOFF_MULTIPLIER
from utils.logger import logger


# Current-condition variables requested from the forecast endpoint
CURRENT_VARIABLES = [
    "temperature_2m",
    "relative_humidity_2m",
    "apparent_temperature",
    "precipitation",
    "weather_code",
    "wind_speed_10m",
    "wind_direction_10m",
    "uv_index",
]

# WMO weather interpretation codes
WEATHER_TYPES = {
    0: 'clear',
    1: 'mostly_clear',
    2: 'partly_cloudy',
    3: 'overcast',
    45: 'foggy',
    48: 'rime_fog',
    51: 'light_drizzle',
    53: 'drizzle',
    55: 'heavy_drizzle',
    61: 'light_rain',
    63: 'rain',
    65: 'heavy_rain',
    71: 'light_snow',
    73: 'snow',
    75: 'heavy_snow',
    77: 'snow_grains',
    80: 'light_showers',
    81: 'showers',
    82: 'heavy_showers',
    85: 'light_snow_showers',
    86: 'snow_showers',
    95: 'thunderstorm',
    96: 'thunderstorm_hail',
    99: 'severe_thunderstorm',
}


def weather_type(code: Optional[int]) -> str:
    """
    Map a WMO weather code to a short label.

    Examples:
        >>> weather_type(63)
        'rain'
        >>> weather_type(None)
        'unknown'
    """
    return WEATHER_TYPES.get(code, 'unknown')


class OpenMeteoClient:
    """
    Client for the Open-Meteo forecast API with automatic retry logic.

    Values are requested in metric units (Celsius, km/h, mm).
    """

    def __init__(self, base_url: str = OPEN_METEO_API_BASE_URL):
        self.base_url = base_url.rstrip('/')
        self.session = requests.Session()
        self.session.headers.update({
            'User-Agent': 'WaitTimeReconciler/1.0 (weather-collection)',
            'Accept': 'application/json'
        })

    @retry(
        stop=stop_after_attempt(MAX_RETRY_ATTEMPTS),
        wait=wait_exponential(multiplier=RETRY_BACKOFF_MULTIPLIER, min=4, max=60),
        retry=retry_if_exception_type((requests.Timeout, requests.ConnectionError))
    )
    def get_current_weather(self, latitude: float, longitude: float) -> Dict[str, Any]:
        """
        Fetch current conditions for a coordinate pair.

        Args:
            latitude: Latitude in decimal degrees
            longitude: Longitude in decimal degrees

        Returns:
            The 'current' block of the API response

        Raises:
            requests.HTTPError: On an error status (not retried)
            ValueError: When the response has no 'current' block
        """
        params = {
            'latitude': latitude,
            'longitude': longitude,
            'current': ','.join(CURRENT_VARIABLES),
            'timezone': 'UTC',
            'forecast_days': 1,
        }

        logger.debug(f"Fetching Open-Meteo weather for ({latitude}, {longitude})")
        response = self.session.get(f"{self.base_url}/forecast", params=params, timeout=15)
        response.raise_for_status()

        data = response.json()
        if not self._validate_response(data):
            raise ValueError(f"Invalid Open-Meteo response for ({latitude}, {longitude})")

        return data['current']

    def _validate_response(self, data: Any) -> bool:
        if not isinstance(data, dict):
            logger.error("Open-Meteo response is not a dictionary", extra={'type': type(data).__name__})
            return False

        if not isinstance(data.get('current'), dict):
            logger.error("Open-Meteo response missing 'current' block")
            return False

        return True

    def close(self):
        """Close the HTTP session."""
        self.session.close()


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def to_weather_observation(current: Dict[str, Any]) -> Dict[str, Any]:
    """
    Convert an Open-Meteo 'current' block into weather row values.

    Missing or non-numeric fields become None.

    Args:
        current: The 'current' block from get_current_weather()

    Returns:
        Dictionary keyed by ParkWeatherReading column names
    """
    code = current.get('weather_code')
    code = int(code) if _number(code) is not None else None

    return {
        'temperature': _number(current.get('temperature_2m')),
        'feels_like': _number(current.get('apparent_temperature')),
        'humidity': _number(current.get('relative_humidity_2m')),
        'precipitation': _number(current.get('precipitation')),
        'wind_speed': _number(current.get('wind_speed_10m')),
        'wind_direction': _number(current.get('wind_direction_10m')),
        'uv_index': _number(current.get('uv_index')),
        'weather_code': code,
        'weather_type': weather_type(code),
    }


# Singleton instance
_client: Optional[OpenMeteoClient] = None


def get_open_meteo_client() -> OpenMeteoClient:
    """
    Get or create singleton Open-Meteo API client.

    Returns:
        OpenMeteoClient instance
    """
    global _client
    if _client is None:
        _client = OpenMeteoClient()
    return _client
