import logging
from typing import Any, Dict

import requests

from .base import GeocodingProvider, empty_result

logger = logging.getLogger(__name__)


class NominatimProvider(GeocodingProvider):
    """
    OpenStreetMap Nominatim reverse-geocoding provider.

    - No API key required.
    - Uses a strict timeout (<= 3 seconds).
    - Sends a User-Agent header as required by the Nominatim usage policy.
    - Never raises upstream exceptions; returns empty fields on failure.
    """

    BASE_URL = "https://nominatim.openstreetmap.org/reverse"

    def __init__(self, user_agent: str = "traffic-buddy/1.0", timeout: float = 3.0):
        self.user_agent = user_agent
        self.timeout = timeout

    def reverse_geocode(self, latitude: float, longitude: float) -> Dict[str, str]:
        try:
            params = {
                "lat": latitude,
                "lon": longitude,
                "format": "json",
                "addressdetails": 1,
            }
            headers = {"User-Agent": self.user_agent}
            resp = requests.get(self.BASE_URL, params=params, headers=headers, timeout=self.timeout)
            if resp.status_code != 200:
                logger.warning(f"Nominatim reverse-geocode failed with status {resp.status_code}")
                return empty_result("nominatim")

            data: Dict[str, Any] = resp.json()
            address = data.get("address") or {}

            return {
                "formatted_address": data.get("display_name"),
                "locality": (
                    address.get("suburb")
                    or address.get("neighbourhood")
                    or address.get("quarter")
                    or address.get("road")
                ),
                "city": address.get("city") or address.get("town") or address.get("village"),
                "provider": "nominatim",
            }
        except Exception as e:
            # A missing address never blocks a report
            logger.warning(f"Nominatim reverse-geocode error: {e}")
            return empty_result("nominatim")
