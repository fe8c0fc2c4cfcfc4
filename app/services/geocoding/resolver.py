import logging
from typing import Optional

from app.core.settings import settings
from .base import GeocodingProvider, NoOpProvider
from .nominatim_provider import NominatimProvider

logger = logging.getLogger(__name__)

_provider_instance: Optional[GeocodingProvider] = None


def get_geocoding_provider() -> GeocodingProvider:
    """
    Resolve the active geocoding provider based on settings.

    Rules:
    - REVERSE_GEOCODING_ENABLED=false: no-op provider (address stays empty).
    - Otherwise: Nominatim (no API key required).
    - Never raises upstream exceptions.
    """
    global _provider_instance
    if _provider_instance is not None:
        return _provider_instance

    if not settings.REVERSE_GEOCODING_ENABLED:
        _provider_instance = NoOpProvider()
        logger.info("Geocoding provider initialized: noop (disabled)")
        return _provider_instance

    try:
        _provider_instance = NominatimProvider(user_agent=f"{settings.APP_NAME.lower().replace(' ', '-')}/{settings.APP_VERSION}")
        logger.info("Geocoding provider initialized: nominatim")
    except Exception as e:
        logger.error(f"Failed to initialize NominatimProvider: {e}. Using no-op provider.")
        _provider_instance = NoOpProvider()

    return _provider_instance


def set_geocoding_provider(provider: Optional[GeocodingProvider]) -> None:
    global _provider_instance
    _provider_instance = provider
