from .base import GeocodingProvider
from .resolver import get_geocoding_provider, set_geocoding_provider
