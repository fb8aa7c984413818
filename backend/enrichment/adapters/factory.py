"""Provider selection by configuration string."""

import logging

from backend.enrichment.adapters.amap import AMapGeocoder
from backend.enrichment.adapters.google import GoogleGeocoder, GoogleImageryClient
from backend.enrichment.config import Settings, get_settings
from backend.enrichment.ports import Geocoder

logger = logging.getLogger(__name__)


def create_geocoder(provider: str | None = None, settings: Settings | None = None) -> Geocoder:
    """Factory function to get the geocoder named by ``provider`` or settings.

    Unknown or blank names fall back to AMap.
    """
    settings = settings or get_settings()
    selected = (provider or settings.maps_provider or "amap").strip().lower()

    if selected == "google":
        return GoogleGeocoder(
            api_key=settings.google_maps_api_key,
            timeout_seconds=settings.http_timeout_seconds,
            proxy_url=settings.google_maps_proxy_url,
        )

    if selected != "amap":
        logger.warning(f"Unknown maps provider {selected!r}, using amap")
    return AMapGeocoder(
        api_key=settings.amap_rest_key,
        timeout_seconds=settings.http_timeout_seconds,
    )


def create_imagery_client(settings: Settings | None = None) -> GoogleImageryClient | None:
    """Imagery provider, or None when no credentials are configured."""
    settings = settings or get_settings()
    if not settings.google_maps_api_key:
        return None
    return GoogleImageryClient(
        api_key=settings.google_maps_api_key,
        timeout_seconds=settings.http_timeout_seconds,
        proxy_url=settings.google_maps_proxy_url,
    )
