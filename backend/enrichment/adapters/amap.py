"""AMap (Gaode) place-text geocoder - primary provider for domestic trips."""

import logging
from typing import Any

import httpx

from backend.enrichment.adapters.matching import compute_match_confidence, normalize_location_text
from backend.enrichment.models.places import Place, to_coordinate

logger = logging.getLogger(__name__)

AMAP_TEXT_ENDPOINT = "https://restapi.amap.com/v5/place/text"
MATCH_CONFIDENCE_THRESHOLD = 0.75


def _poi_matches_destination(
    destination: str | None, poi: dict[str, Any], query_hint: str | None
) -> bool:
    """Keep POIs whose administrative names overlap the destination or query."""
    normalized_destination = normalize_location_text(destination)
    normalized_hint = normalize_location_text(query_hint)

    candidates = [
        normalized
        for field in ("cityname", "adname", "district", "address", "name")
        if (normalized := normalize_location_text(_field(poi, field)))
    ]
    if not candidates:
        return False

    if normalized_destination and any(
        normalized_destination in c or c in normalized_destination for c in candidates
    ):
        return True

    if normalized_hint:
        return any(normalized_hint in c or c in normalized_hint for c in candidates)

    return not normalized_destination


def _poi_confidence(reference: str, poi: dict[str, Any]) -> float:
    return max(
        (
            compute_match_confidence(reference, _field(poi, field))
            for field in ("name", "address", "adname", "district")
        ),
        default=0.0,
    )


class AMapGeocoder:
    """Geocoder backed by the AMap v5 place-text search API."""

    provider = "amap"

    def __init__(
        self,
        api_key: str | None,
        client: httpx.AsyncClient | None = None,
        timeout_seconds: float = 4.0,
    ) -> None:
        """Initialize geocoder.

        Args:
            api_key: AMap REST key; lookups are skipped without one
            client: Optional httpx client (for testing with mocks)
            timeout_seconds: Per-request timeout for self-managed clients
        """
        self._api_key = api_key
        self._client = client
        self._timeout_seconds = timeout_seconds
        self._warned_missing_key = False

    async def geocode(
        self,
        query: str,
        destination_hint: str | None = None,
        *,
        reference_name: str | None = None,
        min_confidence: float | None = None,
    ) -> Place | None:
        """Search POIs and return the best destination-consistent match.

        Provider errors and weak matches return None.
        """
        query = query.strip()
        if not query:
            return None

        if not self._api_key:
            if not self._warned_missing_key:
                logger.warning("Missing AMap REST key, skipping geocode lookups")
                self._warned_missing_key = True
            return None

        params: dict[str, str] = {
            "key": self._api_key,
            "keywords": query,
            "page_size": "5",
            "page_num": "1",
            "output": "JSON",
            "sortrule": "weight",
        }
        if destination_hint:
            params["region"] = destination_hint
            params["city"] = destination_hint

        close_client = False
        client = self._client
        if client is None:
            client = httpx.AsyncClient(timeout=self._timeout_seconds)
            close_client = True

        try:
            response = await client.get(AMAP_TEXT_ENDPOINT, params=params)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"AMap geocode request failed for {query!r}: {e}")
            return None
        finally:
            if close_client:
                await client.aclose()

        if not isinstance(data, dict):
            return None
        pois = data.get("pois")
        if data.get("status") != "1" or not isinstance(pois, list) or not pois:
            return None

        reference = reference_name or query
        filtered = [
            poi
            for poi in pois
            if isinstance(poi, dict) and _poi_matches_destination(destination_hint, poi, reference)
        ]
        if not filtered:
            return None

        scored = sorted(
            ((poi, _poi_confidence(reference, poi)) for poi in filtered),
            key=lambda item: item[1],
            reverse=True,
        )
        best, confidence = scored[0]
        threshold = MATCH_CONFIDENCE_THRESHOLD if min_confidence is None else min_confidence
        if confidence < threshold:
            return None

        # AMap encodes location as "lng,lat"
        lng_str, _, lat_str = (_field(best, "location") or "").partition(",")
        coordinate = to_coordinate(_to_float(lat_str), _to_float(lng_str))

        return Place(
            name=_field(best, "name") or query,
            address=_field(best, "address") or _field(best, "adname") or _field(best, "district"),
            city=_field(best, "cityname"),
            lat=coordinate.lat if coordinate else None,
            lng=coordinate.lng if coordinate else None,
            provider=self.provider,
            confidence=confidence,
            raw=best,
        )


def _field(poi: dict[str, Any], name: str) -> str | None:
    """AMap returns [] for empty fields; only strings count."""
    value = poi.get(name)
    return value if isinstance(value, str) and value else None


def _to_float(value: str) -> float | None:
    try:
        return float(value)
    except ValueError:
        return None
