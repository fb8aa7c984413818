"""Google Maps adapters: forward geocoding, Street View and Places photos."""

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from backend.enrichment.adapters.matching import normalize_text, token_overlap_score
from backend.enrichment.models.places import Place, to_coordinate
from backend.enrichment.utils.geo import language_for

logger = logging.getLogger(__name__)

GEOCODE_ENDPOINT = "https://maps.googleapis.com/maps/api/geocode/json"
STREET_VIEW_METADATA_ENDPOINT = "https://maps.googleapis.com/maps/api/streetview/metadata"
STREET_VIEW_IMAGE_ENDPOINT = "https://maps.googleapis.com/maps/api/streetview"
FIND_PLACE_ENDPOINT = "https://maps.googleapis.com/maps/api/place/findplacefromtext/json"
PLACE_PHOTO_ENDPOINT = "https://maps.googleapis.com/maps/api/place/photo"

# Google geocoding has no match score; an address-level hit is trusted this much.
GEOCODED_CONFIDENCE = 0.85
DEFAULT_STREET_VIEW_SIZE = "640x640"
DEFAULT_STREET_VIEW_RADIUS_METERS = 50
DEFAULT_MAX_PHOTO_RESULTS = 4
DEFAULT_PHOTO_MAX_WIDTH = 800
MIN_PHOTO_MATCH_SCORE = 0.6


class _GoogleHttp:
    """Shared client handling for Google adapters."""

    def __init__(
        self,
        api_key: str | None,
        client: httpx.AsyncClient | None = None,
        timeout_seconds: float = 4.0,
        proxy_url: str | None = None,
    ) -> None:
        self._api_key = api_key
        self._client = client
        self._timeout_seconds = timeout_seconds
        self._proxy_url = proxy_url or None

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    async def _get_json(self, url: str, params: dict[str, str]) -> dict[str, Any]:
        """GET a Google endpoint and decode the JSON body.

        Raises:
            httpx.HTTPError: On network or HTTP errors
            ValueError: On undecodable bodies
        """
        close_client = False
        client = self._client
        if client is None:
            client = httpx.AsyncClient(timeout=self._timeout_seconds, proxy=self._proxy_url)
            close_client = True

        try:
            response = await client.get(url, params={**params, "key": self._api_key or ""})
            response.raise_for_status()
            data = response.json()
        finally:
            if close_client:
                await client.aclose()

        if not isinstance(data, dict):
            raise ValueError("Google response is not a JSON object")
        return data


class GoogleGeocoder(_GoogleHttp):
    """Geocoder backed by the Google Geocoding API."""

    provider = "google"

    async def geocode(
        self,
        query: str,
        destination_hint: str | None = None,
        *,
        reference_name: str | None = None,
        min_confidence: float | None = None,
    ) -> Place | None:
        """Geocode an address-like query; errors and empty results return None."""
        query = query.strip()
        if not query or not self.configured:
            return None
        if min_confidence is not None and GEOCODED_CONFIDENCE < min_confidence:
            return None

        params = {"address": query[:240], "language": language_for(query)}

        try:
            data = await self._get_json(GEOCODE_ENDPOINT, params)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Google geocode request failed for {query!r}: {e}")
            return None

        results = data.get("results")
        if data.get("status") != "OK" or not isinstance(results, list) or not results:
            return None

        first = results[0] if isinstance(results[0], dict) else {}
        location = (first.get("geometry") or {}).get("location") or {}
        coordinate = to_coordinate(_as_float(location.get("lat")), _as_float(location.get("lng")))
        if coordinate is None:
            return None

        return Place(
            name=reference_name or query,
            address=first.get("formatted_address"),
            lat=coordinate.lat,
            lng=coordinate.lng,
            provider=self.provider,
            confidence=GEOCODED_CONFIDENCE,
            place_id=first.get("place_id"),
            raw=first,
        )

    async def find_place(
        self, query: str, language: str = "en", location_bias: str | None = None
    ) -> Place | None:
        """Resolve an address through Places Find Place.

        The first candidate wins; its coordinates may be missing. Errors and
        empty results return None.
        """
        query = query.strip()
        if not query or not self.configured:
            return None

        params = {
            "input": query[:240],
            "inputtype": "textquery",
            "fields": "place_id,geometry/location,formatted_address",
            "language": language,
        }
        if location_bias:
            params["locationbias"] = location_bias

        try:
            data = await self._get_json(FIND_PLACE_ENDPOINT, params)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Google find place request failed for {query!r}: {type(e).__name__}")
            return None

        candidates = data.get("candidates")
        if data.get("status") != "OK" or not isinstance(candidates, list) or not candidates:
            return None

        first = candidates[0] if isinstance(candidates[0], dict) else {}
        if not first.get("place_id"):
            return None

        location = (first.get("geometry") or {}).get("location") or {}
        coordinate = to_coordinate(_as_float(location.get("lat")), _as_float(location.get("lng")))

        return Place(
            name=query,
            address=first.get("formatted_address"),
            lat=coordinate.lat if coordinate else None,
            lng=coordinate.lng if coordinate else None,
            provider=self.provider,
            confidence=GEOCODED_CONFIDENCE,
            place_id=str(first["place_id"]),
            raw=first,
        )


@dataclass
class StreetViewResult:
    """Outcome of a Street View lookup."""

    status: str
    url: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class GoogleImageryClient(_GoogleHttp):
    """Imagery provider: Street View stills and Places photos."""

    async def fetch_street_view(
        self,
        lat: float,
        lng: float,
        size: str = DEFAULT_STREET_VIEW_SIZE,
        radius_meters: int = DEFAULT_STREET_VIEW_RADIUS_METERS,
        source: str = "outdoor",
    ) -> StreetViewResult:
        """Check Street View coverage and return a still-image URL when available."""
        params = {
            "location": f"{lat},{lng}",
            "radius": str(radius_meters),
            "source": source,
        }

        try:
            metadata = await self._get_json(STREET_VIEW_METADATA_ENDPOINT, params)
        except httpx.HTTPStatusError as e:
            return StreetViewResult(status=f"HTTP_{e.response.status_code}")
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Street View metadata request failed: {type(e).__name__}")
            return StreetViewResult(status=f"ERROR_{type(e).__name__}")

        status = str(metadata.get("status") or "UNKNOWN")
        if status != "OK":
            return StreetViewResult(status=status, metadata=metadata)

        image_params = {
            "size": size,
            "location": f"{lat},{lng}",
            "source": source,
            "key": self._api_key or "",
        }
        if metadata.get("pano_id"):
            image_params["pano"] = str(metadata["pano_id"])
        url = str(httpx.URL(STREET_VIEW_IMAGE_ENDPOINT, params=image_params))

        return StreetViewResult(status=status, url=url, metadata=metadata)

    async def search_place_photos(
        self,
        query: str,
        destination_hint: str | None = None,
        language: str = "en",
        max_results: int = DEFAULT_MAX_PHOTO_RESULTS,
        max_width: int = DEFAULT_PHOTO_MAX_WIDTH,
    ) -> list[str]:
        """Find the best-matching place by name and return its photo URLs."""
        input_query = f"{query} {destination_hint}".strip() if destination_hint else query
        params = {
            "input": input_query[:240],
            "inputtype": "textquery",
            "fields": "name,photos,formatted_address",
            "language": language,
        }

        try:
            data = await self._get_json(FIND_PLACE_ENDPOINT, params)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Places photo search failed for {query!r}: {type(e).__name__}")
            return []

        candidates = data.get("candidates")
        if data.get("status") != "OK" or not isinstance(candidates, list):
            return []

        best: dict[str, Any] | None = None
        best_score = 0.0
        for candidate in candidates:
            if not isinstance(candidate, dict):
                continue
            score = _photo_match_score(query, candidate, destination_hint)
            if score > best_score:
                best, best_score = candidate, score

        if best is None or best_score < MIN_PHOTO_MATCH_SCORE:
            return []

        references = [
            entry["photo_reference"]
            for entry in best.get("photos") or []
            if isinstance(entry, dict) and entry.get("photo_reference")
        ]
        return [
            str(
                httpx.URL(
                    PLACE_PHOTO_ENDPOINT,
                    params={
                        "photo_reference": ref,
                        "key": self._api_key or "",
                        "maxwidth": str(max_width),
                    },
                )
            )
            for ref in references[:max_results]
        ]


def _photo_match_score(
    query: str, candidate: dict[str, Any], destination_hint: str | None
) -> float:
    name = normalize_text(str(candidate.get("name") or ""))
    normalized_query = normalize_text(query)
    if not name:
        return 0.0
    if name in normalized_query or normalized_query in name:
        return 1.0

    score = token_overlap_score(query, name)
    address = candidate.get("formatted_address")
    if destination_hint and isinstance(address, str):
        normalized_destination = normalize_text(destination_hint)
        normalized_address = normalize_text(address)
        if normalized_destination and (
            normalized_destination in normalized_address
            or normalized_address in normalized_destination
        ):
            score = max(score, 0.75)
    return score


def _as_float(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    return float(value)
