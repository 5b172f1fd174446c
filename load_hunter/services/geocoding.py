"""Pickup-location geocoding with a read-through cache.

Lookups go cache first, then Mapbox.  Every failure path (no token, network
error, HTTP error, empty result) degrades to ``None`` so ingestion can flag
the load instead of failing it.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Protocol
from urllib.parse import quote

import requests
from sqlalchemy import text
from sqlalchemy.orm import Session

from load_hunter.core.config import settings
from load_hunter.logic.geo import Coordinates
from load_hunter.models.lookups import GeocodeCache as GeocodeCacheRow

logger = logging.getLogger(__name__)


# Concurrent ingests may both miss the cache for a new city; the second
# insert folds into the first row instead of violating the unique key.
_UPSERT_CACHE_SQL = text(
    """
    INSERT INTO geocode_cache (location_key, city, state, latitude, longitude, hit_count, month_created)
    VALUES (:location_key, :city, :state, :latitude, :longitude, 1, :month_created)
    ON CONFLICT (location_key)
    DO UPDATE SET latitude = excluded.latitude, longitude = excluded.longitude
    """
)


def location_key(city: str | None, state: str | None) -> str | None:
    city_part = (city or "").strip()
    state_part = (state or "").strip()
    if not city_part or not state_part:
        return None
    return f"{city_part}, {state_part}".lower()


class GeocodeCache(Protocol):
    def get(self, key: str) -> Coordinates | None: ...

    def put(self, key: str, city: str, state: str, coords: Coordinates) -> None: ...


class Geocoder(Protocol):
    def geocode(self, city: str, state: str) -> Coordinates | None: ...


class DatabaseGeocodeCache:
    """``geocode_cache`` table as a cache; the caller owns the transaction."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self, key: str) -> Coordinates | None:
        row = self.db.query(GeocodeCacheRow).filter(GeocodeCacheRow.location_key == key).first()
        if row is None:
            return None
        row.hit_count = (row.hit_count or 0) + 1
        return Coordinates.from_value((row.latitude, row.longitude))

    def put(self, key: str, city: str, state: str, coords: Coordinates) -> None:
        self.db.execute(
            _UPSERT_CACHE_SQL,
            {
                "location_key": key,
                "city": city,
                "state": state,
                "latitude": coords.lat,
                "longitude": coords.lng,
                "month_created": datetime.now(timezone.utc).strftime("%Y-%m"),
            },
        )


class MapboxGeocoder:
    def __init__(
        self,
        token: str | None = None,
        base_url: str | None = None,
        timeout_seconds: int | None = None,
    ) -> None:
        self.token = (token if token is not None else settings.MAPBOX_TOKEN or "").strip()
        self.base_url = (base_url or settings.MAPBOX_GEOCODE_URL).rstrip("/")
        self.timeout_seconds = max(int(timeout_seconds or settings.GEOCODE_TIMEOUT_SECONDS or 10), 1)

    def _first_feature(self, query: str, **params: Any) -> dict[str, Any] | None:
        if not self.token:
            logger.warning("geocoding: MAPBOX_TOKEN not configured; skipping query=%r", query)
            return None

        url = f"{self.base_url}/{quote(query)}.json"
        try:
            response = requests.get(
                url,
                params={"access_token": self.token, "limit": 1, "country": "us", **params},
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as exc:
            logger.warning("geocoding: request failed query=%r error=%s", query, exc)
            return None

        if response.status_code != 200:
            logger.warning("geocoding: HTTP %s for query=%r", response.status_code, query)
            return None

        try:
            body = response.json()
        except ValueError:
            logger.warning("geocoding: non-JSON response for query=%r", query)
            return None

        features = body.get("features") if isinstance(body, dict) else None
        if not features:
            logger.info("geocoding: no result for query=%r", query)
            return None
        return features[0]

    def geocode(self, city: str, state: str) -> Coordinates | None:
        feature = self._first_feature(f"{city}, {state}", types="place,locality,postcode")
        if feature is None:
            return None
        center = feature.get("center") or []
        if len(center) != 2:
            return None
        # Mapbox returns [lng, lat].
        return Coordinates.from_value((center[1], center[0]))

    def lookup_city_from_zip(self, zip_code: str, state: str | None = None) -> tuple[str, str] | None:
        """Resolve a US zip to (city, state) through a postcode lookup."""
        query = f"{zip_code} {state}".strip() if state else zip_code
        feature = self._first_feature(query, types="postcode")
        if feature is None:
            return None

        city: str | None = None
        region: str | None = None
        for context in feature.get("context") or []:
            context_id = str(context.get("id") or "")
            if context_id.startswith("place.") and not city:
                city = context.get("text")
            elif context_id.startswith("region."):
                short_code = str(context.get("short_code") or "")
                region = short_code.split("-")[-1].upper() if short_code else None

        resolved_state = region or (state.upper() if state else None)
        if not city or not resolved_state:
            return None
        return city, resolved_state


def geocode_location(
    city: str | None,
    state: str | None,
    *,
    cache: GeocodeCache | None,
    geocoder: Geocoder | None,
) -> Coordinates | None:
    key = location_key(city, state)
    if key is None:
        return None

    if cache is not None:
        cached = cache.get(key)
        if cached is not None:
            logger.debug("geocoding: cache hit key=%r", key)
            return cached

    if geocoder is None:
        return None

    coords = geocoder.geocode(city.strip(), state.strip().upper())  # type: ignore[union-attr]
    if coords is None:
        return None

    if cache is not None:
        cache.put(key, city.strip(), state.strip().upper(), coords)  # type: ignore[union-attr]
    return coords
