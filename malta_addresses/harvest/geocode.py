"""Read-through geocode cache backed by the Google Geocoding API."""

from __future__ import annotations

import logging
from typing import Any

from malta_addresses.common.config_loader import is_geocoding_enabled
from malta_addresses.common.http import HttpClient
from malta_addresses.common.models import GeocodeResult

EMPTY_RESULT = GeocodeResult()
USABLE_STATUSES = {"OK", "ZERO_RESULTS"}


def _safe_float(value: object) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def parse_geocode_payload(payload: Any) -> GeocodeResult:
    """First candidate's location, or an empty result."""
    if not isinstance(payload, dict):
        return GeocodeResult()
    results = payload.get("results") or []
    if not results:
        return GeocodeResult()
    location = (results[0].get("geometry") or {}).get("location") or {}
    latitude = _safe_float(location.get("lat"))
    longitude = _safe_float(location.get("lng"))
    if latitude is None or longitude is None:
        return GeocodeResult()
    return GeocodeResult(latitude=latitude, longitude=longitude)


class GeocodeCache:
    """Memoizes formatted address -> GeocodeResult for one run.

    Misses are stored too, so each distinct key reaches the geocoder at most
    once. Not thread safe: concurrent callers must serialise ``resolve``.
    """

    def __init__(
        self,
        client: HttpClient,
        endpoint: str,
        api_key: str | None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.client = client
        self.endpoint = endpoint
        self.api_key = api_key
        self.logger = logger or logging.getLogger(__name__)
        self.warned_statuses: set[str] = set()
        self.entries: dict[str, GeocodeResult] = {}
        self.hits = 0
        self.misses = 0

    @property
    def enabled(self) -> bool:
        return is_geocoding_enabled(self.api_key)

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, formatted_address: object) -> bool:
        return formatted_address in self.entries

    def _warn_on_error_status(self, payload: Any) -> None:
        status = payload.get("status") if isinstance(payload, dict) else None
        if status is None or status in USABLE_STATUSES or status in self.warned_statuses:
            return
        self.warned_statuses.add(status)
        self.logger.warning(
            "Geocoding API returned status %s: %s",
            status,
            payload.get("error_message", "no coordinates for affected addresses"),
            extra={"event": "GEOCODE_STATUS", "status": "degraded", "error_code": status},
        )

    def resolve(self, formatted_address: str) -> GeocodeResult:
        if not self.enabled:
            return EMPTY_RESULT

        cached = self.entries.get(formatted_address)
        if cached is not None:
            self.hits += 1
            return cached

        self.misses += 1
        payload = self.client.fetch(self.endpoint, {"address": formatted_address, "key": self.api_key})
        self._warn_on_error_status(payload)
        result = parse_geocode_payload(payload)
        self.entries[formatted_address] = result
        return result
