# delivery/services/geocoding.py

"""
Pluggable address -> (lat, lng) providers.

A geocoder is any object with .geocode(address) returning (lat, lng) or None.
Failures are reported as None; callers fall back to the standard fee.
The active provider is settings.DELIVERY["GEOCODER"] (dotted path).
"""

from __future__ import annotations

import json
import logging
from http.client import HTTPException
from typing import Optional, Tuple
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from django.conf import settings
from django.utils.module_loading import import_string

logger = logging.getLogger(__name__)

NOMINATIM_SEARCH = "https://nominatim.openstreetmap.org/search"

Coordinates = Tuple[float, float]


def _delivery_cfg() -> dict:
    cfg = getattr(settings, "DELIVERY", {}) or {}
    return cfg if isinstance(cfg, dict) else {}


class NullGeocoder:
    """Never locates anything."""

    def geocode(self, address: str) -> Optional[Coordinates]:
        return None


class NominatimGeocoder:
    """
    OpenStreetMap Nominatim search (no API key; a User-Agent is mandatory).
    """

    def __init__(self, *, timeout=None, user_agent=None, city_suffix=None, country_codes=None):
        cfg = _delivery_cfg()
        self.timeout = int(timeout or cfg.get("GEOCODER_TIMEOUT") or 8)
        self.user_agent = str(user_agent or cfg.get("GEOCODER_USER_AGENT") or "Upwine Delivery Calculator")
        self.city_suffix = str(
            city_suffix if city_suffix is not None else cfg.get("GEOCODER_CITY_SUFFIX", "")
        ).strip()
        self.country_codes = str(
            country_codes if country_codes is not None else cfg.get("GEOCODER_COUNTRY_CODES", "")
        ).strip()

    def _query(self, address: str) -> str:
        address = address.strip()
        if self.city_suffix and self.city_suffix.lower() not in address.lower():
            return f"{address}, {self.city_suffix}"
        return address

    def geocode(self, address: str) -> Optional[Coordinates]:
        if not (address or "").strip():
            return None

        params = {"q": self._query(address), "format": "json", "limit": 1}
        if self.country_codes:
            params["countrycodes"] = self.country_codes

        req = Request(
            f"{NOMINATIM_SEARCH}?{urlencode(params)}",
            headers={"User-Agent": self.user_agent, "Accept": "application/json"},
            method="GET",
        )

        try:
            with urlopen(req, timeout=self.timeout) as resp:
                raw = resp.read().decode("utf-8", errors="replace")
            results = json.loads(raw or "[]")
        except (OSError, HTTPException, ValueError) as exc:
            logger.warning("Geocoding failed", extra={"address": address, "error": str(exc)})
            return None

        if not isinstance(results, list) or not results:
            logger.info("Address not found by geocoder", extra={"address": address})
            return None

        first = results[0] or {}
        try:
            return float(first["lat"]), float(first["lon"])
        except (KeyError, TypeError, ValueError):
            logger.warning("Geocoder returned malformed coordinates", extra={"address": address})
            return None


def get_geocoder():
    path = _delivery_cfg().get("GEOCODER") or "delivery.services.geocoding.NominatimGeocoder"
    return import_string(path)()
