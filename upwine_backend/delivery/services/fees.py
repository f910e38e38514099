# delivery/services/fees.py

"""
DELIVERY FEE CALCULATOR

Two pricing models:
- named zone:  flat fee per destination (case-insensitive exact match),
               unknown zone -> DEFAULT_ZONE_FEE
- distance:    haversine km from the pickup point, first tier whose max
               distance covers it; unknown location -> DEFAULT_DISTANCE_FEE

Pure functions of their inputs (plus settings), no DB access.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Tuple

from django.conf import settings

from delivery import zones
from delivery.services.geocoding import get_geocoder

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0
TWOPLACES = Decimal("0.01")

Coordinates = Tuple[float, float]


@dataclass(frozen=True)
class DeliveryQuote:
    fee: Decimal
    distance_km: Optional[float] = None
    zone: Optional[str] = None
    approximate: bool = False
    message: str = ""


def _money(v) -> Decimal:
    if v is None or v == "":
        return Decimal("0.00")
    return Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _delivery_cfg() -> dict:
    cfg = getattr(settings, "DELIVERY", {}) or {}
    return cfg if isinstance(cfg, dict) else {}


# ============================================================
# TABLES (settings override the module defaults)
# ============================================================

def zone_table() -> list[tuple[str, Decimal]]:
    raw = _delivery_cfg().get("ZONES")
    if not raw:
        return list(zones.DELIVERY_ZONES)
    if isinstance(raw, dict):
        raw = list(raw.items())
    return [(str(name), _money(fee)) for name, fee in raw]


def fee_tiers() -> list[tuple[Optional[float], Decimal]]:
    raw = _delivery_cfg().get("FEE_TIERS") or zones.DISTANCE_FEE_TIERS
    tiers = [(None if max_km is None else float(max_km), _money(fee)) for max_km, fee in raw]
    # open-ended tier last
    return sorted(tiers, key=lambda t: math.inf if t[0] is None else t[0])


def default_zone_fee() -> Decimal:
    return _money(_delivery_cfg().get("DEFAULT_ZONE_FEE", zones.DEFAULT_ZONE_FEE))


def default_distance_fee() -> Decimal:
    return _money(_delivery_cfg().get("DEFAULT_DISTANCE_FEE", zones.DEFAULT_DISTANCE_FEE))


def pickup_coordinates() -> Coordinates:
    lat, lng = _delivery_cfg().get("PICKUP_COORDINATES") or (6.3167, 5.6167)
    return float(lat), float(lng)


# ============================================================
# CALCULATIONS
# ============================================================

def haversine_km(origin: Coordinates, destination: Coordinates) -> float:
    lat1, lng1 = origin
    lat2, lng2 = destination

    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)

    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def fee_for_zone(zone_name) -> DeliveryQuote:
    name = str(zone_name or "").strip()
    for zone, fee in zone_table():
        if zone.lower() == name.lower():
            return DeliveryQuote(fee=fee, zone=zone)

    logger.info("Unknown delivery zone, using default fee", extra={"zone": name})
    return DeliveryQuote(
        fee=default_zone_fee(),
        zone=name or None,
        approximate=True,
        message="Destination not in the zone list. Using standard fee.",
    )


def fee_for_distance(origin: Coordinates, destination: Optional[Coordinates]) -> DeliveryQuote:
    if destination is None:
        return DeliveryQuote(
            fee=default_distance_fee(),
            distance_km=None,
            approximate=True,
            message="Could not determine exact location. Using standard fee.",
        )

    distance = haversine_km(origin, destination)

    tiers = fee_tiers()
    fee = tiers[-1][1]
    for max_km, tier_fee in tiers:
        if max_km is None or distance <= max_km:
            fee = tier_fee
            break

    return DeliveryQuote(fee=fee, distance_km=round(distance, 1))


def fee_for_address(address, geocoder=None) -> DeliveryQuote:
    geocoder = geocoder or get_geocoder()
    destination = geocoder.geocode(str(address or "").strip())
    return fee_for_distance(pickup_coordinates(), destination)


def zones_by_fee() -> list[dict]:
    """
    Zone table sorted cheapest first (for the storefront picker).
    """
    return [
        {"name": name, "fee": fee}
        for name, fee in sorted(zone_table(), key=lambda z: (z[1], z[0]))
    ]
