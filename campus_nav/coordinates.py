"""Coordinate helpers for MazeMap payloads."""
from __future__ import annotations

import math
from typing import Optional, Sequence, Tuple

from .models import LatLng, Poi

# Half the equatorial circumference of the spherical-Mercator sphere, in metres.
MERCATOR_HALF_CIRCUMFERENCE = 20037508.34


def mercator_to_lat_lng(x: float, y: float) -> LatLng:
    """Invert a spherical-Mercator (EPSG:3857) pair into degrees."""
    lng = (x / MERCATOR_HALF_CIRCUMFERENCE) * 180
    lat = (y / MERCATOR_HALF_CIRCUMFERENCE) * 180
    lat = (180 / math.pi) * (2 * math.atan(math.exp(lat * math.pi / 180)) - math.pi / 2)
    return LatLng(lat=lat, lng=lng)


def lat_lng_to_mercator(lat: float, lng: float) -> Tuple[float, float]:
    """Project degrees onto spherical Mercator, returning (x, y) in metres."""
    x = lng * MERCATOR_HALF_CIRCUMFERENCE / 180
    y = math.log(math.tan((90 + lat) * math.pi / 360)) / (math.pi / 180)
    y = y * MERCATOR_HALF_CIRCUMFERENCE / 180
    return x, y


def to_lat_lng(coords: Sequence[float]) -> LatLng:
    """Return geodetic coordinates for a raw [x, y] pair.

    Search and routing endpoints do not tag their reference system. A first
    component outside the longitude range can only be projected metres, so
    ``abs(x) > 180`` selects the Mercator inversion; anything else is already
    ``[lng, lat]`` in degrees.
    """
    x, y = coords[0], coords[1]
    if abs(x) > 180:
        return mercator_to_lat_lng(x, y)
    return LatLng(lat=y, lng=x)


def get_poi_lat_lng(poi: Poi) -> Optional[LatLng]:
    coords = poi.coordinates
    if not coords:
        return None
    return to_lat_lng(coords)
