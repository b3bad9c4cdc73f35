"""Thin wrapper around the MazeMap search and routing HTTP APIs."""
from __future__ import annotations

import logging
import os
import re
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlencode

import requests

from .coordinates import get_poi_lat_lng
from .models import LatLng, Poi

EQUERY_URL = "https://api.mazemap.com/search/equery/"
POIS_URL = "https://api.mazemap.com/api/pois/"
ROUTING_URL = "https://routing.mazemap.com/routing/v2/a-to-b/"
EMBED_URL = "https://use.mazemap.com/"
DEFAULT_CAMPUS_ID = 742
MIN_QUERY_LENGTH = 2
SEARCH_ROWS = 10

logger = logging.getLogger(__name__)

_TAG_RE = re.compile(r"<[^>]*>")


class RouteLookupError(RuntimeError):
    """Raised when a route cannot be requested or the routing API rejects it."""


@dataclass
class FetchRouteResult:
    trip_data: Any
    start_coords: LatLng
    end_coords: LatLng
    start_z: int
    end_z: int


def _get_campus_id() -> int:
    try:
        return int(os.getenv("MAZEMAP_CAMPUS_ID", str(DEFAULT_CAMPUS_ID)))
    except ValueError:
        return DEFAULT_CAMPUS_ID


def _get_lang() -> str:
    return os.getenv("MAZEMAP_LANG", "en").strip() or "en"


def _get_timeout() -> float:
    try:
        return float(os.getenv("REQUEST_TIMEOUT", "10"))
    except ValueError:
        return 10.0


def _strip_html(value: Optional[str]) -> str:
    if not value:
        return ""
    return _TAG_RE.sub("", value).strip()


def _to_poi(item: Dict[str, Any]) -> Optional[Poi]:
    point = item.get("point")
    if not point:
        geometry = item.get("geometry") or {}
        if geometry.get("coordinates"):
            point = {"coordinates": geometry["coordinates"]}
    try:
        return Poi.parse_obj(
            {
                "title": _strip_html(item.get("title") or item.get("name") or item.get("buildingName") or "Unknown"),
                "buildingName": item.get("buildingName") or None,
                "floorName": item.get("floorName") or None,
                "point": point or None,
                "z": item.get("z"),
                "poiId": item.get("poiId") or None,
                "category": item.get("type") or "poi",
            }
        )
    except ValueError as exc:
        logger.debug("Dropping malformed search result %s: %s", item.get("poiId"), exc)
        return None


def _to_pois(items: Any) -> List[Poi]:
    if not isinstance(items, list):
        return []
    pois = (_to_poi(item) for item in items if isinstance(item, dict))
    return [poi for poi in pois if poi is not None]


def search_locations(query: str) -> List[Poi]:
    """Return campus places matching ``query``; short queries make no call."""
    query = (query or "").strip()
    if len(query) < MIN_QUERY_LENGTH:
        return []

    common = {"campusid": _get_campus_id(), "lang": _get_lang(), "rows": SEARCH_ROWS}
    try:
        response = requests.get(EQUERY_URL, params={**common, "q": query}, timeout=_get_timeout())
        response.raise_for_status()
        data = response.json() or {}
        return _to_pois(data.get("result") or data.get("pois") or [])
    except (requests.RequestException, ValueError, AttributeError) as exc:
        logger.warning("equery failed for %s, falling back to /api/pois/: %s", query, exc)

    try:
        response = requests.get(POIS_URL, params={**common, "query": query}, timeout=_get_timeout())
        response.raise_for_status()
        data = response.json() or {}
        return _to_pois(data.get("pois") or [])
    except (requests.RequestException, ValueError, AttributeError) as exc:
        logger.warning("POI search failed for %s: %s", query, exc)
        return []


class SearchDebouncer:
    """Delay search calls until typing pauses.

    Each ``submit`` cancels the pending timer, so only the last query of a
    burst reaches the search call. Results are delivered on the timer thread.
    Every submit takes a new token; a timer that fires after a newer submit
    or a ``cancel`` finds its token outdated and delivers nothing.
    """

    def __init__(
        self,
        on_results: Callable[[str, List[Poi]], None],
        *,
        delay: float = 0.3,
        search: Callable[[str], List[Poi]] = search_locations,
    ) -> None:
        self._on_results = on_results
        self._delay = delay
        self._search = search
        self._timer: Optional[threading.Timer] = None
        self._token = 0
        self._lock = threading.Lock()

    def submit(self, query: str) -> None:
        self.cancel()
        trimmed = (query or "").strip()
        if len(trimmed) < MIN_QUERY_LENGTH:
            self._on_results(trimmed, [])
            return
        with self._lock:
            self._token += 1
            timer = threading.Timer(self._delay, self._run, args=(self._token, trimmed))
            timer.daemon = True
            self._timer = timer
        timer.start()

    def cancel(self) -> None:
        with self._lock:
            self._token += 1
            timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()

    def _is_current(self, token: int) -> bool:
        with self._lock:
            return token == self._token

    def _run(self, token: int, query: str) -> None:
        with self._lock:
            if token != self._token:
                logger.debug("Dropping outdated search for %s", query)
                return
            self._timer = None
        try:
            results = self._search(query)
        except Exception as exc:  # pylint: disable=broad-except
            logger.error("Search error for %s: %s", query, exc)
            return
        if not self._is_current(token):
            logger.debug("Discarding results for outdated query %s", query)
            return
        self._on_results(query, results)


def build_map_embed_url(start_coords: LatLng, end_coords: LatLng, start_z: int, end_z: int) -> str:
    return (
        f"{EMBED_URL}?campusid={_get_campus_id()}"
        f"&starttype=point&start={start_coords.lng},{start_coords.lat},{start_z}"
        f"&desttype=point&dest={end_coords.lng},{end_coords.lat},{end_z}"
    )


def build_route_params(start: Poi, end: Poi, start_coords: LatLng, end_coords: LatLng) -> Dict[str, str]:
    params = {"campusCollectionId": str(_get_campus_id()), "mode": "PEDESTRIAN", "lang": _get_lang()}
    if start.poi_id:
        params["fromPoiId"] = str(start.poi_id)
    else:
        params["fromLngLatZ"] = f"{start_coords.lng},{start_coords.lat},{start.z or 0}"
    if end.poi_id:
        params["toPoiId"] = str(end.poi_id)
    else:
        params["toLngLatZ"] = f"{end_coords.lng},{end_coords.lat},{end.z or 0}"
    return params


def fetch_route(start: Poi, end: Poi) -> FetchRouteResult:
    """Request a pedestrian route; the payload is returned unparsed."""
    start_coords = get_poi_lat_lng(start)
    end_coords = get_poi_lat_lng(end)
    if start_coords is None or end_coords is None:
        raise RouteLookupError("Could not get coordinates for selected locations.")

    params = build_route_params(start, end, start_coords, end_coords)
    logger.debug("Requesting route %s?%s", ROUTING_URL, urlencode(params))
    try:
        response = requests.get(ROUTING_URL, params=params, timeout=_get_timeout())
    except requests.RequestException as exc:
        raise RouteLookupError(f"Routing request failed: {exc}") from exc
    if not response.ok:
        raise RouteLookupError(f"Routing API returned {response.status_code}")
    try:
        data = response.json()
    except ValueError as exc:
        raise RouteLookupError("Routing API returned invalid JSON") from exc

    return FetchRouteResult(
        trip_data=data,
        start_coords=start_coords,
        end_coords=end_coords,
        start_z=start.z or 0,
        end_z=end.z or 0,
    )
