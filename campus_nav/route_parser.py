"""Normalize MazeMap trip payloads into ordered navigation steps.

Two families of upstream payloads are understood:

* the routing v2 format, ``routes[0].legs[0]`` holding two index-aligned
  arrays: ``instructions.steps`` (text) and ``basic.steps`` (distance/time);
* older trip shapes where the legs live under ``trip.legs``, ``legs`` or
  ``routes[0].legs`` and each leg lists ``maneuvers``, ``steps`` or
  ``instructions`` with loosely named fields.

``classify_trip`` decides which shape a payload is before anything is parsed,
and ``normalize_trip`` dispatches to the matching parser.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from .models import ExtractedRoute, Poi, RouteStep

logger = logging.getLogger(__name__)

NO_ROUTE_DATA = "No route data received."
UNEXPECTED_FORMAT = "Route data has an unexpected format."

_LEGACY_STEP_KEYS = ("maneuvers", "steps", "instructions")
_LEGACY_TEXT_KEYS = ("instruction", "text", "description", "name", "action")


class TripFormat(str, Enum):
    """Known trip payload shapes, in the order they are tried."""

    ROUTES_V2 = "routes_v2"
    TRIP_LEGS = "trip_legs"
    LEGS = "legs"
    ROUTES_LEGS = "routes_legs"
    UNKNOWN = "unknown"


def fallback_sentence(start_poi: Optional[Poi], end_poi: Optional[Poi]) -> str:
    start_title = (start_poi.title if start_poi else None) or "Start"
    end_title = (end_poi.title if end_poi else None) or "Destination"
    return f"Walk from {start_title} to {end_title}"


def _number(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    return float(value)


def _first_route(trip: Mapping[str, Any]) -> Optional[Mapping[str, Any]]:
    routes = trip.get("routes")
    if isinstance(routes, list) and routes and isinstance(routes[0], Mapping):
        return routes[0]
    return None


def _first_leg(route_obj: Mapping[str, Any]) -> Optional[Mapping[str, Any]]:
    legs = route_obj.get("legs")
    if isinstance(legs, list) and legs and isinstance(legs[0], Mapping):
        return legs[0]
    return None


def _legacy_step_list(leg: Mapping[str, Any]) -> Optional[List[Any]]:
    for key in _LEGACY_STEP_KEYS:
        steps = leg.get(key)
        if isinstance(steps, list):
            return steps
    return None


def classify_trip(trip: Any) -> TripFormat:
    """Return the shape of ``trip`` without parsing any step."""
    if not isinstance(trip, Mapping):
        return TripFormat.UNKNOWN

    route_obj = _first_route(trip)
    if route_obj is not None:
        leg = _first_leg(route_obj)
        if leg is not None and (isinstance(leg.get("instructions"), Mapping) or isinstance(leg.get("basic"), Mapping)):
            return TripFormat.ROUTES_V2

    nested_trip = trip.get("trip")
    if isinstance(nested_trip, Mapping) and isinstance(nested_trip.get("legs"), list):
        return TripFormat.TRIP_LEGS
    if isinstance(trip.get("legs"), list):
        return TripFormat.LEGS
    if route_obj is not None:
        legs = route_obj.get("legs")
        if isinstance(legs, list) and any(isinstance(leg, Mapping) and _legacy_step_list(leg) is not None for leg in legs):
            return TripFormat.ROUTES_LEGS
        # A routes[] payload without legacy maneuvers is still a v2 response,
        # just one without instructions; the v2 parser falls back for it.
        return TripFormat.ROUTES_V2
    return TripFormat.UNKNOWN


def extract_route(trip: Any, start_poi: Optional[Poi], end_poi: Optional[Poi]) -> ExtractedRoute:
    """Parse a routing v2 payload.

    Instruction texts and basic distance/time entries are paired strictly by
    index; upstream guarantees both arrays share length and order.
    """
    if trip is None:
        return ExtractedRoute.failure(NO_ROUTE_DATA)

    route_obj = _first_route(trip) if isinstance(trip, Mapping) else None
    if route_obj is None:
        return ExtractedRoute.failure(UNEXPECTED_FORMAT)

    steps: List[RouteStep] = []
    try:
        leg = (route_obj.get("legs") or [{}])[0] or {}
        instruction_steps = (leg.get("instructions") or {}).get("steps") or []
        basic_steps = (leg.get("basic") or {}).get("steps") or []

        for index, instruction_step in enumerate(instruction_steps):
            text = instruction_step.get("instruction") or ""
            if not text or not str(text).strip():
                continue
            basic_entry = basic_steps[index] if index < len(basic_steps) else None
            properties = (basic_entry or {}).get("properties") or {}
            steps.append(
                RouteStep(
                    text=text,
                    distance_meters=_number(properties.get("distance")),
                    duration_seconds=_number(properties.get("timeEstimateSeconds")),
                    floor=None,
                )
            )
    except Exception as exc:  # pylint: disable=broad-except
        logger.warning("Failed to parse route steps: %s", exc)
        return ExtractedRoute.failure(f"Failed to parse route steps: {exc}")

    route_properties = route_obj.get("properties")
    total_time = 0.0
    if isinstance(route_properties, Mapping):
        total_time = _number(route_properties.get("timeEstimateSeconds"))
    total_distance = sum(step.distance_meters for step in steps)

    if not steps:
        logger.info("Route has no usable instructions, synthesizing a single step")
        steps.append(
            RouteStep(
                text=fallback_sentence(start_poi, end_poi),
                distance_meters=total_distance,
                duration_seconds=total_time,
                floor=None,
            )
        )

    return ExtractedRoute(steps=steps, error=None, total_distance=total_distance, total_time=total_time)


def _legacy_legs(trip: Any) -> List[Any]:
    if not isinstance(trip, Mapping):
        return []
    nested_trip = trip.get("trip")
    if isinstance(nested_trip, Mapping) and isinstance(nested_trip.get("legs"), list):
        return nested_trip["legs"]
    if isinstance(trip.get("legs"), list):
        return trip["legs"]
    route_obj = _first_route(trip)
    if route_obj is not None and isinstance(route_obj.get("legs"), list):
        return route_obj["legs"]
    return []


def _legacy_distance(entry: Mapping[str, Any]) -> float:
    # ``length`` is kilometres, ``distance`` is already metres.
    if entry.get("length") is not None:
        return _number(entry.get("length")) * 1000
    return _number(entry.get("distance"))


def _legacy_duration(entry: Mapping[str, Any]) -> float:
    return _number(entry.get("time")) or _number(entry.get("duration"))


def _legacy_text(entry: Mapping[str, Any]) -> str:
    for key in _LEGACY_TEXT_KEYS:
        value = entry.get(key)
        if isinstance(value, str) and value.strip():
            return value
    return ""


def _legacy_floor(entry: Mapping[str, Any]) -> Optional[int]:
    for key in ("floor", "z"):
        value = entry.get(key)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return int(value)
    return None


def _legacy_summary(trip: Any) -> Optional[Mapping[str, Any]]:
    if not isinstance(trip, Mapping):
        return None
    nested_trip = trip.get("trip")
    if isinstance(nested_trip, Mapping) and isinstance(nested_trip.get("summary"), Mapping):
        return nested_trip["summary"]
    if isinstance(trip.get("summary"), Mapping):
        return trip["summary"]
    return None


def parse_route_steps(trip: Any, start_poi: Optional[Poi], end_poi: Optional[Poi]) -> ExtractedRoute:
    """Parse the older trip shapes (``trip.legs``, ``legs``, ``routes[0].legs``).

    Totals accumulate over every maneuver, including ones without text. When
    no maneuver carries text, the trip summary supplies the aggregates for a
    single synthesized step.
    """
    total_distance = 0.0
    total_time = 0.0
    steps: List[RouteStep] = []

    for leg in _legacy_legs(trip):
        if not isinstance(leg, Mapping):
            continue
        for entry in _legacy_step_list(leg) or []:
            if not isinstance(entry, Mapping):
                continue
            distance = _legacy_distance(entry)
            duration = _legacy_duration(entry)
            total_distance += distance
            total_time += duration

            text = _legacy_text(entry)
            if text:
                steps.append(
                    RouteStep(
                        text=text,
                        distance_meters=distance,
                        duration_seconds=duration,
                        floor=_legacy_floor(entry),
                    )
                )

    if not steps:
        summary = _legacy_summary(trip)
        if summary:
            total_distance = _legacy_distance(summary)
            total_time = _legacy_duration(summary)
        steps.append(
            RouteStep(
                text=fallback_sentence(start_poi, end_poi),
                distance_meters=total_distance,
                duration_seconds=total_time,
            )
        )

    return ExtractedRoute(steps=steps, error=None, total_distance=total_distance, total_time=total_time)


_PARSERS: Dict[TripFormat, Callable[[Any, Optional[Poi], Optional[Poi]], ExtractedRoute]] = {
    TripFormat.ROUTES_V2: extract_route,
    TripFormat.TRIP_LEGS: parse_route_steps,
    TripFormat.LEGS: parse_route_steps,
    TripFormat.ROUTES_LEGS: parse_route_steps,
    TripFormat.UNKNOWN: extract_route,
}


def normalize_trip(trip: Any, start_poi: Optional[Poi], end_poi: Optional[Poi]) -> Tuple[TripFormat, ExtractedRoute]:
    """Classify ``trip`` and parse it with the matching parser."""
    trip_format = classify_trip(trip)
    logger.debug("Trip payload classified as %s", trip_format.value)
    return trip_format, _PARSERS[trip_format](trip, start_poi, end_poi)

