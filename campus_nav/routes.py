"""REST API blueprint exposing search, routing, transform, speech and export endpoints."""
from __future__ import annotations

import json
from http import HTTPStatus
from typing import Any, Dict, Optional

from flask import Blueprint, Response, current_app, jsonify, request
from pydantic import ValidationError

from .coordinates import get_poi_lat_lng
from .export import export_filename, format_instructions
from .mazemap_client import RouteLookupError, build_map_embed_url, fetch_route, search_locations
from .models import ExportRequest, Poi, RouteRequest, SpeechRequest, TransformRequest
from .openai_client import SpeechSynthesisError, synthesize_speech
from .route_parser import normalize_trip
from .transform import transform_with_meta

api_bp = Blueprint("api", __name__)

SELECTION_ERROR = "Please select both a start and end location from the suggestions."
MAP_ONLY_ERROR = "Turn-by-turn instructions could not be loaded for this route."


def _validation_error(exc: ValidationError):
    return jsonify({"error": json.loads(exc.json())}), HTTPStatus.BAD_REQUEST


def _status(msg: str, status_type: str) -> Dict[str, str]:
    return {"msg": msg, "type": status_type}


def _route_payload(
    *,
    steps: Optional[list] = None,
    steps_error: Optional[str] = None,
    total_distance: float = 0,
    total_time: float = 0,
    embed_url: Optional[str] = None,
    map_only: bool = False,
    status: Dict[str, str],
    trip_format: Optional[str] = None,
) -> Dict[str, Any]:
    return {
        "steps": steps or [],
        "stepsError": steps_error,
        "totalDistance": total_distance,
        "totalTime": total_time,
        "embedUrl": embed_url,
        "mapOnly": map_only,
        "tripFormat": trip_format,
        "status": status,
    }


def _map_only_response(start: Poi, end: Poi, exc: Exception):
    start_coords = get_poi_lat_lng(start)
    end_coords = get_poi_lat_lng(end)
    if start_coords is None or end_coords is None:
        payload = _route_payload(status=_status(f"Could not find route: {exc}", "error"))
        return jsonify(payload), HTTPStatus.BAD_GATEWAY

    embed_url = build_map_embed_url(start_coords, end_coords, start.z or 0, end.z or 0)
    payload = _route_payload(
        steps_error=MAP_ONLY_ERROR,
        embed_url=embed_url,
        map_only=True,
        status=_status("Route shown on map. Turn-by-turn instructions unavailable for this route.", "loading"),
    )
    return jsonify(payload), HTTPStatus.OK


@api_bp.get("/places")
def places_search_route():
    query = (request.args.get("q") or "").strip()
    results = search_locations(query)
    return jsonify({"results": [poi.to_payload() for poi in results]})


@api_bp.post("/route")
def route():
    payload = request.get_json(silent=True)
    if payload is None:
        return jsonify({"error": "invalid or missing JSON"}), HTTPStatus.BAD_REQUEST
    try:
        route_request = RouteRequest.parse_obj(payload)
    except ValidationError as exc:
        return _validation_error(exc)

    start, end = route_request.start, route_request.end
    if start is None or end is None:
        return jsonify(_route_payload(status=_status(SELECTION_ERROR, "error"))), HTTPStatus.BAD_REQUEST

    try:
        fetched = fetch_route(start, end)
    except RouteLookupError as exc:
        current_app.logger.warning("Routing error: %s", exc)
        return _map_only_response(start, end, exc)

    trip_format, extracted = normalize_trip(fetched.trip_data, start, end)
    embed_url = build_map_embed_url(fetched.start_coords, fetched.end_coords, fetched.start_z, fetched.end_z)
    response = _route_payload(
        steps=[step.to_payload() for step in extracted.steps],
        steps_error=extracted.error,
        total_distance=extracted.total_distance,
        total_time=extracted.total_time,
        embed_url=embed_url,
        trip_format=trip_format.value,
        status=_status("Route found! Follow the instructions below.", "success"),
    )
    return jsonify(response)


@api_bp.post("/transform")
def transform():
    payload = request.get_json(silent=True)
    if payload is None:
        return jsonify({"error": "invalid or missing JSON"}), HTTPStatus.BAD_REQUEST
    try:
        transform_request = TransformRequest.parse_obj(payload)
    except ValidationError as exc:
        return _validation_error(exc)

    result = transform_with_meta(transform_request.texts, transform_request.style)
    return jsonify(
        {
            "texts": result.texts,
            "style": result.style.value,
            "fallbackUsed": result.fallback_used,
            "meta": result.meta,
        }
    )


@api_bp.post("/speech")
def speech():
    payload = request.get_json(silent=True)
    if payload is None:
        return jsonify({"error": "invalid or missing JSON"}), HTTPStatus.BAD_REQUEST
    try:
        speech_request = SpeechRequest.parse_obj(payload)
    except ValidationError as exc:
        return _validation_error(exc)

    try:
        audio = synthesize_speech(speech_request.text)
    except SpeechSynthesisError as exc:
        current_app.logger.warning("Speech synthesis failed: %s", exc)
        return jsonify({"error": str(exc)}), HTTPStatus.BAD_GATEWAY
    return Response(audio, mimetype="audio/mpeg")


@api_bp.post("/export")
def export():
    payload = request.get_json(silent=True)
    if payload is None:
        return jsonify({"error": "invalid or missing JSON"}), HTTPStatus.BAD_REQUEST
    try:
        export_request = ExportRequest.parse_obj(payload)
    except ValidationError as exc:
        return _validation_error(exc)

    text = format_instructions(
        export_request.steps,
        export_request.start_title,
        export_request.end_title,
        total_distance=export_request.total_distance,
        total_time=export_request.total_time,
    )
    filename = export_filename(export_request.start_title, export_request.end_title)
    return Response(
        text,
        mimetype="text/plain",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
