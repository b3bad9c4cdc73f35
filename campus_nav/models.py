"""Data models for campus places, normalized routes and API payloads."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, root_validator, validator

_POI_ALIASES = {
    "buildingName": "building_name",
    "floorName": "floor_name",
    "poiId": "poi_id",
    "_type": "category",
    "type": "category",
}

_STEP_ALIASES = {
    "distanceMeters": "distance_meters",
    "durationSeconds": "duration_seconds",
}


def _rename_keys(values: Dict[str, Any], aliases: Dict[str, str]) -> Dict[str, Any]:
    renamed = dict(values)
    for alias, field_name in aliases.items():
        if alias in renamed and field_name not in renamed:
            renamed[field_name] = renamed.pop(alias)
    return renamed


class LatLng(BaseModel):
    """A geodetic coordinate in degrees."""

    lat: float
    lng: float


class Poi(BaseModel):
    """A selectable campus location returned by search."""

    title: str = "Unknown"
    building_name: Optional[str] = None
    floor_name: Optional[str] = None
    point: Optional[Dict[str, Any]] = None
    z: int = 0
    poi_id: Optional[int] = None
    category: str = "poi"

    class Config:
        frozen = True

    @root_validator(pre=True)
    def accept_wire_names(cls, values: Dict[str, Any]) -> Dict[str, Any]:
        if not isinstance(values, dict):
            raise ValueError("poi must be an object")
        return _rename_keys(values, _POI_ALIASES)

    @validator("z", pre=True)
    def default_floor_index(cls, value: Any) -> Any:
        if value is None:
            return 0
        return value

    @validator("point")
    def validate_point(cls, value: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        if value is None:
            return None
        coordinates = value.get("coordinates")
        if not isinstance(coordinates, (list, tuple)) or len(coordinates) < 2:
            raise ValueError("point.coordinates must be a [x, y] pair")
        return {"coordinates": [float(coordinates[0]), float(coordinates[1])]}

    @property
    def coordinates(self) -> Optional[List[float]]:
        if not self.point:
            return None
        return self.point["coordinates"]

    def to_payload(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "buildingName": self.building_name,
            "floorName": self.floor_name,
            "point": self.point,
            "z": self.z,
            "poiId": self.poi_id,
            "category": self.category,
        }


class RouteStep(BaseModel):
    """One navigation instruction in walking order."""

    text: str
    distance_meters: float = 0.0
    duration_seconds: float = 0.0
    floor: Optional[int] = None

    @root_validator(pre=True)
    def accept_wire_names(cls, values: Dict[str, Any]) -> Dict[str, Any]:
        if not isinstance(values, dict):
            raise ValueError("step must be an object")
        return _rename_keys(values, _STEP_ALIASES)

    @validator("text")
    def validate_text(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("step text cannot be empty")
        return value

    def to_payload(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "distanceMeters": self.distance_meters,
            "durationSeconds": self.duration_seconds,
            "floor": self.floor,
        }


class ExtractedRoute(BaseModel):
    """Normalized route: ordered steps, an optional error and aggregates."""

    steps: List[RouteStep] = Field(default_factory=list)
    error: Optional[str] = None
    total_distance: float = 0.0
    total_time: float = 0.0

    @classmethod
    def failure(cls, error: str) -> "ExtractedRoute":
        return cls(steps=[], error=error, total_distance=0, total_time=0)

    @property
    def texts(self) -> List[str]:
        return [step.text for step in self.steps]

    def to_payload(self) -> Dict[str, Any]:
        return {
            "steps": [step.to_payload() for step in self.steps],
            "error": self.error,
            "totalDistance": self.total_distance,
            "totalTime": self.total_time,
        }


class RouteRequest(BaseModel):
    """API payload asking for a route between two selected places."""

    start: Optional[Poi] = None
    end: Optional[Poi] = None

    @root_validator(pre=True)
    def accept_destination_alias(cls, values: Dict[str, Any]) -> Dict[str, Any]:
        if not isinstance(values, dict):
            raise ValueError("route request must be an object")
        if "end" not in values and "destination" in values:
            values = dict(values)
            values["end"] = values.pop("destination")
        return values


class TransformRequest(BaseModel):
    """API payload asking for stylized instruction texts."""

    texts: List[str]
    style: str = Field(default="explicit")

    @validator("style")
    def validate_style(cls, value: str) -> str:
        supported = {"explicit", "playful", "cryptic"}
        normalized = (value or "").strip().lower()
        if normalized not in supported:
            raise ValueError(f"style must be one of {sorted(supported)}")
        return normalized


class SpeechRequest(BaseModel):
    """API payload asking for narrated audio of one instruction."""

    text: str

    @validator("text")
    def validate_text(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("text is required")
        return value.strip()


class ExportRequest(BaseModel):
    """API payload asking for a plain-text instruction document."""

    steps: List[RouteStep]
    start_title: str = "Start"
    end_title: str = "Destination"
    total_distance: Optional[float] = None
    total_time: Optional[float] = None

    @root_validator(pre=True)
    def accept_wire_names(cls, values: Dict[str, Any]) -> Dict[str, Any]:
        if not isinstance(values, dict):
            raise ValueError("export request must be an object")
        return _rename_keys(
            values,
            {
                "from": "start_title",
                "to": "end_title",
                "totalDistance": "total_distance",
                "totalTime": "total_time",
            },
        )

    @validator("steps")
    def validate_steps(cls, value: List[RouteStep]) -> List[RouteStep]:
        if not value:
            raise ValueError("export requires at least one step")
        return value
