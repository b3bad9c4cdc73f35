"""Plain-text rendering of route instructions for saving or printing."""
from __future__ import annotations

import math
import re
from typing import List, Optional, Sequence

from .models import RouteStep

_WHITESPACE_RE = re.compile(r"\s+")


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def format_distance(meters: float) -> str:
    if meters >= 1000:
        return f"{meters / 1000:.1f} km"
    return f"{_round_half_up(meters)} m"


def format_duration(seconds: float) -> str:
    return f"~{max(1, math.ceil(seconds / 60))} min"


def format_instructions(
    steps: Sequence[RouteStep],
    start_title: str,
    end_title: str,
    *,
    total_distance: Optional[float] = None,
    total_time: Optional[float] = None,
) -> str:
    if total_distance is None:
        total_distance = sum(step.distance_meters for step in steps)
    if total_time is None:
        total_time = sum(step.duration_seconds for step in steps)

    lines: List[str] = [
        f"Route: {start_title or 'Start'} to {end_title or 'Destination'}",
        f"Distance: {format_distance(total_distance)}  Walking: {format_duration(total_time)}  Steps: {len(steps)}",
        "",
    ]
    for number, step in enumerate(steps, start=1):
        line = f"{number}. {step.text}"
        if step.distance_meters:
            line += f" ({format_distance(step.distance_meters)})"
        lines.append(line)
    return "\n".join(lines) + "\n"


def export_filename(start_title: str, end_title: str) -> str:
    start_slug = _WHITESPACE_RE.sub("-", (start_title or "start").strip())
    end_slug = _WHITESPACE_RE.sub("-", (end_title or "destination").strip())
    return f"route-{start_slug}-to-{end_slug}.txt"
