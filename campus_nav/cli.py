"""``flask navigate``: search, route and walk through the clues in a terminal."""
from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import List, Optional

import click
from flask import Flask

from .coordinates import get_poi_lat_lng
from .export import format_distance, format_duration, format_instructions
from .interstitials import Interstitial
from .mazemap_client import RouteLookupError, build_map_embed_url, fetch_route, search_locations
from .models import Poi
from .playback import PlaybackState, StepPlayback
from .route_parser import normalize_trip
from .speech import SpeechController
from .transform import StyleLevel, transform_instructions

logger = logging.getLogger(__name__)


def _describe(poi: Poi) -> str:
    detail = " · ".join(part for part in (poi.building_name, f"Floor {poi.floor_name}" if poi.floor_name else None) if part)
    return f"{poi.title} ({detail})" if detail else poi.title


def _choose_place(query: str, label: str) -> Poi:
    results: List[Poi] = search_locations(query)
    if not results:
        raise click.ClickException(f"No places match {query!r} for the {label.lower()}.")
    if len(results) == 1:
        return results[0]
    click.echo(f"{label} candidates:")
    for index, poi in enumerate(results, start=1):
        click.echo(f"  {index}. {_describe(poi)}")
    choice = click.prompt(f"Pick the {label.lower()}", type=click.IntRange(1, len(results)), default=1)
    return results[choice - 1]


def _show_interstitial(interstitial: Interstitial) -> None:
    click.echo()
    click.secho(f"[{interstitial.tag}] {interstitial.headline}", bold=True)
    click.echo(interstitial.body)
    click.echo(f">> {interstitial.cta} <<")
    click.secho(interstitial.fine, dim=True)
    for remaining in range(interstitial.countdown_seconds, 0, -1):
        click.echo(f"Skip in {remaining}s...")
        time.sleep(1)
    click.pause("Press any key to skip the ad...")


def _show_step(playback: StepPlayback) -> None:
    step = playback.current_step
    if step is None:
        return
    total = len(playback.steps)
    click.echo()
    click.secho(f"Clue {playback.cursor + 1} of {total}", bold=True)
    click.echo(f"  {step.text}")
    if step.distance_meters:
        click.echo(f"  {format_distance(step.distance_meters)}")


def _walk(playback: StepPlayback) -> None:
    _show_step(playback)
    while playback.state is PlaybackState.ACTIVE:
        click.echo("[n]ext  [p]revious  [s]peak again  [q]uit")
        key = click.getchar().lower()
        if key == "n":
            interstitial = playback.next()
            if interstitial is not None:
                _show_interstitial(interstitial)
                playback.dismiss_interstitial()
        elif key == "p":
            playback.prev()
        elif key == "s":
            playback.speak_current()
            continue
        elif key == "q":
            return
        else:
            continue
        _show_step(playback)

    if playback.state is PlaybackState.COMPLETED:
        click.secho("X marks the spot! Ye've followed all the clues.", bold=True)


@click.command("navigate")
@click.argument("start_query")
@click.argument("end_query")
@click.option(
    "--style",
    type=click.Choice([level.value for level in StyleLevel]),
    default=None,
    help="Rewrite the instructions as pirate clues of the given intensity.",
)
@click.option("--speak/--no-speak", default=False, help="Narrate each step aloud.")
@click.option(
    "--export",
    "export_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Also save the instructions to a text file.",
)
def navigate_command(start_query: str, end_query: str, style: Optional[str], speak: bool, export_path: Optional[Path]) -> None:
    """Find a walking route between two campus places and play it back."""
    start = _choose_place(start_query, "Start")
    end = _choose_place(end_query, "Destination")

    click.echo("Finding the best route...")
    try:
        fetched = fetch_route(start, end)
    except RouteLookupError as exc:
        logger.warning("Routing error: %s", exc)
        start_coords, end_coords = get_poi_lat_lng(start), get_poi_lat_lng(end)
        if start_coords is None or end_coords is None:
            raise click.ClickException(f"Could not find route: {exc}") from exc
        click.echo("Route shown on map. Turn-by-turn instructions unavailable for this route.")
        click.echo(build_map_embed_url(start_coords, end_coords, start.z or 0, end.z or 0))
        return

    _, extracted = normalize_trip(fetched.trip_data, start, end)
    click.echo(build_map_embed_url(fetched.start_coords, fetched.end_coords, fetched.start_z, fetched.end_z))
    if extracted.error:
        raise click.ClickException(extracted.error)

    click.echo(
        f"Distance {format_distance(extracted.total_distance)}, walking {format_duration(extracted.total_time)}, "
        f"{len(extracted.steps)} steps"
    )

    controller = SpeechController() if speak else None
    playback = StepPlayback(speech=controller)
    try:
        generation = playback.load(extracted.steps)
        if style:
            click.echo("Rewriting the instructions as pirate clues...")
            texts = transform_instructions([step.text for step in playback.steps], style)
            playback.apply_texts(texts, generation)

        if export_path is not None:
            document = format_instructions(
                playback.steps,
                start.title,
                end.title,
                total_distance=extracted.total_distance,
                total_time=extracted.total_time,
            )
            export_path.write_text(document, encoding="utf-8")
            click.echo(f"Instructions saved to {export_path}")

        if speak:
            playback.auto_speak = True
            playback.speak_current()
        _walk(playback)
    finally:
        playback.reset()
        if controller is not None:
            controller.shutdown()


def register_cli(app: Flask) -> None:
    app.cli.add_command(navigate_command)
