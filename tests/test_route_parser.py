from campus_nav.route_parser import (
    NO_ROUTE_DATA,
    UNEXPECTED_FORMAT,
    TripFormat,
    classify_trip,
    extract_route,
    normalize_trip,
    parse_route_steps,
)


def _v2_trip(texts, distances, durations, total_time=42):
    return {
        "routes": [
            {
                "legs": [
                    {
                        "instructions": {"steps": [{"instruction": text} for text in texts]},
                        "basic": {
                            "steps": [
                                {"properties": {"distance": distance, "timeEstimateSeconds": duration}}
                                for distance, duration in zip(distances, durations)
                            ]
                        },
                    }
                ],
                "properties": {"timeEstimateSeconds": total_time},
            }
        ]
    }


def test_missing_trip_reports_no_data(start_poi, end_poi):
    result = extract_route(None, start_poi, end_poi)
    assert result.error == NO_ROUTE_DATA
    assert result.steps == []
    assert result.total_distance == 0
    assert result.total_time == 0


def test_trip_without_routes_has_unexpected_format(start_poi, end_poi):
    result = extract_route({"routes": []}, start_poi, end_poi)
    assert result.error == UNEXPECTED_FORMAT
    assert result.steps == []


def test_aligned_steps_are_paired_by_index(start_poi, end_poi):
    trip = _v2_trip(["Turn left", "Arrive"], [50, 10], [30, 5], total_time=37)

    result = extract_route(trip, start_poi, end_poi)

    assert result.error is None
    assert [step.text for step in result.steps] == ["Turn left", "Arrive"]
    assert [step.distance_meters for step in result.steps] == [50, 10]
    assert [step.duration_seconds for step in result.steps] == [30, 5]
    assert result.total_distance == 60
    assert result.total_time == 37


def test_total_distance_ignores_dropped_instructions(start_poi, end_poi):
    trip = _v2_trip(["Go straight", "", "Arrive"], [20, 999, 5], [10, 1, 2])

    result = extract_route(trip, start_poi, end_poi)

    assert [step.text for step in result.steps] == ["Go straight", "Arrive"]
    assert result.steps[1].distance_meters == 5
    assert result.total_distance == 25


def test_missing_basic_entries_default_to_zero(start_poi, end_poi):
    trip = _v2_trip(["Turn right", "Arrive"], [12], [7])

    result = extract_route(trip, start_poi, end_poi)

    assert result.steps[1].distance_meters == 0
    assert result.steps[1].duration_seconds == 0


def test_empty_instructions_fall_back_to_single_step(start_poi, end_poi):
    trip = _v2_trip(["", ""], [10, 20], [1, 2], total_time=120)

    result = extract_route(trip, start_poi, end_poi)

    assert result.error is None
    assert len(result.steps) == 1
    assert "Kårallen" in result.steps[0].text
    assert "Zenit" in result.steps[0].text
    assert result.steps[0].duration_seconds == 120


def test_fallback_uses_generic_names_without_titles():
    result = extract_route({"routes": [{"legs": []}]}, None, None)
    assert result.steps[0].text == "Walk from Start to Destination"


def test_malformed_structure_becomes_parse_error(start_poi, end_poi):
    trip = {"routes": [{"legs": [{"instructions": {"steps": ["not-a-step"]}}]}]}

    result = extract_route(trip, start_poi, end_poi)

    assert result.steps == []
    assert result.error.startswith("Failed to parse route steps: ")


def test_legacy_trip_legs_with_kilometre_lengths(start_poi, end_poi):
    trip = {
        "trip": {
            "legs": [
                {
                    "maneuvers": [
                        {"instruction": "Head north", "length": 0.25, "time": 90},
                        {"text": "Take the stairs", "distance": 15, "duration": 20, "floor": 2},
                        {"action": "Arrive", "distance": 0},
                    ]
                }
            ]
        }
    }

    result = parse_route_steps(trip, start_poi, end_poi)

    assert [step.text for step in result.steps] == ["Head north", "Take the stairs", "Arrive"]
    assert result.steps[0].distance_meters == 250
    assert result.steps[1].floor == 2
    assert result.total_distance == 265
    assert result.total_time == 110


def test_legacy_text_priority_prefers_instruction(start_poi, end_poi):
    trip = {"legs": [{"steps": [{"name": "Corridor B", "description": "Walk the corridor", "instruction": "Go ahead"}]}]}

    result = parse_route_steps(trip, start_poi, end_poi)

    assert result.steps[0].text == "Go ahead"


def test_legacy_length_wins_over_distance(start_poi, end_poi):
    trip = {"routes": [{"legs": [{"instructions": [{"text": "Walk", "length": 0.5, "distance": 3}]}]}]}

    result = parse_route_steps(trip, start_poi, end_poi)

    assert result.steps[0].distance_meters == 500


def test_legacy_summary_feeds_fallback(start_poi, end_poi):
    trip = {"trip": {"legs": [{"maneuvers": [{"length": 0.2}]}], "summary": {"length": 0.5, "time": 240}}}

    result = parse_route_steps(trip, start_poi, end_poi)

    assert len(result.steps) == 1
    assert result.steps[0].text == "Walk from Kårallen to Zenit"
    assert result.total_distance == 500
    assert result.total_time == 240


def test_legacy_top_level_summary(start_poi, end_poi):
    result = parse_route_steps({"summary": {"distance": 80, "duration": 60}}, start_poi, end_poi)
    assert result.total_distance == 80
    assert result.steps[0].duration_seconds == 60


def test_classify_trip_shapes():
    assert classify_trip(None) == TripFormat.UNKNOWN
    assert classify_trip(_v2_trip(["a"], [1], [1])) == TripFormat.ROUTES_V2
    assert classify_trip({"trip": {"legs": []}}) == TripFormat.TRIP_LEGS
    assert classify_trip({"legs": []}) == TripFormat.LEGS
    assert classify_trip({"routes": [{"legs": [{"maneuvers": []}]}]}) == TripFormat.ROUTES_LEGS
    assert classify_trip({"routes": [{"properties": {}}]}) == TripFormat.ROUTES_V2


def test_normalize_trip_dispatches_by_shape(start_poi, end_poi):
    trip_format, result = normalize_trip({"legs": [{"maneuvers": [{"instruction": "Exit left"}]}]}, start_poi, end_poi)
    assert trip_format == TripFormat.LEGS
    assert result.steps[0].text == "Exit left"

    trip_format, result = normalize_trip(_v2_trip(["Turn left"], [4], [3]), start_poi, end_poi)
    assert trip_format == TripFormat.ROUTES_V2
    assert result.total_distance == 4

    trip_format, result = normalize_trip(None, start_poi, end_poi)
    assert trip_format == TripFormat.UNKNOWN
    assert result.error == NO_ROUTE_DATA
