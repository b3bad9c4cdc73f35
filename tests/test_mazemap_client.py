import threading
from unittest.mock import MagicMock, patch

import pytest
import requests

from campus_nav import mazemap_client
from campus_nav.mazemap_client import (
    EQUERY_URL,
    POIS_URL,
    ROUTING_URL,
    RouteLookupError,
    SearchDebouncer,
    build_map_embed_url,
    fetch_route,
    search_locations,
)
from campus_nav.models import LatLng, Poi


def _response(payload=None, status=200, json_error=False):
    response = MagicMock()
    response.status_code = status
    response.ok = status < 400
    if status >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status} error")
    if json_error:
        response.json.side_effect = ValueError("no json")
    else:
        response.json.return_value = payload
    return response


def test_short_query_makes_no_request():
    with patch("campus_nav.mazemap_client.requests.get") as mock_get:
        assert search_locations(" a ") == []
    mock_get.assert_not_called()


def test_equery_results_are_cleaned():
    payload = {
        "result": [
            {
                "title": "<b>Zenit</b> entrance",
                "buildingName": "Zenit",
                "point": {"coordinates": [15.57, 58.39]},
                "z": 1,
                "poiId": 77,
            },
            {"name": "Café", "geometry": {"coordinates": [15.5, 58.3]}, "type": "building"},
            "not-a-dict",
        ]
    }
    with patch("campus_nav.mazemap_client.requests.get", return_value=_response(payload)) as mock_get:
        results = search_locations("zenit")

    assert mock_get.call_args.args[0] == EQUERY_URL
    assert mock_get.call_args.kwargs["params"]["q"] == "zenit"
    assert mock_get.call_args.kwargs["params"]["campusid"] == 742
    assert [poi.title for poi in results] == ["Zenit entrance", "Café"]
    assert results[0].poi_id == 77
    assert results[1].coordinates == [15.5, 58.3]
    assert results[1].category == "building"


def test_equery_failure_falls_back_to_pois_endpoint():
    fallback = {"pois": [{"title": "Library", "point": {"coordinates": [15.5, 58.4]}}]}
    with patch(
        "campus_nav.mazemap_client.requests.get",
        side_effect=[_response(status=500), _response(fallback)],
    ) as mock_get:
        results = search_locations("library")

    assert [call.args[0] for call in mock_get.call_args_list] == [EQUERY_URL, POIS_URL]
    assert mock_get.call_args.kwargs["params"]["query"] == "library"
    assert [poi.title for poi in results] == ["Library"]


def test_both_search_endpoints_failing_returns_empty():
    with patch(
        "campus_nav.mazemap_client.requests.get",
        side_effect=requests.ConnectionError("offline"),
    ):
        assert search_locations("library") == []


def test_campus_id_comes_from_environment(monkeypatch):
    monkeypatch.setenv("MAZEMAP_CAMPUS_ID", "99")
    with patch("campus_nav.mazemap_client.requests.get", return_value=_response({"result": []})) as mock_get:
        search_locations("hall")
    assert mock_get.call_args.kwargs["params"]["campusid"] == 99


def test_fetch_route_uses_poi_ids_and_coordinates(start_poi, end_poi):
    trip = {"routes": []}
    with patch("campus_nav.mazemap_client.requests.get", return_value=_response(trip)) as mock_get:
        result = fetch_route(start_poi, end_poi)

    params = mock_get.call_args.kwargs["params"]
    assert mock_get.call_args.args[0] == ROUTING_URL
    assert params["fromPoiId"] == "1001"
    assert "fromLngLatZ" not in params
    assert params["toLngLatZ"] == "15.5721,58.3977,2"
    assert params["mode"] == "PEDESTRIAN"
    assert result.trip_data == trip
    assert result.start_coords == LatLng(lat=58.3984, lng=15.5769)
    assert (result.start_z, result.end_z) == (1, 2)


def test_fetch_route_without_coordinates_raises(start_poi):
    nowhere = Poi.parse_obj({"title": "Nowhere"})
    with patch("campus_nav.mazemap_client.requests.get") as mock_get:
        with pytest.raises(RouteLookupError, match="Could not get coordinates"):
            fetch_route(start_poi, nowhere)
    mock_get.assert_not_called()


def test_fetch_route_rejects_error_status(start_poi, end_poi):
    with patch("campus_nav.mazemap_client.requests.get", return_value=_response(status=503)):
        with pytest.raises(RouteLookupError, match="503"):
            fetch_route(start_poi, end_poi)


def test_fetch_route_wraps_transport_errors(start_poi, end_poi):
    with patch("campus_nav.mazemap_client.requests.get", side_effect=requests.Timeout("slow")):
        with pytest.raises(RouteLookupError, match="Routing request failed"):
            fetch_route(start_poi, end_poi)


def test_fetch_route_rejects_invalid_json(start_poi, end_poi):
    with patch("campus_nav.mazemap_client.requests.get", return_value=_response(json_error=True)):
        with pytest.raises(RouteLookupError, match="invalid JSON"):
            fetch_route(start_poi, end_poi)


def test_embed_url_lists_lng_lat_z():
    url = build_map_embed_url(LatLng(lat=58.39, lng=15.57), LatLng(lat=58.4, lng=15.58), 1, 3)
    assert url == (
        "https://use.mazemap.com/?campusid=742"
        "&starttype=point&start=15.57,58.39,1"
        "&desttype=point&dest=15.58,58.4,3"
    )


def test_debouncer_only_searches_last_query():
    searched = []
    delivered = threading.Event()
    results = {}

    def search(query):
        searched.append(query)
        return ["hit:" + query]

    def on_results(query, found):
        results[query] = found
        delivered.set()

    debouncer = SearchDebouncer(on_results, delay=0.05, search=search)
    debouncer.submit("ze")
    debouncer.submit("zen")
    debouncer.submit("zenit")

    assert delivered.wait(2)
    assert searched == ["zenit"]
    assert results == {"zenit": ["hit:zenit"]}


def test_debouncer_clears_results_for_short_query():
    search = MagicMock()
    on_results = MagicMock()
    debouncer = SearchDebouncer(on_results, delay=0.05, search=search)

    debouncer.submit("z")

    on_results.assert_called_once_with("z", [])
    search.assert_not_called()


def test_debouncer_cancel_drops_pending_search():
    search = MagicMock(return_value=[])
    debouncer = SearchDebouncer(MagicMock(), delay=0.05, search=search)

    debouncer.submit("zenit")
    debouncer.cancel()

    threading.Event().wait(0.15)
    search.assert_not_called()


def test_module_defaults():
    assert mazemap_client.MIN_QUERY_LENGTH == 2
    assert mazemap_client.DEFAULT_CAMPUS_ID == 742


def test_debouncer_ignores_timer_that_fires_after_newer_submit():
    searched = []
    delivered = []
    latest_seen = threading.Event()

    def search(query):
        searched.append(query)
        return [query]

    def on_results(query, found):
        delivered.append(query)
        if query == "latest":
            latest_seen.set()

    debouncer = SearchDebouncer(on_results, delay=0.2, search=search)
    debouncer.submit("older")
    older_token = debouncer._token
    debouncer.submit("newer")

    # the "older" timer was already firing when "newer" was submitted
    debouncer._run(older_token, "older")
    debouncer.cancel()
    debouncer.submit("latest")

    assert latest_seen.wait(2)
    threading.Event().wait(0.3)
    assert searched == ["latest"]
    assert delivered == ["latest"]


def test_debouncer_drops_results_when_cancelled_mid_search():
    started = threading.Event()
    release = threading.Event()
    on_results = MagicMock()

    def slow_search(query):
        started.set()
        release.wait(2)
        return ["late"]

    debouncer = SearchDebouncer(on_results, delay=0.01, search=slow_search)
    debouncer.submit("zenit")
    assert started.wait(2)

    debouncer.cancel()
    release.set()
    threading.Event().wait(0.1)

    on_results.assert_not_called()
