import pytest
import requests

from turnbyturn.backends import BackendError, OrsBackend, OsrmBackend, ValhallaBackend, build_backends
from turnbyturn.models import Coord, ManeuverKind
from turnbyturn.nav_config import NavConfig

ORIGIN = Coord(52.0, 13.0)
DESTINATION = Coord(52.001, 13.001)


# ---------------------------------------------------------------------------
# OSRM
# ---------------------------------------------------------------------------

def test_osrm_request_shape(fake_session, fake_response, osrm_payload):
    session = fake_session({"osrm.test": fake_response(osrm_payload)})
    backend = OsrmBackend("http://osrm.test/", session=session)
    backend.fetch_route(ORIGIN, DESTINATION)

    call = session.calls[0]
    assert call["method"] == "GET"
    assert call["url"] == "http://osrm.test/route/v1/driving/13.0,52.0;13.001,52.001"
    assert call["params"] == {
        "overview": "full", "geometries": "geojson", "steps": "true", "annotations": "false",
    }
    assert call["timeout"] == (3.0, 3.0)


def test_osrm_parse(fake_session, fake_response, osrm_payload):
    session = fake_session({"osrm.test": fake_response(osrm_payload)})
    route = OsrmBackend("http://osrm.test", session=session).fetch_route(ORIGIN, DESTINATION)

    assert route.backend == "osrm"
    assert route.points == (Coord(52.0, 13.0), Coord(52.001, 13.0), Coord(52.001, 13.001))
    assert route.total_distance_m == 1234.5
    assert route.total_duration_s == 98.7
    assert route.route_name == "Main Street"
    assert [s.maneuver for s in route.steps] == [
        ManeuverKind.DEPART, ManeuverKind.TURN_RIGHT, ManeuverKind.ARRIVE,
    ]
    assert route.steps[1].instruction == "Turn right onto Side Road"
    assert route.steps[1].location == Coord(52.001, 13.0)
    assert route.steps[2].road_name is None


def test_osrm_error_code(fake_session, fake_response):
    payload = {"code": "NoRoute", "message": "Impossible route between points"}
    session = fake_session({"osrm.test": fake_response(payload)})
    with pytest.raises(BackendError, match="Impossible route"):
        OsrmBackend("http://osrm.test", session=session).fetch_route(ORIGIN, DESTINATION)


@pytest.mark.parametrize("outcome, message", [
    (requests.Timeout("read timed out"), "timed out"),
    (requests.ConnectionError("refused"), "request failed"),
])
def test_osrm_transport_errors(fake_session, outcome, message):
    session = fake_session({"osrm.test": outcome})
    with pytest.raises(BackendError, match=message) as excinfo:
        OsrmBackend("http://osrm.test", session=session).fetch_route(ORIGIN, DESTINATION)
    assert excinfo.value.backend == "osrm"


def test_http_error_status(fake_session, fake_response):
    session = fake_session({"osrm.test": fake_response({}, status_code=503)})
    with pytest.raises(BackendError, match="request failed"):
        OsrmBackend("http://osrm.test", session=session).fetch_route(ORIGIN, DESTINATION)


def test_malformed_json(fake_session, fake_response):
    session = fake_session({"osrm.test": fake_response(json_error=True)})
    with pytest.raises(BackendError, match="malformed JSON"):
        OsrmBackend("http://osrm.test", session=session).fetch_route(ORIGIN, DESTINATION)


def test_missing_fields_are_malformed_route_data(fake_session, fake_response):
    session = fake_session({"osrm.test": fake_response({"code": "Ok", "routes": [{"distance": 1}]})})
    with pytest.raises(BackendError, match="malformed route data"):
        OsrmBackend("http://osrm.test", session=session).fetch_route(ORIGIN, DESTINATION)


def test_non_object_payload(fake_session, fake_response):
    session = fake_session({"osrm.test": fake_response([1, 2, 3])})
    with pytest.raises(BackendError, match="unexpected response shape"):
        OsrmBackend("http://osrm.test", session=session).fetch_route(ORIGIN, DESTINATION)


def test_route_without_steps_rejected(fake_session, fake_response, osrm_payload):
    osrm_payload["routes"][0]["legs"][0]["steps"] = []
    session = fake_session({"osrm.test": fake_response(osrm_payload)})
    with pytest.raises(BackendError, match="no steps"):
        OsrmBackend("http://osrm.test", session=session).fetch_route(ORIGIN, DESTINATION)


# ---------------------------------------------------------------------------
# ORS
# ---------------------------------------------------------------------------

def test_ors_request_shape(fake_session, fake_response, ors_payload):
    session = fake_session({"ors.test": fake_response(ors_payload)})
    backend = OrsBackend("http://ors.test/v2/directions/driving-car", api_key="secret", session=session)
    backend.fetch_route(ORIGIN, DESTINATION)

    call = session.calls[0]
    assert call["method"] == "POST"
    assert call["headers"]["Authorization"] == "secret"
    assert call["json"]["coordinates"] == [[13.0, 52.0], [13.001, 52.001]]
    assert call["json"]["instructions"] is True
    assert call["json"]["units"] == "m"


def test_ors_parse(fake_session, fake_response, ors_payload, sample_polyline):
    _, expected = sample_polyline
    session = fake_session({"ors.test": fake_response(ors_payload)})
    route = OrsBackend("http://ors.test", api_key="secret", session=session).fetch_route(ORIGIN, DESTINATION)

    assert route.backend == "ors"
    assert len(route.points) == 3
    assert route.points[2].lat == pytest.approx(expected[2][0])
    assert route.total_distance_m == 1000.0
    assert [s.maneuver for s in route.steps] == [
        ManeuverKind.DEPART, ManeuverKind.TURN_RIGHT, ManeuverKind.ARRIVE,
    ]
    assert route.steps[0].road_name is None
    assert route.steps[0].instruction == "Head north"
    assert route.steps[1].instruction == "Turn right onto Coast Road"
    assert route.steps[1].location == route.points[1]


def test_ors_without_key_is_unavailable():
    backend = OrsBackend("http://ors.test")
    assert not backend.is_available
    with pytest.raises(BackendError, match="API key"):
        backend.fetch_route(ORIGIN, DESTINATION)


def test_ors_error_payload(fake_session, fake_response):
    payload = {"error": {"code": 2010, "message": "Could not find routable point"}}
    session = fake_session({"ors.test": fake_response(payload)})
    with pytest.raises(BackendError, match="routable point"):
        OrsBackend("http://ors.test", api_key="k", session=session).fetch_route(ORIGIN, DESTINATION)


def test_ors_truncated_geometry_is_malformed_route_data(fake_session, fake_response, ors_payload):
    ors_payload["routes"][0]["geometry"] = "_p~iF~ps|U_ulL"
    session = fake_session({"ors.test": fake_response(ors_payload)})
    with pytest.raises(BackendError, match="malformed route data"):
        OrsBackend("http://ors.test", api_key="k", session=session).fetch_route(ORIGIN, DESTINATION)


# ---------------------------------------------------------------------------
# Valhalla
# ---------------------------------------------------------------------------

def test_valhalla_request_shape(fake_session, fake_response, valhalla_payload):
    session = fake_session({"valhalla.test": fake_response(valhalla_payload)})
    ValhallaBackend("http://valhalla.test/route", session=session).fetch_route(ORIGIN, DESTINATION)

    body = session.calls[0]["json"]
    assert body["locations"] == [{"lat": 52.0, "lon": 13.0}, {"lat": 52.001, "lon": 13.001}]
    assert body["costing"] == "auto"
    assert body["directions_options"]["units"] == "kilometers"


def test_valhalla_parse(fake_session, fake_response, valhalla_payload, sample_polyline):
    _, expected = sample_polyline
    session = fake_session({"valhalla.test": fake_response(valhalla_payload)})
    route = ValhallaBackend("http://valhalla.test/route", session=session).fetch_route(ORIGIN, DESTINATION)

    # precision 6 shrinks the sample geometry by a factor of ten
    assert route.points[0].lat == pytest.approx(expected[0][0] / 10)
    assert route.total_distance_m == pytest.approx(1200.0)
    assert route.total_duration_s == 90.0
    assert [s.maneuver for s in route.steps] == [
        ManeuverKind.DEPART, ManeuverKind.TURN_LEFT, ManeuverKind.ARRIVE,
    ]
    assert route.steps[1].instruction == "Turn left onto Elm St"
    assert route.steps[1].distance_m == pytest.approx(700.0)
    assert route.steps[1].location == route.points[1]


def test_valhalla_single_point_shape_rejected(fake_session, fake_response, valhalla_payload):
    valhalla_payload["trip"]["legs"][0]["shape"] = "_p~iF~ps|U"
    session = fake_session({"valhalla.test": fake_response(valhalla_payload)})
    with pytest.raises(BackendError, match="1 point"):
        ValhallaBackend("http://valhalla.test", session=session).fetch_route(ORIGIN, DESTINATION)


def test_valhalla_error_payload(fake_session, fake_response):
    session = fake_session({"valhalla.test": fake_response({"error": "No suitable edges near location"})})
    with pytest.raises(BackendError, match="No suitable edges"):
        ValhallaBackend("http://valhalla.test", session=session).fetch_route(ORIGIN, DESTINATION)


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

def test_build_backends_follows_configured_order(fake_session):
    config = NavConfig(
        backend_order=("valhalla", "osrm", "ors"),
        osrm_urls=("http://osrm-a.test", "http://osrm-b.test"),
        ors_api_key="k",
    )
    backends = build_backends(config, session=fake_session({}))
    assert [b.name for b in backends] == ["valhalla", "osrm", "osrm", "ors"]
    assert backends[2].base_url == "http://osrm-b.test"


def test_build_backends_rejects_unknown_name():
    with pytest.raises(ValueError):
        build_backends(NavConfig(backend_order=("osrm", "graphhopper")))
