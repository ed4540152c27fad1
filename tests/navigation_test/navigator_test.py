import json

from turnbyturn.models import NavStatus, RouteResult
from turnbyturn.nav_config import NavConfig
from turnbyturn.navigator import NavigationSystem


def test_start_navigation_waits_for_route(tmp_path, stub_provider, route, recorder):
    stub_provider.initial = RouteResult(route=route, backend="osrm")
    nav = NavigationSystem(NavConfig(log_dir=str(tmp_path)), provider=stub_provider)
    nav.add_listener(recorder)

    ok, msg = nav.start_navigation(route.origin, route.destination, wait=5.0)

    assert ok
    assert msg == f"Route ready. {len(route.steps)} steps."
    assert nav.is_active
    assert nav.nav_logger is not None
    assert (tmp_path / "active_route.json").exists()
    nav.shutdown(5.0)


def test_start_navigation_failure_reports_provider_error(stub_provider, route):
    stub_provider.last_error = "valhalla: down"
    nav = NavigationSystem(NavConfig(), provider=stub_provider)

    ok, msg = nav.start_navigation(route.origin, route.destination, wait=5.0)

    assert not ok
    assert msg == "valhalla: down"
    assert nav.state.status is NavStatus.IDLE
    assert nav.nav_logger is None


def test_update_raw_drives_engine(tmp_path, stub_provider, route, points):
    nav = NavigationSystem(NavConfig(log_dir=str(tmp_path)), provider=stub_provider)
    nav.start_with_route(route)

    state = nav.update_raw(points[5].lat, points[5].lon, bearing=0.0, speed_kmh=40.0, timestamp=12.0)

    assert state.current_position.timestamp == 12.0
    assert state.current_position.speed_kmh == 40.0
    assert 499.0 < state.remaining_distance_m < 501.0

    nav.stop_navigation()
    assert not nav.is_active
    events = [json.loads(line)["event"] for line in
              (tmp_path / "nav_session.jsonl").read_text(encoding="utf-8").splitlines()]
    assert events[-1] == "stopped"
