"""
test_geo_convergence.py — Grid bucketing, window pruning, alert dedup and
location naming for geographic convergence detection.
"""

from datetime import datetime, timedelta, timezone

import pytest

from meridian.backend.models import Earthquake, MilitaryFlight, MilitaryVessel, SocialUnrestEvent
from meridian.fusion_engine.geo_convergence import (
    AlertDedupStore,
    GeoConvergenceGrid,
    convergence_score,
    get_cell_id,
    get_location_name,
)

BAGHDAD = (33.31, 44.36)


def _converge(grid, lat=BAGHDAD[0], lon=BAGHDAD[1]):
    grid.ingest_geo_event(lat, lon, "protest")
    grid.ingest_geo_event(lat, lon, "military_flight")
    grid.ingest_geo_event(lat + 0.2, lon + 0.1, "military_flight")
    grid.ingest_geo_event(lat, lon, "military_vessel")


class TestCells:

    def test_cell_id_floors(self):
        assert get_cell_id(33.9, 44.1) == "33,44"
        assert get_cell_id(-0.5, -0.5) == "-1,-1"

    def test_score(self):
        assert convergence_score(3, 4) == 83
        assert convergence_score(4, 50) == 100


class TestDetection:

    def test_three_types_converge(self, grid):
        _converge(grid)
        alerts = grid.detect_geo_convergence(AlertDedupStore())
        assert len(alerts) == 1
        alert = alerts[0]
        assert alert.cell_id == "33,44"
        assert (alert.lat, alert.lon) == (33.5, 44.5)
        assert len(alert.types) == 3
        assert alert.total_events == 4
        assert alert.score == 83
        assert alert.location_name == "Baghdad"

    def test_two_types_do_not_converge(self, grid):
        grid.ingest_geo_event(*BAGHDAD, "protest")
        grid.ingest_geo_event(*BAGHDAD, "earthquake")
        assert grid.detect_convergence() == []

    def test_dedup_store_suppresses_repeat_alerts(self, grid):
        _converge(grid)
        dedup = AlertDedupStore()
        assert len(grid.detect_geo_convergence(dedup)) == 1
        assert grid.detect_geo_convergence(dedup) == []
        assert len(dedup) == 1
        # A fresh store sees the cell again
        assert len(grid.detect_convergence()) == 1

    def test_dedup_ttl(self, clock):
        dedup = AlertDedupStore(ttl=60, clock=clock)
        dedup.mark("33,44")
        clock.advance(30)
        assert dedup.seen("33,44")
        clock.advance(31)
        assert not dedup.seen("33,44")

    def test_dedup_ttl_sweeps_expired_keys_on_mark(self, clock):
        dedup = AlertDedupStore(ttl=60, clock=clock)
        for i in range(1000):
            dedup.mark(f"{i},0")
        assert len(dedup) == 1000

        clock.advance(3600)
        dedup.mark("33,44")
        assert len(dedup) == 1
        assert dedup.seen("33,44")
        assert not dedup.seen("0,0")

    def test_dedup_without_ttl_keeps_everything(self, clock):
        dedup = AlertDedupStore(clock=clock)
        dedup.mark("1,1")
        clock.advance(10 ** 6)
        dedup.mark("2,2")
        assert len(dedup) == 2
        assert dedup.seen("1,1")

    def test_dedup_clear_then_seen(self, clock):
        dedup = AlertDedupStore(ttl=60, clock=clock)
        dedup.mark("33,44")
        dedup.clear()
        assert len(dedup) == 0
        assert not dedup.seen("33,44")

    def test_old_events_are_pruned(self, grid, clock):
        _converge(grid)
        clock.advance(25 * 3600)
        assert grid.detect_convergence() == []
        assert grid.cell_count() == 0

    def test_explicit_timestamps(self, grid, clock):
        now = datetime.fromtimestamp(clock.now, tz=timezone.utc)
        stale = now - timedelta(hours=30)
        grid.ingest_protests([SocialUnrestEvent(country="Iraq", lat=BAGHDAD[0], lon=BAGHDAD[1], time=stale)])
        grid.ingest_flights([MilitaryFlight(lat=BAGHDAD[0], lon=BAGHDAD[1], last_seen=now)])
        grid.ingest_vessels([MilitaryVessel(lat=BAGHDAD[0], lon=BAGHDAD[1], last_ais_update=now)])
        grid.ingest_earthquakes([Earthquake(lat=BAGHDAD[0], lon=BAGHDAD[1], occurred_at=now)])

        alert = grid.detect_convergence()[0]
        assert set(alert.types) == {"military_flight", "military_vessel", "earthquake"}

    def test_without_location_names(self, clock):
        grid = GeoConvergenceGrid(include_location_names=False, clock=clock)
        _converge(grid)
        assert grid.detect_convergence()[0].location_name is None

    def test_alerts_near_location(self, grid):
        grid.ingest_geo_event(*BAGHDAD, "protest")
        grid.ingest_geo_event(*BAGHDAD, "military_flight")
        assert grid.get_alerts_near_location(33.3, 44.4, 100) == {"score": 54, "types": 2}
        assert grid.get_alerts_near_location(0.0, 0.0, 100) is None

    def test_convergence_to_signal(self, grid):
        _converge(grid)
        alert = grid.detect_convergence()[0]
        signal = grid.convergence_to_signal(alert)
        assert signal.type == "geo_convergence"
        assert signal.title == "Geographic Convergence (3 types)"
        assert "Baghdad" in signal.description
        assert signal.confidence == pytest.approx(0.83)

    def test_clear(self, grid):
        _converge(grid)
        grid.clear()
        assert grid.cell_count() == 0


class TestLocationNames:

    @pytest.mark.parametrize("lat, lon, name", [
        (48.5, 37.5, "Ukraine"),
        (26.5, 56.5, "Strait of Hormuz"),
        (35.5, 51.5, "Tehran"),
        (45.5, 10.5, "Europe"),
        (-40.5, -140.5, "-40.5°, -140.5°"),
    ])
    def test_precedence(self, lat, lon, name):
        assert get_location_name(lat, lon) == name
