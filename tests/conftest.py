"""
pytest configuration and shared fixtures for the Meridian tests.

Tests never touch Redis or real boundary files:
  1. Every app is built through create_app() with use_redis=False, so the
     score cache runs on its in-memory backend.
  2. Point-in-polygon attribution uses a tiny synthetic GeoJSON (a square
     standing in for Kenya) instead of a Natural Earth download.
  3. Time-dependent components take an injectable clock.
"""

import pytest
from fastapi.testclient import TestClient

from meridian.backend.config import Settings
from meridian.backend.main import create_app
from meridian.fusion_engine.country_instability import CIIEngine
from meridian.fusion_engine.focal_point_detector import FocalPointDetector
from meridian.fusion_engine.geo_attribution import CountryGeometry, GeoAttributor
from meridian.fusion_engine.geo_convergence import GeoConvergenceGrid

# Square "Kenya": lat -4..4, lon 34..42
KENYA_SQUARE = {
    "type": "Feature",
    "properties": {"ISO_A2": "KE", "NAME": "Kenya"},
    "geometry": {
        "type": "Polygon",
        "coordinates": [[[34, -4], [42, -4], [42, 4], [34, 4], [34, -4]]],
    },
}


class FakeClock:
    """Manually advanced replacement for time.time."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def kenya_feature():
    return KENYA_SQUARE


@pytest.fixture()
def geometry(kenya_feature):
    return CountryGeometry.from_geojson({"type": "FeatureCollection", "features": [kenya_feature]})


@pytest.fixture()
def attributor(geometry):
    return GeoAttributor(geometry)


@pytest.fixture()
def detector():
    return FocalPointDetector()


@pytest.fixture()
def engine(attributor, detector, clock):
    """A fresh engine per test; nothing is shared between tests."""
    return CIIEngine(attributor=attributor, focal_detector=detector, clock=clock)


@pytest.fixture()
def grid(clock):
    return GeoConvergenceGrid(include_location_names=True, clock=clock)


@pytest.fixture()
def test_settings():
    return Settings(use_redis=False, country_boundaries_path=None)


@pytest.fixture()
def client(test_settings):
    """
    TestClient wired to a freshly built app, lifespan included.

    Usage:
        def test_something(client):
            response = client.get("/")
            assert response.status_code == 200
    """
    with TestClient(create_app(test_settings)) as tc:
        yield tc
