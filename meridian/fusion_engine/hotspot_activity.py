"""Meridian — Hotspot activity tracker.

Accumulates event weight near named hotspots, conflict zones and
strategic waterways, keyed by the countries tied to each location.
The counters never decay; only ``clear()`` resets them.
"""

from collections import defaultdict

from meridian.fusion_engine.countries import get_hotspot_countries
from meridian.fusion_engine.geo import (
    CONFLICT_ZONES,
    INTEL_HOTSPOTS,
    STRATEGIC_WATERWAYS,
    haversine_km,
)

HOTSPOT_RADIUS_KM = 150
CONFLICT_ZONE_RADIUS_KM = 300
WATERWAY_RADIUS_KM = 200

CONFLICT_ZONE_WEIGHT = 2.0
WATERWAY_WEIGHT = 1.5

MAX_HOTSPOT_BOOST = 10
HOTSPOT_BOOST_FACTOR = 1.5


class HotspotActivityTracker:

    def __init__(self):
        self._activity: dict[str, float] = defaultdict(float)

    def track(self, lat: float, lon: float, weight: float = 1.0) -> None:
        """Credit ``weight`` to every country tied to a location within range.

        Overlapping locations each contribute; nothing is deduplicated.
        """
        for hotspot in INTEL_HOTSPOTS:
            if haversine_km(lat, lon, hotspot["lat"], hotspot["lon"]) < HOTSPOT_RADIUS_KM:
                for code in get_hotspot_countries(hotspot["id"]):
                    self._activity[code] += weight

        for zone in CONFLICT_ZONES:
            if haversine_km(lat, lon, zone["lat"], zone["lon"]) < CONFLICT_ZONE_RADIUS_KM:
                for code in zone["countries"]:
                    self._activity[code] += weight * CONFLICT_ZONE_WEIGHT

        for waterway in STRATEGIC_WATERWAYS:
            if haversine_km(lat, lon, waterway["lat"], waterway["lon"]) < WATERWAY_RADIUS_KM:
                for code in waterway["countries"]:
                    self._activity[code] += weight * WATERWAY_WEIGHT

    def activity(self, code: str) -> float:
        return self._activity.get(code, 0.0)

    def boost(self, code: str) -> float:
        return min(MAX_HOTSPOT_BOOST, self.activity(code) * HOTSPOT_BOOST_FACTOR)

    def clear(self) -> None:
        self._activity.clear()

    def snapshot(self) -> dict[str, float]:
        return dict(self._activity)
