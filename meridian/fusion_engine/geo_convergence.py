"""Meridian — Geographic convergence detection.

Accumulates geo-tagged events in 1° × 1° grid cells over a rolling
window (24h by default) and flags cells where 3+ distinct event types
converge.

  score = min(100, n_types * 25 + min(25, n_events * 2))

Alerts are deduplicated through an ``AlertDedupStore`` owned by the
caller, so a cell alerts once per store lifetime (or per TTL).
Optionally each alert is labelled with a human-readable location: the
nearest conflict zone, waterway or hotspot, else a coarse region name,
else raw coordinates.
"""

import logging
import math
import threading
import time
from datetime import datetime, timezone
from typing import Callable, Optional

from meridian.backend.models import (
    CorrelationSignal,
    Earthquake,
    GeoConvergenceAlert,
    GeoEventType,
    MilitaryFlight,
    MilitaryVessel,
    SocialUnrestEvent,
)
from meridian.fusion_engine.geo import CONFLICT_ZONES, INTEL_HOTSPOTS, STRATEGIC_WATERWAYS, haversine_km

logger = logging.getLogger("meridian.fusion")

# Minimum distinct event types in a cell to emit a convergence alert
CONVERGENCE_THRESHOLD = 3

DEFAULT_WINDOW_SECONDS = 24 * 60 * 60

TYPE_LABELS = {
    "protest": "protests",
    "military_flight": "military flights",
    "military_vessel": "naval vessels",
    "earthquake": "seismic activity",
}

# (name, lat range, lon range), first match wins
REGIONS = [
    ("Middle East",    (25, 40),  (25, 75)),
    ("East Asia",      (30, 45),  (100, 145)),
    ("Southeast Asia", (-10, 25), (90, 130)),
    ("Europe",         (35, 70),  (-10, 40)),
    ("Russia",         (44, 75),  (20, 180)),
    ("Africa",         (-35, 35), (-20, 55)),
    ("North America",  (25, 50),  (-125, -65)),
    ("South America",  (-60, 15), (-80, -30)),
]


def get_cell_id(lat: float, lon: float) -> str:
    return f"{math.floor(lat)},{math.floor(lon)}"


def convergence_score(n_types: int, n_events: int) -> int:
    return min(100, n_types * 25 + min(25, n_events * 2))


def get_location_name(lat: float, lon: float) -> str:
    """Reverse-geocode a point to the most relevant named place."""
    for zone in CONFLICT_ZONES:
        if haversine_km(lat, lon, zone["lat"], zone["lon"]) < 300:
            return zone["name"].replace(" Conflict", "").replace(" Civil War", "")

    for waterway in STRATEGIC_WATERWAYS:
        if haversine_km(lat, lon, waterway["lat"], waterway["lon"]) < 200:
            return waterway["name"]

    nearest = None
    for hotspot in INTEL_HOTSPOTS:
        dist = haversine_km(lat, lon, hotspot["lat"], hotspot["lon"])
        if dist < 150 and (nearest is None or dist < nearest[1]):
            nearest = (hotspot["name"], dist)
    if nearest:
        return nearest[0]

    for name, (lat_min, lat_max), (lon_min, lon_max) in REGIONS:
        if lat_min <= lat <= lat_max and lon_min <= lon <= lon_max:
            return name

    return f"{lat:.1f}°, {lon:.1f}°"


class AlertDedupStore:
    """Remembers alerted cell ids, optionally forgetting them after ``ttl`` seconds.

    With a TTL set, every ``mark`` also drops expired ids, so the store
    stays bounded by the number of cells alerted within one TTL.
    """

    def __init__(self, ttl: Optional[float] = None, clock: Callable[[], float] = time.time):
        self.ttl = ttl
        self._clock = clock
        self._seen: dict[str, float] = {}
        self._lock = threading.RLock()

    def _expired(self, marked: float, now: float) -> bool:
        return self.ttl is not None and now - marked >= self.ttl

    def seen(self, key: str) -> bool:
        with self._lock:
            marked = self._seen.get(key)
            if marked is None:
                return False
            if self._expired(marked, self._clock()):
                self._seen.pop(key, None)
                return False
            return True

    def mark(self, key: str) -> None:
        with self._lock:
            now = self._clock()
            self._seen[key] = now
            if self.ttl is not None:
                expired = [k for k, marked in self._seen.items() if self._expired(marked, now)]
                for k in expired:
                    del self._seen[k]

    def clear(self) -> None:
        with self._lock:
            self._seen.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._seen)


class GeoConvergenceGrid:

    def __init__(
        self,
        include_location_names: bool = False,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.include_location_names = include_location_names
        self.window_seconds = window_seconds
        self._clock = clock
        # cell id -> {"lat", "lon", "first_seen", "events": {type: {"count", "last_seen"}}}
        self._cells: dict[str, dict] = {}
        self._lock = threading.RLock()

    # ── Ingestion ────────────────────────────────

    def ingest_geo_event(
        self,
        lat: float,
        lon: float,
        event_type: GeoEventType,
        timestamp: Optional[datetime] = None,
    ) -> None:
        seen_at = timestamp.timestamp() if timestamp else self._clock()
        cell_id = get_cell_id(lat, lon)
        with self._lock:
            cell = self._cells.get(cell_id)
            if cell is None:
                cell = {
                    "lat": math.floor(lat) + 0.5,
                    "lon": math.floor(lon) + 0.5,
                    "first_seen": seen_at,
                    "events": {},
                }
                self._cells[cell_id] = cell
            entry = cell["events"].get(event_type)
            cell["events"][event_type] = {
                "count": (entry["count"] if entry else 0) + 1,
                "last_seen": seen_at,
            }

    def ingest_protests(self, events: list[SocialUnrestEvent]) -> None:
        for e in events:
            self.ingest_geo_event(e.lat, e.lon, "protest", e.time)

    def ingest_flights(self, flights: list[MilitaryFlight]) -> None:
        for f in flights:
            self.ingest_geo_event(f.lat, f.lon, "military_flight", f.last_seen)

    def ingest_vessels(self, vessels: list[MilitaryVessel]) -> None:
        for v in vessels:
            self.ingest_geo_event(v.lat, v.lon, "military_vessel", v.last_ais_update)

    def ingest_earthquakes(self, quakes: list[Earthquake]) -> None:
        for q in quakes:
            self.ingest_geo_event(q.lat, q.lon, "earthquake", q.occurred_at)

    # ── Detection ────────────────────────────────

    def _prune(self) -> None:
        cutoff = self._clock() - self.window_seconds
        for cell_id in list(self._cells):
            events = self._cells[cell_id]["events"]
            for event_type in [t for t, d in events.items() if d["last_seen"] < cutoff]:
                del events[event_type]
            if not events:
                del self._cells[cell_id]

    def detect_geo_convergence(self, dedup: AlertDedupStore) -> list[GeoConvergenceAlert]:
        """Alerts for converging cells not yet recorded in ``dedup`` (which is updated)."""
        with self._lock:
            self._prune()

            alerts = []
            for cell_id, cell in self._cells.items():
                events = cell["events"]
                if len(events) < CONVERGENCE_THRESHOLD or dedup.seen(cell_id):
                    continue

                total_events = sum(d["count"] for d in events.values())
                alerts.append(GeoConvergenceAlert(
                    cell_id=cell_id,
                    lat=cell["lat"],
                    lon=cell["lon"],
                    types=list(events),
                    total_events=total_events,
                    score=convergence_score(len(events), total_events),
                    location_name=get_location_name(cell["lat"], cell["lon"]) if self.include_location_names else None,
                ))
                dedup.mark(cell_id)

        alerts.sort(key=lambda a: a.score, reverse=True)
        if alerts:
            logger.info(
                "[convergence] Found %d convergence alerts (%d+ signal types)",
                len(alerts), CONVERGENCE_THRESHOLD,
            )
        return alerts

    def detect_convergence(self) -> list[GeoConvergenceAlert]:
        """All currently converging cells, ignoring earlier detections."""
        return self.detect_geo_convergence(AlertDedupStore())

    def get_alerts_near_location(self, lat: float, lon: float, radius_km: float) -> Optional[dict]:
        """Best convergence (2+ types) among cells within ``radius_km``."""
        with self._lock:
            self._prune()
            max_score = 0
            max_types = 0
            for cell in self._cells.values():
                events = cell["events"]
                if len(events) < 2:
                    continue
                if haversine_km(lat, lon, cell["lat"], cell["lon"]) > radius_km:
                    continue
                total = sum(d["count"] for d in events.values())
                score = convergence_score(len(events), total)
                if score > max_score:
                    max_score = score
                    max_types = len(events)
        return {"score": max_score, "types": max_types} if max_score > 0 else None

    # ── Helpers ──────────────────────────────────

    def convergence_to_signal(self, alert: GeoConvergenceAlert) -> CorrelationSignal:
        descriptions = ", ".join(TYPE_LABELS[t] for t in alert.types)
        location = alert.location_name or get_location_name(alert.lat, alert.lon)
        return CorrelationSignal(
            type="geo_convergence",
            title=f"Geographic Convergence ({len(alert.types)} types)",
            description=f"{descriptions} in {location} - {alert.total_events} events/24h",
            confidence=alert.score / 100,
            timestamp=datetime.now(timezone.utc),
            data={"news_velocity": alert.total_events, "related_topics": list(alert.types)},
        )

    def clear(self) -> None:
        with self._lock:
            self._cells.clear()

    def cell_count(self) -> int:
        with self._lock:
            return len(self._cells)
