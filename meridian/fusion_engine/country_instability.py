"""Meridian — Country Instability Index (CII).

Computes a 0-100 instability score per country by blending a curated
baseline with event-driven component scores and contextual boosts.

Event score weights:
  - Unrest (protests + internet outages):        25%
  - Conflict (ACLED events, HAPI fallback):      30%
  - Security (military flights + vessels):       20%
  - Information (clustered news velocity):       25%

  blended = baseline * 0.4 + event_score * 0.6
            + hotspot (<=10) + news urgency (3/5) + focal point (4/8)
            + displacement (4/8) + climate stress (0-15)
  score   = round(min(100, max(ucdp_floor, blended)))

UCDP floors pin countries at war (>= 70) or in minor conflict (>= 50)
regardless of how quiet the event feeds are.

The engine is an in-memory aggregate rebuilt every session. Ingestion is
fire-and-forget: items that cannot be attributed to a country are dropped
and counted in the ingest stats, never raised.
"""

import logging
import math
import threading
import time
from collections import defaultdict
from datetime import datetime, timezone
from typing import Callable, Optional

from meridian.backend.models import (
    ClimateAnomaly,
    ClusteredEvent,
    ComponentScores,
    ConflictEvent,
    CountryDisplacement,
    CountryScore,
    HapiConflictSummary,
    IngestStats,
    InternetOutage,
    LearningProgress,
    MilitaryFlight,
    MilitaryVessel,
    SocialUnrestEvent,
    StrategicRisk,
    StrategicRiskContributor,
    UcdpConflictStatus,
)
from meridian.fusion_engine.component_scores import (
    calc_conflict_score,
    calc_information_score,
    calc_security_score,
    calc_unrest_score,
    get_ucdp_floor,
)
from meridian.fusion_engine.countries import CURATED_COUNTRIES, get_baseline_risk, get_event_multiplier
from meridian.fusion_engine.country_data import CountryData, CountryDataStore
from meridian.fusion_engine.focal_point_detector import FocalPointDetector
from meridian.fusion_engine.geo_attribution import GeoAttributor
from meridian.fusion_engine.hotspot_activity import HotspotActivityTracker

logger = logging.getLogger("meridian.fusion")

# Weight configuration (must sum to 1.0)
WEIGHTS = {
    "unrest":      0.25,
    "conflict":    0.30,
    "security":    0.20,
    "information": 0.25,
}

BASELINE_WEIGHT = 0.4
EVENT_WEIGHT = 0.6

# Score thresholds, checked top-down
LEVELS = [
    (81, "critical"),
    (66, "high"),
    (51, "elevated"),
    (31, "normal"),
    (0,  "low"),
]

TREND_THRESHOLD = 5

FOCAL_BOOSTS = {"critical": 8, "elevated": 4}

# Climate zone -> affected countries
ZONE_COUNTRY_MAP: dict[str, list[str]] = {
    "Ukraine": ["UA"],
    "Middle East": ["IR", "IL", "SA", "SY", "YE"],
    "South Asia": ["PK", "IN"],
    "Myanmar": ["MM"],
}
CLIMATE_STRESS = {"extreme": 15, "moderate": 8}

# Hotspot activity weight per ingested item
PROTEST_WEIGHT_HIGH = 2
PROTEST_WEIGHT = 1
CONFLICT_WEIGHT_FATAL = 3
CONFLICT_WEIGHT = 2
FLIGHT_WEIGHT = 1.5
VESSEL_WEIGHT = 2

# Placeholder entries recorded per foreign military detection
FOREIGN_PRESENCE_FACTOR = 2

DEFAULT_LEARNING_MINUTES = 15.0


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def get_level(score: float) -> str:
    for threshold, label in LEVELS:
        if score >= threshold:
            return label
    return "low"


def news_urgency_boost(information: float) -> int:
    if information >= 70:
        return 5
    if information >= 50:
        return 3
    return 0


def displacement_boost(outflow: float) -> int:
    if outflow >= 1_000_000:
        return 8
    if outflow >= 100_000:
        return 4
    return 0


# Strategic risk: top contributors weighted 1.0, 0.85, 0.7, ...
STRATEGIC_TOP_N = 5
STRATEGIC_WEIGHT_STEP = 0.15
STRATEGIC_SCALE = 0.7
STRATEGIC_OFFSET = 15


def compute_strategic_risk(scores: list[CountryScore]) -> StrategicRisk:
    """Collapse a ranked CII list into one global risk figure.

    ``scores`` is expected highest first, as returned by
    ``CIIEngine.calculate_cii``. An empty list yields the bare offset.
    """
    top = scores[:STRATEGIC_TOP_N]
    weighted_sum = 0.0
    total_weight = 0.0
    for i, s in enumerate(top):
        weight = 1 - i * STRATEGIC_WEIGHT_STEP
        weighted_sum += s.score * weight
        total_weight += weight

    composite = weighted_sum / total_weight if total_weight > 0 else 0.0
    overall = min(100, _round_half_up(composite * STRATEGIC_SCALE + STRATEGIC_OFFSET))

    return StrategicRisk(
        score=overall,
        level=get_level(overall),
        contributors=[
            StrategicRiskContributor(country=s.name, code=s.code, score=s.score, level=s.level)
            for s in top
        ],
    )


def compute_baseline_cii() -> list[CountryScore]:
    """Scores from curated baselines alone, for when live data is unusable."""
    return CIIEngine().calculate_cii()


class CIIEngine:
    """Session-scoped CII state: country aggregates, hotspot activity,
    previous scores, ingest diagnostics and learning-mode clock.

    All public methods take the engine lock, so ingestion from worker
    threads and score reads never observe a half-applied batch.
    """

    def __init__(
        self,
        attributor: Optional[GeoAttributor] = None,
        focal_detector: Optional[FocalPointDetector] = None,
        learning_duration_minutes: float = DEFAULT_LEARNING_MINUTES,
        clock: Callable[[], float] = time.time,
    ):
        self.attributor = attributor or GeoAttributor()
        self.focal_detector = focal_detector or FocalPointDetector()
        self.store = CountryDataStore()
        self.hotspots = HotspotActivityTracker()
        self._previous_scores: dict[str, int] = {}
        self._processed = 0
        self._unmapped = 0
        self._lock = threading.RLock()

        self._clock = clock
        self._learning_duration = learning_duration_minutes * 60
        self._learning_started: Optional[float] = None
        self._learning_complete = False
        self._has_cached_scores = False

    # ── Learning mode ────────────────────────────

    def start_learning(self) -> None:
        with self._lock:
            if self._learning_started is None:
                self._learning_started = self._clock()

    def set_has_cached_scores(self, has_scores: bool) -> None:
        with self._lock:
            self._has_cached_scores = has_scores
            if has_scores:
                self._learning_complete = True

    def is_in_learning_mode(self) -> bool:
        """UI hint only; never gates score computation."""
        with self._lock:
            if self._has_cached_scores or self._learning_complete:
                return False
            if self._learning_started is None:
                return True
            if self._clock() - self._learning_started >= self._learning_duration:
                self._learning_complete = True
                return False
            return True

    def get_learning_progress(self) -> LearningProgress:
        with self._lock:
            if self._has_cached_scores or self._learning_complete:
                return LearningProgress(in_learning=False, remaining_minutes=0, progress=100)
            if self._learning_started is None:
                return LearningProgress(
                    in_learning=True,
                    remaining_minutes=math.ceil(self._learning_duration / 60),
                    progress=0,
                )
            elapsed = self._clock() - self._learning_started
            remaining = max(0.0, self._learning_duration - elapsed)
            progress = min(100.0, elapsed / self._learning_duration * 100) if self._learning_duration else 100.0
            return LearningProgress(
                in_learning=remaining > 0,
                remaining_minutes=math.ceil(remaining / 60),
                progress=_round_half_up(progress),
            )

    # ── Diagnostics ──────────────────────────────

    def get_ingest_stats(self) -> IngestStats:
        with self._lock:
            rate = self._unmapped / self._processed if self._processed else 0.0
            return IngestStats(processed=self._processed, unmapped=self._unmapped, rate=rate)

    def reset_ingest_stats(self) -> None:
        with self._lock:
            self._processed = 0
            self._unmapped = 0

    def clear_country_data(self) -> None:
        with self._lock:
            self.store.clear()
            self.hotspots.clear()
        logger.info("[cii] Country data cleared")

    def get_country_data(self, code: str) -> Optional[CountryData]:
        with self._lock:
            return self.store.get(code)

    @property
    def previous_scores(self) -> dict[str, int]:
        with self._lock:
            return dict(self._previous_scores)

    # ── Ingestion ────────────────────────────────

    def _resolve_name(self, name: str) -> Optional[str]:
        self._processed += 1
        code = self.attributor.normalize_country_name(name)
        if code is None:
            self._unmapped += 1
        return code

    def _resolve_code(self, code: str) -> Optional[str]:
        self._processed += 1
        iso2 = self.attributor.ensure_iso2(code)
        if iso2 is None:
            self._unmapped += 1
        return iso2

    def ingest_protests(self, events: list[SocialUnrestEvent]) -> None:
        with self._lock:
            for e in events:
                code = self._resolve_name(e.country)
                if code is None:
                    continue
                self.store.append(code, "protests", e)
                self.hotspots.track(e.lat, e.lon, PROTEST_WEIGHT_HIGH if e.severity == "high" else PROTEST_WEIGHT)

    def ingest_conflicts(self, events: list[ConflictEvent]) -> None:
        with self._lock:
            for e in events:
                code = self._resolve_name(e.country)
                if code is None:
                    continue
                self.store.append(code, "conflicts", e)
                self.hotspots.track(e.lat, e.lon, CONFLICT_WEIGHT_FATAL if e.fatalities > 0 else CONFLICT_WEIGHT)

    def ingest_ucdp(self, classifications: dict[str, UcdpConflictStatus]) -> None:
        with self._lock:
            for raw_code, status in classifications.items():
                code = self._resolve_code(raw_code)
                if code is not None:
                    self.store.overwrite(code, "ucdp_status", status)

    def ingest_hapi(self, summaries: dict[str, HapiConflictSummary]) -> None:
        with self._lock:
            for raw_code, summary in summaries.items():
                code = self._resolve_code(raw_code)
                if code is not None:
                    self.store.overwrite(code, "hapi_summary", summary)

    def ingest_military(self, flights: list[MilitaryFlight], vessels: list[MilitaryVessel]) -> None:
        """Attribute by operator, and separately record foreign presence by location."""
        with self._lock:
            foreign: dict[str, dict[str, int]] = defaultdict(lambda: {"flights": 0, "vessels": 0})

            for f in flights:
                operator = self._resolve_name(f.operator_country)
                if operator is not None:
                    self.store.append(operator, "military_flights", f)
                location = self.attributor.get_country_from_location(f.lat, f.lon)
                if location is not None and location != operator:
                    foreign[location]["flights"] += 1
                self.hotspots.track(f.lat, f.lon, FLIGHT_WEIGHT)

            for v in vessels:
                operator = self._resolve_name(v.operator_country)
                if operator is not None:
                    self.store.append(operator, "military_vessels", v)
                location = self.attributor.get_country_from_location(v.lat, v.lon)
                if location is not None and location != operator:
                    foreign[location]["vessels"] += 1
                self.hotspots.track(v.lat, v.lon, VESSEL_WEIGHT)

            for code, counts in foreign.items():
                self.store.append(code, "military_flights", *(
                    MilitaryFlight(foreign_presence=True)
                    for _ in range(counts["flights"] * FOREIGN_PRESENCE_FACTOR)
                ))
                self.store.append(code, "military_vessels", *(
                    MilitaryVessel(foreign_presence=True)
                    for _ in range(counts["vessels"] * FOREIGN_PRESENCE_FACTOR)
                ))

    def ingest_news(self, events: list[ClusteredEvent]) -> None:
        """A cluster may count toward several countries at once."""
        with self._lock:
            for e in events:
                for code in self.attributor.match_countries_in_title(e.primary_title):
                    self.store.append(code, "news_events", e)

    def ingest_outages(self, outages: list[InternetOutage]) -> None:
        with self._lock:
            for o in outages:
                code = self._resolve_name(o.country)
                if code is not None:
                    self.store.append(code, "outages", o)

    def ingest_displacement(self, countries: list[CountryDisplacement]) -> None:
        """Full snapshot: every country's outflow is replaced, not accumulated."""
        with self._lock:
            self.store.begin_batch("displacement_outflow")
            for c in countries:
                self._processed += 1
                code = None
                raw = (c.code or "").strip()
                if len(raw) in (2, 3):
                    code = self.attributor.ensure_iso2(raw)
                if code is None and c.name:
                    code = self.attributor.ensure_iso2(c.name)
                if code is None:
                    self._unmapped += 1
                    continue
                self.store.set_batch_value(code, "displacement_outflow", c.refugees + c.asylum_seekers)

    def ingest_climate(self, anomalies: list[ClimateAnomaly]) -> None:
        """Full snapshot: stress is the max across matching zones in this batch."""
        with self._lock:
            self.store.begin_batch("climate_stress")
            for a in anomalies:
                stress = CLIMATE_STRESS.get(a.severity)
                if stress is None:
                    continue
                for code in ZONE_COUNTRY_MAP.get(a.zone, []):
                    self.store.raise_batch_value(code, "climate_stress", stress)

    # ── Scoring ──────────────────────────────────

    def _score_country(self, code: str, data: CountryData, focal_urgency: Optional[str]) -> tuple[int, ComponentScores]:
        multiplier = get_event_multiplier(code)
        components = ComponentScores(
            unrest=_round_half_up(calc_unrest_score(data, multiplier)),
            conflict=_round_half_up(calc_conflict_score(data, multiplier)),
            security=_round_half_up(calc_security_score(data)),
            information=_round_half_up(calc_information_score(data, multiplier)),
        )

        event_score = sum(getattr(components, name) * weight for name, weight in WEIGHTS.items())

        boosts = (
            self.hotspots.boost(code)
            + news_urgency_boost(components.information)
            + FOCAL_BOOSTS.get(focal_urgency or "", 0)
            + displacement_boost(data.displacement_outflow)
            + data.climate_stress
        )
        blended = get_baseline_risk(code) * BASELINE_WEIGHT + event_score * EVENT_WEIGHT + boosts

        floor = get_ucdp_floor(data)
        score = _round_half_up(min(100, max(floor, blended)))
        return score, components

    def _trend(self, code: str, score: int) -> str:
        prev = self._previous_scores.get(code)
        if prev is None:
            return "stable"
        diff = score - prev
        if diff >= TREND_THRESHOLD:
            return "rising"
        if diff <= -TREND_THRESHOLD:
            return "falling"
        return "stable"

    def calculate_cii(self) -> list[CountryScore]:
        """Score every ingested or curated country, highest first.

        Updates the previous-score baseline as a side effect, so an
        immediate second call reports ``stable`` with zero change.
        """
        with self._lock:
            focal_urgencies = self.focal_detector.get_country_urgency_map()
            codes = dict.fromkeys([*self.store.codes(), *CURATED_COUNTRIES])
            now = datetime.now(timezone.utc)

            scores = []
            for code in codes:
                data = self.store.get(code) or CountryData()
                score, components = self._score_country(code, data, focal_urgencies.get(code))
                prev = self._previous_scores.get(code, score)

                scores.append(CountryScore(
                    code=code,
                    name=self.attributor.country_name(code),
                    score=score,
                    level=get_level(score),
                    trend=self._trend(code, score),
                    change24h=score - prev,
                    components=components,
                    last_updated=now,
                ))
                self._previous_scores[code] = score

        scores.sort(key=lambda s: s.score, reverse=True)
        if scores:
            logger.info(
                "[cii] Computed instability index for %d countries (top: %s = %d)",
                len(scores), scores[0].name, scores[0].score,
            )
        return scores

    def get_top_unstable_countries(self, limit: int = 10) -> list[CountryScore]:
        return self.calculate_cii()[:limit]

    def get_country_score(self, code: str) -> Optional[int]:
        """Score a single ingested country without touching previous scores."""
        code = code.strip().upper()
        with self._lock:
            data = self.store.get(code)
            if data is None:
                return None
            score, _ = self._score_country(code, data, self.focal_detector.get_country_urgency(code))
            return score
