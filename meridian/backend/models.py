"""Meridian — Event Schemas & Data Models.

Inputs are the shapes pushed by upstream collaborators (unrest feeds,
ACLED/UCDP/HAPI, military trackers, news clustering, outage monitors,
displacement and climate feeds). Outputs are what the scoring core hands
back to the dashboard.
"""

from pydantic import BaseModel, Field
from typing import Optional, Any, Literal
from datetime import datetime, timezone
import uuid


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


# ─── Shared literals ──────────────────────────────

ProtestSeverity = Literal["low", "medium", "high"]
OutageSeverity = Literal["partial", "major", "total"]
UcdpIntensity = Literal["war", "minor", "none"]
ClimateSeverity = Literal["normal", "moderate", "extreme"]
SignalSeverity = Literal["low", "medium", "high"]
Urgency = Literal["watch", "elevated", "critical"]
ScoreLevel = Literal["low", "normal", "elevated", "high", "critical"]
Trend = Literal["rising", "stable", "falling"]
EntityType = Literal["country", "company", "organization", "leader", "commodity"]

SignalType = Literal[
    "internet_outage",
    "military_flight",
    "military_vessel",
    "protest",
    "ais_disruption",
    "satellite_fire",
    "temporal_anomaly",
]

GeoEventType = Literal["protest", "military_flight", "military_vessel", "earthquake"]


# ─── Ingestion inputs ─────────────────────────────

class SocialUnrestEvent(BaseModel):
    """A protest / riot / demonstration report."""
    id: str = Field(default_factory=_new_id)
    title: str = ""
    country: str
    lat: float = Field(ge=-90, le=90)
    lon: float = Field(ge=-180, le=180)
    severity: ProtestSeverity = "low"
    fatalities: Optional[int] = Field(default=None, ge=0)
    event_type: str = "protest"
    source: str = ""
    time: datetime = Field(default_factory=_utcnow)


class ConflictEvent(BaseModel):
    """An ACLED-style armed conflict event."""
    id: str = Field(default_factory=_new_id)
    event_type: str  # battle, explosion, remote_violence, violence_against_civilians, ...
    country: str
    lat: float = Field(ge=-90, le=90)
    lon: float = Field(ge=-180, le=180)
    fatalities: int = Field(default=0, ge=0)
    actors: list[str] = Field(default_factory=list)
    location: str = ""
    time: datetime = Field(default_factory=_utcnow)


class UcdpConflictStatus(BaseModel):
    """UCDP intensity classification for one country."""
    intensity: UcdpIntensity = "none"
    conflict_name: str = ""
    year: Optional[int] = None


class HapiConflictSummary(BaseModel):
    """HAPI/HDX humanitarian conflict aggregate for one country."""
    iso3: str = ""
    location_name: str = ""
    month: str = ""
    events_political_violence: int = 0
    events_civilian_targeting: int = 0
    events_demonstrations: int = 0
    fatalities_political_violence: int = 0
    fatalities_civilian_targeting: int = 0


class MilitaryFlight(BaseModel):
    """A tracked military aircraft.

    ``foreign_presence`` marks the synthetic entries recorded against the
    country whose territory the aircraft was detected in.
    """
    id: str = Field(default_factory=_new_id)
    callsign: str = ""
    operator_country: str = ""
    lat: float = Field(default=0.0, ge=-90, le=90)
    lon: float = Field(default=0.0, ge=-180, le=180)
    aircraft_type: str = ""
    last_seen: datetime = Field(default_factory=_utcnow)
    foreign_presence: bool = False


class MilitaryVessel(BaseModel):
    """A tracked naval vessel (AIS)."""
    id: str = Field(default_factory=_new_id)
    name: str = ""
    operator_country: str = ""
    lat: float = Field(default=0.0, ge=-90, le=90)
    lon: float = Field(default=0.0, ge=-180, le=180)
    vessel_type: str = ""
    last_ais_update: datetime = Field(default_factory=_utcnow)
    foreign_presence: bool = False


class NewsItem(BaseModel):
    source: str = ""
    title: str
    link: str = ""
    pub_date: datetime = Field(default_factory=_utcnow)
    is_alert: bool = False


class NewsVelocity(BaseModel):
    sources_per_hour: float = 0.0
    trend: Literal["rising", "stable", "falling"] = "stable"


class ClusteredEvent(BaseModel):
    """A cluster of news items reporting the same story."""
    id: str = Field(default_factory=_new_id)
    primary_title: str
    primary_source: str = ""
    primary_link: str = ""
    summary: str = ""
    source_count: int = 1
    all_items: list[NewsItem] = Field(default_factory=list)
    first_seen: datetime = Field(default_factory=_utcnow)
    last_updated: datetime = Field(default_factory=_utcnow)
    is_alert: bool = False
    velocity: Optional[NewsVelocity] = None


class InternetOutage(BaseModel):
    id: str = Field(default_factory=_new_id)
    title: str = ""
    country: str
    lat: Optional[float] = None
    lon: Optional[float] = None
    severity: OutageSeverity = "partial"
    detected_at: datetime = Field(default_factory=_utcnow)


class CountryDisplacement(BaseModel):
    """UNHCR-style displacement snapshot for one origin country."""
    code: Optional[str] = None  # ISO2 or ISO3
    name: str = ""
    refugees: int = 0
    asylum_seekers: int = 0
    idps: int = 0


class ClimateAnomaly(BaseModel):
    zone: str
    lat: float = 0.0
    lon: float = 0.0
    temp_delta: float = 0.0
    precip_delta: float = 0.0
    severity: ClimateSeverity = "normal"
    type: Literal["warm", "cold", "wet", "dry", "mixed"] = "mixed"
    period: str = ""


class Earthquake(BaseModel):
    id: str = Field(default_factory=_new_id)
    magnitude: float = 0.0
    lat: float = Field(ge=-90, le=90)
    lon: float = Field(ge=-180, le=180)
    place: str = ""
    occurred_at: datetime = Field(default_factory=_utcnow)


# ─── Map signals (signal-aggregator collaborator) ─

class MapSignal(BaseModel):
    type: SignalType
    country: str  # ISO2
    country_name: str = ""
    lat: float = 0.0
    lon: float = 0.0
    severity: SignalSeverity = "low"
    title: str = ""
    timestamp: datetime = Field(default_factory=_utcnow)


class CountrySignalCluster(BaseModel):
    country: str
    country_name: str = ""
    signals: list[MapSignal] = Field(default_factory=list)
    signal_types: set[SignalType] = Field(default_factory=set)
    total_count: int = 0
    high_severity_count: int = 0
    convergence_score: float = 0.0


class SignalSummary(BaseModel):
    timestamp: datetime = Field(default_factory=_utcnow)
    total_signals: int = 0
    by_type: dict[str, int] = Field(default_factory=dict)
    top_countries: list[CountrySignalCluster] = Field(default_factory=list)


# ─── Entities (entity-extraction collaborator) ────

class EntityEntry(BaseModel):
    id: str
    type: EntityType
    name: str
    aliases: list[str] = Field(default_factory=list)
    related: list[str] = Field(default_factory=list)


class EntityMatch(BaseModel):
    entity_id: str
    confidence: float
    matched_text: str = ""


class NewsEntityContext(BaseModel):
    cluster_id: str
    title: str
    entities: list[EntityMatch] = Field(default_factory=list)


# ─── Focal points ─────────────────────────────────

class Headline(BaseModel):
    title: str
    url: str = ""


class EntityMention(BaseModel):
    entity_id: str
    entity_type: EntityType
    display_name: str
    mention_count: int = 0
    avg_confidence: float = 0.0
    cluster_ids: list[str] = Field(default_factory=list)
    top_headlines: list[Headline] = Field(default_factory=list)


class FocalPoint(BaseModel):
    id: str
    entity_id: str
    entity_type: EntityType
    display_name: str
    news_mentions: int
    news_velocity: float
    top_headlines: list[Headline] = Field(default_factory=list)
    signal_types: list[SignalType] = Field(default_factory=list)
    signal_count: int = 0
    high_severity_count: int = 0
    signal_descriptions: list[str] = Field(default_factory=list)
    focal_score: float
    urgency: Urgency
    narrative: str = ""
    correlation_evidence: list[str] = Field(default_factory=list)


class FocalPointSummary(BaseModel):
    timestamp: datetime = Field(default_factory=_utcnow)
    focal_points: list[FocalPoint] = Field(default_factory=list)
    ai_context: str = ""
    top_countries: list[FocalPoint] = Field(default_factory=list)
    top_companies: list[FocalPoint] = Field(default_factory=list)


# ─── CII outputs ──────────────────────────────────

class ComponentScores(BaseModel):
    unrest: int = 0
    conflict: int = 0
    security: int = 0
    information: int = 0


class CountryScore(BaseModel):
    code: str
    name: str
    score: int = Field(ge=0, le=100)
    level: ScoreLevel
    trend: Trend
    change24h: int
    components: ComponentScores
    last_updated: datetime = Field(default_factory=_utcnow)


class StrategicRiskContributor(BaseModel):
    country: str
    code: str
    score: int
    level: ScoreLevel


class StrategicRisk(BaseModel):
    """Global composite built from the most unstable countries."""
    score: int = Field(ge=0, le=100)
    level: ScoreLevel
    trend: Trend = "stable"
    last_updated: datetime = Field(default_factory=_utcnow)
    contributors: list[StrategicRiskContributor] = Field(default_factory=list)


class IngestStats(BaseModel):
    processed: int
    unmapped: int
    rate: float


class LearningProgress(BaseModel):
    in_learning: bool
    remaining_minutes: int
    progress: int


# ─── Geo convergence ──────────────────────────────

class GeoConvergenceAlert(BaseModel):
    cell_id: str
    lat: float
    lon: float
    types: list[GeoEventType]
    total_events: int
    score: int
    location_name: Optional[str] = None


class CorrelationSignal(BaseModel):
    id: str = Field(default_factory=lambda: f"sig-{uuid.uuid4().hex[:12]}")
    type: str
    title: str
    description: str = ""
    confidence: float = Field(ge=0, le=1)
    timestamp: datetime = Field(default_factory=_utcnow)
    data: dict[str, Any] = Field(default_factory=dict)
