"""Meridian — CII component scorers.

Four independent 0-100 scores built from saturating, individually capped
sub-terms. ``multiplier`` is the country's event significance multiplier;
below 0.7 the country is treated as high-volume and raw counts are
log-scaled so that sheer volume cannot dominate.
"""

import math

from meridian.fusion_engine.country_data import CountryData

HIGH_VOLUME_MULTIPLIER = 0.7

UCDP_FLOORS = {"war": 70, "minor": 50, "none": 0}


def is_high_volume(multiplier: float) -> bool:
    return multiplier < HIGH_VOLUME_MULTIPLIER


def calc_unrest_score(data: CountryData, multiplier: float) -> float:
    protest_count = len(data.protests)

    base_score = 0.0
    fatality_boost = 0.0
    severity_boost = 0.0

    if protest_count > 0:
        fatalities = sum(p.fatalities or 0 for p in data.protests)
        high_severity = sum(1 for p in data.protests if p.severity == "high")

        if is_high_volume(multiplier):
            adjusted_count = math.log2(protest_count + 1) * multiplier * 5
        else:
            adjusted_count = protest_count * multiplier

        base_score = min(50, adjusted_count * 8)
        fatality_boost = min(30, fatalities * 5 * multiplier)
        severity_boost = min(20, high_severity * 10 * multiplier)

    # Outages count even without protests
    outage_boost = 0.0
    if data.outages:
        total = sum(1 for o in data.outages if o.severity == "total")
        major = sum(1 for o in data.outages if o.severity == "major")
        partial = sum(1 for o in data.outages if o.severity == "partial")
        outage_boost = min(50, total * 30 + major * 15 + partial * 5)

    return min(100, base_score + fatality_boost + severity_boost + outage_boost)


def calc_conflict_score(data: CountryData, multiplier: float) -> float:
    events = data.conflicts
    if not events and data.hapi_summary is None:
        return 0.0

    battles = sum(1 for e in events if e.event_type == "battle")
    explosions = sum(1 for e in events if e.event_type in ("explosion", "remote_violence"))
    civilian = sum(1 for e in events if e.event_type == "violence_against_civilians")
    fatalities = sum(e.fatalities for e in events)

    event_score = min(50, (battles * 3 + explosions * 4 + civilian * 5) * multiplier)
    fatality_score = min(40, math.sqrt(fatalities) * 5 * multiplier)
    civilian_boost = min(10, civilian * 3) if civilian > 0 else 0

    # Either source alone may drive the score: take the larger path, never the sum
    hapi_fallback = 0.0
    if not events and data.hapi_summary is not None:
        hapi_fallback = min(60, data.hapi_summary.events_political_violence * 3 * multiplier)

    return min(100, max(event_score + fatality_score + civilian_boost, hapi_fallback))


def calc_security_score(data: CountryData) -> float:
    flight_score = min(50, len(data.military_flights) * 3)
    vessel_score = min(30, len(data.military_vessels) * 5)
    return min(100, flight_score + vessel_score)


def calc_information_score(data: CountryData, multiplier: float) -> float:
    count = len(data.news_events)
    if count == 0:
        return 0.0

    velocity_sum = sum(e.velocity.sources_per_hour if e.velocity else 0 for e in data.news_events)
    avg_velocity = velocity_sum / count

    high_volume = is_high_volume(multiplier)
    if high_volume:
        adjusted_count = math.log2(count + 1) * multiplier * 3
    else:
        adjusted_count = count * multiplier

    base_score = min(40, adjusted_count * 5)

    velocity_threshold = 5 if high_volume else 2
    velocity_boost = 0.0
    if avg_velocity > velocity_threshold:
        velocity_boost = min(40, (avg_velocity - velocity_threshold) * 10 * multiplier)

    alert_boost = 20 * multiplier if any(e.is_alert for e in data.news_events) else 0

    return min(100, base_score + velocity_boost + alert_boost)


def get_ucdp_floor(data: CountryData) -> int:
    """Hard lower bound on the final score, applied after blending."""
    if data.ucdp_status is None:
        return 0
    return UCDP_FLOORS.get(data.ucdp_status.intensity, 0)
