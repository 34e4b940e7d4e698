"""Meridian — Map signal aggregation.

Groups individual map signals (outages, military activity, protests, AIS
disruptions, fires, anomalies) by country into the summary consumed by
focal point detection.
"""

import logging
from collections import Counter, defaultdict

from meridian.backend.models import CountrySignalCluster, MapSignal, SignalSummary
from meridian.fusion_engine.geo_attribution import get_country_name_by_code

logger = logging.getLogger("meridian.fusion")

MAX_TOP_COUNTRIES = 15


def aggregate_signals(signals: list[MapSignal]) -> SignalSummary:
    """Build a SignalSummary, countries ranked by type diversity then volume."""
    by_country: dict[str, list[MapSignal]] = defaultdict(list)
    for signal in signals:
        by_country[signal.country.upper()].append(signal)

    clusters = []
    for code, country_signals in by_country.items():
        types = {s.type for s in country_signals}
        high = sum(1 for s in country_signals if s.severity == "high")
        clusters.append(CountrySignalCluster(
            country=code,
            country_name=country_signals[0].country_name or get_country_name_by_code(code) or code,
            signals=country_signals,
            signal_types=types,
            total_count=len(country_signals),
            high_severity_count=high,
            convergence_score=min(100, len(types) * 20 + len(country_signals) * 5 + high * 10),
        ))

    clusters.sort(key=lambda c: (len(c.signal_types), c.total_count), reverse=True)

    summary = SignalSummary(
        total_signals=len(signals),
        by_type=dict(Counter(s.type for s in signals)),
        top_countries=clusters[:MAX_TOP_COUNTRIES],
    )
    logger.info("[signals] Aggregated %d signals across %d countries", len(signals), len(clusters))
    return summary
