"""Meridian — Focal Point Detector.

Correlates entities mentioned in clustered news with per-country map
signal clusters to find the "main characters" across intelligence
streams. Example: Iran in 12 news clusters + 5 military flights + an
internet outage is a CRITICAL focal point.

Scoring:
  news        = min(20, mentions*4) + min(10, mentions/24*2) + confidence*10
  signal      = types*10 + min(15, count*3) + high_severity*5
  correlation = 10 if both present, +5 if a headline matches a signal type
  focal_score = min(100, raw * {critical: 1.3, elevated: 1.15, watch: 1.0})

Urgency is decided on the raw score, before the multiplier.

The last summary is cached and read by the CII engine for its focal
boost. ``analyze()`` runs on its own cadence, so readers may see a summary
older than the country data they just ingested; ``last_analyzed_at``
reports how old it is.
"""

import logging
import re
import threading
from datetime import datetime
from typing import Optional

from meridian.backend.models import (
    ClusteredEvent,
    CountrySignalCluster,
    EntityMention,
    FocalPoint,
    FocalPointSummary,
    Headline,
    NewsEntityContext,
    SignalSummary,
    Urgency,
)
from meridian.fusion_engine.entity_index import (
    EntityIndex,
    extract_entities_from_clusters,
    get_entity_index,
)

logger = logging.getLogger("meridian.fusion")

SIGNAL_TYPE_LABELS = {
    "internet_outage": "internet outage",
    "military_flight": "military flights",
    "military_vessel": "naval vessels",
    "protest": "protests",
    "ais_disruption": "shipping disruption",
    "satellite_fire": "satellite fires",
    "temporal_anomaly": "anomaly detection",
}

SIGNAL_TYPE_ICONS = {
    "internet_outage": "🌐",
    "military_flight": "✈️",
    "military_vessel": "⚓",
    "protest": "📢",
    "ais_disruption": "🚢",
    "satellite_fire": "🔥",
    "temporal_anomaly": "📊",
}

# Headline vocabulary that corroborates a given signal type
HEADLINE_SIGNAL_PATTERNS = {
    "military_flight": re.compile(r"military|troops|forces|army|air force"),
    "military_vessel": re.compile(r"navy|naval|ships|fleet|carrier"),
    "protest": re.compile(r"protest|demonstrat|unrest|riot"),
    "internet_outage": re.compile(r"internet|blackout|outage|connectivity"),
}

URGENCY_MULTIPLIERS = {"critical": 1.3, "elevated": 1.15, "watch": 1.0}

MAX_HEADLINES = 3
SIGNAL_ONLY_MIN_SCORE = 20
NEWS_WINDOW_HOURS = 24


class FocalPointDetector:

    def __init__(self, index: Optional[EntityIndex] = None, entity_extractor=None):
        self._index = index or get_entity_index()
        self._extract = entity_extractor or extract_entities_from_clusters
        self._last_summary: Optional[FocalPointSummary] = None
        self._lock = threading.RLock()

    # ── Analysis ─────────────────────────────────

    def analyze(self, clusters: list[ClusteredEvent], signal_summary: SignalSummary) -> FocalPointSummary:
        """Correlate news clusters with map signals and cache the result."""
        entity_contexts = self._extract(clusters, self._index)
        mentions = self._aggregate_entities(entity_contexts, clusters)
        focal_points = self._build_focal_points(mentions, signal_summary)

        summary = FocalPointSummary(
            focal_points=focal_points,
            ai_context=self._generate_ai_context(focal_points),
            top_countries=[fp for fp in focal_points if fp.entity_type == "country"][:5],
            top_companies=[fp for fp in focal_points if fp.entity_type == "company"][:3],
        )
        with self._lock:
            self._last_summary = summary

        logger.info(
            "[focal] Analyzed %d clusters / %d signal countries -> %d focal points (%d critical)",
            len(clusters), len(signal_summary.top_countries), len(focal_points),
            sum(1 for fp in focal_points if fp.urgency == "critical"),
        )
        return summary

    def _aggregate_entities(
        self,
        contexts: dict[str, NewsEntityContext],
        clusters: list[ClusteredEvent],
    ) -> dict[str, EntityMention]:
        clusters_by_id = {c.id: c for c in clusters}
        mentions: dict[str, EntityMention] = {}

        for cluster_id, context in contexts.items():
            cluster = clusters_by_id.get(cluster_id)
            if cluster is None:
                continue

            for match in context.entities:
                entry = self._index.get(match.entity_id)
                if entry is None:
                    continue

                # Body-only mentions never contribute a displayed headline
                title_has_entity = self._index.appears_in_title(match.entity_id, cluster.primary_title)
                headline = Headline(title=cluster.primary_title, url=cluster.primary_link)

                existing = mentions.get(match.entity_id)
                if existing is None:
                    mentions[match.entity_id] = EntityMention(
                        entity_id=match.entity_id,
                        entity_type=entry.type,
                        display_name=entry.name,
                        mention_count=1,
                        avg_confidence=match.confidence,
                        cluster_ids=[cluster_id],
                        top_headlines=[headline] if title_has_entity else [],
                    )
                    continue

                existing.mention_count += 1
                n = existing.mention_count
                existing.avg_confidence = (existing.avg_confidence * (n - 1) + match.confidence) / n
                existing.cluster_ids.append(cluster_id)
                if title_has_entity and len(existing.top_headlines) < MAX_HEADLINES:
                    existing.top_headlines.append(headline)

        return mentions

    def _build_focal_points(
        self,
        mentions: dict[str, EntityMention],
        signal_summary: SignalSummary,
    ) -> list[FocalPoint]:
        country_signals = {c.country: c for c in signal_summary.top_countries}
        focal_points = []

        for entity_id, mention in mentions.items():
            entry = self._index.get(entity_id)
            if entry is None:
                continue

            signals = None
            if entry.type == "country":
                signals = country_signals.get(entity_id)
            else:
                for related_id in entry.related:
                    related = self._index.get(related_id)
                    if related is not None and related.type == "country":
                        signals = country_signals.get(related_id)
                        if signals is not None:
                            break

            focal_points.append(self._create_focal_point(mention, signals))

        # Countries lit up on the map but absent from the news
        for code, signals in country_signals.items():
            if code in mentions:
                continue
            country = self._index.get(code)
            if country is None:
                continue
            mention = EntityMention(
                entity_id=code,
                entity_type="country",
                display_name=country.name,
            )
            fp = self._create_focal_point(mention, signals)
            if fp.focal_score > SIGNAL_ONLY_MIN_SCORE:
                focal_points.append(fp)

        focal_points.sort(key=lambda fp: fp.focal_score, reverse=True)
        return focal_points

    def _create_focal_point(
        self,
        mention: EntityMention,
        signals: Optional[CountrySignalCluster],
    ) -> FocalPoint:
        news_score = self.calculate_news_score(mention)
        signal_score = self.calculate_signal_score(signals) if signals else 0
        correlation_bonus = self.calculate_correlation_bonus(mention, signals)
        raw_score = news_score + signal_score + correlation_bonus

        signal_types = sorted(signals.signal_types) if signals else []
        urgency = self.determine_urgency(raw_score, len(signal_types))
        focal_score = min(100, raw_score * URGENCY_MULTIPLIERS[urgency])

        return FocalPoint(
            id=f"fp-{mention.entity_id}",
            entity_id=mention.entity_id,
            entity_type=mention.entity_type,
            display_name=mention.display_name,
            news_mentions=mention.mention_count,
            news_velocity=mention.mention_count / NEWS_WINDOW_HOURS,
            top_headlines=mention.top_headlines,
            signal_types=signal_types,
            signal_count=signals.total_count if signals else 0,
            high_severity_count=signals.high_severity_count if signals else 0,
            signal_descriptions=self._describe_signals(signals, signal_types),
            focal_score=focal_score,
            urgency=urgency,
            narrative=self._generate_narrative(mention, signals, signal_types),
            correlation_evidence=self._correlation_evidence(mention, signals),
        )

    @staticmethod
    def calculate_news_score(mention: EntityMention) -> float:
        base = min(20, mention.mention_count * 4)
        velocity = min(10, (mention.mention_count / NEWS_WINDOW_HOURS) * 2)
        confidence = mention.avg_confidence * 10
        return base + velocity + confidence

    @staticmethod
    def calculate_signal_score(signals: CountrySignalCluster) -> float:
        type_bonus = len(signals.signal_types) * 10
        count_bonus = min(15, signals.total_count * 3)
        severity_bonus = signals.high_severity_count * 5
        return type_bonus + count_bonus + severity_bonus

    @staticmethod
    def calculate_correlation_bonus(mention: EntityMention, signals: Optional[CountrySignalCluster]) -> float:
        if signals is None:
            return 0
        bonus = 0
        if mention.mention_count > 0 and signals.total_count > 0:
            bonus += 10

        for headline in mention.top_headlines:
            lower = headline.title.lower()
            if any(
                signal_type in signals.signal_types and pattern.search(lower)
                for signal_type, pattern in HEADLINE_SIGNAL_PATTERNS.items()
            ):
                bonus += 5
                break
        return bonus

    @staticmethod
    def determine_urgency(score: float, signal_type_count: int) -> Urgency:
        if score > 70 or signal_type_count >= 3:
            return "critical"
        if score > 50 or signal_type_count >= 2:
            return "elevated"
        return "watch"

    # ── Narrative ────────────────────────────────

    @staticmethod
    def _describe_signals(signals: Optional[CountrySignalCluster], signal_types: list[str]) -> list[str]:
        if signals is None:
            return []
        descriptions = []
        for signal_type in signal_types:
            count = sum(1 for s in signals.signals if s.type == signal_type)
            descriptions.append(f"{count} {SIGNAL_TYPE_LABELS[signal_type]}")
        return descriptions

    def _generate_narrative(
        self,
        mention: EntityMention,
        signals: Optional[CountrySignalCluster],
        signal_types: list[str],
    ) -> str:
        parts = []
        if mention.mention_count > 0:
            parts.append(f"{mention.mention_count} news mentions")
        if signals and signal_types:
            parts.append(", ".join(self._describe_signals(signals, signal_types)))
        if mention.top_headlines:
            parts.append(f'"{mention.top_headlines[0].title[:60]}..."')
        return " | ".join(parts)

    @staticmethod
    def _correlation_evidence(mention: EntityMention, signals: Optional[CountrySignalCluster]) -> list[str]:
        evidence = []
        if signals is None:
            return evidence
        if mention.mention_count > 0 and signals.total_count > 0:
            evidence.append(
                f"{mention.display_name} appears in both news ({mention.mention_count}) "
                f"and map signals ({signals.total_count})"
            )
        if len(signals.signal_types) >= 2:
            labels = [SIGNAL_TYPE_LABELS[t] for t in sorted(signals.signal_types)]
            evidence.append(f"Multiple signal convergence: {' + '.join(labels)}")
        if signals.high_severity_count > 0:
            evidence.append(f"{signals.high_severity_count} high-severity signals detected")
        return evidence

    @staticmethod
    def _generate_ai_context(focal_points: list[FocalPoint]) -> str:
        """Critical / elevated / correlation sections for LLM summarization prompts."""
        if not focal_points:
            return ""

        lines = ["[INTELLIGENCE SYNTHESIS]"]
        critical = [fp for fp in focal_points if fp.urgency == "critical"][:3]
        elevated = [fp for fp in focal_points if fp.urgency == "elevated"][:3]
        correlated = [fp for fp in focal_points if fp.news_mentions > 0 and fp.signal_count > 0][:5]

        if critical:
            lines += ["", "CRITICAL FOCAL POINTS:"]
            for fp in critical:
                icons = "".join(SIGNAL_TYPE_ICONS[t] for t in fp.signal_types)
                lines.append(f"- {fp.display_name} [CRITICAL] {icons}: {fp.narrative}")
                if fp.correlation_evidence:
                    lines.append(f"  → {fp.correlation_evidence[0]}")

        if elevated:
            lines += ["", "ELEVATED WATCH:"]
            for fp in elevated:
                lines.append(f"- {fp.display_name}: {fp.news_mentions} news, {fp.signal_count} signals")

        if correlated:
            lines += ["", "NEWS-SIGNAL CORRELATIONS:"]
            for fp in correlated:
                labels = ", ".join(SIGNAL_TYPE_LABELS[t] for t in fp.signal_types)
                lines.append(f"- {fp.display_name}: news coverage + {labels} detected")

        return "\n".join(lines)

    # ── Cached summary accessors ─────────────────

    def get_last_summary(self) -> Optional[FocalPointSummary]:
        with self._lock:
            return self._last_summary

    @property
    def last_analyzed_at(self) -> Optional[datetime]:
        summary = self.get_last_summary()
        return summary.timestamp if summary else None

    def _country_focal_points(self) -> list[FocalPoint]:
        summary = self.get_last_summary()
        if summary is None:
            return []
        return [fp for fp in summary.focal_points if fp.entity_type == "country"]

    def get_focal_point_for_country(self, code: str) -> Optional[FocalPoint]:
        return next((fp for fp in self._country_focal_points() if fp.entity_id == code), None)

    def get_country_urgency(self, code: str) -> Optional[Urgency]:
        fp = self.get_focal_point_for_country(code)
        return fp.urgency if fp else None

    def get_country_urgency_map(self) -> dict[str, Urgency]:
        return {fp.entity_id: fp.urgency for fp in self._country_focal_points()}

    def get_news_correlation_context(self, codes: list[str]) -> Optional[str]:
        """Headline + evidence lines for up to 3 of ``codes`` with news coverage."""
        relevant = [
            fp for fp in self._country_focal_points()
            if fp.entity_id in codes and fp.news_mentions > 0
        ]
        lines = []
        for fp in relevant[:3]:
            if fp.top_headlines:
                lines.append(f'{fp.display_name}: "{fp.top_headlines[0].title[:80]}..."')
            if fp.correlation_evidence:
                lines.append(f"  → {fp.correlation_evidence[0]}")
        return "\n".join(lines) if lines else None

    @staticmethod
    def get_signal_icons(signal_types: list[str]) -> str:
        return " ".join(SIGNAL_TYPE_ICONS.get(t, "") for t in signal_types)

    def log_summary(self) -> None:
        summary = self.get_last_summary()
        if summary is None:
            logger.info("[focal] No summary available")
            return

        logger.info("[focal] Total focal points: %d", len(summary.focal_points))
        for fp in summary.focal_points:
            if fp.urgency == "critical":
                logger.info(
                    "[focal]   CRITICAL %s: score %.0f, %d news, %d signals",
                    fp.display_name, fp.focal_score, fp.news_mentions, fp.signal_count,
                )
        for fp in [fp for fp in summary.focal_points if fp.urgency == "elevated"][:5]:
            logger.info("[focal]   ELEVATED %s: score %.0f", fp.display_name, fp.focal_score)
