"""
test_country_instability.py — Integration tests for the CII engine:
ingestion, blending, boosts, trends and learning mode.

Run:
    pytest tests/test_country_instability.py -v
"""

import pytest

from meridian.backend.models import (
    ClimateAnomaly,
    ClusteredEvent,
    ComponentScores,
    CountryDisplacement,
    CountryScore,
    MapSignal,
    MilitaryFlight,
    MilitaryVessel,
    SocialUnrestEvent,
    UcdpConflictStatus,
)
from meridian.fusion_engine.countries import CURATED_COUNTRIES
from meridian.fusion_engine.country_instability import (
    _round_half_up,
    compute_baseline_cii,
    compute_strategic_risk,
    displacement_boost,
    get_level,
    news_urgency_boost,
)
from meridian.fusion_engine.signal_aggregator import aggregate_signals


def _protests(country: str, n: int, lat: float = -1.29, lon: float = 36.82, **kwargs):
    return [SocialUnrestEvent(country=country, lat=lat, lon=lon, **kwargs) for _ in range(n)]


def _by_code(scores):
    return {s.code: s for s in scores}


# ── helpers ──────────────────────────────────────────────────────────────────

class TestHelpers:

    @pytest.mark.parametrize("score, level", [
        (100, "critical"), (81, "critical"), (80, "high"), (66, "high"),
        (65, "elevated"), (51, "elevated"), (50, "normal"), (31, "normal"),
        (30, "low"), (0, "low"),
    ])
    def test_levels(self, score, level):
        assert get_level(score) == level

    def test_round_half_up(self):
        assert _round_half_up(16.5) == 17
        assert _round_half_up(16.49) == 16

    def test_news_urgency_boost(self):
        assert news_urgency_boost(70) == 5
        assert news_urgency_boost(50) == 3
        assert news_urgency_boost(49) == 0

    def test_displacement_boost(self):
        assert displacement_boost(1_000_000) == 8
        assert displacement_boost(100_000) == 4
        assert displacement_boost(99_999) == 0


# ── calculate_cii ───────────────────────────────────────────────────────────

class TestCalculateCii:

    def test_unrest_end_to_end(self, engine):
        """5 protests, 10 fatalities in a default-multiplier country -> unrest 70."""
        engine.ingest_protests(_protests("Kenya", 5, fatalities=2))
        ke = _by_code(engine.calculate_cii())["KE"]
        assert ke.components.unrest == 70
        assert ke.components.conflict == 0
        assert ke.name == "Kenya"
        # 15 * 0.4 + 70 * 0.25 * 0.6
        assert ke.score in (16, 17)
        assert ke.level == "low"

    def test_curated_countries_always_scored(self, engine):
        codes = {s.code for s in engine.calculate_cii()}
        assert set(CURATED_COUNTRIES) <= codes

    def test_sorted_and_bounded(self, engine):
        engine.ingest_protests(_protests("Kenya", 30, fatalities=3, severity="high"))
        scores = engine.calculate_cii()
        assert [s.score for s in scores] == sorted((s.score for s in scores), reverse=True)
        assert all(0 <= s.score <= 100 for s in scores)

    def test_ucdp_floor_applies_after_blending(self, engine):
        engine.ingest_ucdp({"SDN": UcdpConflictStatus(intensity="war")})
        sd = _by_code(engine.calculate_cii())["SD"]
        assert sd.score == 70
        assert sd.level == "high"

    def test_second_call_is_stable(self, engine):
        engine.ingest_protests(_protests("Kenya", 5, fatalities=2))
        first = _by_code(engine.calculate_cii())
        second = engine.calculate_cii()
        for s in second:
            assert s.score == first[s.code].score
            assert s.trend == "stable", f"{s.code} trend {s.trend}"
            assert s.change24h == 0

    def test_rising_trend(self, engine):
        engine.ingest_protests(_protests("Kenya", 1))
        engine.calculate_cii()
        engine.ingest_protests(_protests("Kenya", 5, fatalities=2))
        ke = _by_code(engine.calculate_cii())["KE"]
        assert ke.trend == "rising"
        assert ke.change24h >= 5

    def test_top_unstable_limit(self, engine):
        top = engine.get_top_unstable_countries(3)
        assert len(top) == 3
        assert top[0].score >= top[-1].score


# ── get_country_score ───────────────────────────────────────────────────────

class TestGetCountryScore:

    def test_unknown_country_is_none(self, engine):
        assert engine.get_country_score("KE") is None

    def test_matches_calculate_cii(self, engine):
        engine.ingest_protests(_protests("Kenya", 5, fatalities=2))
        single = engine.get_country_score("KE")
        assert engine.previous_scores == {}
        assert _by_code(engine.calculate_cii())["KE"].score == single

    def test_lowercase_code(self, engine):
        engine.ingest_protests(_protests("Kenya", 3))
        assert engine.get_country_score("ke") == engine.get_country_score("KE")
        assert engine.get_country_score(" ke ") is not None


# ── strategic risk ──────────────────────────────────────────────────────────

def _score(code: str, score: int) -> CountryScore:
    return CountryScore(
        code=code, name=code, score=score, level=get_level(score),
        trend="stable", change24h=0, components=ComponentScores(),
    )


class TestStrategicRisk:

    def test_weighted_top_five(self):
        """Weights 1, .85, .7, .55, .4 over 80..40: 225 / 3.5 * 0.7 + 15 = 60."""
        scores = [_score(c, s) for c, s in zip("ABCDEF", [80, 70, 60, 50, 40, 30])]
        risk = compute_strategic_risk(scores)
        assert risk.score == 60
        assert risk.level == "elevated"
        assert risk.trend == "stable"
        assert [c.code for c in risk.contributors] == ["A", "B", "C", "D", "E"]
        assert risk.contributors[0].score == 80

    def test_all_max_scores(self):
        risk = compute_strategic_risk([_score(c, 100) for c in "ABCDE"])
        assert risk.score == 85
        assert risk.level == "critical"

    def test_empty_is_offset_only(self):
        risk = compute_strategic_risk([])
        assert risk.score == 15
        assert risk.level == "low"
        assert risk.contributors == []

    def test_baseline_ignores_live_engine_data(self, engine):
        engine.ingest_protests(_protests("Kenya", 20, fatalities=5, severity="high"))
        baseline = _by_code(compute_baseline_cii())
        assert set(CURATED_COUNTRIES) <= set(baseline)
        assert "KE" not in baseline or baseline["KE"].components.unrest == 0


# ── ingestion ───────────────────────────────────────────────────────────────

class TestIngestion:

    def test_unmapped_events_are_counted(self, engine):
        engine.ingest_protests(_protests("Atlantis", 1) + _protests("Kenya", 1))
        stats = engine.get_ingest_stats()
        assert (stats.processed, stats.unmapped) == (2, 1)
        assert stats.rate == pytest.approx(0.5)

        engine.reset_ingest_stats()
        assert engine.get_ingest_stats().processed == 0
        assert engine.get_ingest_stats().rate == 0

    def test_protests_feed_hotspot_activity(self, engine):
        engine.ingest_protests(_protests("Iran", 1, lat=35.69, lon=51.39, severity="high"))
        assert engine.hotspots.activity("IR") == pytest.approx(2)

    def test_news_counts_for_every_matched_country(self, engine):
        engine.ingest_news([ClusteredEvent(primary_title="Iran and Israel trade strikes")])
        assert len(engine.get_country_data("IR").news_events) == 1
        assert len(engine.get_country_data("IL").news_events) == 1

    def test_foreign_military_presence(self, engine):
        engine.ingest_military(
            [MilitaryFlight(operator_country="United States", lat=0.0, lon=38.0)],
            [MilitaryVessel(operator_country="Kenya", lat=-3.0, lon=40.0)],
        )
        ke = engine.get_country_data("KE")
        assert len(ke.military_flights) == 2
        assert all(f.foreign_presence for f in ke.military_flights)
        # Own vessel inside own territory is not foreign
        assert len(ke.military_vessels) == 1
        assert len(engine.get_country_data("US").military_flights) == 1

        ke_score = _by_code(engine.calculate_cii())["KE"]
        assert ke_score.components.security == 2 * 3 + 1 * 5

    def test_displacement_is_replaced_per_batch(self, engine):
        engine.ingest_displacement([
            CountryDisplacement(code="SYR", refugees=1_500_000, asylum_seekers=500_000),
            CountryDisplacement(name="Sudan", refugees=150_000),
        ])
        assert engine.get_country_data("SY").displacement_outflow == 2_000_000
        assert engine.get_country_data("SD").displacement_outflow == 150_000

        engine.ingest_displacement([CountryDisplacement(code="AF", refugees=200_000)])
        assert engine.get_country_data("SY").displacement_outflow == 0
        assert engine.get_country_data("SD").displacement_outflow == 0
        assert engine.get_country_data("AF").displacement_outflow == 200_000

    def test_unresolvable_displacement_is_unmapped(self, engine):
        engine.ingest_displacement([CountryDisplacement(code="XX", name="Atlantis", refugees=10)])
        assert engine.get_ingest_stats().unmapped == 1

    def test_climate_takes_batch_max(self, engine):
        engine.ingest_climate([
            ClimateAnomaly(zone="Middle East", severity="moderate"),
            ClimateAnomaly(zone="Middle East", severity="extreme"),
            ClimateAnomaly(zone="Ukraine", severity="normal"),
        ])
        assert engine.get_country_data("IR").climate_stress == 15
        assert engine.get_country_data("UA") is None

        engine.ingest_climate([ClimateAnomaly(zone="Ukraine", severity="moderate")])
        assert engine.get_country_data("IR").climate_stress == 0
        assert engine.get_country_data("UA").climate_stress == 8

    def test_clear_country_data(self, engine):
        engine.ingest_protests(_protests("Iran", 3, lat=35.69, lon=51.39))
        engine.clear_country_data()
        assert engine.get_country_data("IR") is None
        assert engine.hotspots.activity("IR") == 0


# ── focal point boost ───────────────────────────────────────────────────────

class TestFocalBoost:

    def test_critical_focal_point_adds_eight(self, engine, detector):
        before = _by_code(engine.calculate_cii())["IR"].score

        clusters = [ClusteredEvent(primary_title=f"Iran military forces mobilize {i}") for i in range(3)]
        signals = aggregate_signals([
            MapSignal(type="military_flight", country="IR"),
            MapSignal(type="internet_outage", country="IR"),
            MapSignal(type="protest", country="IR"),
        ])
        detector.analyze(clusters, signals)
        assert detector.get_country_urgency("IR") == "critical"

        after = _by_code(engine.calculate_cii())["IR"].score
        assert after - before == 8


# ── learning mode ───────────────────────────────────────────────────────────

class TestLearningMode:

    def test_before_start(self, engine):
        progress = engine.get_learning_progress()
        assert progress.in_learning
        assert (progress.remaining_minutes, progress.progress) == (15, 0)

    def test_progress_over_time(self, engine, clock):
        engine.start_learning()
        clock.advance(300)
        progress = engine.get_learning_progress()
        assert progress.in_learning
        assert progress.remaining_minutes == 10
        assert progress.progress == 33

        clock.advance(600)
        assert not engine.is_in_learning_mode()
        assert engine.get_learning_progress().progress == 100

    def test_cached_scores_skip_learning(self, engine):
        engine.start_learning()
        engine.set_has_cached_scores(True)
        assert not engine.is_in_learning_mode()
        assert engine.get_learning_progress().remaining_minutes == 0

    def test_learning_never_gates_scoring(self, engine):
        engine.start_learning()
        assert engine.is_in_learning_mode()
        assert engine.calculate_cii()
