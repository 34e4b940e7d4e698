"""
Meridian — Main FastAPI Application
Country Instability Index & Intelligence Correlation Backend
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from meridian.backend.config import Settings, settings as default_settings
from meridian.backend.models import (
    ClimateAnomaly,
    ClusteredEvent,
    ConflictEvent,
    CountryDisplacement,
    Earthquake,
    HapiConflictSummary,
    InternetOutage,
    MapSignal,
    MilitaryFlight,
    MilitaryVessel,
    SocialUnrestEvent,
    UcdpConflictStatus,
)
from meridian.backend.score_cache import ScoreCache
from meridian.fusion_engine.country_instability import (
    CIIEngine,
    compute_baseline_cii,
    compute_strategic_risk,
)
from meridian.fusion_engine.focal_point_detector import FocalPointDetector
from meridian.fusion_engine.geo_attribution import CountryGeometry, GeoAttributor
from meridian.fusion_engine.geo_convergence import AlertDedupStore, GeoConvergenceGrid
from meridian.fusion_engine.signal_aggregator import aggregate_signals

# ─── Logging ───────────────────────────────────────
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(name)-20s │ %(levelname)-7s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("meridian.main")


# ─── Request bodies ───────────────────────────────
class MilitaryBatch(BaseModel):
    flights: list[MilitaryFlight] = Field(default_factory=list)
    vessels: list[MilitaryVessel] = Field(default_factory=list)


class FocalAnalysisRequest(BaseModel):
    clusters: list[ClusteredEvent] = Field(default_factory=list)
    signals: list[MapSignal] = Field(default_factory=list)


def _accepted(kind: str, count: int, engine: CIIEngine) -> dict:
    stats = engine.get_ingest_stats()
    return {"accepted": count, "kind": kind, "ingest_stats": stats.model_dump()}


def create_app(cfg: Optional[Settings] = None) -> FastAPI:
    """Build an app with its own engine, detector, grid and cache."""
    cfg = cfg or default_settings

    geometry = CountryGeometry.from_file(cfg.country_boundaries_path) if cfg.country_boundaries_path else None
    detector = FocalPointDetector()
    engine = CIIEngine(
        attributor=GeoAttributor(geometry),
        focal_detector=detector,
        learning_duration_minutes=cfg.learning_duration_minutes,
    )
    grid = GeoConvergenceGrid(
        include_location_names=cfg.convergence_location_names,
        window_seconds=cfg.convergence_window_hours * 3600,
    )
    dedup = AlertDedupStore(ttl=cfg.convergence_dedup_ttl)
    score_cache = ScoreCache(
        redis_url=cfg.redis_url,
        key=cfg.score_cache_key,
        stale_key=cfg.score_stale_cache_key,
        ttl=cfg.score_cache_ttl,
        stale_ttl=cfg.score_stale_cache_ttl,
        use_redis=cfg.use_redis,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("═══════════════════════════════════════════════")
        logger.info("  MERIDIAN — Country Instability Engine        ")
        logger.info("  Version %s", cfg.app_version)
        logger.info("═══════════════════════════════════════════════")

        await score_cache.connect()
        if await score_cache.get_cached_scores():
            engine.set_has_cached_scores(True)
            logger.info("Cached risk scores available, skipping learning mode")
        engine.start_learning()

        yield

        logger.info("Shutting down Meridian...")
        await score_cache.close()

    app = FastAPI(
        title=cfg.app_name,
        description="Country Instability Index and intelligence correlation engine",
        version=cfg.app_version,
        lifespan=lifespan,
    )
    app.state.engine = engine
    app.state.focal_detector = detector
    app.state.grid = grid
    app.state.dedup = dedup
    app.state.score_cache = score_cache

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ─── Status ───────────────────────────────────
    @app.get("/")
    async def root():
        return {
            "name": cfg.app_name,
            "version": cfg.app_version,
            "status": "operational",
            "learning": engine.is_in_learning_mode(),
        }

    # ─── Ingestion ────────────────────────────────
    @app.post("/api/ingest/protests")
    def ingest_protests(events: list[SocialUnrestEvent]):
        engine.ingest_protests(events)
        grid.ingest_protests(events)
        return _accepted("protests", len(events), engine)

    @app.post("/api/ingest/conflicts")
    def ingest_conflicts(events: list[ConflictEvent]):
        engine.ingest_conflicts(events)
        return _accepted("conflicts", len(events), engine)

    @app.post("/api/ingest/ucdp")
    def ingest_ucdp(classifications: dict[str, UcdpConflictStatus]):
        engine.ingest_ucdp(classifications)
        return _accepted("ucdp", len(classifications), engine)

    @app.post("/api/ingest/hapi")
    def ingest_hapi(summaries: dict[str, HapiConflictSummary]):
        engine.ingest_hapi(summaries)
        return _accepted("hapi", len(summaries), engine)

    @app.post("/api/ingest/military")
    def ingest_military(batch: MilitaryBatch):
        engine.ingest_military(batch.flights, batch.vessels)
        grid.ingest_flights(batch.flights)
        grid.ingest_vessels(batch.vessels)
        return _accepted("military", len(batch.flights) + len(batch.vessels), engine)

    @app.post("/api/ingest/news")
    def ingest_news(clusters: list[ClusteredEvent]):
        engine.ingest_news(clusters)
        return _accepted("news", len(clusters), engine)

    @app.post("/api/ingest/outages")
    def ingest_outages(outages: list[InternetOutage]):
        engine.ingest_outages(outages)
        return _accepted("outages", len(outages), engine)

    @app.post("/api/ingest/displacement")
    def ingest_displacement(countries: list[CountryDisplacement]):
        engine.ingest_displacement(countries)
        return _accepted("displacement", len(countries), engine)

    @app.post("/api/ingest/climate")
    def ingest_climate(anomalies: list[ClimateAnomaly]):
        engine.ingest_climate(anomalies)
        return _accepted("climate", len(anomalies), engine)

    @app.post("/api/ingest/earthquakes")
    def ingest_earthquakes(quakes: list[Earthquake]):
        grid.ingest_earthquakes(quakes)
        return {"accepted": len(quakes), "kind": "earthquakes", "cells": grid.cell_count()}

    # ─── Focal points ─────────────────────────────
    @app.post("/api/focal-points/analyze")
    def analyze_focal_points(request: FocalAnalysisRequest):
        summary = detector.analyze(request.clusters, aggregate_signals(request.signals))
        return summary.model_dump(mode="json")

    @app.get("/api/focal-points")
    def get_focal_points():
        summary = detector.get_last_summary()
        if summary is None:
            return {"focal_points": [], "ai_context": "", "timestamp": None}
        return summary.model_dump(mode="json")

    # ─── CII ──────────────────────────────────────
    @app.get("/api/cii")
    def get_cii():
        """Country Instability Index for every tracked country."""
        scores = engine.calculate_cii()
        return {
            "count": len(scores),
            "countries": [s.model_dump(mode="json") for s in scores],
            "learning": engine.get_learning_progress().model_dump(),
            "focal_points_at": detector.last_analyzed_at,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.get("/api/cii/top")
    def get_top_cii(limit: int = Query(10, ge=1, le=250)):
        scores = engine.get_top_unstable_countries(limit)
        return {"count": len(scores), "countries": [s.model_dump(mode="json") for s in scores]}

    @app.get("/api/cii/{code}")
    def get_country_cii(code: str):
        iso2 = engine.attributor.ensure_iso2(code)
        score = engine.get_country_score(iso2) if iso2 else None
        if score is None:
            raise HTTPException(status_code=404, detail=f"No data for country: {code}")
        return {"code": iso2, "name": engine.attributor.country_name(iso2), "score": score}

    @app.get("/api/risk-scores")
    async def get_risk_scores():
        """Pre-computed snapshot; computed and cached on a miss.

        When scoring fails, the last stale snapshot is served, and failing
        that, scores built from curated baselines alone.
        """
        cached = await score_cache.get_cached_scores(allow_stale=False)
        if cached is not None:
            return cached

        try:
            scores = await run_in_threadpool(engine.calculate_cii)
        except Exception as e:
            logger.error("Risk score computation failed: %s", e)
            stale = await score_cache.get_cached_scores(allow_stale=True)
            if stale is not None:
                return {**stale, "error": "Using cached data - live scoring unavailable"}
            baseline = await run_in_threadpool(compute_baseline_cii)
            return {
                "cii": [s.model_dump(mode="json") for s in baseline],
                "strategic_risk": compute_strategic_risk(baseline).model_dump(mode="json"),
                "computed_at": datetime.now(timezone.utc).isoformat(),
                "cached": False,
                "stale": False,
                "baseline": True,
                "error": "Live scoring unavailable - showing baseline risk assessments",
            }

        payload = {
            "cii": [s.model_dump(mode="json") for s in scores],
            "strategic_risk": compute_strategic_risk(scores).model_dump(mode="json"),
            "computed_at": datetime.now(timezone.utc).isoformat(),
        }
        await score_cache.store_scores(payload)
        return {**payload, "cached": False, "stale": False}

    # ─── Convergence ──────────────────────────────
    @app.get("/api/convergence")
    def get_convergence():
        alerts = grid.detect_geo_convergence(dedup)
        return {
            "count": len(alerts),
            "alerts": [a.model_dump() for a in alerts],
            "signals": [grid.convergence_to_signal(a).model_dump(mode="json") for a in alerts],
            "cells": grid.cell_count(),
        }

    # ─── Diagnostics ──────────────────────────────
    @app.get("/api/ingest-stats")
    def get_ingest_stats():
        return engine.get_ingest_stats().model_dump()

    @app.delete("/api/ingest-stats")
    def reset_ingest_stats():
        engine.reset_ingest_stats()
        return engine.get_ingest_stats().model_dump()

    @app.delete("/api/country-data")
    def clear_country_data():
        engine.clear_country_data()
        grid.clear()
        dedup.clear()
        return {"cleared": True}

    @app.get("/api/learning")
    def get_learning():
        return engine.get_learning_progress().model_dump()

    return app


app = create_app()


# ─── Run ───────────────────────────────────────────
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "meridian.backend.main:app",
        host=default_settings.host,
        port=default_settings.port,
        reload=True,
    )
