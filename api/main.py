"""
ReviewTrust API — Main Application

POST   /analyze            — Full analysis: gate, detect, score, record
POST   /patterns/detect    — Run the suspicion heuristics only
POST   /score              — Score supplied detector output
GET    /history            — Recent analyses, newest first
DELETE /history            — Clear analysis history
GET    /history/export     — Snapshot of the whole history
POST   /history/import     — Replace history from a snapshot
GET    /settings/defaults  — Default analysis settings
POST   /settings/validate  — Validate and normalize analysis settings
GET    /health             — Health check
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.requests import Request

from reviewtrust import __version__
from reviewtrust.analyzer import ReviewAnalyzer
from reviewtrust.cache import analysis_cache
from reviewtrust.config import (
    AnalysisSettings,
    DEFAULT_ANALYSIS_SETTINGS,
    settings,
    validate_settings,
)
from reviewtrust.detector import PatternDetector
from reviewtrust.history import AnalysisHistory, _get_history
from reviewtrust.logging import setup_logging, get_logger
from reviewtrust.models import ReviewDataset, SuspiciousPattern
from reviewtrust.rules import RULES_VERSION
from reviewtrust.schemas.analysis import (
    AnalyzeRequest,
    AnalyzeResponse,
    AnalysisResultOut,
    DetectResponse,
    HealthResponse,
    HistoryExport,
    HistoryImportResult,
    HistoryResponse,
    ReviewDatasetIn,
    ScoreRequest,
    SettingsIn,
    SettingsOut,
    SettingsValidation,
)
from reviewtrust.scorer import ScoreCalculator

logger = get_logger("api")


# ============================================================
# STARTUP / SHUTDOWN
# ============================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info(f"ReviewTrust API starting (history db: {settings.HISTORY_DB_PATH})")
    yield
    logger.info("ReviewTrust API shutting down")


app = FastAPI(
    title="ReviewTrust API",
    description="Heuristic review-manipulation detection and trust scoring",
    version=f"{__version__} (rules {RULES_VERSION})",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.CORS_ORIGINS.split(",")],
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type"],
    allow_credentials=False,
)


# ============================================================
# GLOBAL ERROR HANDLER
# ============================================================

@app.exception_handler(Exception)
async def global_error_handler(request: Request, exc: Exception):
    """Catch unhandled exceptions — return structured error, don't leak internals."""
    logger.error(
        f"Unhandled exception: {type(exc).__name__}",
        extra={"error": str(exc), "path": request.url.path, "method": request.method},
        exc_info=True,
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error. The analysis could not be completed."},
    )


# Lazy history store
_history: Optional[AnalysisHistory] = None


def _get_history_store() -> AnalysisHistory:
    global _history
    if _history is None:
        _history = _get_history()
    return _history


def _to_settings(raw: Optional[SettingsIn]) -> AnalysisSettings:
    if raw is None:
        return DEFAULT_ANALYSIS_SETTINGS
    return AnalysisSettings.from_dict(raw.model_dump(exclude_none=True))


def _to_dataset(raw: ReviewDatasetIn) -> ReviewDataset:
    return ReviewDataset.from_dict(raw.model_dump())


# ============================================================
# ROUTES
# ============================================================

@app.post("/analyze", response_model=AnalyzeResponse)
async def analyze(request: AnalyzeRequest):
    """Analyze one listing's reviews."""
    dataset = _to_dataset(request.dataset)
    analysis_settings = _to_settings(request.settings)

    cached = await analysis_cache.get(dataset, analysis_settings)
    if cached:
        return cached

    analyzer = ReviewAnalyzer(analysis_settings, history=_get_history_store())
    result = analyzer.analyze(dataset)

    await analysis_cache.put(dataset, analysis_settings, result)
    return result


@app.post("/patterns/detect", response_model=DetectResponse)
async def detect_patterns(request: AnalyzeRequest):
    """Run the five heuristics without scoring."""
    dataset = _to_dataset(request.dataset)
    report = PatternDetector(_to_settings(request.settings)).detect_all_patterns(dataset)
    return report.to_dict()


@app.post("/score", response_model=AnalysisResultOut)
async def score(request: ScoreRequest):
    """Score detector output supplied by the caller."""
    dataset = _to_dataset(request.dataset)
    patterns = [SuspiciousPattern.from_dict(p.model_dump()) for p in request.suspicious_patterns]
    calculator = ScoreCalculator(_to_settings(request.settings))
    result = calculator.calculate_trust_score(request.suspicion_factors, patterns, dataset)
    return result.to_dict()


@app.get("/history", response_model=HistoryResponse)
async def get_history(limit: Optional[int] = Query(None, ge=1, le=100)):
    store = _get_history_store()
    return {
        "entries": store.get_recent(limit=limit),
        "total_count": store.count(),
    }


@app.delete("/history")
async def clear_history():
    removed = _get_history_store().clear()
    await analysis_cache.clear()
    logger.info("Analysis history cleared")
    return {"cleared": removed}


@app.get("/history/export", response_model=HistoryExport)
async def export_history():
    return _get_history_store().export_data()


@app.post("/history/import", response_model=HistoryImportResult)
async def import_history(data: dict):
    """Replace history with a snapshot from GET /history/export."""
    try:
        imported = _get_history_store().import_data(data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"imported": imported}


@app.get("/settings/defaults", response_model=SettingsOut)
async def default_settings():
    return DEFAULT_ANALYSIS_SETTINGS.to_dict()


@app.post("/settings/validate", response_model=SettingsValidation)
async def check_settings(raw: dict):
    """Validate raw settings; invalid fields fall back to defaults."""
    validated, errors = validate_settings(raw)
    return {"valid": not errors, "errors": errors, "settings": validated.to_dict()}


@app.get("/health", response_model=HealthResponse)
async def health():
    """Health check."""
    return {
        "status": "operational",
        "version": __version__,
        "rules_version": RULES_VERSION,
        "history_entries": _get_history_store().count(),
        "cache": analysis_cache.stats,
    }


# --- Version Headers Middleware ---
@app.middleware("http")
async def add_version_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers["X-ReviewTrust-Version"] = __version__
    response.headers["X-Rules-Version"] = RULES_VERSION
    response.headers["X-Content-Type-Options"] = "nosniff"
    return response


# --- Request Logging Middleware ---
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log every API request with method, path, status, duration."""
    path = request.url.path
    if path == "/health":
        return await call_next(request)

    start = time.time()
    response = await call_next(request)
    duration_ms = round((time.time() - start) * 1000, 1)

    logger.info(
        f"{request.method} {path} → {response.status_code} ({duration_ms}ms)",
        extra={
            "method": request.method,
            "path": path,
            "status_code": response.status_code,
            "duration_ms": duration_ms,
        },
    )
    return response
