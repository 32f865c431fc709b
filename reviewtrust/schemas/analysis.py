"""
API Schemas — Request and Response Models

Pydantic models for the ReviewTrust API.
"""

from __future__ import annotations

from typing import Optional
from pydantic import BaseModel, Field, field_validator


# ============================================================
# INPUT
# ============================================================

class ReviewIn(BaseModel):
    text: str = Field("", max_length=10_000)
    text_length: Optional[int] = Field(None, ge=0, le=10_000,
                                       description="Character count; derived from text when omitted.")
    date_text: str = Field("", max_length=200,
                           description="Relative date as shown on the page, e.g. '3 days ago'.")
    has_photos: bool = False


class ReviewDatasetIn(BaseModel):
    ratings: dict[int, int] = Field(default_factory=dict,
                                    description="Star value (1-5) -> review count.")
    total_reviews: int = Field(0, ge=0)
    recent_reviews: list[ReviewIn] = Field(default_factory=list, max_length=200)
    place_name: Optional[str] = Field(None, max_length=500)
    url: Optional[str] = Field(None, max_length=2_000)

    @field_validator("ratings")
    @classmethod
    def _check_ratings(cls, v: dict[int, int]) -> dict[int, int]:
        for star, count in v.items():
            if not 1 <= star <= 5:
                raise ValueError(f"rating keys must be 1-5, got {star}")
            if count < 0:
                raise ValueError(f"rating counts must be >= 0, got {count} for {star}")
        return v

    model_config = {"json_schema_extra": {"examples": [{
        "ratings": {"1": 40, "2": 2, "3": 2, "4": 2, "5": 54},
        "total_reviews": 100,
        "recent_reviews": [
            {"text": "Great food!", "date_text": "3 days ago", "has_photos": False},
        ],
        "place_name": "Sample Cafe",
        "url": "https://www.google.com/maps/place/sample-cafe",
    }]}}


class SettingsIn(BaseModel):
    """Analysis preferences. Invalid values fall back to defaults server-side."""
    analysis_mode: Optional[str] = Field(None, description="lenient | standard | strict")
    minimum_reviews_for_analysis: Optional[int] = None
    show_detailed_analysis: Optional[bool] = None
    suspicion_threshold: Optional[int] = None
    auto_analysis: Optional[bool] = None
    debug_mode: Optional[bool] = None


class AnalyzeRequest(BaseModel):
    """POST /analyze request body."""
    dataset: ReviewDatasetIn
    settings: Optional[SettingsIn] = None


class PatternIn(BaseModel):
    type: str = Field(..., pattern="^(polarized_ratings|burst_posting|short_reviews|duplicate_patterns|new_accounts)$")
    description: str = ""
    severity: str = Field("low", pattern="^(low|medium|high)$")
    metadata: dict = Field(default_factory=dict)


class ScoreRequest(BaseModel):
    """POST /score request body."""
    suspicion_factors: dict[str, float] = Field(default_factory=dict)
    suspicious_patterns: list[PatternIn] = Field(default_factory=list)
    dataset: ReviewDatasetIn
    settings: Optional[SettingsIn] = None


# ============================================================
# OUTPUT
# ============================================================

class PatternOut(BaseModel):
    type: str
    description: str
    severity: str
    metadata: dict = Field(default_factory=dict)


class ScoreDetailsOut(BaseModel):
    total_reviews: int
    analysis_mode: str
    patterns_detected: int
    main_concerns: list[dict]
    positive_factors: list[dict]
    recommendations: list[dict]


class ScoreBreakdownOut(BaseModel):
    suspicion_factors: dict[str, float]
    base_score: int
    adjusted_score: int
    final_score: int
    adjustments: int
    confidence: float


class AnalysisResultOut(BaseModel):
    score: int = Field(..., ge=10, le=100)
    level: str
    details: ScoreDetailsOut
    breakdown: Optional[ScoreBreakdownOut] = None


class DetectResponse(BaseModel):
    """POST /patterns/detect response body."""
    suspicion_factors: dict[str, float]
    suspicious_patterns: list[PatternOut]


class AnalyzeResponse(BaseModel):
    """POST /analyze response body."""
    status: str
    place_name: Optional[str] = None
    url: Optional[str] = None
    analysis: Optional[AnalysisResultOut] = None
    patterns: list[PatternOut] = Field(default_factory=list)
    review_stats: Optional[dict] = None
    score_color: Optional[str] = None
    score_text: Optional[str] = None
    rules_version: Optional[str] = None
    total_reviews: Optional[int] = None
    minimum_reviews: Optional[int] = None
    analyzed_at: str
    cached: bool = False


# ============================================================
# SETTINGS
# ============================================================

class SettingsOut(BaseModel):
    analysis_mode: str
    minimum_reviews_for_analysis: int
    show_detailed_analysis: bool
    suspicion_threshold: int
    auto_analysis: bool
    debug_mode: bool


class SettingsValidation(BaseModel):
    valid: bool
    errors: list[str]
    settings: SettingsOut


# ============================================================
# HISTORY
# ============================================================

class HistoryEntry(BaseModel):
    id: int
    url: str
    place_name: Optional[str] = None
    trust_score: int
    total_reviews: int
    suspicious_patterns: list[dict]
    analysis_mode: str
    timestamp: str
    version: str


class HistoryResponse(BaseModel):
    entries: list[HistoryEntry]
    total_count: int


# ============================================================
# HEALTH
# ============================================================

class HealthResponse(BaseModel):
    status: str
    version: str
    rules_version: str
    history_entries: int
    cache: dict


class HistoryExport(BaseModel):
    version: str
    exported_at: str
    analysis_history: list[HistoryEntry]


class HistoryImportResult(BaseModel):
    imported: int
