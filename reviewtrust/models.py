"""
Data Model — Review Datasets, Patterns, Results

Everything the analysis pipeline reads or produces:
  1. Closed enumerations (factor keys, pattern types, severities, modes, levels)
  2. The input dataset as supplied by the extraction layer
  3. Detector output (patterns, per-heuristic detections)
  4. Score calculator output (AnalysisResult and its parts)

All objects are created fresh for each analysis. Nothing here holds state
between calls.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from reviewtrust.text_utils import count_characters


# ============================================================
# ENUMERATIONS
# ============================================================

class SuspicionFactor(str, Enum):
    """Fixed keys of the suspicion factor mapping."""
    POLARIZED_RATINGS = "polarized_ratings"
    BURST_POSTING = "burst_posting"
    SHORT_REVIEWS = "short_reviews"
    DUPLICATE_PATTERNS = "duplicate_patterns"
    NEW_ACCOUNTS = "new_accounts"


class PatternType(str, Enum):
    POLARIZED_RATINGS = "polarized_ratings"
    BURST_POSTING = "burst_posting"
    SHORT_REVIEWS = "short_reviews"
    DUPLICATE_PATTERNS = "duplicate_patterns"
    NEW_ACCOUNTS = "new_accounts"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class AnalysisMode(str, Enum):
    LENIENT = "lenient"
    STANDARD = "standard"
    STRICT = "strict"

    @classmethod
    def parse(cls, value: Any) -> "AnalysisMode":
        """Resolve a raw mode value. Anything unrecognized is STANDARD."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.STANDARD


class TrustLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    VERY_LOW = "very_low"


FACTOR_KEYS: tuple[str, ...] = tuple(f.value for f in SuspicionFactor)


def empty_factors() -> dict[str, float]:
    """A suspicion factor mapping with every key present and zeroed."""
    return {key: 0.0 for key in FACTOR_KEYS}


# ============================================================
# INPUT
# ============================================================

def _as_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@dataclass
class Review:
    """A single scraped review."""
    text: str = ""
    text_length: int = 0      # Character count of the raw text
    date_text: str = ""       # Locale-dependent relative date, e.g. "3 days ago"
    has_photos: bool = False

    @classmethod
    def from_dict(cls, raw: dict) -> "Review":
        text = raw.get("text") or ""
        if not isinstance(text, str):
            text = str(text)
        length = raw.get("text_length", raw.get("textLength"))
        if length is None:
            text_length = count_characters(text)
        else:
            text_length = _as_int(length, count_characters(text))
        date_text = raw.get("date_text", raw.get("dateText")) or ""
        has_photos = raw.get("has_photos", raw.get("hasPhotos", False))
        return cls(
            text=text,
            text_length=max(0, text_length),
            date_text=str(date_text),
            has_photos=bool(has_photos),
        )

    def to_dict(self) -> dict:
        return {
            "text": self.text,
            "text_length": self.text_length,
            "date_text": self.date_text,
            "has_photos": self.has_photos,
        }


@dataclass
class ReviewDataset:
    """
    Review statistics for one listing.

    total_reviews may come from an aggregate "N reviews" label and is not
    guaranteed to equal the sum of the rating counts.
    """
    ratings: dict[int, int] = field(default_factory=lambda: {i: 0 for i in range(1, 6)})
    total_reviews: int = 0
    recent_reviews: list[Review] = field(default_factory=list)
    place_name: Optional[str] = None
    url: Optional[str] = None

    def __post_init__(self):
        ratings = {i: 0 for i in range(1, 6)}
        for star, count in (self.ratings or {}).items():
            star_num = _as_int(star, -1)
            if 1 <= star_num <= 5:
                ratings[star_num] = max(0, _as_int(count))
        self.ratings = ratings
        self.total_reviews = max(0, _as_int(self.total_reviews))

    @classmethod
    def from_dict(cls, raw: dict) -> "ReviewDataset":
        reviews = raw.get("recent_reviews", raw.get("recentReviews")) or []
        return cls(
            ratings=raw.get("ratings") or {},
            total_reviews=raw.get("total_reviews", raw.get("totalReviews", 0)),
            recent_reviews=[
                r if isinstance(r, Review) else Review.from_dict(r)
                for r in reviews
                if isinstance(r, (Review, dict))
            ],
            place_name=raw.get("place_name", raw.get("placeName")),
            url=raw.get("url"),
        )

    def rating(self, star: int) -> int:
        return self.ratings.get(star, 0)

    def to_dict(self) -> dict:
        return {
            "ratings": {str(k): v for k, v in self.ratings.items()},
            "total_reviews": self.total_reviews,
            "recent_reviews": [r.to_dict() for r in self.recent_reviews],
            "place_name": self.place_name,
            "url": self.url,
        }


# ============================================================
# DETECTOR OUTPUT
# ============================================================

@dataclass
class SuspiciousPattern:
    """A heuristic that fired during one analysis run."""
    type: PatternType
    description: str
    severity: Severity
    metadata: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "description": self.description,
            "severity": self.severity.value,
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, raw: dict) -> "SuspiciousPattern":
        severity = raw.get("severity", Severity.LOW)
        try:
            severity = Severity(severity)
        except ValueError:
            severity = Severity.LOW
        return cls(
            type=PatternType(raw["type"]),
            description=raw.get("description", ""),
            severity=severity,
            metadata=dict(raw.get("metadata") or {}),
        )


@dataclass
class Detection:
    """Verdict of a single heuristic."""
    detected: bool
    score: float = 0.0
    pattern: Optional[SuspiciousPattern] = None


NOT_DETECTED = Detection(detected=False)


@dataclass
class PatternReport:
    """Aggregate output of the pattern detector."""
    suspicion_factors: dict[str, float]
    suspicious_patterns: list[SuspiciousPattern]

    def to_dict(self) -> dict:
        return {
            "suspicion_factors": dict(self.suspicion_factors),
            "suspicious_patterns": [p.to_dict() for p in self.suspicious_patterns],
        }


# ============================================================
# SCORE OUTPUT
# ============================================================

@dataclass
class ScoreDetails:
    total_reviews: int
    analysis_mode: str
    patterns_detected: int
    main_concerns: list[dict] = field(default_factory=list)
    positive_factors: list[dict] = field(default_factory=list)
    recommendations: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "total_reviews": self.total_reviews,
            "analysis_mode": self.analysis_mode,
            "patterns_detected": self.patterns_detected,
            "main_concerns": [dict(c) for c in self.main_concerns],
            "positive_factors": [dict(p) for p in self.positive_factors],
            "recommendations": [dict(r) for r in self.recommendations],
        }


@dataclass
class ScoreBreakdown:
    suspicion_factors: dict[str, float]
    base_score: int
    adjusted_score: int
    final_score: int
    adjustments: int
    confidence: float

    def to_dict(self) -> dict:
        return {
            "suspicion_factors": dict(self.suspicion_factors),
            "base_score": self.base_score,
            "adjusted_score": self.adjusted_score,
            "final_score": self.final_score,
            "adjustments": self.adjustments,
            "confidence": self.confidence,
        }


@dataclass
class AnalysisResult:
    """Trust score with its rationale."""
    score: int                 # Clamped to [10, 100]
    level: TrustLevel
    details: ScoreDetails
    breakdown: ScoreBreakdown

    def to_dict(self, include_breakdown: bool = True) -> dict:
        result = {
            "score": self.score,
            "level": self.level.value,
            "details": self.details.to_dict(),
        }
        if include_breakdown:
            result["breakdown"] = self.breakdown.to_dict()
        return result
