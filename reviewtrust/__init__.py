"""
ReviewTrust — Review Manipulation Detection and Trust Scoring

Heuristic analysis of a map listing's customer reviews. Detects signals of
review manipulation and turns them into a bounded 10-100 trust score with
an explanation.

Public API:
  - detect_all_patterns:   Run the five suspicion heuristics over a dataset
  - calculate_trust_score: Score detector output into an AnalysisResult
  - ReviewAnalyzer:        Gate + detect + score + record, in one call
  - analyze_reviews:       Same, from raw dicts
  - AnalysisHistory:       SQLite-backed per-URL result history
  - AnalysisSettings:      Validated per-user analysis preferences
  - AnalysisConfig:        Frozen rule tables (weights, thresholds, keywords)

Usage:
    from reviewtrust import ReviewDataset, detect_all_patterns, calculate_trust_score
    report = detect_all_patterns(dataset, settings)
    result = calculate_trust_score(
        report.suspicion_factors, report.suspicious_patterns, dataset, settings,
    )
"""

__version__ = "1.0.0"

from reviewtrust.models import (
    AnalysisMode,
    AnalysisResult,
    Detection,
    PatternReport,
    PatternType,
    Review,
    ReviewDataset,
    Severity,
    SuspicionFactor,
    SuspiciousPattern,
    TrustLevel,
)
from reviewtrust.config import AnalysisSettings, validate_settings, merge_settings
from reviewtrust.rules import AnalysisConfig, DEFAULT_CONFIG, RULES_VERSION
from reviewtrust.detector import PatternDetector, detect_all_patterns, calculate_text_similarity
from reviewtrust.scorer import (
    ScoreCalculator,
    calculate_trust_score,
    calculate_rating_naturalness,
)
from reviewtrust.analyzer import ReviewAnalyzer, analyze_reviews
from reviewtrust.history import AnalysisHistory

__all__ = [
    "AnalysisMode",
    "AnalysisResult",
    "Detection",
    "PatternReport",
    "PatternType",
    "Review",
    "ReviewDataset",
    "Severity",
    "SuspicionFactor",
    "SuspiciousPattern",
    "TrustLevel",
    "AnalysisSettings",
    "validate_settings",
    "merge_settings",
    "AnalysisConfig",
    "DEFAULT_CONFIG",
    "RULES_VERSION",
    "PatternDetector",
    "detect_all_patterns",
    "calculate_text_similarity",
    "ScoreCalculator",
    "calculate_trust_score",
    "calculate_rating_naturalness",
    "ReviewAnalyzer",
    "analyze_reviews",
    "AnalysisHistory",
]
