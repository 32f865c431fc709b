"""
Analyzer — Pipeline Orchestrator

Runs one listing through the whole pipeline:
  1. Gate:     too few reviews -> "insufficient_data", nothing is scored
  2. Detect:   PatternDetector over the dataset
  3. Score:    ScoreCalculator over the detector output
  4. Record:   optional history entry keyed by listing URL

The pipeline itself is pure. Only step 4 touches storage, and a storage
failure never fails the analysis.
"""

from __future__ import annotations

import logging
import sqlite3
import time
from datetime import datetime, timezone
from typing import Any, Optional

from reviewtrust.config import AnalysisSettings, DEFAULT_ANALYSIS_SETTINGS
from reviewtrust.detector import PatternDetector
from reviewtrust.history import AnalysisHistory
from reviewtrust.models import AnalysisResult, PatternReport, ReviewDataset
from reviewtrust.rules import AnalysisConfig, DEFAULT_CONFIG, RULES_VERSION
from reviewtrust.scorer import ScoreCalculator, score_color, score_text
from reviewtrust.text_utils import calculate_review_stats

logger = logging.getLogger(__name__)

STATUS_COMPLETED = "completed"
STATUS_INSUFFICIENT_DATA = "insufficient_data"


class ReviewAnalyzer:
    """Detector + calculator wired to one set of settings."""

    def __init__(
        self,
        settings: Optional[AnalysisSettings] = None,
        config: AnalysisConfig = DEFAULT_CONFIG,
        history: Optional[AnalysisHistory] = None,
    ):
        self.settings = settings or DEFAULT_ANALYSIS_SETTINGS
        self.config = config
        self.history = history
        self.detector = PatternDetector(self.settings, config)
        self.calculator = ScoreCalculator(self.settings, config)

    def analyze(self, dataset: ReviewDataset) -> dict:
        """Analyze one dataset and return a JSON-ready result."""
        start = time.time()

        if dataset.total_reviews < self.settings.minimum_reviews_for_analysis:
            logger.info(
                "Insufficient data for analysis",
                extra={"total_reviews": dataset.total_reviews, "place_name": dataset.place_name},
            )
            return {
                "status": STATUS_INSUFFICIENT_DATA,
                "place_name": dataset.place_name,
                "url": dataset.url,
                "total_reviews": dataset.total_reviews,
                "minimum_reviews": self.settings.minimum_reviews_for_analysis,
                "analyzed_at": datetime.now(timezone.utc).isoformat(),
            }

        report = self.detector.detect_all_patterns(dataset)
        result = self.calculator.calculate_trust_score(
            report.suspicion_factors, report.suspicious_patterns, dataset,
        )

        if self.history is not None and dataset.url:
            self._record(dataset, report, result)

        duration = int((time.time() - start) * 1000)
        logger.info(
            f"Analysis complete: score={result.score} level={result.level.value}",
            extra={
                "trust_score": result.score,
                "analysis_mode": self.settings.analysis_mode.value,
                "patterns_count": len(report.suspicious_patterns),
                "total_reviews": dataset.total_reviews,
                "duration_ms": duration,
            },
        )

        return self._build_result(dataset, report, result)

    def _record(
        self, dataset: ReviewDataset, report: PatternReport, result: AnalysisResult,
    ) -> None:
        try:
            self.history.save({
                "url": dataset.url,
                "place_name": dataset.place_name,
                "trust_score": result.score,
                "total_reviews": dataset.total_reviews,
                "suspicious_patterns": [p.to_dict() for p in report.suspicious_patterns],
                "analysis_mode": self.settings.analysis_mode.value,
            })
        except (sqlite3.Error, ValueError) as e:
            logger.warning(
                "Failed to save analysis history",
                extra={"error": str(e), "error_type": type(e).__name__},
            )

    def _build_result(
        self, dataset: ReviewDataset, report: PatternReport, result: AnalysisResult,
    ) -> dict:
        detailed = self.settings.show_detailed_analysis
        return {
            "status": STATUS_COMPLETED,
            "place_name": dataset.place_name,
            "url": dataset.url,
            "analysis": result.to_dict(include_breakdown=detailed),
            "patterns": [
                p.to_dict() if detailed else {
                    "type": p.type.value,
                    "description": p.description,
                    "severity": p.severity.value,
                }
                for p in report.suspicious_patterns
            ],
            "review_stats": calculate_review_stats(dataset.recent_reviews),
            "score_color": score_color(result.score, self.config),
            "score_text": score_text(result.score, self.config),
            "rules_version": RULES_VERSION,
            "analyzed_at": datetime.now(timezone.utc).isoformat(),
        }


def analyze_reviews(
    raw_dataset: Any,
    raw_settings: Any = None,
    history: Optional[AnalysisHistory] = None,
) -> dict:
    """Analyze a raw dataset mapping with raw settings, defaulting both."""
    dataset = raw_dataset if isinstance(raw_dataset, ReviewDataset) \
        else ReviewDataset.from_dict(raw_dataset or {})
    settings = AnalysisSettings.from_dict(raw_settings)
    return ReviewAnalyzer(settings, history=history).analyze(dataset)
