"""
Trust Score Calculator

Computes a 10-100 Trust Score from the detector's suspicion factors.
Separated from detector.py for single-responsibility.

Score = 100 minus weighted suspicion, then adjusted in this order:
  1. Review count      <5: x0.80   <10: x0.90   >100: x1.05 (cap 100)
  2. Pattern severity  high: -5    medium: -2   low: 0     (per pattern)
  3. Naturalness       >0.8: x1.03 (cap 100)    <0.3: x0.95
                       (skipped under 5 reviews)
  4. Analysis mode     strict: x0.95   lenient: x1.05 (cap 100)
Clamped to [10, 100] and rounded. The trust level is read from the clamped
score before rounding, so 79.6 is reported as score 80, level medium.
Every constant above lives in rules.AnalysisConfig.

The result also carries the narrative (concerns, positive factors,
recommendations) and a diagnostic confidence value. Confidence never
feeds back into the score.
"""

from __future__ import annotations

import math
from typing import Optional

from reviewtrust.config import AnalysisSettings, DEFAULT_ANALYSIS_SETTINGS
from reviewtrust.models import (
    FACTOR_KEYS,
    AnalysisResult,
    ReviewDataset,
    ScoreBreakdown,
    ScoreDetails,
    Severity,
    SuspiciousPattern,
    TrustLevel,
)
from reviewtrust.rules import AnalysisConfig, DEFAULT_CONFIG


# Colours and short verdicts used by result renderers
LEVEL_COLORS = {
    TrustLevel.HIGH: "#4caf50",
    TrustLevel.MEDIUM: "#ff9800",
    TrustLevel.LOW: "#f44336",
    TrustLevel.VERY_LOW: "#9c27b0",
}

LEVEL_TEXT = {
    TrustLevel.HIGH: "Reviews look highly trustworthy",
    TrustLevel.MEDIUM: "Reviews look mostly trustworthy",
    TrustLevel.LOW: "Some caution is warranted",
    TrustLevel.VERY_LOW: "Reviews show suspicious signals",
}


def round_half_up(value: float) -> int:
    """Round .5 away from zero on the positive side (2.5 -> 3, -2.5 -> -2)."""
    return int(math.floor(value + 0.5))


def calculate_rating_naturalness(ratings: dict[int, int], total_reviews: int,
                                 ideal: Optional[dict[int, float]] = None) -> float:
    """
    How close the star distribution is to the ideal shape, 0.0 to 1.0.

    1 - Euclidean distance between observed and ideal per-star ratios,
    floored at 0. Returns 0 for an empty listing.
    """
    if not total_reviews:
        return 0.0
    ideal = ideal or DEFAULT_CONFIG.ideal_rating_distribution

    squared = 0.0
    for star in range(1, 6):
        ratio = (ratings.get(star, 0) or 0) / total_reviews
        difference = abs(ratio - ideal.get(star, 0.0))
        squared += difference * difference

    return max(0.0, 1 - math.sqrt(squared))


class ScoreCalculator:
    """Turns suspicion factors + patterns + dataset into an AnalysisResult."""

    def __init__(
        self,
        settings: Optional[AnalysisSettings] = None,
        config: AnalysisConfig = DEFAULT_CONFIG,
    ):
        self.settings = settings or DEFAULT_ANALYSIS_SETTINGS
        self.config = config

    def calculate_trust_score(
        self,
        suspicion_factors: dict[str, float],
        suspicious_patterns: list[SuspiciousPattern],
        dataset: ReviewDataset,
    ) -> AnalysisResult:
        base_score = self.calculate_base_score(suspicion_factors)
        adjusted_score = self.apply_adjustments(base_score, suspicious_patterns, dataset)

        final_score = max(self.config.min_score, min(self.config.max_score, adjusted_score))
        score = round_half_up(final_score)

        details = self.generate_score_details(suspicion_factors, suspicious_patterns, dataset)
        breakdown = ScoreBreakdown(
            suspicion_factors=dict(suspicion_factors),
            base_score=round_half_up(base_score),
            adjusted_score=round_half_up(adjusted_score),
            final_score=score,
            adjustments=round_half_up(adjusted_score - base_score),
            confidence=self.calculate_confidence(suspicion_factors, final_score),
        )

        return AnalysisResult(
            score=score,
            level=self.determine_trust_level(final_score),
            details=details,
            breakdown=breakdown,
        )

    # ============================================================
    # SCORE
    # ============================================================

    def calculate_base_score(self, suspicion_factors: dict[str, float]) -> float:
        total = 0.0
        for factor, value in suspicion_factors.items():
            total += (value or 0) * self.config.factor_weight(factor)
        return 100 - total

    def apply_adjustments(
        self,
        score: float,
        suspicious_patterns: list[SuspiciousPattern],
        dataset: ReviewDataset,
    ) -> float:
        score = self.adjust_for_review_count(score, dataset)
        score = self.adjust_for_pattern_severity(score, suspicious_patterns)
        score = self.adjust_for_rating_naturalness(score, dataset)
        score = self.adjust_for_analysis_mode(score)
        return score

    def adjust_for_review_count(self, score: float, dataset: ReviewDataset) -> float:
        cfg = self.config
        total = dataset.total_reviews or 0
        # Tightest band first: 3 reviews gets the 20% penalty, not the 10% one
        if total < cfg.tiny_listing_reviews:
            return self._scale(score, cfg.tiny_listing_multiplier)
        if total < cfg.small_listing_reviews:
            return self._scale(score, cfg.small_listing_multiplier)
        if total > cfg.large_listing_reviews:
            return self._scale(score, cfg.large_listing_multiplier)
        return score

    def adjust_for_pattern_severity(
        self, score: float, suspicious_patterns: list[SuspiciousPattern],
    ) -> float:
        penalties = self.config.severity_penalties
        adjustment = sum(penalties.get(p.severity, 0) for p in suspicious_patterns)
        return score - adjustment

    def adjust_for_rating_naturalness(self, score: float, dataset: ReviewDataset) -> float:
        cfg = self.config
        if dataset.total_reviews < cfg.naturalness_min_reviews:
            return score

        naturalness = self.rating_naturalness(dataset)
        if naturalness > cfg.natural_distribution_min:
            return self._scale(score, cfg.natural_distribution_multiplier)
        if naturalness < cfg.unnatural_distribution_max:
            return self._scale(score, cfg.unnatural_distribution_multiplier)
        return score

    def adjust_for_analysis_mode(self, score: float) -> float:
        return self._scale(score, self.config.mode_multiplier(self.settings.analysis_mode))

    def _scale(self, score: float, multiplier: float) -> float:
        """Multiply; bonuses (multiplier > 1) never lift past max_score."""
        scaled = score * multiplier
        if multiplier > 1:
            return min(scaled, self.config.max_score)
        return scaled

    def rating_naturalness(self, dataset: ReviewDataset) -> float:
        return calculate_rating_naturalness(
            dataset.ratings, dataset.total_reviews,
            ideal=self.config.ideal_rating_distribution,
        )

    def determine_trust_level(self, score: float) -> TrustLevel:
        if score >= self.config.high_trust_threshold:
            return TrustLevel.HIGH
        if score >= self.config.medium_trust_threshold:
            return TrustLevel.MEDIUM
        if score >= self.config.low_trust_threshold:
            return TrustLevel.LOW
        return TrustLevel.VERY_LOW

    def calculate_confidence(
        self, suspicion_factors: dict[str, float], final_score: float,
    ) -> float:
        cfg = self.config
        values = [v or 0 for v in suspicion_factors.values()]
        factor_count = sum(1 for v in values if v > 0)
        # Fixed denominator: the five factor keys
        avg_factor = sum(values) / len(FACTOR_KEYS)

        confidence = cfg.confidence_base
        if final_score > cfg.confidence_extreme_high or final_score < cfg.confidence_extreme_low:
            confidence -= cfg.confidence_extreme_penalty
        if factor_count >= cfg.confidence_min_factors:
            confidence += cfg.confidence_factor_bonus
        if avg_factor > cfg.confidence_strength_min:
            confidence += cfg.confidence_strength_bonus

        confidence = max(cfg.confidence_floor, min(cfg.confidence_ceiling, confidence))
        return round(confidence, 3)

    # ============================================================
    # NARRATIVE
    # ============================================================

    def generate_score_details(
        self,
        suspicion_factors: dict[str, float],
        suspicious_patterns: list[SuspiciousPattern],
        dataset: ReviewDataset,
    ) -> ScoreDetails:
        concerns = self.identify_main_concerns(suspicious_patterns, suspicion_factors)
        positives = self.identify_positive_factors(dataset, suspicious_patterns)
        return ScoreDetails(
            total_reviews=dataset.total_reviews or 0,
            analysis_mode=self.settings.analysis_mode.value,
            patterns_detected=len(suspicious_patterns),
            main_concerns=concerns,
            positive_factors=positives,
            recommendations=self.generate_recommendations(concerns),
        )

    def identify_main_concerns(
        self,
        suspicious_patterns: list[SuspiciousPattern],
        suspicion_factors: dict[str, float],
    ) -> list[dict]:
        concerns = []

        high = [p for p in suspicious_patterns if p.severity == Severity.HIGH]
        if high:
            concerns.append({
                "type": "high_severity_patterns",
                "description": f"{len(high)} serious issue(s) detected",
                "patterns": [p.type.value for p in high],
            })

        if suspicion_factors:
            # First key wins ties
            dominant = max(suspicion_factors, key=lambda k: suspicion_factors[k] or 0)
            value = suspicion_factors[dominant] or 0
            if value > self.config.dominant_factor_min:
                concerns.append({
                    "type": "dominant_factor",
                    "description": (
                        f"{self.config.factor_description(dominant)} "
                        f"is especially pronounced"
                    ),
                    "factor": dominant,
                    "score": value,
                })

        return concerns

    def identify_positive_factors(
        self, dataset: ReviewDataset, suspicious_patterns: list[SuspiciousPattern],
    ) -> list[dict]:
        positives = []

        if dataset.total_reviews >= self.config.sufficient_reviews_min:
            positives.append({
                "type": "sufficient_reviews",
                "description": f"Listing has a healthy number of reviews ({dataset.total_reviews})",
            })

        if not suspicious_patterns:
            positives.append({
                "type": "no_suspicious_patterns",
                "description": "No suspicious patterns were detected",
            })

        if self.rating_naturalness(dataset) > self.config.natural_positive_min:
            positives.append({
                "type": "natural_distribution",
                "description": "Star ratings follow a natural-looking distribution",
            })

        return positives

    @staticmethod
    def generate_recommendations(concerns: list[dict]) -> list[dict]:
        recommendations = []

        if not concerns:
            recommendations.append({
                "type": "low_risk",
                "text": "Reviews for this listing appear generally trustworthy",
            })
        elif len(concerns) >= 2:
            recommendations.append({
                "type": "high_risk",
                "text": (
                    "Several suspicious signals were found; cross-check with "
                    "other sources before relying on these reviews"
                ),
            })
        else:
            recommendations.append({
                "type": "moderate_risk",
                "text": "Some signals look suspicious; weigh the reviews with care",
            })

        if any(c["type"] == "high_severity_patterns" for c in concerns):
            recommendations.append({
                "type": "detailed_check",
                "text": "Read individual reviews closely before deciding",
            })

        return recommendations


def score_color(score: float, config: AnalysisConfig = DEFAULT_CONFIG) -> str:
    """Hex colour for a score's trust level."""
    return LEVEL_COLORS[ScoreCalculator(config=config).determine_trust_level(score)]


def score_text(score: float, config: AnalysisConfig = DEFAULT_CONFIG) -> str:
    """Short human verdict for a score's trust level."""
    return LEVEL_TEXT[ScoreCalculator(config=config).determine_trust_level(score)]


def calculate_trust_score(
    suspicion_factors: dict[str, float],
    suspicious_patterns: list[SuspiciousPattern],
    dataset: ReviewDataset,
    settings: Optional[AnalysisSettings] = None,
    config: AnalysisConfig = DEFAULT_CONFIG,
) -> AnalysisResult:
    """Score one analysis. Pure: identical inputs give identical results."""
    return ScoreCalculator(settings, config).calculate_trust_score(
        suspicion_factors, suspicious_patterns, dataset,
    )
