"""
Pattern Detector — Five Manipulation Heuristics

Scans a ReviewDataset and evaluates, independently and in a fixed order:
  1. Polarized ratings   (HIGH)    — too many 1s and 5s, too few middle stars
  2. Burst posting       (MEDIUM)  — many reviews dated "N days ago"
  3. Short reviews       (LOW)     — one-word / one-emoji reviews
  4. Duplicate patterns  (HIGH)    — near-identical review texts
  5. New accounts        (MEDIUM)  — short, photo-less reviews

Each heuristic returns a Detection. detect_all_patterns() folds them into
the suspicion factor mapping and the ordered list of SuspiciousPatterns.

The heuristics are threshold approximations, not statistics. They are
deterministic and hold no state between calls.
"""

from __future__ import annotations

import logging
from itertools import combinations
from typing import Callable, Optional

from reviewtrust.config import AnalysisSettings, DEFAULT_ANALYSIS_SETTINGS
from reviewtrust.models import (
    NOT_DETECTED,
    Detection,
    PatternReport,
    PatternType,
    ReviewDataset,
    Severity,
    SuspicionFactor,
    SuspiciousPattern,
    empty_factors,
)
from reviewtrust.rules import AnalysisConfig, DEFAULT_CONFIG

logger = logging.getLogger(__name__)


def calculate_text_similarity(text1: Optional[str], text2: Optional[str]) -> float:
    """
    Jaccard similarity of the lower-cased whitespace-token sets.

    0.0 when either text is empty. Identical texts score 1.0.
    """
    if not text1 or not text2:
        return 0.0

    words1 = set(text1.lower().split())
    words2 = set(text2.lower().split())
    union = words1 | words2
    if not words1 or not words2 or not union:
        return 0.0
    return len(words1 & words2) / len(union)


class PatternDetector:
    """
    Runs the five heuristics against one dataset.

    Settings and the rule table are fixed at construction. One instance can
    serve any number of datasets.
    """

    def __init__(
        self,
        settings: Optional[AnalysisSettings] = None,
        config: AnalysisConfig = DEFAULT_CONFIG,
    ):
        self.settings = settings or DEFAULT_ANALYSIS_SETTINGS
        self.config = config

    def detect_all_patterns(self, dataset: ReviewDataset) -> PatternReport:
        """Evaluate every heuristic and aggregate the results."""
        factors = empty_factors()
        patterns: list[SuspiciousPattern] = []

        checks: list[tuple[SuspicionFactor, Callable[[ReviewDataset], Detection]]] = [
            (SuspicionFactor.POLARIZED_RATINGS, self.detect_polarized_ratings),
            (SuspicionFactor.BURST_POSTING, self.detect_burst_posting),
            (SuspicionFactor.SHORT_REVIEWS, self.detect_short_reviews),
            (SuspicionFactor.DUPLICATE_PATTERNS, self.detect_duplicate_patterns),
            (SuspicionFactor.NEW_ACCOUNTS, self.detect_new_accounts),
        ]

        for factor, check in checks:
            try:
                result = check(dataset)
            except Exception as e:
                logger.warning(
                    "Heuristic %s failed, treating as not detected: %s",
                    factor.value, e,
                    extra={"error": str(e), "error_type": type(e).__name__},
                )
                continue

            if result.detected:
                factors[factor.value] = result.score
                if result.pattern is not None:
                    patterns.append(result.pattern)

        logger.debug(
            "Pattern detection complete",
            extra={"patterns_count": len(patterns), "total_reviews": dataset.total_reviews},
        )
        return PatternReport(suspicion_factors=factors, suspicious_patterns=patterns)

    # ============================================================
    # HEURISTICS
    # ============================================================

    def detect_polarized_ratings(self, dataset: ReviewDataset) -> Detection:
        """Too many extreme (1 or 5 star) ratings and too few in between."""
        total = dataset.total_reviews
        if total < self.settings.minimum_reviews_for_analysis or total == 0:
            return NOT_DETECTED

        extreme_count = dataset.rating(1) + dataset.rating(5)
        middle_count = dataset.rating(2) + dataset.rating(3) + dataset.rating(4)
        extreme_ratio = extreme_count / total
        middle_ratio = middle_count / total

        threshold = self.config.polarized_threshold(self.settings.analysis_mode)
        if not (extreme_ratio > threshold
                and middle_ratio < self.config.polarized_middle_ratio_max):
            return NOT_DETECTED

        score = self._capped_score(SuspicionFactor.POLARIZED_RATINGS, extreme_ratio)
        return Detection(
            detected=True,
            score=score,
            pattern=SuspiciousPattern(
                type=PatternType.POLARIZED_RATINGS,
                description=f"Extreme ratings make up {extreme_ratio * 100:.1f}% of all reviews",
                severity=Severity.HIGH,
                metadata={
                    "extreme_ratio": extreme_ratio,
                    "middle_ratio": middle_ratio,
                    "extreme_count": extreme_count,
                    "middle_count": middle_count,
                },
            ),
        )

    def detect_burst_posting(self, dataset: ReviewDataset) -> Detection:
        """Many recent reviews relative to the listing's total."""
        reviews = dataset.recent_reviews
        if not reviews:
            return NOT_DETECTED

        keywords = self.config.recent_date_keywords
        recent_count = sum(
            1 for r in reviews
            if any(k in r.date_text for k in keywords)
        )
        if recent_count <= self.config.burst_min_recent_count:
            return NOT_DETECTED

        total = max(dataset.total_reviews, len(reviews))
        burst_ratio = recent_count / total
        if burst_ratio <= self.config.burst_posting_threshold:
            return NOT_DETECTED

        score = self._capped_score(SuspicionFactor.BURST_POSTING, burst_ratio)
        return Detection(
            detected=True,
            score=score,
            pattern=SuspiciousPattern(
                type=PatternType.BURST_POSTING,
                description=f"{recent_count} reviews were posted in a short recent window",
                severity=Severity.MEDIUM,
                metadata={
                    "recent_count": recent_count,
                    "burst_ratio": burst_ratio,
                    "total_reviews": total,
                },
            ),
        )

    def detect_short_reviews(self, dataset: ReviewDataset) -> Detection:
        reviews = dataset.recent_reviews
        if not reviews:
            return NOT_DETECTED

        limit = self.config.short_review_length
        short_count = sum(1 for r in reviews if 0 < r.text_length < limit)
        short_ratio = short_count / len(reviews)
        if short_ratio <= self.config.short_review_threshold:
            return NOT_DETECTED

        score = self._capped_score(SuspicionFactor.SHORT_REVIEWS, short_ratio)
        return Detection(
            detected=True,
            score=score,
            pattern=SuspiciousPattern(
                type=PatternType.SHORT_REVIEWS,
                description=f"Very short reviews make up {short_ratio * 100:.1f}% of recent reviews",
                severity=Severity.LOW,
                metadata={
                    "short_count": short_count,
                    "short_ratio": short_ratio,
                    "average_length": self.average_length(dataset),
                },
            ),
        )

    def detect_duplicate_patterns(self, dataset: ReviewDataset) -> Detection:
        """Pairs of recent reviews with near-identical wording."""
        reviews = dataset.recent_reviews
        min_texts = self.config.duplicate_min_texts
        if len(reviews) < min_texts:
            return NOT_DETECTED

        texts = [
            r.text for r in reviews
            if r.text and len(r.text) > self.config.duplicate_min_text_length
        ]
        if len(texts) < min_texts:
            return NOT_DETECTED

        similar = self.find_similar_texts(texts)
        if not similar:
            return NOT_DETECTED

        base = len(similar) * self.config.duplicate_points_per_pair
        score = min(
            base * self.config.factor_weight(SuspicionFactor.DUPLICATE_PATTERNS.value),
            self.config.factor_cap(SuspicionFactor.DUPLICATE_PATTERNS.value),
        )
        return Detection(
            detected=True,
            score=score,
            pattern=SuspiciousPattern(
                type=PatternType.DUPLICATE_PATTERNS,
                description=f"Found {len(similar)} pair(s) of near-identical reviews",
                severity=Severity.HIGH,
                metadata={
                    "similarity_count": len(similar),
                    # First few pairs only
                    "similarities": similar[: self.config.duplicate_retained_pairs],
                    "average_similarity": self.average_similarity(similar),
                },
            ),
        )

    def detect_new_accounts(self, dataset: ReviewDataset) -> Detection:
        """Short, photo-less reviews, typical of throwaway accounts."""
        reviews = dataset.recent_reviews
        if not reviews:
            return NOT_DETECTED

        limit = self.config.suspicious_review_length
        suspicious_count = sum(
            1 for r in reviews if not r.has_photos and 0 < r.text_length < limit
        )
        suspicious_ratio = suspicious_count / len(reviews)
        if suspicious_ratio <= self.config.new_account_threshold:
            return NOT_DETECTED

        score = self._capped_score(SuspicionFactor.NEW_ACCOUNTS, suspicious_ratio)
        return Detection(
            detected=True,
            score=score,
            pattern=SuspiciousPattern(
                type=PatternType.NEW_ACCOUNTS,
                description=(
                    f"Posts from likely new accounts make up "
                    f"{suspicious_ratio * 100:.1f}% of recent reviews"
                ),
                severity=Severity.MEDIUM,
                metadata={
                    "suspicious_count": suspicious_count,
                    "suspicious_ratio": suspicious_ratio,
                    "total_reviews": len(reviews),
                },
            ),
        )

    # ============================================================
    # HELPERS
    # ============================================================

    def find_similar_texts(self, texts: list[str]) -> list[dict]:
        """Every unordered pair whose similarity exceeds the threshold."""
        threshold = self.config.text_similarity_threshold
        similar = []
        for text1, text2 in combinations(texts, 2):
            similarity = calculate_text_similarity(text1, text2)
            if similarity > threshold:
                similar.append({"text1": text1, "text2": text2, "similarity": similarity})
        return similar

    @staticmethod
    def average_length(dataset: ReviewDataset) -> int:
        reviews = dataset.recent_reviews
        if not reviews:
            return 0
        return int(sum(r.text_length for r in reviews) / len(reviews) + 0.5)

    @staticmethod
    def average_similarity(similar: list[dict]) -> float:
        if not similar:
            return 0.0
        mean = sum(s["similarity"] for s in similar) / len(similar)
        return int(mean * 100 + 0.5) / 100

    def _capped_score(self, factor: SuspicionFactor, ratio: float) -> float:
        """ratio * 100 * weight, capped at the factor's maximum."""
        return min(
            ratio * 100 * self.config.factor_weight(factor.value),
            self.config.factor_cap(factor.value),
        )


def detect_all_patterns(
    dataset: ReviewDataset,
    settings: Optional[AnalysisSettings] = None,
    config: AnalysisConfig = DEFAULT_CONFIG,
) -> PatternReport:
    """Run all heuristics with the given settings."""
    return PatternDetector(settings, config).detect_all_patterns(dataset)
