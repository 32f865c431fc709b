"""
Rule Tables — Weights, Thresholds, Keyword Lists

Every number the detector and score calculator compare against lives here,
in one frozen AnalysisConfig. Components take the config at construction;
DEFAULT_CONFIG is what production uses. Tests override single values with
dataclasses.replace().

Changing a value here changes scores. Bump RULES_VERSION when you do.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from reviewtrust.models import AnalysisMode, Severity, SuspicionFactor

RULES_VERSION = "1.0.0"


@dataclass(frozen=True)
class FactorRule:
    """Weight and score cap for one suspicion factor."""
    weight: float
    max_score: float
    description: str


# ============================================================
# DEFAULT TABLES
# ============================================================

FACTOR_RULES: Mapping[str, FactorRule] = MappingProxyType({
    SuspicionFactor.POLARIZED_RATINGS.value: FactorRule(
        weight=1.0, max_score=90, description="Polarized star ratings",
    ),
    SuspicionFactor.BURST_POSTING.value: FactorRule(
        weight=0.8, max_score=80, description="Burst of recent postings",
    ),
    SuspicionFactor.SHORT_REVIEWS.value: FactorRule(
        weight=0.6, max_score=60, description="Unusually short reviews",
    ),
    SuspicionFactor.DUPLICATE_PATTERNS.value: FactorRule(
        weight=1.2, max_score=100, description="Similar or duplicated reviews",
    ),
    SuspicionFactor.NEW_ACCOUNTS.value: FactorRule(
        weight=0.5, max_score=50, description="Posts from likely new accounts",
    ),
})

POLARIZED_THRESHOLDS: Mapping[AnalysisMode, float] = MappingProxyType({
    AnalysisMode.STRICT: 0.6,
    AnalysisMode.STANDARD: 0.7,
    AnalysisMode.LENIENT: 0.8,
})

# Substring keywords marking a review as posted "recently".
# Matched case-sensitively against the date text as displayed.
RECENT_DATE_KEYWORDS: tuple[str, ...] = (
    # Japanese
    "日前", "週間前", "時間前", "分前",
    # English
    "day ago", "week ago", "hour ago", "minute ago",
    "days ago", "weeks ago", "hours ago", "minutes ago",
)

# Rating shape of a good-but-not-fake 4.0-4.5 star shop
IDEAL_RATING_DISTRIBUTION: Mapping[int, float] = MappingProxyType({
    1: 0.05, 2: 0.05, 3: 0.15, 4: 0.35, 5: 0.40,
})

SEVERITY_PENALTIES: Mapping[Severity, float] = MappingProxyType({
    Severity.HIGH: 5,
    Severity.MEDIUM: 2,
    Severity.LOW: 0,
})

# Final multiplier per mode. Multipliers above 1 are capped at max_score.
MODE_MULTIPLIERS: Mapping[AnalysisMode, float] = MappingProxyType({
    AnalysisMode.STRICT: 0.95,
    AnalysisMode.STANDARD: 1.0,
    AnalysisMode.LENIENT: 1.05,
})


# ============================================================
# CONFIG STRUCT
# ============================================================

@dataclass(frozen=True)
class AnalysisConfig:
    # --- Factor weights ---
    factor_rules: Mapping[str, FactorRule] = field(default_factory=lambda: FACTOR_RULES)
    default_factor_weight: float = 1.0

    # --- Polarized ratings ---
    polarized_thresholds: Mapping[AnalysisMode, float] = field(
        default_factory=lambda: POLARIZED_THRESHOLDS
    )
    polarized_middle_ratio_max: float = 0.2

    # --- Burst posting ---
    burst_posting_threshold: float = 0.3
    burst_min_recent_count: int = 5        # Skip unless MORE than this many
    recent_date_keywords: tuple[str, ...] = RECENT_DATE_KEYWORDS

    # --- Short reviews ---
    short_review_threshold: float = 0.4
    short_review_length: int = 10

    # --- New accounts ---
    new_account_threshold: float = 0.3
    suspicious_review_length: int = 20

    # --- Duplicate patterns ---
    text_similarity_threshold: float = 0.8
    duplicate_min_text_length: int = 5     # Texts must be LONGER than this
    duplicate_min_texts: int = 3
    duplicate_points_per_pair: float = 15
    duplicate_retained_pairs: int = 3

    # --- Scoring ---
    ideal_rating_distribution: Mapping[int, float] = field(
        default_factory=lambda: IDEAL_RATING_DISTRIBUTION
    )
    severity_penalties: Mapping[Severity, float] = field(
        default_factory=lambda: SEVERITY_PENALTIES
    )
    high_trust_threshold: int = 80
    medium_trust_threshold: int = 60
    low_trust_threshold: int = 40
    min_score: int = 10
    max_score: int = 100

    # --- Review count adjustment (tightest band first) ---
    tiny_listing_reviews: int = 5          # Below this: x tiny_listing_multiplier
    tiny_listing_multiplier: float = 0.8
    small_listing_reviews: int = 10
    small_listing_multiplier: float = 0.9
    large_listing_reviews: int = 100       # Above this: bonus, capped at max_score
    large_listing_multiplier: float = 1.05

    # --- Naturalness adjustment ---
    naturalness_min_reviews: int = 5
    natural_distribution_min: float = 0.8
    natural_distribution_multiplier: float = 1.03
    unnatural_distribution_max: float = 0.3
    unnatural_distribution_multiplier: float = 0.95

    # --- Analysis mode ---
    mode_multipliers: Mapping[AnalysisMode, float] = field(
        default_factory=lambda: MODE_MULTIPLIERS
    )

    # --- Confidence ---
    confidence_base: float = 0.8
    confidence_extreme_high: float = 90
    confidence_extreme_low: float = 20
    confidence_extreme_penalty: float = 0.1
    confidence_min_factors: int = 3
    confidence_factor_bonus: float = 0.1
    confidence_strength_min: float = 20    # Mean over the five factor keys
    confidence_strength_bonus: float = 0.05
    confidence_floor: float = 0.5
    confidence_ceiling: float = 1.0

    # --- Narrative ---
    dominant_factor_min: float = 30
    sufficient_reviews_min: int = 50
    natural_positive_min: float = 0.7

    def factor_weight(self, factor: str) -> float:
        rule = self.factor_rules.get(factor)
        return rule.weight if rule else self.default_factor_weight

    def factor_cap(self, factor: str) -> float:
        rule = self.factor_rules.get(factor)
        return rule.max_score if rule else 100.0

    def factor_description(self, factor: str) -> str:
        rule = self.factor_rules.get(factor)
        return rule.description if rule else factor

    def polarized_threshold(self, mode: AnalysisMode) -> float:
        return self.polarized_thresholds.get(
            mode, self.polarized_thresholds[AnalysisMode.STANDARD]
        )

    def mode_multiplier(self, mode: AnalysisMode) -> float:
        return self.mode_multipliers.get(mode, 1.0)


DEFAULT_CONFIG = AnalysisConfig()
