"""
ReviewTrust Configuration

Two kinds of settings:
  - Settings:          service settings, loaded from environment variables
  - AnalysisSettings:  per-user analysis preferences, validated once at the
                       boundary so the core never sees a malformed value
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, replace
from typing import Any

from dotenv import load_dotenv

from reviewtrust.models import AnalysisMode

load_dotenv()


@dataclass(frozen=True)
class Settings:
    """Immutable service settings."""

    # --- Versioning ---
    VERSION: str = "1.0.0"

    # --- History ---
    HISTORY_DB_PATH: str = os.getenv("REVIEWTRUST_HISTORY_DB", "reviewtrust_history.db")
    MAX_HISTORY_ITEMS: int = int(os.getenv("REVIEWTRUST_MAX_HISTORY", "20"))

    # --- Result cache ---
    CACHE_TTL_SECONDS: int = int(os.getenv("REVIEWTRUST_CACHE_TTL", "3600"))
    CACHE_MAX_ENTRIES: int = int(os.getenv("REVIEWTRUST_CACHE_MAX", "50"))

    # --- Server ---
    HOST: str = os.getenv("REVIEWTRUST_HOST", "0.0.0.0")
    PORT: int = int(os.getenv("REVIEWTRUST_PORT", "8000"))

    # --- CORS ---
    CORS_ORIGINS: str = os.getenv("REVIEWTRUST_CORS_ORIGINS", "*")


settings = Settings()


# ============================================================
# ANALYSIS SETTINGS
# ============================================================

MIN_REVIEWS_RANGE = (1, 100)
SUSPICION_THRESHOLD_RANGE = (0, 100)

# Accepted spellings for each field; the extension stores camelCase
_ALIASES = {
    "analysis_mode": ("analysis_mode", "analysisMode"),
    "minimum_reviews_for_analysis": (
        "minimum_reviews_for_analysis", "minimumReviewsForAnalysis",
    ),
    "show_detailed_analysis": ("show_detailed_analysis", "showDetailedAnalysis"),
    "suspicion_threshold": ("suspicion_threshold", "suspicionThreshold"),
    "auto_analysis": ("auto_analysis", "autoAnalysis"),
    "debug_mode": ("debug_mode", "debugMode"),
}


@dataclass(frozen=True)
class AnalysisSettings:
    analysis_mode: AnalysisMode = AnalysisMode.STANDARD
    minimum_reviews_for_analysis: int = 5
    show_detailed_analysis: bool = True
    suspicion_threshold: int = 40
    auto_analysis: bool = True
    debug_mode: bool = False

    @classmethod
    def from_dict(cls, raw: Any) -> "AnalysisSettings":
        """Build settings from a raw mapping, defaulting anything invalid."""
        validated, _ = validate_settings(raw)
        return validated

    def to_dict(self) -> dict:
        data = asdict(self)
        data["analysis_mode"] = self.analysis_mode.value
        return data


DEFAULT_ANALYSIS_SETTINGS = AnalysisSettings()


def _lookup(raw: dict, name: str) -> tuple[bool, Any]:
    for key in _ALIASES[name]:
        if key in raw:
            return True, raw[key]
    return False, None


def _valid_number(value: Any, bounds: tuple[int, int]) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return bounds[0] <= value <= bounds[1]


def validate_settings(raw: Any) -> tuple[AnalysisSettings, list[str]]:
    """
    Validate raw analysis settings.

    Accepts either the flat shape or the stored {"settings": {...}} shape.
    Returns (settings, errors). Every invalid field falls back to its
    default and adds one message to errors; missing fields fall back
    silently.
    """
    defaults = DEFAULT_ANALYSIS_SETTINGS
    if isinstance(raw, AnalysisSettings):
        return raw, []
    if not isinstance(raw, dict):
        if raw is None:
            return defaults, []
        return defaults, ["settings must be an object"]

    if isinstance(raw.get("settings"), dict):
        raw = raw["settings"]

    errors: list[str] = []
    values: dict[str, Any] = {}

    present, mode = _lookup(raw, "analysis_mode")
    if present:
        parsed = AnalysisMode.parse(mode)
        if not isinstance(mode, AnalysisMode) and parsed.value != str(mode).strip().lower():
            errors.append(f"analysis_mode must be one of lenient/standard/strict, got {mode!r}")
        values["analysis_mode"] = parsed

    for name, bounds in (
        ("minimum_reviews_for_analysis", MIN_REVIEWS_RANGE),
        ("suspicion_threshold", SUSPICION_THRESHOLD_RANGE),
    ):
        present, value = _lookup(raw, name)
        if not present:
            continue
        if _valid_number(value, bounds):
            values[name] = int(value)
        else:
            errors.append(f"{name} must be a number in {bounds[0]}..{bounds[1]}")

    for name in ("show_detailed_analysis", "auto_analysis", "debug_mode"):
        present, value = _lookup(raw, name)
        if not present:
            continue
        if isinstance(value, bool):
            values[name] = value
        else:
            errors.append(f"{name} must be a boolean")

    return replace(defaults, **values), errors


def merge_settings(current: Any, updates: Any) -> AnalysisSettings:
    """Overlay updates on current settings, then re-validate."""
    base = validate_settings(current)[0].to_dict()
    if isinstance(updates, AnalysisSettings):
        updates = updates.to_dict()
    if isinstance(updates, dict):
        if isinstance(updates.get("settings"), dict):
            updates = updates["settings"]
        for name, aliases in _ALIASES.items():
            for key in aliases:
                if key in updates:
                    base[name] = updates[key]
    return validate_settings(base)[0]
