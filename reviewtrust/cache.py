"""
Analysis Result Cache

In-memory TTL cache for analysis results.
Key = SHA-256(canonical dataset JSON + analysis settings). TTL = 1 hour.

Re-opening the same listing does not re-run the pipeline.
Thread-safe via asyncio lock.

Usage:
    from reviewtrust.cache import analysis_cache
    cached = await analysis_cache.get(dataset, settings)
    if cached:
        return cached
    result = analyzer.analyze(dataset)
    await analysis_cache.put(dataset, settings, result)
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import time
from typing import Optional

from reviewtrust.config import AnalysisSettings, settings as app_settings
from reviewtrust.models import ReviewDataset


class AnalysisCache:
    """Thread-safe in-memory cache with TTL eviction."""

    def __init__(self, ttl_seconds: int = 3600, max_entries: int = 50):
        self._cache: dict[str, tuple[float, dict]] = {}
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._lock = asyncio.Lock()
        self._hits = 0
        self._misses = 0

    @staticmethod
    def _make_key(dataset: ReviewDataset, settings: AnalysisSettings) -> str:
        """SHA-256 of the dataset and the settings that affect the result."""
        raw = json.dumps(
            {"dataset": dataset.to_dict(), "settings": settings.to_dict()},
            sort_keys=True, ensure_ascii=False,
        )
        return hashlib.sha256(raw.encode()).hexdigest()

    async def get(
        self, dataset: ReviewDataset, settings: AnalysisSettings,
    ) -> Optional[dict]:
        """Return cached result if exists and not expired."""
        key = self._make_key(dataset, settings)
        async with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                self._misses += 1
                return None

            ts, result = entry
            if time.monotonic() - ts > self._ttl:
                del self._cache[key]
                self._misses += 1
                return None

            self._hits += 1
            return {**result, "cached": True}

    async def put(
        self, dataset: ReviewDataset, settings: AnalysisSettings, result: dict,
    ) -> None:
        """Store result in cache. Evicts oldest if over max."""
        key = self._make_key(dataset, settings)
        async with self._lock:
            if key not in self._cache and len(self._cache) >= self._max_entries:
                oldest_key = min(
                    self._cache, key=lambda k: self._cache[k][0],
                )
                del self._cache[oldest_key]

            self._cache[key] = (time.monotonic(), result)

    async def clear(self) -> None:
        async with self._lock:
            self._cache.clear()

    @property
    def stats(self) -> dict:
        """Cache hit/miss statistics."""
        total = self._hits + self._misses
        return {
            "entries": len(self._cache),
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(self._hits / total, 3) if total > 0 else 0.0,
        }


# Singleton — shared across the application
analysis_cache = AnalysisCache(
    ttl_seconds=app_settings.CACHE_TTL_SECONDS,
    max_entries=app_settings.CACHE_MAX_ENTRIES,
)
