"""
Tests for infrastructure: structured logging, the result cache and the
analysis history store.
"""

import asyncio
import io
import json
import logging

import pytest

from reviewtrust.cache import AnalysisCache
from reviewtrust.config import AnalysisSettings
from reviewtrust.history import HISTORY_FORMAT_VERSION, AnalysisHistory
from reviewtrust.logging import JSONFormatter, TextFormatter, get_logger, setup_logging
from reviewtrust.models import AnalysisMode, ReviewDataset


# ============================================================
# LOGGING
# ============================================================

class TestLogging:

    def test_json_formatter(self):
        formatter = JSONFormatter()
        record = logging.LogRecord(
            name="reviewtrust.test", level=logging.INFO,
            pathname="", lineno=0, msg="分析完了", args=(), exc_info=None,
        )
        record.trust_score = 72
        record.analysis_mode = "strict"
        output = formatter.format(record)
        parsed = json.loads(output)
        assert parsed["level"] == "INFO"
        assert parsed["message"] == "分析完了"
        assert parsed["trust_score"] == 72
        assert parsed["analysis_mode"] == "strict"
        assert "timestamp" in parsed
        assert "分析完了" in output

    def test_unknown_extra_fields_dropped(self):
        record = logging.LogRecord(
            name="reviewtrust.test", level=logging.INFO,
            pathname="", lineno=0, msg="hello", args=(), exc_info=None,
        )
        record.review_text = "should not leak"
        parsed = json.loads(JSONFormatter().format(record))
        assert "review_text" not in parsed

    def test_get_logger_namespace(self):
        logger = get_logger("detector")
        assert logger.name == "reviewtrust.detector"

    def test_timestamp_taken_from_record(self):
        record = logging.LogRecord(
            name="reviewtrust.test", level=logging.INFO,
            pathname="", lineno=0, msg="hello", args=(), exc_info=None,
        )
        record.created = 0.0
        parsed = json.loads(JSONFormatter().format(record))
        assert parsed["timestamp"].startswith("1970-01-01T00:00:00")

    def test_text_formatter_appends_context(self):
        record = logging.LogRecord(
            name="reviewtrust.api", level=logging.WARNING,
            pathname="", lineno=0, msg="slow request", args=(), exc_info=None,
        )
        record.duration_ms = 812.5
        record.review_text = "should not leak"
        line = TextFormatter().format(record)
        assert "WARNING reviewtrust.api | slow request" in line
        assert line.endswith("[duration_ms=812.5]")

    def test_setup_logging(self):
        root = setup_logging(level="DEBUG", fmt="text")
        assert root.name == "reviewtrust"
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, TextFormatter)
        setup_logging(level="INFO", fmt="json")
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)

    def test_unknown_level_falls_back_to_info(self):
        assert setup_logging(level="chatty").level == logging.INFO

    def test_writes_to_given_stream(self):
        stream = io.StringIO()
        setup_logging(level="INFO", fmt="json", stream=stream)
        get_logger("test").info("scored", extra={"trust_score": 55})
        parsed = json.loads(stream.getvalue().strip())
        assert parsed["logger"] == "reviewtrust.test"
        assert parsed["trust_score"] == 55
        setup_logging(level="INFO", fmt="json")


# ============================================================
# CACHE
# ============================================================

def _dataset(total=50) -> ReviewDataset:
    return ReviewDataset(ratings={4: total}, total_reviews=total)


class TestAnalysisCache:

    def test_miss_then_hit(self):
        cache = AnalysisCache(ttl_seconds=60)
        settings = AnalysisSettings()

        async def run():
            assert await cache.get(_dataset(), settings) is None
            await cache.put(_dataset(), settings, {"status": "completed"})
            return await cache.get(_dataset(), settings)

        hit = asyncio.run(run())
        assert hit == {"status": "completed", "cached": True}
        assert cache.stats["hits"] == 1
        assert cache.stats["misses"] == 1
        assert cache.stats["hit_rate"] == 0.5

    def test_settings_part_of_key(self):
        cache = AnalysisCache(ttl_seconds=60)

        async def run():
            await cache.put(_dataset(), AnalysisSettings(), {"status": "completed"})
            strict = AnalysisSettings(analysis_mode=AnalysisMode.STRICT)
            return await cache.get(_dataset(), strict)

        assert asyncio.run(run()) is None

    def test_expired_entries_evicted(self):
        cache = AnalysisCache(ttl_seconds=-1)

        async def run():
            await cache.put(_dataset(), AnalysisSettings(), {"status": "completed"})
            return await cache.get(_dataset(), AnalysisSettings())

        assert asyncio.run(run()) is None
        assert cache.stats["entries"] == 0

    def test_max_entries(self):
        cache = AnalysisCache(ttl_seconds=60, max_entries=2)

        async def run():
            for total in (10, 20, 30):
                await cache.put(_dataset(total), AnalysisSettings(), {"total": total})
            return await cache.get(_dataset(10), AnalysisSettings())

        assert asyncio.run(run()) is None
        assert cache.stats["entries"] == 2

    def test_clear(self):
        cache = AnalysisCache()

        async def run():
            await cache.put(_dataset(), AnalysisSettings(), {"status": "completed"})
            await cache.clear()

        asyncio.run(run())
        assert cache.stats["entries"] == 0


# ============================================================
# HISTORY
# ============================================================

@pytest.fixture
def history(tmp_path):
    return AnalysisHistory(db_path=str(tmp_path / "history.db"), max_items=3)


def _record(url, score=70, **extra):
    return {"url": url, "trust_score": score, "total_reviews": 50, **extra}


class TestAnalysisHistory:

    def test_save_and_read(self, history):
        entry = history.save(_record("https://maps.example/a", place_name="Cafe A"))
        assert entry["id"] > 0
        assert entry["version"] == HISTORY_FORMAT_VERSION

        recent = history.get_recent()
        assert len(recent) == 1
        assert recent[0]["place_name"] == "Cafe A"
        assert recent[0]["analysis_mode"] == "standard"
        assert recent[0]["suspicious_patterns"] == []

    def test_newest_first(self, history):
        history.save(_record("https://maps.example/a"))
        history.save(_record("https://maps.example/b"))
        assert [e["url"] for e in history.get_recent()] == [
            "https://maps.example/b", "https://maps.example/a",
        ]

    def test_same_url_replaced_and_moved_to_front(self, history):
        history.save(_record("https://maps.example/a", score=50))
        history.save(_record("https://maps.example/b"))
        history.save(_record("https://maps.example/a", score=90))

        recent = history.get_recent()
        assert len(recent) == 2
        assert recent[0]["url"] == "https://maps.example/a"
        assert recent[0]["trust_score"] == 90

    def test_trimmed_to_max_items(self, history):
        for i in range(5):
            history.save(_record(f"https://maps.example/{i}"))
        recent = history.get_recent()
        assert history.count() == 3
        assert [e["url"] for e in recent] == [
            "https://maps.example/4", "https://maps.example/3", "https://maps.example/2",
        ]

    def test_limit(self, history):
        for i in range(3):
            history.save(_record(f"https://maps.example/{i}"))
        assert len(history.get_recent(limit=2)) == 2

    def test_url_required(self, history):
        with pytest.raises(ValueError):
            history.save({"trust_score": 50})

    def test_patterns_round_trip(self, history):
        patterns = [{"type": "short_reviews", "description": "短いレビュー", "severity": "low"}]
        history.save(_record("https://maps.example/a", suspicious_patterns=patterns))
        assert history.get_recent()[0]["suspicious_patterns"] == patterns

    def test_clear(self, history):
        history.save(_record("https://maps.example/a"))
        history.save(_record("https://maps.example/b"))
        assert history.clear() == 2
        assert history.count() == 0

    def test_export(self, history):
        history.save(_record("https://maps.example/a"))
        exported = history.export_data()
        assert exported["version"] == HISTORY_FORMAT_VERSION
        assert "exported_at" in exported
        assert len(exported["analysis_history"]) == 1

    def test_import_restores_export(self, history, tmp_path):
        history.save(_record("https://maps.example/a", score=40))
        history.save(_record("https://maps.example/b", score=80))
        snapshot = history.export_data()

        restored = AnalysisHistory(db_path=str(tmp_path / "restored.db"), max_items=3)
        assert restored.import_data(snapshot) == 2
        recent = restored.get_recent()
        assert [e["url"] for e in recent] == ["https://maps.example/b", "https://maps.example/a"]
        assert recent[0]["timestamp"] == snapshot["analysis_history"][0]["timestamp"]

    def test_import_replaces_existing(self, history):
        history.save(_record("https://maps.example/old"))
        snapshot = {
            "version": HISTORY_FORMAT_VERSION,
            "analysis_history": [{"url": "https://maps.example/new", "trust_score": 55}],
        }
        assert history.import_data(snapshot) == 1
        assert [e["url"] for e in history.get_recent()] == ["https://maps.example/new"]

    def test_import_skips_invalid_entries(self, history):
        snapshot = {
            "version": HISTORY_FORMAT_VERSION,
            "analysis_history": [
                {"url": "https://maps.example/ok", "trust_score": 70},
                {"url": "https://maps.example/no-score"},
                {"url": "https://maps.example/bool-score", "trust_score": True},
                {"trust_score": 50},
                "junk",
            ],
        }
        assert history.import_data(snapshot) == 1

    def test_import_trimmed_to_max_items(self, history):
        snapshot = {
            "version": HISTORY_FORMAT_VERSION,
            "analysis_history": [
                {"url": f"https://maps.example/{i}", "trust_score": 50} for i in range(5)
            ],
        }
        assert history.import_data(snapshot) == 3
        assert history.get_recent()[0]["url"] == "https://maps.example/0"

    @pytest.mark.parametrize("data", [
        None,
        [],
        {"analysis_history": []},
        {"version": "1.0.0", "analysis_history": "nope"},
    ])
    def test_import_rejects_non_snapshots(self, history, data):
        with pytest.raises(ValueError):
            history.import_data(data)
