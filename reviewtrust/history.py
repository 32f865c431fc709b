"""
Analysis History — SQLite-backed Recent Results

Keeps the most recent analysis per listing URL. Saving a URL that is
already stored replaces the old entry and moves it to the front. The store
is trimmed to max_items after every save. export_data() snapshots the
whole store; import_data() replaces it from such a snapshot.

This is a local convenience log, not an audit trail.
"""

import json
import logging
import sqlite3
import threading
from datetime import datetime, timezone
from typing import Any, Optional

logger = logging.getLogger(__name__)

HISTORY_FORMAT_VERSION = "1.0.0"


class AnalysisHistory:
    """Bounded, URL-deduplicated history of analysis results."""

    def __init__(self, db_path: str = "reviewtrust_history.db", max_items: int = 20):
        self.db_path = db_path
        self.max_items = max_items
        self._lock = threading.Lock()
        self._init_db()

    def _init_db(self):
        with self._get_conn() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS analysis_history (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    url TEXT NOT NULL UNIQUE,
                    place_name TEXT,
                    trust_score INTEGER NOT NULL,
                    total_reviews INTEGER NOT NULL,
                    suspicious_patterns TEXT NOT NULL,
                    analysis_mode TEXT NOT NULL,
                    timestamp TEXT NOT NULL,
                    version TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_history_timestamp
                ON analysis_history(timestamp)
            """)
            conn.commit()

    def _get_conn(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path)

    def save(self, record: dict[str, Any]) -> dict:
        """
        Store one analysis result.

        Required keys: url, trust_score. Optional: place_name,
        total_reviews, suspicious_patterns, analysis_mode.

        Returns the stored entry.
        """
        url = record.get("url")
        if not url:
            raise ValueError("History records require a url")

        entry = self._make_entry(record, datetime.now(timezone.utc).isoformat())

        with self._lock:
            with self._get_conn() as conn:
                entry["id"] = self._insert(conn, entry)
                self._trim(conn)
                conn.commit()

        return entry

    def import_data(self, data: Any) -> int:
        """
        Replace the whole history with a previous export_data() snapshot.

        Entries without a url or a numeric trust_score are skipped.
        Original timestamps are kept. Returns the number of entries stored.
        Raises ValueError when data is not an export snapshot.
        """
        if not isinstance(data, dict) or not data.get("version"):
            raise ValueError("Import data must be an export snapshot with a version")
        entries = data.get("analysis_history")
        if not isinstance(entries, list):
            raise ValueError("Import data has no analysis_history list")

        valid = [
            item for item in entries
            if isinstance(item, dict)
            and item.get("url")
            and isinstance(item.get("trust_score"), (int, float))
            and not isinstance(item.get("trust_score"), bool)
        ]

        with self._lock:
            with self._get_conn() as conn:
                conn.execute("DELETE FROM analysis_history")
                # Snapshots are newest first; insert oldest first to keep that order
                for item in reversed(valid):
                    timestamp = item.get("timestamp") or datetime.now(timezone.utc).isoformat()
                    self._insert(conn, self._make_entry(item, str(timestamp)))
                self._trim(conn)
                conn.commit()
                count = conn.execute("SELECT COUNT(*) FROM analysis_history").fetchone()[0]

        logger.info(f"Imported {count} history entries ({len(entries) - len(valid)} skipped)")
        return count

    @staticmethod
    def _make_entry(record: dict[str, Any], timestamp: str) -> dict:
        return {
            "url": record["url"],
            "place_name": record.get("place_name") or "",
            "trust_score": int(record["trust_score"]),
            "total_reviews": int(record.get("total_reviews") or 0),
            "suspicious_patterns": list(record.get("suspicious_patterns") or []),
            "analysis_mode": record.get("analysis_mode") or "standard",
            "timestamp": timestamp,
            "version": HISTORY_FORMAT_VERSION,
        }

    @staticmethod
    def _insert(conn: sqlite3.Connection, entry: dict) -> int:
        # Delete + insert so the entry gets a fresh id and sorts first
        conn.execute("DELETE FROM analysis_history WHERE url = ?", (entry["url"],))
        cursor = conn.execute(
            """INSERT INTO analysis_history
               (url, place_name, trust_score, total_reviews,
                suspicious_patterns, analysis_mode, timestamp, version)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                entry["url"], entry["place_name"], entry["trust_score"],
                entry["total_reviews"],
                json.dumps(entry["suspicious_patterns"], default=str, ensure_ascii=False),
                entry["analysis_mode"], entry["timestamp"], entry["version"],
            ),
        )
        return cursor.lastrowid

    def _trim(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """DELETE FROM analysis_history WHERE id NOT IN (
                   SELECT id FROM analysis_history ORDER BY id DESC LIMIT ?
               )""",
            (self.max_items,),
        )

    def get_recent(self, limit: Optional[int] = None) -> list[dict]:
        """Newest first. limit=None returns everything kept."""
        with self._get_conn() as conn:
            rows = conn.execute(
                """SELECT id, url, place_name, trust_score, total_reviews,
                          suspicious_patterns, analysis_mode, timestamp, version
                   FROM analysis_history ORDER BY id DESC LIMIT ?""",
                (limit if limit is not None else -1,),
            ).fetchall()

        return [
            {
                "id": r[0], "url": r[1], "place_name": r[2],
                "trust_score": r[3], "total_reviews": r[4],
                "suspicious_patterns": json.loads(r[5]),
                "analysis_mode": r[6], "timestamp": r[7], "version": r[8],
            }
            for r in rows
        ]

    def clear(self) -> int:
        """Remove every entry. Returns the number removed."""
        with self._lock:
            with self._get_conn() as conn:
                cursor = conn.execute("DELETE FROM analysis_history")
                conn.commit()
                return cursor.rowcount

    def count(self) -> int:
        with self._get_conn() as conn:
            row = conn.execute("SELECT COUNT(*) FROM analysis_history").fetchone()
            return row[0] if row else 0

    def export_data(self) -> dict:
        """Snapshot of the whole history for backup."""
        return {
            "version": HISTORY_FORMAT_VERSION,
            "exported_at": datetime.now(timezone.utc).isoformat(),
            "analysis_history": self.get_recent(),
        }


def _get_history() -> AnalysisHistory:
    """Factory — reads db path and size from config."""
    from reviewtrust.config import settings
    return AnalysisHistory(
        db_path=settings.HISTORY_DB_PATH, max_items=settings.MAX_HISTORY_ITEMS,
    )
