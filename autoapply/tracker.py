"""Track application attempts and rejected postings in a local SQLite database."""
from __future__ import annotations

import json
import sqlite3
import time
import uuid
from pathlib import Path
from typing import Any

from autoapply.log import get_logger
from autoapply.models import ApplicationRecord

log = get_logger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS applications (
    id TEXT PRIMARY KEY,
    timestamp INTEGER NOT NULL,
    company_name TEXT NOT NULL,
    job_title TEXT NOT NULL,
    job_url TEXT UNIQUE NOT NULL,
    status TEXT NOT NULL,
    relevance_score REAL,
    fill_rating REAL,
    notes TEXT,
    form_data_filled TEXT,
    error_log TEXT,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP
);
CREATE TABLE IF NOT EXISTS search_history (
    id TEXT PRIMARY KEY,
    search_query TEXT,
    results_count INTEGER,
    timestamp INTEGER,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP
);
CREATE TABLE IF NOT EXISTS rejected_jobs (
    id TEXT PRIMARY KEY,
    job_url TEXT UNIQUE NOT NULL,
    company_name TEXT,
    reason TEXT,
    timestamp INTEGER,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP
);
CREATE INDEX IF NOT EXISTS idx_company ON applications(company_name);
CREATE INDEX IF NOT EXISTS idx_status ON applications(status);
CREATE INDEX IF NOT EXISTS idx_timestamp ON applications(timestamp);
"""


def _now_ms() -> int:
    return int(time.time() * 1000)


class ApplicationTracker:
    def __init__(self, db_path: str | Path) -> None:
        self.db_path = str(db_path)
        self._conn: sqlite3.Connection | None = None

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("Database not initialized")
        return self._conn

    def initialize(self) -> None:
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(self.db_path)
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(_SCHEMA)
        self._conn.commit()
        log.info("Database initialized at %s", self.db_path)

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            log.info("Database closed")

    def record_application(
        self,
        *,
        company_name: str,
        job_title: str,
        job_url: str,
        status: str,
        relevance_score: float = 0.0,
        fill_rating: float | None = None,
        notes: str | None = None,
        form_data_filled: dict[str, Any] | None = None,
        error_log: str | None = None,
    ) -> ApplicationRecord:
        """Insert or replace the attempt for *job_url*; one row per posting URL."""
        record = ApplicationRecord(
            id=str(uuid.uuid4()),
            timestamp=_now_ms(),
            company_name=company_name or "Unknown",
            job_title=job_title or "Unknown",
            job_url=job_url,
            status=status,
            relevance_score=relevance_score,
            fill_rating=fill_rating,
            notes=notes,
            form_data_filled=form_data_filled or {},
            error_log=error_log,
        )
        self.conn.execute(
            """
            INSERT INTO applications (id, timestamp, company_name, job_title, job_url, status,
                                      relevance_score, fill_rating, notes, form_data_filled, error_log)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(job_url) DO UPDATE SET
                timestamp = excluded.timestamp,
                status = excluded.status,
                relevance_score = excluded.relevance_score,
                fill_rating = excluded.fill_rating,
                notes = excluded.notes,
                form_data_filled = excluded.form_data_filled,
                error_log = excluded.error_log
            """,
            (
                record.id, record.timestamp, record.company_name, record.job_title,
                record.job_url, record.status, record.relevance_score, record.fill_rating,
                record.notes, json.dumps(record.form_data_filled), record.error_log,
            ),
        )
        self.conn.commit()
        log.info("Application recorded: %s - %s [%s]", record.company_name, record.job_title, status)
        return record

    def has_applied_before(self, job_url: str) -> bool:
        row = self.conn.execute(
            "SELECT id FROM applications WHERE job_url = ?", (job_url,)
        ).fetchone()
        return row is not None

    def is_job_rejected(self, job_url: str) -> bool:
        row = self.conn.execute(
            "SELECT id FROM rejected_jobs WHERE job_url = ?", (job_url,)
        ).fetchone()
        return row is not None

    def record_rejected_job(self, job_url: str, company_name: str, reason: str) -> None:
        self.conn.execute(
            "INSERT OR IGNORE INTO rejected_jobs (id, job_url, company_name, reason, timestamp) "
            "VALUES (?, ?, ?, ?, ?)",
            (str(uuid.uuid4()), job_url, company_name, reason, _now_ms()),
        )
        self.conn.commit()
        log.info("Job rejected and recorded: %s", job_url)

    def record_search(self, query: str, results_count: int) -> None:
        self.conn.execute(
            "INSERT INTO search_history (id, search_query, results_count, timestamp) VALUES (?, ?, ?, ?)",
            (str(uuid.uuid4()), query, results_count, _now_ms()),
        )
        self.conn.commit()

    def get_application_history(self, limit: int = 50, status: str | None = None) -> list[ApplicationRecord]:
        query = "SELECT * FROM applications"
        params: list[Any] = []
        if status:
            query += " WHERE status = ?"
            params.append(status)
        query += " ORDER BY timestamp DESC LIMIT ?"
        params.append(limit)

        records: list[ApplicationRecord] = []
        for row in self.conn.execute(query, params).fetchall():
            records.append(
                ApplicationRecord(
                    id=row["id"],
                    timestamp=row["timestamp"],
                    company_name=row["company_name"],
                    job_title=row["job_title"],
                    job_url=row["job_url"],
                    status=row["status"],
                    relevance_score=row["relevance_score"] or 0.0,
                    fill_rating=row["fill_rating"],
                    notes=row["notes"],
                    form_data_filled=json.loads(row["form_data_filled"] or "{}"),
                    error_log=row["error_log"],
                )
            )
        return records

    def get_statistics(self) -> dict[str, float]:
        row = self.conn.execute(
            """
            SELECT
                COUNT(*) AS total,
                SUM(CASE WHEN status = 'applied' THEN 1 ELSE 0 END) AS applied,
                SUM(CASE WHEN status = 'failed' THEN 1 ELSE 0 END) AS failed,
                COUNT(DISTINCT company_name) AS companies
            FROM applications
            """
        ).fetchone()
        total = row["total"] or 0
        applied = row["applied"] or 0
        return {
            "total_applications": total,
            "applied_count": applied,
            "failed_count": row["failed"] or 0,
            "unique_companies": row["companies"] or 0,
            "success_rate": (applied / total) * 100 if total else 0.0,
        }

    def update_application_status(
        self,
        application_id: str,
        status: str,
        fill_rating: float | None = None,
        notes: str | None = None,
    ) -> bool:
        cur = self.conn.execute(
            "UPDATE applications SET status = ?, fill_rating = ?, notes = ? WHERE id = ?",
            (status, fill_rating, notes, application_id),
        )
        self.conn.commit()
        if not cur.rowcount:
            return False
        log.debug("Updated %s → %s", application_id, status)
        return True

    def __enter__(self) -> "ApplicationTracker":
        if self._conn is None:
            self.initialize()
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
