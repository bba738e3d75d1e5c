"""SQLite-backed learner statistics for adaptivetutor."""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Optional, Protocol

from adaptivetutor.engine.adaptive import AttemptRecord, DifficultyTier, LearnerStats, utcnow

logger = logging.getLogger(__name__)


class LearnerRepository(Protocol):
    """Persistence port used by the tutor session."""

    def load(self, learner_id: str) -> Optional[LearnerStats]: ...

    def save(self, learner_id: str, stats: LearnerStats) -> None: ...

    def log_attempt(self, learner_id: str, record: AttemptRecord) -> None: ...

    def record(self, learner_id: str, stats: LearnerStats, record: AttemptRecord) -> None: ...

    def attempts(self, learner_id: str, limit: Optional[int] = None) -> list[AttemptRecord]: ...

    def list_learners(self) -> list[str]: ...

    def average_scores(self) -> dict[str, float]: ...

    def delete(self, learner_id: str) -> None: ...


def _parse_time(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value)


class LearnerStore:
    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = db_path or (Path.home() / ".adaptivetutor" / "learners.db")
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self) -> None:
        with self._conn() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS learners (
                    learner_id TEXT PRIMARY KEY,
                    total_attempts INTEGER DEFAULT 0,
                    correct_answers INTEGER DEFAULT 0,
                    average_score REAL DEFAULT 0,
                    mastery_percentage INTEGER DEFAULT 0,
                    common_errors TEXT DEFAULT '{}',
                    solved_exercises TEXT DEFAULT '[]',
                    learning_speed REAL DEFAULT 1.0,
                    engagement_score INTEGER DEFAULT 0,
                    last_active TEXT,
                    total_time_spent REAL DEFAULT 0,
                    estimated_time_per_question REAL DEFAULT 60,
                    updated_at TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS attempts (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    learner_id TEXT NOT NULL,
                    exercise_id TEXT NOT NULL,
                    timestamp TEXT NOT NULL,
                    is_correct INTEGER NOT NULL,
                    time_spent REAL NOT NULL,
                    difficulty TEXT NOT NULL
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_attempts_learner ON attempts (learner_id, id)"
            )

    def _conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def load(self, learner_id: str) -> Optional[LearnerStats]:
        with self._conn() as conn:
            row = conn.execute(
                "SELECT * FROM learners WHERE learner_id = ?", (learner_id,)
            ).fetchone()
        if not row:
            return None
        return LearnerStats(
            total_attempts=row["total_attempts"],
            correct_answers=row["correct_answers"],
            average_score=row["average_score"],
            mastery_percentage=row["mastery_percentage"],
            common_errors=json.loads(row["common_errors"] or "{}"),
            solved_exercises=json.loads(row["solved_exercises"] or "[]"),
            learning_speed=row["learning_speed"],
            engagement_score=row["engagement_score"],
            last_active=_parse_time(row["last_active"]),
            total_time_spent=row["total_time_spent"],
            estimated_time_per_question=row["estimated_time_per_question"],
        )

    def save(self, learner_id: str, stats: LearnerStats) -> None:
        with self._conn() as conn:
            self._write_stats(conn, learner_id, stats)
        logger.debug("saved learner %s (%d attempts)", learner_id, stats.total_attempts)

    def log_attempt(self, learner_id: str, record: AttemptRecord) -> None:
        with self._conn() as conn:
            self._write_attempt(conn, learner_id, record)

    def record(self, learner_id: str, stats: LearnerStats, record: AttemptRecord) -> None:
        """Save ``stats`` and append ``record`` in one transaction."""
        with self._conn() as conn:
            self._write_stats(conn, learner_id, stats)
            self._write_attempt(conn, learner_id, record)
        logger.debug("recorded %s for learner %s", record.exercise_id, learner_id)

    def _write_stats(self, conn: sqlite3.Connection, learner_id: str, stats: LearnerStats) -> None:
        last_active = stats.last_active.isoformat() if stats.last_active else None
        conn.execute(
            """INSERT OR REPLACE INTO learners
               (learner_id, total_attempts, correct_answers, average_score,
                mastery_percentage, common_errors, solved_exercises, learning_speed,
                engagement_score, last_active, total_time_spent,
                estimated_time_per_question, updated_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                learner_id, stats.total_attempts, stats.correct_answers,
                stats.average_score, stats.mastery_percentage,
                json.dumps(stats.common_errors), json.dumps(stats.solved_exercises),
                stats.learning_speed, stats.engagement_score, last_active,
                stats.total_time_spent, stats.estimated_time_per_question,
                utcnow().isoformat(),
            ),
        )

    def _write_attempt(self, conn: sqlite3.Connection, learner_id: str, record: AttemptRecord) -> None:
        conn.execute(
            """INSERT INTO attempts
               (learner_id, exercise_id, timestamp, is_correct, time_spent, difficulty)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (
                learner_id, record.exercise_id, record.timestamp.isoformat(),
                int(record.is_correct), record.time_spent, record.difficulty.value,
            ),
        )

    def attempts(self, learner_id: str, limit: Optional[int] = None) -> list[AttemptRecord]:
        """Most recent attempts first."""
        query = "SELECT * FROM attempts WHERE learner_id = ? ORDER BY id DESC"
        params: tuple = (learner_id,)
        if limit is not None:
            query += " LIMIT ?"
            params = (learner_id, limit)
        with self._conn() as conn:
            rows = conn.execute(query, params).fetchall()
        return [
            AttemptRecord(
                exercise_id=r["exercise_id"],
                timestamp=datetime.fromisoformat(r["timestamp"]),
                is_correct=bool(r["is_correct"]),
                time_spent=r["time_spent"],
                difficulty=DifficultyTier(r["difficulty"]),
            )
            for r in rows
        ]

    def list_learners(self) -> list[str]:
        with self._conn() as conn:
            rows = conn.execute(
                "SELECT learner_id FROM learners ORDER BY learner_id"
            ).fetchall()
        return [r["learner_id"] for r in rows]

    def average_scores(self) -> dict[str, float]:
        """Average score of every learner that has answered at least once."""
        with self._conn() as conn:
            rows = conn.execute(
                "SELECT learner_id, average_score FROM learners "
                "WHERE total_attempts > 0 ORDER BY learner_id"
            ).fetchall()
        return {r["learner_id"]: r["average_score"] for r in rows}

    def delete(self, learner_id: str) -> None:
        with self._conn() as conn:
            conn.execute("DELETE FROM attempts WHERE learner_id = ?", (learner_id,))
            conn.execute("DELETE FROM learners WHERE learner_id = ?", (learner_id,))
