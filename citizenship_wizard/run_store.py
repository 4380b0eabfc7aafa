"""
RunStore - saved eligibility runs in SQLite.

A run is a completed outcome together with the answers and the rules
version that produced it, owned by a user id. The wizard engine never
writes here; the HTTP layer saves runs on request.
"""

from __future__ import annotations

import json
import os
import sqlite3
import time
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from citizenship_wizard.models import AnswerSet, Outcome

SQLITE_TIMEOUT_SECONDS = int(os.environ.get("SQLITE_TIMEOUT_SECONDS", "30"))
SQLITE_BUSY_TIMEOUT_MS = int(os.environ.get("SQLITE_BUSY_TIMEOUT_MS", "5000"))


@dataclass
class EligibilityRun:
    id: str
    user_id: str
    country_code: str
    rules_version: str
    answers: AnswerSet
    result: Outcome
    created_at: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "country_code": self.country_code,
            "rules_version": self.rules_version,
            "answers": dict(self.answers),
            "result": self.result.to_dict(),
            "created_at": self.created_at,
        }


class RunStore:
    """Persist and query saved eligibility runs."""

    def __init__(self, db_path: str):
        self.db_path = db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=SQLITE_TIMEOUT_SECONDS)
        conn.execute(f"PRAGMA busy_timeout={SQLITE_BUSY_TIMEOUT_MS}")
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        os.makedirs(os.path.dirname(self.db_path) or ".", exist_ok=True)
        conn = self._connect()
        try:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("""
                CREATE TABLE IF NOT EXISTS eligibility_runs (
                    id            TEXT PRIMARY KEY,
                    user_id       TEXT NOT NULL,
                    country_code  TEXT NOT NULL,
                    rules_version TEXT NOT NULL,
                    answers       TEXT NOT NULL,
                    result        TEXT NOT NULL,
                    created_at    REAL NOT NULL
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_runs_user "
                "ON eligibility_runs (user_id, created_at)"
            )
            conn.commit()
        finally:
            conn.close()

    def save_run(
        self,
        user_id: str,
        country_code: str,
        rules_version: str,
        answers: AnswerSet,
        result: Outcome,
    ) -> str:
        """Insert a run and return its id."""
        run_id = str(uuid.uuid4())
        conn = self._connect()
        try:
            conn.execute(
                """INSERT INTO eligibility_runs
                       (id, user_id, country_code, rules_version, answers, result, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (
                    run_id, user_id, country_code, rules_version,
                    json.dumps(answers, ensure_ascii=False),
                    json.dumps(result.to_dict(), ensure_ascii=False),
                    time.time(),
                ),
            )
            conn.commit()
        finally:
            conn.close()
        return run_id

    def list_runs(self, user_id: str, limit: int = 50) -> List[EligibilityRun]:
        """Runs of a user, newest first."""
        conn = self._connect()
        try:
            rows = conn.execute(
                "SELECT * FROM eligibility_runs WHERE user_id=? "
                "ORDER BY created_at DESC, rowid DESC LIMIT ?",
                (user_id, limit),
            ).fetchall()
        finally:
            conn.close()
        return [self._row_to_run(row) for row in rows]

    def get_run(self, run_id: str) -> Optional[EligibilityRun]:
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT * FROM eligibility_runs WHERE id=?", (run_id,)
            ).fetchone()
        finally:
            conn.close()
        return self._row_to_run(row) if row else None

    @staticmethod
    def _row_to_run(row: sqlite3.Row) -> EligibilityRun:
        return EligibilityRun(
            id=row["id"],
            user_id=row["user_id"],
            country_code=row["country_code"],
            rules_version=row["rules_version"],
            answers=json.loads(row["answers"]),
            result=Outcome.from_dict(json.loads(row["result"])),
            created_at=row["created_at"],
        )
