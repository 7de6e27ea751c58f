"""SQLite schema migrations."""
from __future__ import annotations

from typing import Iterable, Optional

from .sqlite import get_conn

SCHEMA: Iterable[str] = [
    """
CREATE TABLE IF NOT EXISTS mock_sessions (
  id TEXT PRIMARY KEY,
  user_id TEXT NOT NULL,
  status TEXT NOT NULL,
  current_phase TEXT NOT NULL,
  duration_minutes INTEGER NOT NULL,
  current_question_index INTEGER NOT NULL DEFAULT 0,
  total_questions INTEGER NOT NULL,
  candidate_name TEXT NOT NULL DEFAULT '',
  job_title TEXT NOT NULL DEFAULT '',
  company_name TEXT NOT NULL DEFAULT '',
  resume_context TEXT,
  job_context TEXT,
  interviewer_json TEXT NOT NULL,
  plan_json TEXT NOT NULL,
  history_json TEXT NOT NULL,
  final_report_json TEXT,
  overall_score INTEGER,
  created_at TEXT NOT NULL,
  updated_at TEXT NOT NULL,
  completed_at TEXT
);
""",
    """
CREATE INDEX IF NOT EXISTS idx_mock_sessions_user
  ON mock_sessions (user_id, created_at);
""",
    """
CREATE TABLE IF NOT EXISTS mock_exchanges (
  id TEXT PRIMARY KEY,
  session_id TEXT NOT NULL,
  order_index INTEGER NOT NULL,
  question_text TEXT NOT NULL,
  question_type TEXT NOT NULL,
  user_answer_text TEXT,
  answer_score INTEGER,
  feedback TEXT NOT NULL DEFAULT '',
  strengths_json TEXT NOT NULL DEFAULT '[]',
  improvements_json TEXT NOT NULL DEFAULT '[]',
  metrics_json TEXT NOT NULL DEFAULT '{}',
  answered_at TEXT,
  UNIQUE (session_id, order_index),
  FOREIGN KEY (session_id) REFERENCES mock_sessions(id) ON DELETE CASCADE
);
""",
]


def migrate(db_path: Optional[str] = None) -> None:
    """Apply schema migrations to the SQLite database."""

    with get_conn(db_path) as conn:
        for stmt in SCHEMA:
            conn.execute(stmt)


if __name__ == "__main__":
    migrate()
