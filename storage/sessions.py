"""Session and exchange persistence for mock interviews."""
from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from typing import Iterator, List, Optional, Sequence, Tuple

from agents.types import Exchange, HistoryEntry, InterviewerVoiceConfig, InterviewReport, Question, Session
from services.errors import AccessDenied, AnswerAlreadyRecorded, ExchangeNotFound, SessionNotFound, TurnOutOfOrder

from .migrate import migrate
from .sqlite import connect


def _session_from_row(row: sqlite3.Row) -> Session:
    report_json = row["final_report_json"]
    return Session(
        id=row["id"],
        user_id=row["user_id"],
        status=row["status"],
        current_phase=row["current_phase"],
        duration_minutes=row["duration_minutes"],
        questions=[Question.model_validate(item) for item in json.loads(row["plan_json"])],
        current_question_index=row["current_question_index"],
        total_questions=row["total_questions"],
        candidate_name=row["candidate_name"],
        job_title=row["job_title"],
        company_name=row["company_name"],
        resume_context=row["resume_context"],
        job_context=row["job_context"],
        interviewer=InterviewerVoiceConfig.model_validate_json(row["interviewer_json"]),
        history=[HistoryEntry.model_validate(item) for item in json.loads(row["history_json"])],
        final_report=InterviewReport.model_validate_json(report_json) if report_json else None,
        overall_score=row["overall_score"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        completed_at=row["completed_at"],
    )


def _exchange_from_row(row: sqlite3.Row) -> Exchange:
    return Exchange(
        id=row["id"],
        session_id=row["session_id"],
        order_index=row["order_index"],
        question_text=row["question_text"],
        question_type=row["question_type"],
        user_answer_text=row["user_answer_text"],
        answer_score=row["answer_score"],
        feedback=row["feedback"],
        strengths=json.loads(row["strengths_json"]),
        improvements=json.loads(row["improvements_json"]),
        metrics=json.loads(row["metrics_json"]),
        answered_at=row["answered_at"],
    )


def _history_json(history: Sequence[HistoryEntry]) -> str:
    return json.dumps([entry.model_dump(mode="json") for entry in history], ensure_ascii=False)


class SessionStore:  # SQLite-backed persistence for sessions and their exchanges
    def __init__(self, path: Optional[str] = None) -> None:
        self._path = path
        migrate(path)

    def _connect(self) -> sqlite3.Connection:
        return connect(self._path)

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection holding the write lock until commit or rollback."""

        conn = self._connect()
        conn.isolation_level = None
        try:
            conn.execute("BEGIN IMMEDIATE")
            yield conn
            conn.execute("COMMIT")
        except BaseException:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise
        finally:
            conn.close()

    def create(self, session: Session, exchanges: Sequence[Exchange]) -> None:
        with self.transaction() as conn:
            conn.execute(
                """
                INSERT INTO mock_sessions (
                    id, user_id, status, current_phase, duration_minutes,
                    current_question_index, total_questions, candidate_name, job_title, company_name,
                    resume_context, job_context, interviewer_json, plan_json,
                    history_json, final_report_json, overall_score,
                    created_at, updated_at, completed_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    session.id,
                    session.user_id,
                    session.status.value,
                    session.current_phase.value,
                    session.duration_minutes,
                    session.current_question_index,
                    session.total_questions,
                    session.candidate_name,
                    session.job_title,
                    session.company_name,
                    session.resume_context,
                    session.job_context,
                    session.interviewer.model_dump_json(),
                    json.dumps([q.model_dump() for q in session.questions], ensure_ascii=False),
                    _history_json(session.history),
                    None,
                    None,
                    session.created_at,
                    session.updated_at,
                    None,
                ),
            )
            conn.executemany(
                """
                INSERT INTO mock_exchanges (
                    id, session_id, order_index, question_text, question_type
                ) VALUES (?, ?, ?, ?, ?)
                """,
                [
                    (ex.id, session.id, ex.order_index, ex.question_text, ex.question_type)
                    for ex in exchanges
                ],
            )

    def load(
        self,
        session_id: str,
        user_id: str,
        *,
        conn: Optional[sqlite3.Connection] = None,
    ) -> Session:
        """Fetch a session, checking that it belongs to ``user_id``."""

        if conn is None:
            with self._read() as own:
                return self.load(session_id, user_id, conn=own)
        row = conn.execute("SELECT * FROM mock_sessions WHERE id = ?", (session_id,)).fetchone()
        if row is None:
            raise SessionNotFound(f"Session '{session_id}' not found")
        if row["user_id"] != user_id:
            raise AccessDenied(f"Session '{session_id}' belongs to another user")
        return _session_from_row(row)

    def exchanges(
        self,
        session_id: str,
        *,
        conn: Optional[sqlite3.Connection] = None,
    ) -> List[Exchange]:
        if conn is None:
            with self._read() as own:
                return self.exchanges(session_id, conn=own)
        rows = conn.execute(
            "SELECT * FROM mock_exchanges WHERE session_id = ? ORDER BY order_index",
            (session_id,),
        ).fetchall()
        return [_exchange_from_row(row) for row in rows]

    def get_exchange(self, conn: sqlite3.Connection, session_id: str, exchange_id: str) -> Exchange:
        row = conn.execute(
            "SELECT * FROM mock_exchanges WHERE id = ? AND session_id = ?",
            (exchange_id, session_id),
        ).fetchone()
        if row is None:
            raise ExchangeNotFound(f"Question '{exchange_id}' not found in session '{session_id}'")
        return _exchange_from_row(row)

    def load_with_exchanges(self, session_id: str, user_id: str) -> Tuple[Session, List[Exchange]]:
        with self._read() as conn:
            session = self.load(session_id, user_id, conn=conn)
            return session, self.exchanges(session_id, conn=conn)

    def list_for_user(self, user_id: str, *, limit: int = 50) -> List[Session]:
        with self._read() as conn:
            rows = conn.execute(
                """
                SELECT * FROM mock_sessions
                WHERE user_id = ?
                ORDER BY created_at DESC, id
                LIMIT ?
                """,
                (user_id, limit),
            ).fetchall()
        return [_session_from_row(row) for row in rows]

    def delete(self, session_id: str, user_id: str) -> None:
        with self.transaction() as conn:
            self.load(session_id, user_id, conn=conn)
            conn.execute("DELETE FROM mock_sessions WHERE id = ?", (session_id,))

    def save_state(
        self,
        conn: sqlite3.Connection,
        session: Session,
        *,
        expected_index: Optional[int] = None,
    ) -> None:
        """Write the mutable session columns.

        With ``expected_index`` the update only applies while the stored
        question index still equals it; otherwise another writer advanced the
        session first and ``TurnOutOfOrder`` is raised.
        """

        sql = """
            UPDATE mock_sessions
            SET status = ?,
                current_phase = ?,
                current_question_index = ?,
                history_json = ?,
                final_report_json = ?,
                overall_score = ?,
                updated_at = ?,
                completed_at = ?
            WHERE id = ?
        """
        params: list = [
            session.status.value,
            session.current_phase.value,
            session.current_question_index,
            _history_json(session.history),
            session.final_report.model_dump_json() if session.final_report else None,
            session.overall_score,
            session.updated_at,
            session.completed_at,
            session.id,
        ]
        if expected_index is not None:
            sql += " AND current_question_index = ?"
            params.append(expected_index)
        cur = conn.execute(sql, params)
        if cur.rowcount == 0:
            raise TurnOutOfOrder(f"Session '{session.id}' advanced concurrently")

    def record_answer(self, conn: sqlite3.Connection, exchange: Exchange) -> None:
        """Persist an analyzed answer; an exchange is answered at most once."""

        cur = conn.execute(
            """
            UPDATE mock_exchanges
            SET user_answer_text = ?,
                answer_score = ?,
                feedback = ?,
                strengths_json = ?,
                improvements_json = ?,
                metrics_json = ?,
                answered_at = ?
            WHERE id = ? AND session_id = ? AND user_answer_text IS NULL
            """,
            (
                exchange.user_answer_text,
                exchange.answer_score,
                exchange.feedback,
                json.dumps(exchange.strengths, ensure_ascii=False),
                json.dumps(exchange.improvements, ensure_ascii=False),
                json.dumps(exchange.metrics, ensure_ascii=False),
                exchange.answered_at,
                exchange.id,
                exchange.session_id,
            ),
        )
        if cur.rowcount == 0:
            raise AnswerAlreadyRecorded(f"Question '{exchange.id}' already has an answer")

    @contextmanager
    def _read(self) -> Iterator[sqlite3.Connection]:
        conn = self._connect()
        try:
            yield conn
        finally:
            conn.close()


__all__ = ["SessionStore"]
