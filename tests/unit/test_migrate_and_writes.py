"""Tests for the SQLite migration and session store."""
from __future__ import annotations

import os
import sqlite3

import pytest

from agents.types import Exchange, InterviewerVoiceConfig, Phase, Question, Session, SessionStatus
from services.errors import AccessDenied, AnswerAlreadyRecorded, ExchangeNotFound, SessionNotFound, TurnOutOfOrder
from storage.migrate import migrate
from storage.sessions import SessionStore

NOW = "2026-01-05T10:00:00+00:00"


def _session(session_id="s1", user_id="u1", created_at=NOW):
    return Session(
        id=session_id,
        user_id=user_id,
        duration_minutes=15,
        questions=[Question(text="Tell me about a conflict?"), Question(text="Describe a failure?")],
        total_questions=2,
        candidate_name="Priya",
        job_title="Backend Engineer",
        interviewer=InterviewerVoiceConfig(voice_id="v1", name="Michael Chen", title="Engineering Manager", gender="male"),
        created_at=created_at,
        updated_at=created_at,
    )


def _exchanges(session_id="s1"):
    return [
        Exchange(id=f"{session_id}-q{index}", session_id=session_id, order_index=index, question_text=text)
        for index, text in enumerate(["Tell me about a conflict?", "Describe a failure?"])
    ]


def _answered(exchange, score=70):
    return exchange.model_copy(
        update={
            "user_answer_text": "We shipped it.",
            "answer_score": score,
            "feedback": "Good",
            "strengths": ["Clear"],
            "metrics": {"wpm": 140},
            "answered_at": NOW,
        }
    )


@pytest.fixture()
def store(tmp_db):
    store = SessionStore(tmp_db)
    store.create(_session(), _exchanges())
    return store


def test_migrate_creates_tables(tmp_db: str):
    migrate(tmp_db)
    assert os.path.exists(tmp_db)
    conn = sqlite3.connect(tmp_db)
    try:
        names = {row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")}
    finally:
        conn.close()
    assert {"mock_sessions", "mock_exchanges"} <= names


def test_create_and_load_round_trip(store: SessionStore):
    session, exchanges = store.load_with_exchanges("s1", "u1")
    assert session.current_phase is Phase.WELCOME
    assert session.status is SessionStatus.IN_PROGRESS
    assert [q.text for q in session.questions] == ["Tell me about a conflict?", "Describe a failure?"]
    assert session.interviewer.name == "Michael Chen"
    assert [ex.order_index for ex in exchanges] == [0, 1]
    assert not exchanges[0].is_answered


def test_load_checks_owner_and_existence(store: SessionStore):
    with pytest.raises(AccessDenied):
        store.load("s1", "someone-else")
    with pytest.raises(SessionNotFound):
        store.load("missing", "u1")


def test_record_answer_only_once(store: SessionStore):
    exchange = store.exchanges("s1")[0]
    with store.transaction() as conn:
        store.record_answer(conn, _answered(exchange))
    stored = store.exchanges("s1")[0]
    assert stored.answer_score == 70
    assert stored.metrics == {"wpm": 140}
    with pytest.raises(AnswerAlreadyRecorded):
        with store.transaction() as conn:
            store.record_answer(conn, _answered(exchange, score=99))
    assert store.exchanges("s1")[0].answer_score == 70


def test_get_exchange_scoped_to_session(store: SessionStore):
    store.create(_session("s2"), _exchanges("s2"))
    with store.transaction() as conn:
        with pytest.raises(ExchangeNotFound):
            store.get_exchange(conn, "s1", "s2-q0")
        assert store.get_exchange(conn, "s2", "s2-q0").order_index == 0


def test_save_state_guards_question_index(store: SessionStore):
    session = store.load("s1", "u1")
    advanced = session.model_copy(update={"current_question_index": 1, "current_phase": Phase.QUESTIONS})
    with store.transaction() as conn:
        store.save_state(conn, advanced, expected_index=0)
    with pytest.raises(TurnOutOfOrder):
        with store.transaction() as conn:
            store.save_state(conn, advanced.model_copy(update={"current_question_index": 2}), expected_index=0)
    reloaded = store.load("s1", "u1")
    assert reloaded.current_question_index == 1
    assert reloaded.current_phase is Phase.QUESTIONS


def test_failed_transaction_rolls_back(store: SessionStore):
    exchange = store.exchanges("s1")[0]
    with pytest.raises(RuntimeError):
        with store.transaction() as conn:
            store.record_answer(conn, _answered(exchange))
            raise RuntimeError("boom")
    assert not store.exchanges("s1")[0].is_answered


def test_list_and_delete_cascade(store: SessionStore):
    store.create(_session("s2", created_at="2026-01-06T10:00:00+00:00"), _exchanges("s2"))
    store.create(_session("s3", user_id="u2"), _exchanges("s3"))
    assert [s.id for s in store.list_for_user("u1")] == ["s2", "s1"]
    assert [s.id for s in store.list_for_user("u1", limit=1)] == ["s2"]

    with pytest.raises(AccessDenied):
        store.delete("s1", "u2")
    store.delete("s1", "u1")
    with pytest.raises(SessionNotFound):
        store.load("s1", "u1")
    assert store.exchanges("s1") == []
    assert len(store.exchanges("s2")) == 2
