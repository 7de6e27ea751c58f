import pytest

from agents.types import InterviewerVoiceConfig, Phase, Session
from services.errors import InvalidTransition
from services.phase_machine import (
    PhaseEvent,
    PhaseState,
    apply_event,
    estimate_remaining_seconds,
    format_clock,
    progress_percentage,
    transition,
)


def _state(phase, index=0, total=3):
    return PhaseState(phase=phase, question_index=index, total_questions=total)


def _session(**overrides):
    data = dict(
        id="s1",
        user_id="u1",
        duration_minutes=15,
        total_questions=3,
        interviewer=InterviewerVoiceConfig(voice_id="v", name="Sarah Mitchell", title="Recruiter", gender="female"),
        created_at="2026-01-01T00:00:00+00:00",
        updated_at="2026-01-01T00:00:00+00:00",
    )
    data.update(overrides)
    return Session(**data)


def test_scripted_phases_advance_in_order():
    state = _state(Phase.WELCOME)
    seen = []
    for _ in range(3):
        state = transition(state, PhaseEvent.SCRIPTED_TURN_DONE)
        seen.append(state.phase)
    assert seen == [Phase.SMALL_TALK, Phase.COMPANY_INTRO, Phase.QUESTIONS]
    assert state.question_index == 0


def test_answers_advance_index_then_exhaust():
    state = _state(Phase.QUESTIONS)
    with pytest.raises(InvalidTransition):
        transition(state, PhaseEvent.QUESTIONS_EXHAUSTED)
    for expected in (1, 2, 3):
        state = transition(state, PhaseEvent.ANSWER_RECORDED)
        assert state.question_index == expected
    with pytest.raises(InvalidTransition):
        transition(state, PhaseEvent.ANSWER_RECORDED)
    state = transition(state, PhaseEvent.QUESTIONS_EXHAUSTED)
    assert state.phase is Phase.WRAP_UP
    assert transition(state, PhaseEvent.REPORT_STORED).phase is Phase.COMPLETED


@pytest.mark.parametrize("phase", [Phase.WELCOME, Phase.SMALL_TALK, Phase.COMPANY_INTRO, Phase.QUESTIONS])
def test_end_requested_jumps_to_wrap_up(phase):
    assert transition(_state(phase, index=1), PhaseEvent.END_REQUESTED).phase is Phase.WRAP_UP


def test_out_of_phase_events_are_rejected():
    with pytest.raises(InvalidTransition):
        transition(_state(Phase.WELCOME), PhaseEvent.ANSWER_RECORDED)
    with pytest.raises(InvalidTransition):
        transition(_state(Phase.QUESTIONS), PhaseEvent.SCRIPTED_TURN_DONE)
    with pytest.raises(InvalidTransition):
        transition(_state(Phase.QUESTIONS), PhaseEvent.REPORT_STORED)


@pytest.mark.parametrize("event", list(PhaseEvent))
def test_completed_is_terminal(event):
    with pytest.raises(InvalidTransition):
        transition(_state(Phase.COMPLETED, index=3), event)


def test_apply_event_records_phase_change_only():
    session = _session()
    moved, changed = apply_event(session, PhaseEvent.SCRIPTED_TURN_DONE, now="2026-01-01T00:01:00+00:00")
    assert changed
    assert moved.current_phase is Phase.SMALL_TALK
    entry = moved.history[-1]
    assert entry.type == "phase_transition"
    assert entry.data == {"from": "welcome", "to": "small_talk", "event": "scripted_turn_done"}
    assert session.current_phase is Phase.WELCOME

    asking = _session(current_phase=Phase.QUESTIONS)
    advanced, changed = apply_event(asking, PhaseEvent.ANSWER_RECORDED, now="2026-01-01T00:02:00+00:00")
    assert not changed
    assert advanced.current_question_index == 1
    assert advanced.history == []


def test_progress_weights():
    assert progress_percentage(Phase.WELCOME, 0, 3) == 0
    assert progress_percentage(Phase.SMALL_TALK, 0, 3) == 5
    assert progress_percentage(Phase.COMPANY_INTRO, 0, 3) == 15
    assert progress_percentage(Phase.QUESTIONS, 0, 3) == 30
    assert progress_percentage(Phase.QUESTIONS, 1, 3) == 52
    assert progress_percentage(Phase.WRAP_UP, 3, 3) == 95
    assert progress_percentage(Phase.COMPLETED, 3, 3) == 100


def test_remaining_time_estimate():
    assert estimate_remaining_seconds(Phase.WELCOME, 0, 3, 15) == 900
    assert estimate_remaining_seconds(Phase.QUESTIONS, 0, 3, 20) == 840
    assert estimate_remaining_seconds(Phase.COMPLETED, 3, 3, 30) == 0
    assert format_clock(125) == "2:05"
