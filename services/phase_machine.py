"""Interview phase state machine.

The interview moves strictly forward through
``welcome -> small_talk -> company_intro -> questions -> wrap_up -> completed``.
While in ``questions`` the state also carries the index of the current
question; the phase is only left once every question has been answered, or
when the caller ends the interview early.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, List, Tuple

from pydantic import BaseModel, ConfigDict, Field

from agents.types import HistoryEntry, Phase, Session
from observability import log_event

from .errors import InvalidTransition

logger = logging.getLogger(__name__)

PHASE_ORDER: List[Phase] = [
    Phase.WELCOME,
    Phase.SMALL_TALK,
    Phase.COMPANY_INTRO,
    Phase.QUESTIONS,
    Phase.WRAP_UP,
    Phase.COMPLETED,
]

PHASE_DISPLAY_NAMES: Dict[Phase, str] = {
    Phase.WELCOME: "Welcome",
    Phase.SMALL_TALK: "Small Talk",
    Phase.COMPANY_INTRO: "Company Introduction",
    Phase.QUESTIONS: "Interview Questions",
    Phase.WRAP_UP: "Wrap-up",
    Phase.COMPLETED: "Completed",
}

# Share of overall progress credited once a phase is behind us.
PHASE_WEIGHTS: Dict[Phase, int] = {
    Phase.WELCOME: 5,
    Phase.SMALL_TALK: 10,
    Phase.COMPANY_INTRO: 15,
    Phase.QUESTIONS: 65,
    Phase.WRAP_UP: 5,
}

_SCRIPTED_NEXT = {
    Phase.WELCOME: Phase.SMALL_TALK,
    Phase.SMALL_TALK: Phase.COMPANY_INTRO,
    Phase.COMPANY_INTRO: Phase.QUESTIONS,
}


class PhaseEvent(str, Enum):
    SCRIPTED_TURN_DONE = "scripted_turn_done"  # AI-led turn of welcome/small talk/intro finished
    ANSWER_RECORDED = "answer_recorded"  # current question answered and persisted
    QUESTIONS_EXHAUSTED = "questions_exhausted"
    END_REQUESTED = "end_requested"  # caller ends the interview early
    REPORT_STORED = "report_stored"


class PhaseState(BaseModel):
    model_config = ConfigDict(frozen=True)

    phase: Phase
    question_index: int = Field(default=0, ge=0)
    total_questions: int = Field(ge=0)

    @classmethod
    def of(cls, session: Session) -> "PhaseState":
        return cls(
            phase=session.current_phase,
            question_index=session.current_question_index,
            total_questions=session.total_questions,
        )


def transition(state: PhaseState, event: PhaseEvent) -> PhaseState:
    """Return the state after ``event`` or raise ``InvalidTransition``."""

    phase = state.phase
    if phase is Phase.COMPLETED:
        raise InvalidTransition(f"Interview already completed; cannot apply {event.value}")

    if event is PhaseEvent.SCRIPTED_TURN_DONE:
        if phase in _SCRIPTED_NEXT:
            return state.model_copy(update={"phase": _SCRIPTED_NEXT[phase]})
    elif event is PhaseEvent.ANSWER_RECORDED:
        if phase is Phase.QUESTIONS and state.question_index < state.total_questions:
            return state.model_copy(update={"question_index": state.question_index + 1})
    elif event is PhaseEvent.QUESTIONS_EXHAUSTED:
        if phase is Phase.QUESTIONS and state.question_index == state.total_questions:
            return state.model_copy(update={"phase": Phase.WRAP_UP})
    elif event is PhaseEvent.END_REQUESTED:
        return state.model_copy(update={"phase": Phase.WRAP_UP})
    elif event is PhaseEvent.REPORT_STORED:
        if phase is Phase.WRAP_UP:
            return state.model_copy(update={"phase": Phase.COMPLETED})
    raise InvalidTransition(
        f"Event {event.value} not allowed in phase {phase.value} "
        f"(question {state.question_index}/{state.total_questions})"
    )


def apply_event(session: Session, event: PhaseEvent, *, now: str) -> Tuple[Session, bool]:
    """Apply ``event`` to a session, logging a history entry when the phase changes.

    Returns the updated copy and whether the phase changed.
    """

    before = PhaseState.of(session)
    after = transition(before, event)
    changed = after.phase is not before.phase
    history = list(session.history)
    if changed:
        history.append(
            HistoryEntry(
                type="phase_transition",
                phase=after.phase,
                timestamp=now,
                data={"from": before.phase.value, "to": after.phase.value, "event": event.value},
            )
        )
        log_event(
            "phase_transition",
            session.id,
            from_phase=before.phase.value,
            to_phase=after.phase.value,
            question_index=after.question_index,
        )
    updated = session.model_copy(
        update={
            "current_phase": after.phase,
            "current_question_index": after.question_index,
            "history": history,
            "updated_at": now,
        }
    )
    if not changed:
        logger.debug("Phase event %s session=%s index=%d", event.value, session.id, after.question_index)
    return updated, changed


def phase_index(phase: Phase) -> int:
    return PHASE_ORDER.index(phase)


def progress_percentage(phase: Phase, question_index: int, total_questions: int) -> int:
    if phase is Phase.COMPLETED:
        return 100
    progress = 0.0
    for earlier in PHASE_ORDER[: phase_index(phase)]:
        progress += PHASE_WEIGHTS[earlier]
    if phase is Phase.QUESTIONS and total_questions > 0:
        progress += question_index / total_questions * PHASE_WEIGHTS[Phase.QUESTIONS]
    return min(100, int(progress + 0.5))


def estimate_remaining_seconds(phase: Phase, question_index: int, total_questions: int, duration_minutes: int) -> int:
    total = duration_minutes * 60
    elapsed = total * progress_percentage(phase, question_index, total_questions) / 100
    return max(0, int(total - elapsed + 0.5))


def format_clock(seconds: int) -> str:
    return f"{seconds // 60}:{seconds % 60:02d}"


__all__ = [
    "PHASE_DISPLAY_NAMES",
    "PHASE_ORDER",
    "PHASE_WEIGHTS",
    "PhaseEvent",
    "PhaseState",
    "apply_event",
    "estimate_remaining_seconds",
    "format_clock",
    "phase_index",
    "progress_percentage",
    "transition",
]
