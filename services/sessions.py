"""Mock interview session service.

Owns the turn-taking rules: which phase may do what, when the question index
advances, and when a report may be produced. Persistence goes through
``SessionStore``; every mutation reloads the session inside a write
transaction so concurrent requests for one session apply in order.
"""
from __future__ import annotations

import logging
import uuid
from typing import Any, Callable, Dict, List, Literal, Optional, Sequence, Tuple

from pydantic import BaseModel

from agents import interviewer_script as script
from agents.answer_analyzer import analyze_answer, exchange_metrics, history_summary
from agents.personas import voice_config_for
from agents.question_generator import QuestionContext, exchange_type, plan_questions
from agents.types import (
    AnswerAnalysis,
    Exchange,
    HistoryEntry,
    InterviewerVoiceConfig,
    InterviewReport,
    Phase,
    Session,
    SessionStatistics,
    SessionStatus,
    SpeechMetrics,
    WordTiming,
)
from config.settings import settings
from observability import log_event
from storage.sessions import SessionStore
from storage.sqlite import utc_now

from .errors import (
    AnswerAlreadyRecorded,
    ExchangeNotFound,
    InvalidDuration,
    InvalidTransition,
    SessionCompleted,
    TurnOutOfOrder,
)
from .phase_machine import (
    PHASE_DISPLAY_NAMES,
    PhaseEvent,
    apply_event,
    estimate_remaining_seconds,
    progress_percentage,
)
from .report import aggregate_report
from .speech_metrics import compute_speech_metrics
from .transcription import transcribe

ContextType = Literal["small_talk", "answer", "question_for_interviewer", "other"]


class CreatedSession(BaseModel):
    session: Session
    questions: List[Exchange]
    interviewer: InterviewerVoiceConfig


class SpokenLine(BaseModel):
    phase: Phase
    text: str
    question: Optional[Exchange] = None


class TurnTranscript(BaseModel):
    transcript: str
    words: List[WordTiming]
    confidence: float
    metrics: SpeechMetrics


class AnswerResult(BaseModel):
    analysis: AnswerAnalysis
    exchange: Exchange
    acknowledgement: str
    next_question: Optional[Exchange] = None
    session_finished: bool = False


class CompletionResult(BaseModel):
    report: InterviewReport
    statistics: SessionStatistics
    already_completed: bool = False


class SessionProgress(BaseModel):
    phase: Phase
    phase_name: str
    percentage: int
    remaining_seconds: int
    questions_answered: int
    questions_remaining: int
    is_complete: bool


def session_progress(session: Session) -> SessionProgress:
    index = session.current_question_index
    total = session.total_questions
    return SessionProgress(
        phase=session.current_phase,
        phase_name=PHASE_DISPLAY_NAMES[session.current_phase],
        percentage=progress_percentage(session.current_phase, index, total),
        remaining_seconds=estimate_remaining_seconds(session.current_phase, index, total, session.duration_minutes),
        questions_answered=index,
        questions_remaining=total - index,
        is_complete=session.status is SessionStatus.COMPLETED,
    )


def _preview(text: str) -> str:
    limit = settings.HISTORY_ANSWER_PREVIEW_CHARS
    return text if len(text) <= limit else text[:limit]


class InterviewService:
    def __init__(self, store: Optional[SessionStore] = None, *, clock: Callable[[], str] = utc_now) -> None:
        self.store = store or SessionStore()
        self._now = clock

    # -- creation and reads -------------------------------------------------

    def create_session(
        self,
        user_id: str,
        *,
        duration_minutes: int,
        job_title: str = "",
        company_name: str = "",
        job_context: Optional[str] = None,
        resume_context: Optional[str] = None,
        candidate_name: str = "",
        voice_id: Optional[str] = None,
    ) -> CreatedSession:
        if duration_minutes not in settings.ALLOWED_DURATIONS:
            allowed = ", ".join(str(d) for d in settings.ALLOWED_DURATIONS)
            raise InvalidDuration(f"Duration must be one of {allowed} minutes")

        questions = plan_questions(
            QuestionContext.build(
                duration_minutes=duration_minutes,
                job_title=job_title,
                company_name=company_name,
                job_context=job_context,
                resume_context=resume_context,
            )
        )
        now = self._now()
        session_id = str(uuid.uuid4())
        session = Session(
            id=session_id,
            user_id=user_id,
            duration_minutes=duration_minutes,
            questions=questions,
            total_questions=len(questions),
            candidate_name=candidate_name,
            job_title=job_title,
            company_name=company_name,
            resume_context=resume_context,
            job_context=job_context,
            interviewer=voice_config_for(job_title, voice_id),
            created_at=now,
            updated_at=now,
        )
        exchanges = [
            Exchange(
                id=str(uuid.uuid4()),
                session_id=session_id,
                order_index=index,
                question_text=question.text,
                question_type=exchange_type(question.type),
            )
            for index, question in enumerate(questions)
        ]
        self.store.create(session, exchanges)
        log_event(
            "session_created",
            session_id,
            user_id=user_id,
            duration_minutes=duration_minutes,
            total_questions=len(questions),
            interviewer=session.interviewer.name,
        )
        return CreatedSession(session=session, questions=exchanges, interviewer=session.interviewer)

    def get_session(self, session_id: str, user_id: str) -> Tuple[Session, List[Exchange]]:
        return self.store.load_with_exchanges(session_id, user_id)

    def list_sessions(self, user_id: str, *, limit: int = 50) -> List[Session]:
        return self.store.list_for_user(user_id, limit=limit)

    def delete_session(self, session_id: str, user_id: str) -> None:
        self.store.delete(session_id, user_id)
        log_event("session_deleted", session_id, user_id=user_id)

    # -- scripted conversation ----------------------------------------------

    def speak(self, session_id: str, user_id: str) -> SpokenLine:
        """Interviewer line for the current phase; recorded in history unless completed."""

        session, exchanges = self.store.load_with_exchanges(session_id, user_id)
        if session.status is SessionStatus.COMPLETED:
            return SpokenLine(phase=session.current_phase, text=script.goodbye_line(session))

        def mutate(current: Session) -> Tuple[Session, SpokenLine]:
            line = self._line_for(current, exchanges)
            return self._with_history(current, "ai_utterance", line.text), line

        return self._write(session_id, user_id, mutate)

    def reply(self, session_id: str, user_id: str, text: str) -> SpokenLine:
        """Record the candidate's reply in a scripted phase and return the interviewer's response."""

        session, exchanges = self.store.load_with_exchanges(session_id, user_id)
        self._ensure_open(session)

        def mutate(current: Session) -> Tuple[Session, SpokenLine]:
            self._ensure_open(current)
            phase = current.current_phase
            if phase is Phase.QUESTIONS:
                raise InvalidTransition("Answers to interview questions must be submitted as answers")
            now = self._now()
            context = "question_for_interviewer" if phase is Phase.WRAP_UP else "small_talk"
            updated = self._with_history(current, "user_response", _preview(text), data={"contextType": context})
            if phase is Phase.WRAP_UP:
                turn = sum(1 for entry in current.history if entry.type == "user_response" and entry.phase is Phase.WRAP_UP)
                response = script.wrap_up_reply(current, turn)
                line = SpokenLine(phase=phase, text=response)
                return self._with_history(updated, "ai_utterance", response), line

            updated, _ = apply_event(updated, PhaseEvent.SCRIPTED_TURN_DONE, now=now)
            if phase is Phase.WELCOME:
                response = script.small_talk_opening(updated)
            elif phase is Phase.SMALL_TALK:
                response = f"{script.small_talk_reply(updated, text)} {script.company_intro(updated)}"
            else:
                response = script.question_line(updated) or ""
            question = exchanges[updated.current_question_index] if updated.current_phase is Phase.QUESTIONS else None
            line = SpokenLine(phase=updated.current_phase, text=response, question=question)
            return self._with_history(updated, "ai_utterance", response), line

        return self._write(session_id, user_id, mutate)

    # -- turns ----------------------------------------------------------------

    def transcribe_turn(
        self,
        session_id: str,
        user_id: str,
        audio: bytes,
        *,
        mime_type: str = "audio/wav",
        context_type: ContextType = "other",
        events: Optional[List[Dict[str, Any]]] = None,
    ) -> TurnTranscript:
        session = self.store.load(session_id, user_id)
        self._ensure_open(session)
        result = transcribe(audio, mime_type=mime_type, events=events)
        metrics = compute_speech_metrics(result.transcript, result.words, confidence=result.confidence)

        def mutate(current: Session) -> Tuple[Session, None]:
            self._ensure_open(current)
            data = {"contextType": context_type, "metrics": metrics.model_dump()}
            return self._with_history(current, "user_response", _preview(result.transcript), data=data), None

        self._write(session_id, user_id, mutate)
        return TurnTranscript(
            transcript=result.transcript,
            words=list(result.words),
            confidence=result.confidence,
            metrics=metrics,
        )

    def submit_answer(
        self,
        session_id: str,
        user_id: str,
        question_id: str,
        transcript: str,
        *,
        words: Sequence[WordTiming] = (),
        confidence: Optional[float] = None,
        events: Optional[List[Dict[str, Any]]] = None,
    ) -> AnswerResult:
        """Analyze and record the answer to the current question, then advance.

        Nothing is written when analysis fails, so the same question can be
        answered again.
        """

        session, exchanges = self.store.load_with_exchanges(session_id, user_id)
        exchange = next((ex for ex in exchanges if ex.id == question_id), None)
        if exchange is None:
            raise ExchangeNotFound(f"Question '{question_id}' not found in session '{session_id}'")
        self._check_turn(session, exchange)

        try:
            analysis = analyze_answer(
                question=exchange.question_text,
                question_type=session.questions[exchange.order_index].type,
                transcript=transcript,
                words=words,
                confidence=confidence,
                resume_context=session.resume_context,
                job_context=session.job_context,
                events=events,
            )
        except Exception as exc:
            log_event(
                "answer_rejected",
                session_id,
                level=logging.WARNING,
                question_index=exchange.order_index,
                reason=getattr(exc, "code", type(exc).__name__),
            )
            raise

        now = self._now()
        answered = exchange.model_copy(
            update={
                "user_answer_text": transcript,
                "answer_score": analysis.score,
                "feedback": analysis.detailedFeedback,
                "strengths": list(analysis.strengths),
                "improvements": list(analysis.improvements),
                "metrics": exchange_metrics(analysis),
                "answered_at": now,
            }
        )

        with self.store.transaction() as conn:
            current = self.store.load(session_id, user_id, conn=conn)
            fresh = self.store.get_exchange(conn, session_id, question_id)
            self._check_turn(current, fresh)
            expected_index = current.current_question_index

            self.store.record_answer(conn, answered)
            updated = self._with_history(
                current,
                "user_response",
                _preview(transcript),
                data={"contextType": "answer", "question_id": question_id, "metrics": analysis.metrics.model_dump()},
            )
            updated = self._with_history(
                updated,
                "answer_analysis",
                analysis.detailedFeedback,
                data={"question_id": question_id, **history_summary(analysis)},
            )
            acknowledgement = script.answer_acknowledgement(updated, exchange.order_index)
            updated = self._with_history(updated, "ai_utterance", acknowledgement)
            updated, _ = apply_event(updated, PhaseEvent.ANSWER_RECORDED, now=now)
            finished = updated.current_question_index == updated.total_questions
            if finished:
                updated, _ = apply_event(updated, PhaseEvent.QUESTIONS_EXHAUSTED, now=now)
            self.store.save_state(conn, updated, expected_index=expected_index)
            next_exchange = None
            if not finished:
                next_exchange = self.store.exchanges(session_id, conn=conn)[updated.current_question_index]

        log_event(
            "answer_analyzed",
            session_id,
            question_index=exchange.order_index,
            score=analysis.score,
            phase=updated.current_phase.value,
        )
        return AnswerResult(
            analysis=analysis,
            exchange=answered,
            acknowledgement=acknowledgement,
            next_question=next_exchange,
            session_finished=finished,
        )

    # -- completion -----------------------------------------------------------

    def complete_session(self, session_id: str, user_id: str, *, reason: str = "requested") -> CompletionResult:
        """Aggregate and store the final report; repeated calls return the stored report.

        ``NoAnswersToReport`` leaves the session untouched and in progress.
        """

        session = self.store.load(session_id, user_id)
        if session.final_report is not None:
            log_event("report_reused", session_id, overall_score=session.overall_score)
            return CompletionResult(
                report=session.final_report,
                statistics=session.final_report.statistics,
                already_completed=True,
            )

        now = self._now()
        with self.store.transaction() as conn:
            current = self.store.load(session_id, user_id, conn=conn)
            if current.final_report is not None:
                return CompletionResult(
                    report=current.final_report,
                    statistics=current.final_report.statistics,
                    already_completed=True,
                )
            # Answers committed up to the write lock are part of the report.
            report = aggregate_report(self.store.exchanges(session_id, conn=conn), generated_at=now)
            updated = current
            if updated.current_phase is not Phase.WRAP_UP:
                exhausted = (
                    updated.current_phase is Phase.QUESTIONS
                    and updated.current_question_index == updated.total_questions
                )
                event = PhaseEvent.QUESTIONS_EXHAUSTED if exhausted else PhaseEvent.END_REQUESTED
                updated, _ = apply_event(updated, event, now=now)
            updated, _ = apply_event(updated, PhaseEvent.REPORT_STORED, now=now)
            updated = self._with_history(updated, "ai_utterance", script.goodbye_line(updated))
            updated = updated.model_copy(
                update={
                    "status": SessionStatus.COMPLETED,
                    "final_report": report,
                    "overall_score": report.overallScore,
                    "completed_at": now,
                    "updated_at": now,
                }
            )
            self.store.save_state(conn, updated, expected_index=current.current_question_index)

        log_event(
            "report_generated",
            session_id,
            overall_score=report.overallScore,
            answered=report.statistics.questionsAnswered,
            skipped=report.statistics.questionsSkipped,
        )
        log_event("session_ended", session_id, reason=reason, phase=updated.current_phase.value)
        return CompletionResult(report=report, statistics=report.statistics)

    # -- helpers --------------------------------------------------------------

    def _write(self, session_id: str, user_id: str, mutate: Callable[[Session], Tuple[Session, Any]]) -> Any:
        with self.store.transaction() as conn:
            current = self.store.load(session_id, user_id, conn=conn)
            updated, result = mutate(current)
            self.store.save_state(conn, updated, expected_index=current.current_question_index)
        return result

    def _with_history(
        self,
        session: Session,
        kind: str,
        text: str,
        *,
        data: Optional[Dict[str, Any]] = None,
    ) -> Session:
        now = self._now()
        entry = HistoryEntry(type=kind, phase=session.current_phase, timestamp=now, text=text, data=data or {})
        return session.model_copy(update={"history": [*session.history, entry], "updated_at": now})

    def _line_for(self, session: Session, exchanges: List[Exchange]) -> SpokenLine:
        phase = session.current_phase
        if phase is Phase.WELCOME:
            return SpokenLine(phase=phase, text=script.welcome_line(session))
        if phase is Phase.SMALL_TALK:
            return SpokenLine(phase=phase, text=script.small_talk_opening(session))
        if phase is Phase.COMPANY_INTRO:
            return SpokenLine(phase=phase, text=script.company_intro(session))
        if phase is Phase.QUESTIONS:
            exchange = exchanges[session.current_question_index]
            return SpokenLine(phase=phase, text=exchange.question_text, question=exchange)
        if phase is Phase.WRAP_UP:
            return SpokenLine(phase=phase, text=script.wrap_up_line(session))
        return SpokenLine(phase=phase, text=script.goodbye_line(session))

    @staticmethod
    def _ensure_open(session: Session) -> None:
        if session.status is SessionStatus.COMPLETED:
            raise SessionCompleted(f"Session '{session.id}' is already completed")

    @staticmethod
    def _check_turn(session: Session, exchange: Exchange) -> None:
        if session.status is SessionStatus.COMPLETED:
            raise SessionCompleted(f"Session '{session.id}' is already completed")
        if exchange.user_answer_text is not None:
            raise AnswerAlreadyRecorded(f"Question {exchange.order_index + 1} has already been answered")
        if session.current_phase is not Phase.QUESTIONS:
            raise InvalidTransition(f"Answers are not accepted during the {session.current_phase.value} phase")
        if exchange.order_index != session.current_question_index:
            raise TurnOutOfOrder(
                f"Question {exchange.order_index + 1} is not the current question "
                f"({session.current_question_index + 1})"
            )


__all__ = [
    "AnswerResult",
    "CompletionResult",
    "ContextType",
    "CreatedSession",
    "InterviewService",
    "SessionProgress",
    "SpokenLine",
    "TurnTranscript",
    "session_progress",
]
