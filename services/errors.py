"""Error taxonomy for the mock interview core."""
from __future__ import annotations


class InterviewError(RuntimeError):  # Base error carrying an API mapping
    code = "interview_error"
    status_code = 500

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.code)
        self.message = message or self.code


class AudioUnavailable(InterviewError):  # No input stream, VAD cannot calibrate
    code = "audio_unavailable"
    status_code = 400


class TranscriptionFailed(InterviewError):  # STT returned empty or invalid output
    code = "transcription_failed"
    status_code = 422


class AnalysisUnavailable(InterviewError):  # Scoring judgment could not be produced
    code = "analysis_unavailable"
    status_code = 502


class NoAnswersToReport(InterviewError):  # Completion requested with zero scored exchanges
    code = "no_answers_to_report"
    status_code = 409


class SessionNotFound(InterviewError):
    code = "session_not_found"
    status_code = 404


class AccessDenied(InterviewError):
    code = "access_denied"
    status_code = 403


class ExchangeNotFound(InterviewError):  # Question id does not belong to the session
    code = "exchange_not_found"
    status_code = 404


class InvalidTransition(InterviewError):  # Phase event not allowed from the current phase
    code = "invalid_transition"
    status_code = 409


class TurnOutOfOrder(InterviewError):  # Answer for a question that is not the current one
    code = "turn_out_of_order"
    status_code = 409


class AnswerAlreadyRecorded(InterviewError):  # Resubmission after the session advanced
    code = "answer_already_recorded"
    status_code = 409


class TurnInProgress(InterviewError):  # Recording requested while a turn is open
    code = "turn_in_progress"
    status_code = 409


class SessionCompleted(InterviewError):  # Mutation attempted on a completed session
    code = "session_completed"
    status_code = 409


class InvalidDuration(InterviewError):
    code = "invalid_duration"
    status_code = 400


__all__ = [
    "AccessDenied",
    "AnalysisUnavailable",
    "AnswerAlreadyRecorded",
    "AudioUnavailable",
    "ExchangeNotFound",
    "InterviewError",
    "InvalidDuration",
    "InvalidTransition",
    "NoAnswersToReport",
    "SessionCompleted",
    "SessionNotFound",
    "TranscriptionFailed",
    "TurnInProgress",
    "TurnOutOfOrder",
]
