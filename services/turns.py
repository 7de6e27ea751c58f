"""Turn-taking for a live voice session.

One controller exists per connected session. It buffers the candidate's
audio while a turn is open, closes the turn on end of speech, stream end or
the per-question time budget, and hands the audio to the session service
on a worker thread. Only one turn is recorded or analyzed at a time.
"""
from __future__ import annotations

import asyncio
import logging
from collections import deque
from enum import Enum
from typing import Any, Deque, Dict, Optional

from agents.types import Phase
from audio.sampler import AmplitudeSource, wav_bytes
from audio.vad import VadHandle, VoiceActivityDetector
from config.settings import settings
from observability import log_event

from .errors import InterviewError, SessionCompleted, TurnInProgress
from .sessions import CompletionResult, InterviewService
from .transcription import transcribe

logger = logging.getLogger(__name__)

PREROLL_CHUNKS = 5


class TurnState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    PROCESSING = "processing"
    CLOSED = "closed"


class VoiceTurnController:
    def __init__(
        self,
        service: InterviewService,
        session_id: str,
        user_id: str,
        *,
        budget_seconds: Optional[float] = None,
        sample_rate: Optional[int] = None,
    ) -> None:
        self.service = service
        self.session_id = session_id
        self.user_id = user_id
        if budget_seconds is None:
            budget_seconds = service.store.load(session_id, user_id).question_budget_seconds
        self.budget_seconds = budget_seconds
        self.sample_rate = sample_rate or settings.AUDIO_SAMPLE_RATE

        self.state = TurnState.IDLE
        self.events: "asyncio.Queue[Dict[str, Any]]" = asyncio.Queue()
        self._buffer = bytearray()
        self._preroll: Deque[bytes] = deque(maxlen=PREROLL_CHUNKS)
        self._budget_timer: Optional[asyncio.TimerHandle] = None
        self._task: Optional["asyncio.Task[None]"] = None
        self._vad: Optional[VadHandle] = None

    # -- capture ------------------------------------------------------------

    def listen(self, source: AmplitudeSource) -> VadHandle:
        """Run voice activity detection on ``source``; speech opens and closes turns."""

        detector = VoiceActivityDetector(
            on_speech_start=self._on_speech_start,
            on_speech_end=lambda: self._on_speech_end("silence"),
            on_stream_end=lambda: self._on_speech_end("stream_end"),
            session_id=self.session_id,
        )
        self._vad = detector.start(source)
        return self._vad

    def feed(self, pcm: bytes) -> None:
        if self.state is TurnState.RECORDING:
            self._buffer.extend(pcm)
        else:
            self._preroll.append(pcm)

    def start_recording(self) -> None:
        if self.state is TurnState.CLOSED:
            raise SessionCompleted(f"Session '{self.session_id}' has ended")
        if self.state is not TurnState.IDLE:
            raise TurnInProgress(f"A turn is already {self.state.value} for session '{self.session_id}'")

        self.state = TurnState.RECORDING
        self._buffer = bytearray(b"".join(self._preroll))
        self._preroll.clear()
        loop = asyncio.get_running_loop()
        self._budget_timer = loop.call_later(self.budget_seconds, self._on_budget_expired)
        log_event("turn_opened", self.session_id, budget_s=round(self.budget_seconds, 1))

    def stop_recording(self, reason: str = "requested") -> Optional["asyncio.Task[None]"]:
        """Close the open turn and start processing it; returns the processing task."""

        if self.state is not TurnState.RECORDING:
            return None
        self._cancel_budget()
        # The detector already cleared its flag when silence closed the turn.
        if reason != "silence" and self._vad is not None:
            self._vad.reset_speaking()
        audio = bytes(self._buffer)
        self._buffer = bytearray()

        if len(audio) < settings.MIN_TURN_AUDIO_BYTES:
            self.state = TurnState.IDLE
            log_event("turn_closed", self.session_id, reason=reason, outcome="discarded", bytes=len(audio))
            return None

        self.state = TurnState.PROCESSING
        log_event("turn_closed", self.session_id, reason=reason, outcome="processing", bytes=len(audio))
        self._task = asyncio.get_running_loop().create_task(self._process(audio))
        return self._task

    # -- processing ---------------------------------------------------------

    async def _process(self, pcm: bytes) -> None:
        try:
            result = await asyncio.to_thread(self._handle_turn, wav_bytes(pcm, sample_rate=self.sample_rate))
        except InterviewError as exc:
            log_event("turn_failed", self.session_id, level=logging.WARNING, reason=exc.code)
            self.emit({"type": "turn_error", "code": exc.code, "message": exc.message})
        else:
            self.emit({"type": "turn_result", **result})
        finally:
            if self.state is TurnState.PROCESSING:
                self.state = TurnState.IDLE

    def _handle_turn(self, audio: bytes) -> Dict[str, Any]:
        session, exchanges = self.service.get_session(self.session_id, self.user_id)
        if session.current_phase is Phase.COMPLETED:
            raise SessionCompleted(f"Session '{self.session_id}' is already completed")

        transcription = transcribe(audio, mime_type="audio/wav")
        if session.current_phase is Phase.QUESTIONS:
            exchange = exchanges[session.current_question_index]
            answer = self.service.submit_answer(
                self.session_id,
                self.user_id,
                exchange.id,
                transcription.transcript,
                words=transcription.words,
                confidence=transcription.confidence,
            )
            return {
                "kind": "answer",
                "transcript": transcription.transcript,
                "analysis": answer.analysis.model_dump(),
                "acknowledgement": answer.acknowledgement,
                "nextQuestion": answer.next_question.model_dump() if answer.next_question else None,
                "sessionFinished": answer.session_finished,
            }

        line = self.service.reply(self.session_id, self.user_id, transcription.transcript)
        return {
            "kind": "reply",
            "transcript": transcription.transcript,
            "phase": line.phase.value,
            "text": line.text,
            "question": line.question.model_dump() if line.question else None,
        }

    # -- shutdown -----------------------------------------------------------

    def stop_capture(self) -> None:
        """Refuse further turns and drop the open one.

        A turn already being processed is left for ``end_session`` to abandon.
        """

        self.state = TurnState.CLOSED
        self._cancel_budget()
        self._buffer = bytearray()
        self._preroll.clear()
        if self._vad is not None:
            self._vad.reset_speaking()

    async def end_session(self) -> CompletionResult:
        """Stop capture, abandon any in-flight turn and complete the session."""

        self.state = TurnState.CLOSED
        self._cancel_budget()
        if self._task is not None and not self._task.done():
            self._task.cancel()
        if self._vad is not None:
            self._vad.stop()
        self._buffer = bytearray()
        return await asyncio.to_thread(
            self.service.complete_session,
            self.session_id,
            self.user_id,
            reason="ended_early",
        )

    async def drain(self) -> None:
        """Wait for the turn being processed, if any."""

        task = self._task
        if task is None or task.done():
            return
        try:
            await task
        except asyncio.CancelledError:
            if not task.cancelled():
                raise

    def close(self) -> None:
        """Release capture resources without completing the session."""

        self.state = TurnState.CLOSED
        self._cancel_budget()
        if self._vad is not None:
            self._vad.stop()

    # -- callbacks ----------------------------------------------------------

    def _on_speech_start(self) -> None:
        self.emit({"type": "speech_start"})
        if self.state is TurnState.IDLE:
            self.start_recording()

    def _on_speech_end(self, reason: str) -> None:
        if reason == "silence":
            self.emit({"type": "speech_end"})
        self.stop_recording(reason)

    def _on_budget_expired(self) -> None:
        self._budget_timer = None
        logger.info("Question time budget elapsed session=%s", self.session_id)
        self.stop_recording("timeout")

    def _cancel_budget(self) -> None:
        if self._budget_timer is not None:
            self._budget_timer.cancel()
            self._budget_timer = None

    def emit(self, event: Dict[str, Any]) -> None:
        self.events.put_nowait(event)


__all__ = ["PREROLL_CHUNKS", "TurnState", "VoiceTurnController"]
