"""Voice activity detection over a stream of frame amplitudes.

After a short calibration window the detector smooths each frame's RMS and
compares it to a dynamic threshold. Speech starts on the first frame above
threshold. Speech ends only after the level has stayed at or below threshold
for ``silence_delay_ms`` of stream time; any louder frame in between cancels
the countdown.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Callable, List, Optional

from config.settings import settings
from observability import log_event
from services.errors import AudioUnavailable

from .sampler import AmplitudeSource

logger = logging.getLogger(__name__)

SpeechCallback = Callable[[], None]


class VoiceActivityDetector:
    def __init__(
        self,
        *,
        on_speech_start: Optional[SpeechCallback] = None,
        on_speech_end: Optional[SpeechCallback] = None,
        on_stream_end: Optional[SpeechCallback] = None,
        silence_delay_ms: Optional[float] = None,
        base_threshold: Optional[float] = None,
        calibration_ms: Optional[float] = None,
        calibration_multiplier: Optional[float] = None,
        smoothing: Optional[float] = None,
        session_id: str = "-",
    ) -> None:
        self.on_speech_start = on_speech_start
        self.on_speech_end = on_speech_end
        self.on_stream_end = on_stream_end
        self.silence_delay_ms = settings.VAD_SILENCE_DELAY_MS if silence_delay_ms is None else silence_delay_ms
        self.base_threshold = settings.VAD_BASE_THRESHOLD if base_threshold is None else base_threshold
        self.calibration_ms = settings.VAD_CALIBRATION_MS if calibration_ms is None else calibration_ms
        self.calibration_multiplier = (
            settings.VAD_CALIBRATION_MULTIPLIER if calibration_multiplier is None else calibration_multiplier
        )
        self.smoothing = settings.VAD_SMOOTHING if smoothing is None else smoothing
        self.session_id = session_id

        self.threshold = self.base_threshold
        self.audio_level = 0.0
        self.is_speaking = False
        self.calibrated = False
        self.noise_floor: Optional[float] = None
        self._calibration: List[float] = []
        self._calibration_start_ms: Optional[float] = None
        self._silence_started_ms: Optional[float] = None

    @property
    def silence_pending(self) -> bool:
        return self._silence_started_ms is not None

    def process(self, rms: float, now_ms: float) -> None:
        """Consume one frame's raw RMS observed at stream time ``now_ms``."""

        if not self.calibrated:
            self._calibrate(rms, now_ms)
            return

        self.tick(now_ms)
        self.audio_level = self.smoothing * self.audio_level + (1.0 - self.smoothing) * rms

        if self.audio_level > self.threshold:
            self._silence_started_ms = None
            if not self.is_speaking:
                self.is_speaking = True
                log_event(
                    "vad_speech_start",
                    self.session_id,
                    level=logging.DEBUG,
                    ms=now_ms,
                    threshold=round(self.threshold, 4),
                )
                if self.on_speech_start is not None:
                    self.on_speech_start()
        elif self.is_speaking and self._silence_started_ms is None:
            self._silence_started_ms = now_ms

    def tick(self, now_ms: float) -> None:
        """Fire ``SpeechEnded`` if the silence countdown has elapsed by ``now_ms``."""

        started = self._silence_started_ms
        if started is None or now_ms - started < self.silence_delay_ms:
            return
        self._silence_started_ms = None
        if not self.is_speaking:
            return
        self.is_speaking = False
        log_event("vad_speech_end", self.session_id, level=logging.DEBUG, ms=now_ms)
        if self.on_speech_end is not None:
            self.on_speech_end()

    def reset_speaking(self) -> None:
        """Force the speaking flag off and drop any pending countdown."""
        self._silence_started_ms = None
        self.is_speaking = False

    def _calibrate(self, rms: float, now_ms: float) -> None:
        if self._calibration_start_ms is None:
            self._calibration_start_ms = now_ms
        self._calibration.append(rms)
        if now_ms - self._calibration_start_ms < self.calibration_ms:
            return
        self.noise_floor = sum(self._calibration) / len(self._calibration)
        self.threshold = max(self.base_threshold, self.noise_floor * self.calibration_multiplier)
        self.calibrated = True
        self._calibration.clear()
        log_event(
            "vad_calibrated",
            self.session_id,
            threshold=round(self.threshold, 4),
            noise_floor=round(self.noise_floor, 4),
        )

    async def run(self, source: AmplitudeSource) -> None:
        """Drain ``source`` until it ends; stream end is reported, never raised mid-speech."""

        async for frame in source:
            self.process(frame.rms, frame.timestamp_ms)
        if not self.calibrated:
            raise AudioUnavailable("Audio stream ended before calibration completed")
        self._silence_started_ms = None
        logger.info("VAD stream ended session=%s speaking=%s", self.session_id, self.is_speaking)
        if self.on_stream_end is not None:
            self.on_stream_end()

    def start(self, source: Optional[AmplitudeSource]) -> "VadHandle":
        """Schedule detection on the running loop and return a control handle."""

        if source is None:
            raise AudioUnavailable("No audio input stream")
        task = asyncio.get_running_loop().create_task(self.run(source))
        return VadHandle(self, task)


class VadHandle:
    """Live view of a running detector plus the controls a turn orchestrator needs."""

    def __init__(self, detector: VoiceActivityDetector, task: "asyncio.Task[None]") -> None:
        self._detector = detector
        self._task = task

    @property
    def is_speaking(self) -> bool:
        return self._detector.is_speaking

    @property
    def audio_level(self) -> float:
        return self._detector.audio_level

    @property
    def threshold(self) -> float:
        return self._detector.threshold

    @property
    def running(self) -> bool:
        return not self._task.done()

    def reset_speaking(self) -> None:
        self._detector.reset_speaking()

    def stop(self) -> None:
        self._detector.reset_speaking()
        if not self._task.done():
            self._task.cancel()

    async def wait(self) -> None:
        """Wait for the detection task; re-raises ``AudioUnavailable`` from calibration."""
        try:
            await self._task
        except asyncio.CancelledError:
            if not self._task.cancelled():
                raise


def open_source(factory: Callable[[], Optional[AmplitudeSource]], *, retries: Optional[int] = None) -> AmplitudeSource:
    """Open an amplitude source, retrying device errors before giving up."""

    attempts = (settings.VAD_START_RETRIES if retries is None else retries) + 1
    last_error: Optional[BaseException] = None
    for attempt in range(attempts):
        try:
            source = factory()
        except OSError as exc:
            last_error = exc
            logger.warning("Audio source open failed attempt=%d/%d: %s", attempt + 1, attempts, exc)
            continue
        if source is not None:
            return source
        logger.warning("Audio source unavailable attempt=%d/%d", attempt + 1, attempts)
    raise AudioUnavailable("No audio input stream") from last_error


__all__ = ["SpeechCallback", "VadHandle", "VoiceActivityDetector", "open_source"]
