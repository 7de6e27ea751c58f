"""Speech-to-text contract for one closed turn."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from agents.types import Transcription
from config.registry import STT_KEY, get_model
from config.settings import settings
from llm_gateway import LlmGatewayError
from observability import span

from .errors import AudioUnavailable, TranscriptionFailed

logger = logging.getLogger(__name__)


def _coerce(raw: Any) -> Transcription:
    if isinstance(raw, Transcription):
        return raw
    return Transcription.model_validate(raw)


def transcribe(
    audio: bytes,
    *,
    mime_type: str = "audio/wav",
    events: Optional[List[Dict[str, Any]]] = None,
) -> Transcription:
    """Transcribe ``audio``; an empty or invalid result is retried before failing.

    Raises:
        AudioUnavailable: If ``audio`` is empty.
        TranscriptionFailed: After ``settings.TRANSCRIBE_RETRIES`` retries without a transcript.
    """

    if not audio:
        raise AudioUnavailable("No audio provided")
    try:
        transcriber = get_model(STT_KEY)
    except KeyError as exc:
        raise TranscriptionFailed("No speech-to-text service configured") from exc

    attempts = settings.TRANSCRIBE_RETRIES + 1
    last_error: Optional[Exception] = None
    for attempt in range(attempts):
        try:
            with span(events, "transcribe"):
                result = _coerce(transcriber(audio=audio, mime_type=mime_type))
        except (LlmGatewayError, ValidationError, TimeoutError, ConnectionError) as exc:
            last_error = exc
            logger.warning("Transcription attempt %d/%d failed: %s", attempt + 1, attempts, exc)
            continue
        if result.transcript.strip():
            return result
        logger.warning("Transcription attempt %d/%d returned no text", attempt + 1, attempts)
    raise TranscriptionFailed("Transcription failed - no text returned") from last_error


__all__ = ["transcribe"]
