"""Speech delivery metrics computed from a transcript and its word timings."""
from __future__ import annotations

import re
from typing import Optional, Sequence

from agents.types import SpeechMetrics, WordTiming
from config.settings import settings

# Multi-word fillers are also counted once per answer when present anywhere in the transcript.
FILLER_PHRASES = ("you know", "kind of", "sort of")

_PUNCT = re.compile(r"[^\w']+")


def _normalize(word: str) -> str:
    return _PUNCT.sub("", word.lower())


def count_fillers(transcript: str, words: Optional[Sequence[str]] = None) -> int:
    """Per-word filler matches plus one per filler phrase found in the text.

    Without timed words the transcript is split on whitespace.
    """

    vocabulary = {item.lower() for item in settings.FILLER_WORDS}
    tokens = words if words is not None else transcript.split()
    count = sum(1 for token in tokens if _normalize(token) in vocabulary)
    lowered = transcript.lower()
    count += sum(1 for phrase in FILLER_PHRASES if phrase in lowered)
    return count


def count_long_pauses(words: Sequence[WordTiming], *, threshold_s: Optional[float] = None) -> int:
    limit = settings.LONG_PAUSE_SECONDS if threshold_s is None else threshold_s
    return sum(1 for prev, cur in zip(words, words[1:]) if cur.start - prev.end > limit)


def speaking_span_seconds(words: Sequence[WordTiming]) -> float:
    if not words:
        return 0.0
    return max(0.0, words[-1].end - words[0].start)


def words_per_minute(word_count: int, span_seconds: float) -> int:
    if span_seconds <= 0:
        return 0
    return int(word_count / (span_seconds / 60) + 0.5)


def compute_speech_metrics(
    transcript: str,
    words: Sequence[WordTiming] = (),
    *,
    confidence: Optional[float] = None,
) -> SpeechMetrics:
    span = speaking_span_seconds(words)
    word_count = len(words) if words else len(transcript.split())
    return SpeechMetrics(
        wpm=words_per_minute(len(words), span),
        filler_count=count_fillers(transcript, [w.word for w in words] if words else None),
        long_pause_count=count_long_pauses(words),
        duration_seconds=round(span, 2),
        word_count=word_count,
        confidence=confidence,
    )


__all__ = [
    "FILLER_PHRASES",
    "compute_speech_metrics",
    "count_fillers",
    "count_long_pauses",
    "speaking_span_seconds",
    "words_per_minute",
]
