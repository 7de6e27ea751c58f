"""Amplitude sources feeding the voice activity detector.

Frames are timestamped in stream time (milliseconds of audio consumed), so
detection behaves identically whether audio arrives live or from a buffer.
"""
from __future__ import annotations

import asyncio
import io
import wave
from dataclasses import dataclass
from typing import AsyncIterable, AsyncIterator, Iterable, Optional, Protocol, Union

import numpy as np

from config.settings import settings

_INT16_FULL_SCALE = 32768.0


@dataclass(frozen=True)
class AmplitudeFrame:
    rms: float
    timestamp_ms: float


class AmplitudeSource(Protocol):
    def __aiter__(self) -> AsyncIterator[AmplitudeFrame]: ...


def rms_of(pcm: bytes) -> float:
    """Normalized RMS (0..1) of little-endian 16-bit PCM."""

    if len(pcm) < 2:
        return 0.0
    samples = np.frombuffer(pcm[: len(pcm) - len(pcm) % 2], dtype="<i2").astype(np.float32)
    return float(np.sqrt(np.mean(np.square(samples / _INT16_FULL_SCALE))))


def wav_bytes(pcm: bytes, *, sample_rate: Optional[int] = None) -> bytes:
    """Wrap mono 16-bit PCM in a WAV container for upload."""

    out = io.BytesIO()
    with wave.open(out, "wb") as wav:
        wav.setnchannels(1)
        wav.setsampwidth(2)
        wav.setframerate(sample_rate or settings.AUDIO_SAMPLE_RATE)
        wav.writeframes(pcm)
    return out.getvalue()


class AudioLevelSampler:
    """Slice a PCM16 byte stream into fixed frames and yield their RMS.

    ``chunks`` may be sync or async and of any size; a trailing partial frame
    is dropped.
    """

    def __init__(
        self,
        chunks: Union[Iterable[bytes], AsyncIterable[bytes]],
        *,
        sample_rate: Optional[int] = None,
        frame_ms: Optional[int] = None,
    ) -> None:
        self._chunks = chunks
        self.sample_rate = sample_rate or settings.AUDIO_SAMPLE_RATE
        self.frame_ms = frame_ms or settings.AUDIO_FRAME_MS
        self.frame_bytes = int(self.sample_rate * self.frame_ms / 1000) * 2

    async def _iter_chunks(self) -> AsyncIterator[bytes]:
        if hasattr(self._chunks, "__aiter__"):
            async for chunk in self._chunks:  # type: ignore[union-attr]
                yield chunk
        else:
            for chunk in self._chunks:  # type: ignore[union-attr]
                yield chunk

    async def __aiter__(self) -> AsyncIterator[AmplitudeFrame]:
        buffer = bytearray()
        elapsed_ms = 0.0
        async for chunk in self._iter_chunks():
            buffer.extend(chunk)
            while len(buffer) >= self.frame_bytes:
                frame = bytes(buffer[: self.frame_bytes])
                del buffer[: self.frame_bytes]
                elapsed_ms += self.frame_ms
                yield AmplitudeFrame(rms=rms_of(frame), timestamp_ms=elapsed_ms)


_CLOSED = object()


class QueueAmplitudeSource:
    """Push-based source; producers enqueue frames, the detector drains them."""

    def __init__(self, maxsize: int = 0) -> None:
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._closed = False

    def push(self, frame: AmplitudeFrame) -> None:
        if self._closed:
            raise RuntimeError("amplitude source is closed")
        self._queue.put_nowait(frame)

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(_CLOSED)

    async def __aiter__(self) -> AsyncIterator[AmplitudeFrame]:
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                return
            yield item


__all__ = ["AmplitudeFrame", "AmplitudeSource", "AudioLevelSampler", "QueueAmplitudeSource", "rms_of", "wav_bytes"]
