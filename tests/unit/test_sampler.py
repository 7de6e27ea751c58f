import asyncio

import numpy as np
import pytest

from audio.sampler import AmplitudeFrame, AudioLevelSampler, QueueAmplitudeSource, rms_of, wav_bytes


def _pcm(value, samples):
    return np.full(samples, value, dtype="<i2").tobytes()


def test_rms_of_half_scale_tone():
    assert rms_of(_pcm(16384, 160)) == pytest.approx(0.5)
    assert rms_of(_pcm(0, 160)) == 0.0
    assert rms_of(b"") == 0.0


def test_sampler_slices_frames_in_stream_time():
    frame = 320 * 2
    audio = _pcm(16384, 320) + _pcm(0, 320) + _pcm(8192, 320) + _pcm(8192, 100)
    chunks = [audio[:500], audio[500:1700], audio[1700:]]

    async def collect():
        sampler = AudioLevelSampler(chunks, sample_rate=16000, frame_ms=20)
        assert sampler.frame_bytes == frame
        return [item async for item in sampler]

    frames = asyncio.run(collect())
    assert [f.timestamp_ms for f in frames] == [20, 40, 60]
    assert frames[0].rms == pytest.approx(0.5)
    assert frames[1].rms == 0.0
    assert frames[2].rms == pytest.approx(0.25)


def test_queue_source_drains_until_closed():
    async def scenario():
        source = QueueAmplitudeSource()
        source.push(AmplitudeFrame(rms=0.1, timestamp_ms=10))
        source.push(AmplitudeFrame(rms=0.2, timestamp_ms=20))
        source.close()
        with pytest.raises(RuntimeError):
            source.push(AmplitudeFrame(rms=0.3, timestamp_ms=30))
        return [frame.rms async for frame in source]

    assert asyncio.run(scenario()) == [0.1, 0.2]


def test_wav_bytes_wraps_pcm():
    pcm = _pcm(100, 1600)
    wav = wav_bytes(pcm, sample_rate=16000)
    assert wav[:4] == b"RIFF"
    assert wav[8:12] == b"WAVE"
    assert len(wav) == 44 + len(pcm)
