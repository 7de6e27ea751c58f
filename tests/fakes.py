"""Fake collaborators bound into the model registry by tests."""
import threading

from agents.types import Transcription, WordTiming


def judgment(score=75, **overrides):
    payload = {
        "score": score,
        "strengths": ["Clear structure", "Specific example"],
        "improvements": ["Quantify results"],
        "detailedFeedback": "Solid answer with a clear situation and actions.",
        "starAnalysis": {
            "hasSituation": True,
            "hasTask": True,
            "hasAction": True,
            "hasResult": False,
            "completenessScore": 7,
        },
        "specificity": 7,
        "relevance": 8,
        "impact": 6,
        "suggestions": ["Close with a measurable outcome"],
    }
    payload.update(overrides)
    return payload


class FakeScorer:
    """Returns queued judgments in order, then repeats the last one."""

    def __init__(self, *scores):
        self.scores = list(scores) or [75]
        self.calls = []

    def __call__(self, **kwargs):
        self.calls.append(kwargs)
        index = min(len(self.calls) - 1, len(self.scores) - 1)
        item = self.scores[index]
        if isinstance(item, BaseException):
            raise item
        if isinstance(item, dict):
            return item
        return judgment(item)


class FakeStt:
    def __init__(self, transcript="I led the migration and we cut latency by forty percent."):
        self.transcript = transcript
        self.calls = []

    def __call__(self, *, audio, mime_type="audio/wav"):
        self.calls.append({"bytes": len(audio), "mime_type": mime_type})
        words = [
            WordTiming(word=word, start=index * 0.4, end=index * 0.4 + 0.3)
            for index, word in enumerate(self.transcript.split())
        ]
        return Transcription(transcript=self.transcript, words=words, confidence=0.93)




class GatedScorer(FakeScorer):
    """Holds the ``gated_call``-th judgment until ``release`` is set."""

    def __init__(self, *scores, gated_call=1):
        super().__init__(*scores)
        self.gated_call = gated_call
        self.entered = threading.Event()
        self.release = threading.Event()

    def __call__(self, **kwargs):
        if len(self.calls) + 1 == self.gated_call:
            self.entered.set()
            self.release.wait(5)
        return super().__call__(**kwargs)
