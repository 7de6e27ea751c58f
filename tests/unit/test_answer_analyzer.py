import pytest

from agents.answer_analyzer import analyze_answer, exchange_metrics, history_summary
from config.registry import SCORING_KEY, bind_model
from llm_gateway import LlmGatewayError
from services.errors import AnalysisUnavailable, TranscriptionFailed
from tests.fakes import FakeScorer, judgment

QUESTION = "Tell me about a time you handled a conflict."
ANSWER = "Um, I mediated between two leads and we shipped on time."


def _analyze(**kwargs):
    params = dict(question=QUESTION, question_type="behavioral", transcript=ANSWER)
    params.update(kwargs)
    return analyze_answer(**params)


def test_analysis_combines_judgment_and_metrics(fake_scorer):
    analysis = _analyze(resume_context="Staff engineer", job_context="Platform lead")
    assert analysis.score == 80
    assert analysis.starAnalysis.hasAction
    assert analysis.metrics.filler_count == 1
    call = fake_scorer.calls[0]
    assert call["temperature"] == 0.3
    assert QUESTION in call["inputs"]["task"]
    assert "Staff engineer" in call["inputs"]["task"]


def test_out_of_range_judgment_is_clamped():
    bind_model(
        SCORING_KEY,
        FakeScorer(judgment(score=130.4, specificity=0, relevance=14, impact=5.5, starAnalysis={"completenessScore": 12})),
    )
    analysis = _analyze()
    assert analysis.score == 100
    assert analysis.specificity == 1
    assert analysis.relevance == 10
    assert analysis.impact == 5.5
    assert analysis.starAnalysis.completenessScore == 10


def test_score_rounds_half_up():
    bind_model(SCORING_KEY, FakeScorer(judgment(score=72.5)))
    assert _analyze().score == 73


def test_empty_transcript_is_a_transcription_failure(fake_scorer):
    with pytest.raises(TranscriptionFailed):
        _analyze(transcript="   ")
    assert fake_scorer.calls == []


def test_transient_failure_is_retried():
    scorer = FakeScorer(LlmGatewayError("timeout"), 64)
    bind_model(SCORING_KEY, scorer)
    events = []
    assert _analyze(events=events).score == 64
    assert len(scorer.calls) == 2
    assert [e["span"] for e in events] == ["score_answer", "score_answer"]


def test_persistent_failure_is_unavailable():
    scorer = FakeScorer(ConnectionError("down"))
    bind_model(SCORING_KEY, scorer)
    with pytest.raises(AnalysisUnavailable):
        _analyze()
    assert len(scorer.calls) == 2


def test_malformed_judgment_is_not_retried():
    scorer = FakeScorer({"score": "excellent"})
    bind_model(SCORING_KEY, scorer)
    with pytest.raises(AnalysisUnavailable):
        _analyze()
    assert len(scorer.calls) == 1


def test_unbound_scorer_is_unavailable():
    with pytest.raises(AnalysisUnavailable):
        _analyze()


def test_exchange_metrics_and_history_summary(fake_scorer):
    analysis = _analyze()
    metrics = exchange_metrics(analysis)
    assert metrics["star_analysis"]["completenessScore"] == 7
    assert metrics["specificity"] == 7
    assert metrics["filler_count"] == 1
    summary = history_summary(analysis)
    assert summary["score"] == 80
    assert summary["strengths"] == ["Clear structure", "Specific example"]
