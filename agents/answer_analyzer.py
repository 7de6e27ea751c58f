"""Answer analysis: delegated scoring judgment plus locally computed speech metrics."""
from __future__ import annotations

import logging
from textwrap import dedent
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError

from config.registry import SCORING_KEY, get_model
from config.settings import settings
from llm_gateway import LlmGatewayError
from observability import span
from services.errors import AnalysisUnavailable, TranscriptionFailed
from services.speech_metrics import compute_speech_metrics

from .types import AnswerAnalysis, ScoringJudgment, SpeechMetrics, StarAnalysis, WordTiming

logger = logging.getLogger(__name__)

_TRANSIENT = (LlmGatewayError, TimeoutError, ConnectionError)


def build_scoring_task(
    *,
    question: str,
    question_type: str,
    answer: str,
    resume_context: Optional[str] = None,
    job_context: Optional[str] = None,
) -> str:
    background = f"\nCandidate background:\n{resume_context}\n" if resume_context else ""
    target = f"\nTarget job:\n{job_context}\n" if job_context else ""
    return dedent(
        f"""
        You are an expert interview coach analyzing a candidate's interview answer.

        Evaluate the answer on:
        1. STAR framework completeness (Situation, Task, Action, Result)
        2. Specificity (concrete details vs vague generalizations)
        3. Relevance (how well it answers the question)
        4. Impact (quantified results, measurable outcomes)

        Question: {question}
        Question type: {question_type}

        Candidate answer:
        {answer}
        """
    ).strip() + background + target + dedent(
        """

        Respond with a JSON object containing:
        - score: overall quality from 0 to 100
        - strengths, improvements, suggestions: short lists of specific points
        - detailedFeedback: one paragraph
        - starAnalysis: hasSituation, hasTask, hasAction, hasResult (booleans) and completenessScore (0-10)
        - specificity, relevance, impact: each from 1 to 10
        Return only JSON.
        """
    ).rstrip()


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, float(value)))


def to_analysis(judgment: ScoringJudgment, metrics: SpeechMetrics) -> AnswerAnalysis:
    star = judgment.starAnalysis
    return AnswerAnalysis(
        score=int(_clamp(judgment.score, 0, 100) + 0.5),
        strengths=[s for s in judgment.strengths if s.strip()],
        improvements=[i for i in judgment.improvements if i.strip()],
        detailedFeedback=judgment.detailedFeedback,
        starAnalysis=StarAnalysis(
            hasSituation=star.hasSituation,
            hasTask=star.hasTask,
            hasAction=star.hasAction,
            hasResult=star.hasResult,
            completenessScore=_clamp(star.completenessScore, 0, 10),
        ),
        specificity=_clamp(judgment.specificity, 1, 10),
        relevance=_clamp(judgment.relevance, 1, 10),
        impact=_clamp(judgment.impact, 1, 10),
        suggestions=list(judgment.suggestions),
        metrics=metrics,
    )


def _parse(raw: Any) -> ScoringJudgment:
    if isinstance(raw, ScoringJudgment):
        return raw
    if isinstance(raw, str):
        return ScoringJudgment.model_validate_json(raw)
    return ScoringJudgment.model_validate(raw)


def analyze_answer(
    *,
    question: str,
    question_type: str,
    transcript: str,
    words: Sequence[WordTiming] = (),
    confidence: Optional[float] = None,
    resume_context: Optional[str] = None,
    job_context: Optional[str] = None,
    events: Optional[List[Dict[str, Any]]] = None,
) -> AnswerAnalysis:
    """Score one answer.

    Transient failures of the scoring service are retried
    ``settings.SCORING_RETRIES`` times; malformed judgments are not retried.

    Raises:
        TranscriptionFailed: If the transcript is empty.
        AnalysisUnavailable: If no valid judgment could be obtained.
    """

    if not transcript.strip():
        raise TranscriptionFailed("Answer transcript is empty")
    metrics = compute_speech_metrics(transcript, words, confidence=confidence)

    try:
        scorer = get_model(SCORING_KEY)
    except KeyError as exc:
        raise AnalysisUnavailable("No scoring service configured") from exc

    inputs = {
        "task": build_scoring_task(
            question=question,
            question_type=question_type,
            answer=transcript,
            resume_context=resume_context,
            job_context=job_context,
        ),
        "question": question,
        "question_type": question_type,
        "answer": transcript,
        "resume_context": resume_context,
        "job_context": job_context,
    }
    attempts = settings.SCORING_RETRIES + 1
    last_error: Optional[Exception] = None
    for attempt in range(attempts):
        try:
            with span(events, "score_answer"):
                raw = scorer(inputs=inputs, temperature=0.3, max_tokens=1000)
        except _TRANSIENT as exc:
            last_error = exc
            logger.warning("Scoring attempt %d/%d failed: %s", attempt + 1, attempts, exc)
            continue
        try:
            judgment = _parse(raw)
        except (ValidationError, ValueError, TypeError) as exc:
            logger.warning("Scoring judgment malformed: %s", exc)
            raise AnalysisUnavailable("Scoring service returned malformed data") from exc
        return to_analysis(judgment, metrics)
    raise AnalysisUnavailable("Scoring service unavailable") from last_error


def exchange_metrics(analysis: AnswerAnalysis) -> Dict[str, Any]:
    """Flatten an analysis into the metrics stored on its exchange."""

    metrics = analysis.metrics.model_dump()
    metrics.update(
        {
            "star_analysis": analysis.starAnalysis.model_dump(),
            "specificity": analysis.specificity,
            "relevance": analysis.relevance,
            "impact": analysis.impact,
            "suggestions": list(analysis.suggestions),
        }
    )
    return metrics


def history_summary(analysis: AnswerAnalysis) -> Dict[str, Any]:
    return {
        "score": analysis.score,
        "strengths": analysis.strengths[:3],
        "improvements": analysis.improvements[:3],
        "star": analysis.starAnalysis.model_dump(),
        "wpm": analysis.metrics.wpm,
        "filler_count": analysis.metrics.filler_count,
    }


__all__ = ["analyze_answer", "build_scoring_task", "exchange_metrics", "history_summary", "to_analysis"]
