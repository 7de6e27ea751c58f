"""End-of-session report aggregation."""
from __future__ import annotations

from collections import Counter
from typing import Dict, Iterable, List, Sequence

from agents.types import (
    CategoryBreakdown,
    DimensionAverages,
    Exchange,
    InterviewReport,
    QuestionScore,
    SessionStatistics,
)

from .errors import NoAnswersToReport

DEFAULT_STRENGTH = "Clear communication"
DEFAULT_IMPROVEMENT = "Provide more specific examples"

RECOMMENDATIONS = [
    "Practice using the STAR method (Situation, Task, Action, Result) for behavioral questions",
    "Prepare 5-7 strong examples from your experience that showcase different skills",
    "Quantify your impact with specific numbers and metrics whenever possible",
    "Research the company and role thoroughly before interviews",
    "Practice out loud to improve your delivery and confidence",
]

SUMMARY_BANDS = [
    (80, "Excellent interview performance! You demonstrated strong communication skills and provided detailed, relevant examples."),
    (60, "Good interview performance overall. You answered questions well but there are opportunities to strengthen your responses."),
    (40, "Decent interview performance with room for improvement. Focus on providing more specific examples and quantifying your impact."),
]
SUMMARY_FLOOR = (
    "Your interview needs improvement. Work on structuring answers with the STAR method and providing concrete examples."
)


def round_half_up(total: float, count: int) -> int:
    """Mean of ``total`` over ``count`` rounded half-up; exact for integer totals."""
    if isinstance(total, int):
        return (2 * total + count) // (2 * count)
    return int(total / count + 0.5)


def answered(exchanges: Iterable[Exchange]) -> List[Exchange]:
    return [ex for ex in exchanges if ex.is_answered]


def _top(items: Iterable[str], limit: int = 3) -> List[str]:
    return [item for item, _ in Counter(item for item in items if item).most_common(limit)]


def _summary(score: int) -> str:
    for floor, text in SUMMARY_BANDS:
        if score >= floor:
            return text
    return SUMMARY_FLOOR


def _metric(ex: Exchange, key: str, default: float = 0.0) -> float:
    value = ex.metrics.get(key)
    return float(value) if isinstance(value, (int, float)) else default


def _category_breakdown(done: Sequence[Exchange]) -> List[CategoryBreakdown]:
    buckets: Dict[str, List[int]] = {}
    for ex in done:
        buckets.setdefault(ex.question_type, []).append(int(ex.answer_score or 0))
    return [
        CategoryBreakdown(category=category, averageScore=round_half_up(sum(scores), len(scores)), answered=len(scores))
        for category, scores in buckets.items()
    ]


def _dimensions(done: Sequence[Exchange]) -> DimensionAverages:
    count = len(done)

    def mean(values: Iterable[float]) -> float:
        return round(sum(values) / count, 1)

    return DimensionAverages(
        starCompleteness=mean(float(ex.metrics.get("star_analysis", {}).get("completenessScore", 0.0)) for ex in done),
        specificity=mean(_metric(ex, "specificity") for ex in done),
        relevance=mean(_metric(ex, "relevance") for ex in done),
        impact=mean(_metric(ex, "impact") for ex in done),
    )


def _statistics(done: Sequence[Exchange], total: int) -> SessionStatistics:
    count = len(done)
    wpm_total = sum(_metric(ex, "wpm") for ex in done)
    return SessionStatistics(
        totalDurationSeconds=round(sum(_metric(ex, "duration_seconds") for ex in done), 2),
        averageWPM=round_half_up(wpm_total, count),
        totalFillerWords=sum(int(_metric(ex, "filler_count")) for ex in done),
        totalLongPauses=sum(int(_metric(ex, "long_pause_count")) for ex in done),
        questionsAnswered=count,
        questionsSkipped=total - count,
        totalQuestions=total,
    )


def _detailed_feedback(score: int, done: Sequence[Exchange], strengths: List[str], improvements: List[str]) -> str:
    best = max(done, key=lambda ex: (ex.answer_score or 0, -ex.order_index))
    lines = [
        f"Overall, you scored {score}/100 across {len(done)} interview questions.",
        "",
        f"Your strongest areas include: {', '.join(strengths) if strengths else 'communication and clarity'}.",
        "",
        "To improve your interview performance, focus on: "
        + (", ".join(improvements) if improvements else "providing more specific examples and quantifying results")
        + ".",
        "",
        f'Your best answer was to "{best.question_text}" with a score of {best.answer_score}/100.',
    ]
    return "\n".join(lines)


def aggregate_report(exchanges: Sequence[Exchange], *, generated_at: str) -> InterviewReport:
    """Build the final report from a session's exchanges.

    Only exchanges with both an answer and a score count; the rest are
    reported as skipped. Raises ``NoAnswersToReport`` when none qualify.
    """

    ordered = sorted(exchanges, key=lambda ex: ex.order_index)
    done = answered(ordered)
    if not done:
        raise NoAnswersToReport("No questions have been answered yet")

    overall = round_half_up(sum(int(ex.answer_score or 0) for ex in done), len(done))
    strengths = _top(s for ex in done for s in ex.strengths)
    improvements = _top(i for ex in done for i in ex.improvements)

    return InterviewReport(
        overallScore=overall,
        summary=_summary(overall),
        keyStrengths=strengths or [DEFAULT_STRENGTH],
        areasForImprovement=improvements or [DEFAULT_IMPROVEMENT],
        detailedFeedback=_detailed_feedback(overall, done, strengths, improvements),
        recommendations=list(RECOMMENDATIONS),
        questionScores=[
            QuestionScore(question=ex.question_text, type=ex.question_type, score=int(ex.answer_score or 0), feedback=ex.feedback)
            for ex in done
        ],
        categoryBreakdown=_category_breakdown(done),
        dimensions=_dimensions(done),
        statistics=_statistics(done, len(ordered)),
        generatedAt=generated_at,
    )


__all__ = ["RECOMMENDATIONS", "aggregate_report", "answered", "round_half_up"]
