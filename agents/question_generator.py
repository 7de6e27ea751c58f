"""Question plan for a mock interview session."""
from __future__ import annotations

import logging
from textwrap import dedent
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError

from config.registry import QUESTION_KEY, get_model
from config.settings import settings
from llm_gateway import LlmGatewayError

from .job_context import detect_industry, detect_seniority
from .types import ExchangeType, Question, QuestionType, Seniority

logger = logging.getLogger(__name__)

FALLBACK_QUESTIONS: List[Question] = [
    Question(
        text="Tell me about yourself and walk me through your background.",
        type="behavioral",
        difficulty="easy",
        expectedDuration=120,
        tips=[
            "Start with current role and recent experience",
            "Highlight relevant skills for this position",
            "Keep it concise (2 minutes max)",
        ],
        focusAreas=["Communication", "Relevance", "Clarity"],
    ),
    Question(
        text="Describe a challenging project you worked on. What was your role and how did you overcome obstacles?",
        type="behavioral",
        difficulty="medium",
        expectedDuration=180,
        tips=[
            "Use STAR method (Situation, Task, Action, Result)",
            "Focus on YOUR specific actions",
            "Quantify the impact if possible",
        ],
        focusAreas=["Problem-solving", "Resilience", "Impact"],
    ),
    Question(
        text=(
            "Tell me about a time when you had to work with a difficult team member or stakeholder. "
            "How did you handle it?"
        ),
        type="behavioral",
        difficulty="medium",
        expectedDuration=180,
        tips=[
            "Show emotional intelligence and professionalism",
            "Focus on resolution, not blame",
            "Demonstrate communication and conflict resolution skills",
        ],
        focusAreas=["Collaboration", "Communication", "Conflict Resolution"],
    ),
    Question(
        text=(
            "Describe a situation where you had to learn something new quickly to complete a project or task. "
            "How did you approach it?"
        ),
        type="behavioral",
        difficulty="medium",
        expectedDuration=180,
        tips=[
            "Highlight your learning process",
            "Show resourcefulness and initiative",
            "Explain the outcome and what you learned",
        ],
        focusAreas=["Learning Agility", "Initiative", "Adaptability"],
    ),
    Question(
        text="Tell me about a time when you failed or made a mistake. What did you learn from it?",
        type="behavioral",
        difficulty="hard",
        expectedDuration=180,
        tips=[
            "Choose a real failure (authenticity matters)",
            "Focus on what you learned and how you grew",
            "Show self-awareness and accountability",
        ],
        focusAreas=["Self-awareness", "Growth Mindset", "Accountability"],
    ),
    Question(
        text="Why are you interested in this role and what makes you a good fit?",
        type="values",
        difficulty="easy",
        expectedDuration=120,
        tips=[
            "Connect your experience to job requirements",
            "Show genuine interest in the company/role",
            "Be specific about what excites you",
        ],
        focusAreas=["Motivation", "Cultural Fit", "Alignment"],
    ),
]

_EXCHANGE_TYPES: Dict[QuestionType, ExchangeType] = {
    "behavioral": "behavioral",
    "technical": "technical",
    "leadership": "leadership",
    "situational": "behavioral",
    "values": "behavioral",
}


class QuestionContext(BaseModel):  # Inputs for planning the question list
    duration_minutes: int
    job_title: str = ""
    company_name: str = ""
    job_context: Optional[str] = None
    resume_context: Optional[str] = None
    seniority: Seniority = "mid"
    industry: Optional[str] = None

    @classmethod
    def build(
        cls,
        *,
        duration_minutes: int,
        job_title: str = "",
        company_name: str = "",
        job_context: Optional[str] = None,
        resume_context: Optional[str] = None,
    ) -> "QuestionContext":
        return cls(
            duration_minutes=duration_minutes,
            job_title=job_title,
            company_name=company_name,
            job_context=job_context,
            resume_context=resume_context,
            seniority=detect_seniority(job_title),
            industry=detect_industry(job_context, resume_context),
        )


class QuestionSet(BaseModel):  # Structured output requested from the question service
    questions: List[Question] = Field(min_length=1)


def question_count(duration_minutes: int) -> int:
    return settings.QUESTION_COUNTS.get(duration_minutes, settings.DEFAULT_QUESTION_COUNT)


def exchange_type(question_type: str) -> ExchangeType:
    return _EXCHANGE_TYPES.get(question_type, "behavioral")  # type: ignore[arg-type]


def build_question_task(context: QuestionContext, count: int) -> str:
    job = context.job_context or (
        f"Job Title: {context.job_title or 'Not specified'}\nCompany: {context.company_name or 'Not specified'}"
    )
    return dedent(
        f"""
        You are an expert HR interviewer conducting a realistic behavioral interview.
        Generate {count} personalized interview questions for this candidate.

        Requirements:
        - Reference specific experiences from the resume when one is provided.
        - Match the seniority level ({context.seniority}).
        - Mix difficulty levels: 1-2 easy, the rest medium or hard.
        - Prefer behavioral questions about past experience over hypotheticals.
        - Align the questions with the job requirements.

        Candidate resume:
        {context.resume_context or 'Not provided'}

        Target job:
        {job}

        Interview duration: {context.duration_minutes} minutes

        Respond with a JSON object {{"questions": [...]}}. Each question has:
        text, type (behavioral|technical|situational|leadership|values),
        difficulty (easy|medium|hard), expectedDuration (seconds), tips (list),
        focusAreas (list). Return only JSON.
        """
    ).strip()


def _coerce(raw: Any) -> List[Question]:
    if isinstance(raw, QuestionSet):
        return list(raw.questions)
    if isinstance(raw, dict):
        raw = raw.get("questions", [])
    if not isinstance(raw, list):
        raise ValueError("question service returned an unsupported payload")
    return [item if isinstance(item, Question) else Question.model_validate(item) for item in raw]


def fallback_questions(count: int) -> List[Question]:
    return [q.model_copy() for q in FALLBACK_QUESTIONS[:count]]


def plan_questions(context: QuestionContext) -> List[Question]:
    """Questions for the session, falling back to the built-in list.

    A short answer from the question service is topped up from the built-in
    list so the plan always has ``question_count`` entries.
    """

    count = question_count(context.duration_minutes)
    try:
        generator = get_model(QUESTION_KEY)
    except KeyError:
        logger.info("No question generator bound, using fallback questions")
        return fallback_questions(count)

    try:
        raw = generator(
            inputs={"task": build_question_task(context, count), **context.model_dump()},
            count=count,
            temperature=0.8,
            max_tokens=2000,
        )
        questions = _coerce(raw)
    except (LlmGatewayError, ValidationError, ValueError) as exc:
        logger.warning("Question generation failed, using fallback questions: %s", exc)
        return fallback_questions(count)

    if not questions:
        logger.warning("Question generation returned no questions, using fallback questions")
        return fallback_questions(count)

    planned = questions[:count]
    if len(planned) < count:
        seen = {q.text for q in planned}
        planned.extend(q.model_copy() for q in FALLBACK_QUESTIONS if q.text not in seen)
        planned = planned[:count]
    return planned


__all__ = [
    "FALLBACK_QUESTIONS",
    "QuestionContext",
    "QuestionSet",
    "build_question_task",
    "exchange_type",
    "fallback_questions",
    "plan_questions",
    "question_count",
]
