from agents.question_generator import (
    FALLBACK_QUESTIONS,
    QuestionContext,
    build_question_task,
    exchange_type,
    plan_questions,
    question_count,
)
from config.registry import QUESTION_KEY, bind_model
from llm_gateway import LlmGatewayError


def _context(duration=20, **kwargs):
    return QuestionContext.build(duration_minutes=duration, **kwargs)


def test_question_count_by_duration():
    assert [question_count(d) for d in (15, 20, 30)] == [3, 4, 5]
    assert question_count(45) == 3


def test_context_detects_seniority_and_industry():
    context = _context(job_title="Senior Backend Engineer", job_context="We build a SaaS platform")
    assert context.seniority == "senior"
    assert context.industry == "tech"


def test_task_mentions_resume_and_count():
    context = _context(30, job_title="Product Manager", resume_context="Led checkout redesign at Acme")
    task = build_question_task(context, 5)
    assert "Generate 5 personalized" in task
    assert "Led checkout redesign at Acme" in task
    assert "Job Title: Product Manager" in task


def test_generated_questions_are_used(fake_generator):
    questions = plan_questions(_context(20, job_title="Engineer"))
    assert [q.text for q in questions] == [f"Generated question {i}?" for i in range(1, 5)]
    call = fake_generator[0]
    assert call["count"] == 4
    assert call["temperature"] == 0.8
    assert call["inputs"]["job_title"] == "Engineer"


def test_unbound_generator_uses_fallback():
    questions = plan_questions(_context(15))
    assert [q.text for q in questions] == [q.text for q in FALLBACK_QUESTIONS[:3]]


def test_generator_error_uses_fallback():
    def broken(**_):
        raise LlmGatewayError("boom")

    bind_model(QUESTION_KEY, broken)
    assert len(plan_questions(_context(30))) == 5


def test_empty_result_uses_fallback():
    bind_model(QUESTION_KEY, lambda **_: {"questions": []})
    assert plan_questions(_context(15))[0].text == FALLBACK_QUESTIONS[0].text


def test_short_result_is_topped_up():
    bind_model(QUESTION_KEY, lambda **_: {"questions": [{"text": "Why this company?"}]})
    questions = plan_questions(_context(20))
    assert len(questions) == 4
    assert questions[0].text == "Why this company?"
    assert questions[1].text == FALLBACK_QUESTIONS[0].text


def test_long_result_is_truncated():
    bind_model(QUESTION_KEY, lambda **_: [{"text": f"Q{i}"} for i in range(9)])
    assert [q.text for q in plan_questions(_context(15))] == ["Q0", "Q1", "Q2"]


def test_exchange_type_folds_other_categories():
    assert exchange_type("situational") == "behavioral"
    assert exchange_type("technical") == "technical"
    assert exchange_type("leadership") == "leadership"
