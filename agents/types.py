"""Shared type definitions for the mock interview domain."""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

QuestionType = Literal["behavioral", "technical", "situational", "leadership", "values"]
ExchangeType = Literal["behavioral", "technical", "leadership"]
Difficulty = Literal["easy", "medium", "hard"]
Seniority = Literal["entry", "mid", "senior", "lead", "executive"]
HistoryKind = Literal["ai_utterance", "user_response", "answer_analysis", "phase_transition"]


class Phase(str, Enum):
    WELCOME = "welcome"
    SMALL_TALK = "small_talk"
    COMPANY_INTRO = "company_intro"
    QUESTIONS = "questions"
    WRAP_UP = "wrap_up"
    COMPLETED = "completed"


class SessionStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class Question(BaseModel):
    text: str = Field(min_length=1)
    type: QuestionType = "behavioral"
    difficulty: Difficulty = "medium"
    expectedDuration: int = Field(default=180, ge=0)
    tips: List[str] = Field(default_factory=list)
    focusAreas: List[str] = Field(default_factory=list)


class WordTiming(BaseModel):
    word: str
    start: float = Field(ge=0.0)
    end: float = Field(ge=0.0)


class Transcription(BaseModel):
    transcript: str
    words: List[WordTiming] = Field(default_factory=list)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)


class SpeechMetrics(BaseModel):
    wpm: int = 0
    filler_count: int = 0
    long_pause_count: int = 0
    duration_seconds: float = 0.0
    word_count: int = 0
    confidence: Optional[float] = None


class StarAnalysis(BaseModel):
    hasSituation: bool = False
    hasTask: bool = False
    hasAction: bool = False
    hasResult: bool = False
    completenessScore: float = Field(default=0.0, ge=0.0, le=10.0)


class StarJudgment(BaseModel):
    hasSituation: bool = False
    hasTask: bool = False
    hasAction: bool = False
    hasResult: bool = False
    completenessScore: float = 0.0


class ScoringJudgment(BaseModel):
    """Fields returned by the reasoning service for one answer."""

    score: float
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    detailedFeedback: str = ""
    starAnalysis: StarJudgment = Field(default_factory=StarJudgment)
    specificity: float
    relevance: float
    impact: float
    suggestions: List[str] = Field(default_factory=list)


class AnswerAnalysis(BaseModel):
    score: int = Field(ge=0, le=100)
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    detailedFeedback: str = ""
    starAnalysis: StarAnalysis = Field(default_factory=StarAnalysis)
    specificity: float = Field(ge=1.0, le=10.0)
    relevance: float = Field(ge=1.0, le=10.0)
    impact: float = Field(ge=1.0, le=10.0)
    suggestions: List[str] = Field(default_factory=list)
    metrics: SpeechMetrics = Field(default_factory=SpeechMetrics)


class Exchange(BaseModel):
    id: str
    session_id: str
    order_index: int = Field(ge=0)
    question_text: str
    question_type: ExchangeType = "behavioral"
    user_answer_text: Optional[str] = None
    answer_score: Optional[int] = None
    feedback: str = ""
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    metrics: Dict[str, Any] = Field(default_factory=dict)
    answered_at: Optional[str] = None

    @property
    def is_answered(self) -> bool:
        return self.user_answer_text is not None and self.answer_score is not None


class HistoryEntry(BaseModel):
    type: HistoryKind
    phase: Phase
    timestamp: str
    text: str = ""
    data: Dict[str, Any] = Field(default_factory=dict)


class InterviewerPersona(BaseModel):
    voice_id: str
    name: str
    gender: Literal["female", "male"]
    default_title: str
    personality: str
    best_for: List[str] = Field(default_factory=list)


class InterviewerVoiceConfig(BaseModel):
    voice_id: str
    name: str
    title: str
    gender: Literal["female", "male"]


class QuestionScore(BaseModel):
    question: str
    type: ExchangeType
    score: int
    feedback: str = ""


class CategoryBreakdown(BaseModel):
    category: str
    averageScore: int
    answered: int


class DimensionAverages(BaseModel):
    starCompleteness: float = 0.0
    specificity: float = 0.0
    relevance: float = 0.0
    impact: float = 0.0


class SessionStatistics(BaseModel):
    totalDurationSeconds: float = 0.0
    averageWPM: int = 0
    totalFillerWords: int = 0
    totalLongPauses: int = 0
    questionsAnswered: int = 0
    questionsSkipped: int = 0
    totalQuestions: int = 0


class InterviewReport(BaseModel):
    overallScore: int = Field(ge=0, le=100)
    summary: str
    keyStrengths: List[str]
    areasForImprovement: List[str]
    detailedFeedback: str
    recommendations: List[str]
    questionScores: List[QuestionScore]
    categoryBreakdown: List[CategoryBreakdown]
    dimensions: DimensionAverages
    statistics: SessionStatistics
    generatedAt: str


class Session(BaseModel):
    id: str
    user_id: str
    status: SessionStatus = SessionStatus.IN_PROGRESS
    current_phase: Phase = Phase.WELCOME
    duration_minutes: int
    questions: List[Question] = Field(default_factory=list)
    current_question_index: int = Field(default=0, ge=0)
    total_questions: int = Field(default=0, ge=0)
    candidate_name: str = ""
    job_title: str = ""
    company_name: str = ""
    resume_context: Optional[str] = None
    job_context: Optional[str] = None
    interviewer: InterviewerVoiceConfig
    history: List[HistoryEntry] = Field(default_factory=list)
    final_report: Optional[InterviewReport] = None
    overall_score: Optional[int] = None
    created_at: str
    updated_at: str
    completed_at: Optional[str] = None

    @property
    def question_budget_seconds(self) -> float:
        if self.total_questions <= 0:
            return float(self.duration_minutes * 60)
        return self.duration_minutes * 60 / self.total_questions


__all__ = [
    "AnswerAnalysis",
    "CategoryBreakdown",
    "DimensionAverages",
    "Exchange",
    "ExchangeType",
    "HistoryEntry",
    "InterviewReport",
    "InterviewerPersona",
    "InterviewerVoiceConfig",
    "Phase",
    "Question",
    "QuestionScore",
    "QuestionType",
    "ScoringJudgment",
    "Seniority",
    "Session",
    "SessionStatistics",
    "SessionStatus",
    "SpeechMetrics",
    "StarAnalysis",
    "StarJudgment",
    "Transcription",
    "WordTiming",
]
