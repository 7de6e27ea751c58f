"""Pydantic schemas for the mock interview API."""
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from agents.types import (
    AnswerAnalysis,
    Exchange,
    InterviewerVoiceConfig,
    InterviewReport,
    Phase,
    SessionStatistics,
    SessionStatus,
    SpeechMetrics,
    WordTiming,
)
from services.sessions import SessionProgress


class CreateSessionReq(BaseModel):
    durationMinutes: int
    jobTitle: str = ""
    companyName: str = ""
    jobContext: Optional[str] = None
    resumeContext: Optional[str] = None
    candidateName: str = ""
    voiceId: Optional[str] = None


class ReplyReq(BaseModel):
    text: str = Field(min_length=1)


class AnswerReq(BaseModel):
    questionId: str
    transcript: str
    words: List[WordTiming] = Field(default_factory=list)
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)


class SessionSummary(BaseModel):
    id: str
    status: SessionStatus
    currentPhase: Phase
    durationMinutes: int
    jobTitle: str
    companyName: str
    overallScore: Optional[int] = None
    createdAt: str
    completedAt: Optional[str] = None


class CreateSessionResp(BaseModel):
    session: SessionSummary
    questions: List[Exchange]
    interviewerVoiceConfig: InterviewerVoiceConfig


class SessionDetailResp(BaseModel):
    session: SessionSummary
    exchanges: List[Exchange]
    interviewer: InterviewerVoiceConfig
    progress: SessionProgress
    report: Optional[InterviewReport] = None


class LineResp(BaseModel):
    phase: Phase
    text: str
    question: Optional[Exchange] = None
    progress: SessionProgress


class TranscribeResp(BaseModel):
    transcript: str
    words: List[WordTiming]
    confidence: float
    metrics: SpeechMetrics


class AnswerResp(BaseModel):
    analysis: AnswerAnalysis
    acknowledgement: str
    nextQuestion: Optional[Exchange] = None
    sessionFinished: bool
    progress: SessionProgress


class CompleteResp(BaseModel):
    report: InterviewReport
    statistics: SessionStatistics
    alreadyCompleted: bool

