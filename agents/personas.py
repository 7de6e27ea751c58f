"""Interviewer personas and how one is picked for a job title."""
from __future__ import annotations

import re
from typing import List, Optional

from .types import InterviewerPersona, InterviewerVoiceConfig

FEMALE_PERSONAS: List[InterviewerPersona] = [
    InterviewerPersona(
        voice_id="EXAVITQu4vr4xnSDxMaL",
        name="Sarah Mitchell",
        gender="female",
        default_title="Senior Recruiter",
        personality="Professional, warm, encouraging",
        best_for=["corporate", "tech", "consulting", "finance"],
    ),
    InterviewerPersona(
        voice_id="21m00Tcm4TlvDq8ikWAM",
        name="Emily Johnson",
        gender="female",
        default_title="Talent Acquisition Manager",
        personality="Friendly, conversational, empathetic",
        best_for=["startups", "creative", "marketing", "design"],
    ),
    InterviewerPersona(
        voice_id="ThT5KcBeYPX3keUQqHPh",
        name="Jennifer Davis",
        gender="female",
        default_title="VP of People",
        personality="Experienced, authoritative, insightful",
        best_for=["executive", "leadership", "c-suite", "board"],
    ),
    InterviewerPersona(
        voice_id="MF3mGyEYCl7XYWbV9V6O",
        name="Megan Parker",
        gender="female",
        default_title="HR Coordinator",
        personality="Energetic, enthusiastic, supportive",
        best_for=["entry-level", "internships", "junior roles"],
    ),
    InterviewerPersona(
        voice_id="jsCqWAovK2LkecY7zXl4",
        name="Charlotte Williams",
        gender="female",
        default_title="Global Talent Director",
        personality="Sophisticated, polished, worldly",
        best_for=["international", "consulting", "luxury brands"],
    ),
]

MALE_PERSONAS: List[InterviewerPersona] = [
    InterviewerPersona(
        voice_id="pNInz6obpgDQGcFmaJgB",
        name="Michael Chen",
        gender="male",
        default_title="Senior Recruiter",
        personality="Direct, clear, analytical",
        best_for=["tech", "engineering", "data science", "analytics"],
    ),
    InterviewerPersona(
        voice_id="yoZ06aMxZJJ28mfd3POQ",
        name="David Williams",
        gender="male",
        default_title="Hiring Manager",
        personality="Casual, relaxed, collaborative",
        best_for=["startups", "product", "creative", "remote companies"],
    ),
    InterviewerPersona(
        voice_id="29vD33N1CtxCmqQRPOHJ",
        name="James Anderson",
        gender="male",
        default_title="Director of Engineering",
        personality="Technical, thorough, thoughtful",
        best_for=["engineering", "architecture", "technical leadership"],
    ),
    InterviewerPersona(
        voice_id="VR6AewLTigWG4xSOukaG",
        name="Robert Thompson",
        gender="male",
        default_title="Chief People Officer",
        personality="Commanding, strategic, experienced",
        best_for=["executive", "c-suite", "board", "senior leadership"],
    ),
    InterviewerPersona(
        voice_id="TxGEqnHWrfWFTfGW9XjX",
        name="Alex Martinez",
        gender="male",
        default_title="Talent Scout",
        personality="Energetic, modern, tech-savvy",
        best_for=["tech startups", "gaming", "social media", "web3"],
    ),
    InterviewerPersona(
        voice_id="IKne3meq5aSn9XLyUdCD",
        name="Oliver Bennett",
        gender="male",
        default_title="Global Recruitment Lead",
        personality="Charming, sophisticated, worldly",
        best_for=["consulting", "finance", "international roles"],
    ),
]

ALL_PERSONAS: List[InterviewerPersona] = FEMALE_PERSONAS + MALE_PERSONAS

# (pattern over the lower-cased job title, persona name); first match wins.
_RECOMMENDATIONS = [
    (r"\b(ceo|cto|vp|director|chief|head of|executive)\b", "Jennifer Davis"),
    (r"\b(engineer|developer|architect|backend|frontend|full stack|devops|sre)\b", "Michael Chen"),
    (r"\b(designer|creative|artist|ux|ui|brand)\b", "Emily Johnson"),
    (r"\b(consultant|analyst|advisor|finance|banking|investment)\b", "Charlotte Williams"),
    (r"\b(junior|entry|intern|associate|coordinator)\b", "Megan Parker"),
]

_STARTUP_COMPANY = re.compile(r"startup|early stage|series a|series b|seed")
_CONSULTING_COMPANY = re.compile(r"consulting|mckinsey|bcg|bain")

_TITLES = [
    (r"\b(engineer|developer|architect)", "Engineering Manager"),
    (r"\b(product|pm)\b", "Product Hiring Lead"),
    (r"\b(designer|ux|ui)\b", "Design Lead"),
    (r"\b(data|analyst|scientist)\b", "Data Team Lead"),
    (r"\b(marketing|growth|content)\b", "Marketing Recruiter"),
    (r"\b(sales|account|business development)\b", "Sales Talent Partner"),
    (r"\b(operations|ops|logistics)\b", "Operations Hiring Manager"),
    (r"\b(director|vp|chief|head of)\b", "Executive Recruiter"),
]


def default_persona() -> InterviewerPersona:
    return FEMALE_PERSONAS[0]


def persona_by_voice_id(voice_id: str) -> Optional[InterviewerPersona]:
    return next((p for p in ALL_PERSONAS if p.voice_id == voice_id), None)


def persona_by_name(name: str) -> InterviewerPersona:
    lowered = name.lower()
    return next((p for p in ALL_PERSONAS if p.name.lower() == lowered), default_persona())


def recommend_persona(job_title: Optional[str], company_type: Optional[str] = None) -> InterviewerPersona:
    job = (job_title or "").lower()
    company = (company_type or "").lower()
    for pattern, name in _RECOMMENDATIONS[:3]:
        if re.search(pattern, job):
            return persona_by_name(name)
    if _STARTUP_COMPANY.search(company):
        return persona_by_name("David Williams")
    if re.search(_RECOMMENDATIONS[3][0], job) or _CONSULTING_COMPANY.search(company):
        return persona_by_name("Charlotte Williams")
    if re.search(_RECOMMENDATIONS[4][0], job):
        return persona_by_name("Megan Parker")
    return default_persona()


def persona_title(persona: InterviewerPersona, job_title: Optional[str]) -> str:
    """Title the interviewer introduces themselves with for this job family."""
    if not job_title:
        return persona.default_title
    job = job_title.lower()
    for pattern, title in _TITLES:
        if re.search(pattern, job):
            return title
    return persona.default_title


def voice_config_for(job_title: Optional[str], voice_id: Optional[str] = None) -> InterviewerVoiceConfig:
    persona = persona_by_voice_id(voice_id) if voice_id else None
    if persona is None:
        persona = recommend_persona(job_title)
    return InterviewerVoiceConfig(
        voice_id=persona.voice_id,
        name=persona.name,
        title=persona_title(persona, job_title),
        gender=persona.gender,
    )


def introduction(config: InterviewerVoiceConfig, company_name: Optional[str]) -> str:
    return f"I'm {config.name}, {config.title} at {company_name or 'our company'}."


__all__ = [
    "ALL_PERSONAS",
    "FEMALE_PERSONAS",
    "MALE_PERSONAS",
    "default_persona",
    "introduction",
    "persona_by_voice_id",
    "persona_title",
    "recommend_persona",
    "voice_config_for",
]
