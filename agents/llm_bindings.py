from __future__ import annotations  # Bind HTTP-backed collaborators into the model registry

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from agents.types import ScoringJudgment, Transcription
from config import (
    QUESTION_KEY,
    SCORING_KEY,
    STT_KEY,
    LlmRoute,
    ModelRegistry,
    default_registry,
    load_config,
    resolve_registry,
)
from llm_gateway import call, transcribe_audio

from .question_generator import QuestionSet

logger = logging.getLogger(__name__)

QUESTION_TARGET = "question_generation"
SCORING_TARGET = "answer_scoring"


def _question_generator(route: LlmRoute):  # Closure matching plan_questions' call shape
    def generate(*, inputs: Dict[str, Any], count: int, temperature: float, max_tokens: int) -> QuestionSet:
        return call(
            inputs["task"],
            QuestionSet,
            cfg=route,
            options={"temperature": temperature, "max_tokens": max_tokens},
        )

    return generate


def _answer_scorer(route: LlmRoute):  # Closure matching analyze_answer's call shape
    def score(*, inputs: Dict[str, Any], temperature: float, max_tokens: int) -> ScoringJudgment:
        return call(
            inputs["task"],
            ScoringJudgment,
            cfg=route,
            options={"temperature": temperature, "max_tokens": max_tokens},
        )

    return score


def bind_default_models(config_path: Path, *, registry: Optional[ModelRegistry] = None) -> List[str]:
    """Bind question generation, answer scoring and speech-to-text from ``config_path``.

    Returns the registry keys that were bound.
    """

    target = registry or default_registry
    cfg = load_config(config_path)
    routes = resolve_registry(cfg, [QUESTION_TARGET, SCORING_TARGET])
    target.bind(QUESTION_KEY, _question_generator(routes[QUESTION_TARGET]))
    target.bind(SCORING_KEY, _answer_scorer(routes[SCORING_TARGET]))
    bound = [QUESTION_KEY, SCORING_KEY]

    stt = cfg.stt
    if stt is not None:

        def speech_to_text(*, audio: bytes, mime_type: str = "audio/wav") -> Transcription:
            return transcribe_audio(audio, cfg=stt, mime_type=mime_type)

        target.bind(STT_KEY, speech_to_text)
        bound.append(STT_KEY)

    logger.info("Bound models from %s: %s", config_path, ", ".join(bound))
    return bound


__all__ = ["QUESTION_TARGET", "SCORING_TARGET", "bind_default_models"]
