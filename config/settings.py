"""Application settings and configuration management."""
from __future__ import annotations

from typing import Dict, List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or defaults."""

    DB_PATH: str = Field(default="data/mock_interviews.db")
    APP_CONFIG_PATH: str = Field(default="app_config.json")

    # Voice activity detection; calibration window and multiplier are tunables.
    VAD_BASE_THRESHOLD: float = Field(default=0.02, gt=0.0)
    VAD_SILENCE_DELAY_MS: int = Field(default=2000, ge=0)
    VAD_CALIBRATION_MS: int = Field(default=300, ge=0)
    VAD_CALIBRATION_MULTIPLIER: float = Field(default=3.0, ge=1.0)
    VAD_SMOOTHING: float = Field(default=0.3, ge=0.0, lt=1.0)
    VAD_START_RETRIES: int = Field(default=2, ge=0)

    AUDIO_SAMPLE_RATE: int = 16000
    AUDIO_FRAME_MS: int = 20
    MIN_TURN_AUDIO_BYTES: int = 1000

    LONG_PAUSE_SECONDS: float = 2.0
    FILLER_WORDS: List[str] = Field(
        default_factory=lambda: [
            "um",
            "uh",
            "like",
            "actually",
            "basically",
            "you know",
            "kind of",
            "sort of",
        ]
    )

    ALLOWED_DURATIONS: List[int] = Field(default_factory=lambda: [15, 20, 30])
    QUESTION_COUNTS: Dict[int, int] = Field(default_factory=lambda: {15: 3, 20: 4, 30: 5})
    DEFAULT_QUESTION_COUNT: int = 3
    TRANSCRIBE_RETRIES: int = 1
    SCORING_RETRIES: int = 1
    HISTORY_ANSWER_PREVIEW_CHARS: int = 500

    model_config = SettingsConfigDict(env_file=".env", validate_assignment=True, extra="ignore")


settings = Settings()
