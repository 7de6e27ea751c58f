"""Configuration package for the mock interview services."""
from .app import AppConfig, LlmRoute, SttRoute, load_config, resolve_registry
from .registry import (
    QUESTION_KEY,
    SCORING_KEY,
    STT_KEY,
    ModelRegistry,
    bind_model,
    default_registry,
    get_model,
)
from .settings import Settings, settings

__all__ = [
    "AppConfig",
    "LlmRoute",
    "SttRoute",
    "load_config",
    "resolve_registry",
    "QUESTION_KEY",
    "SCORING_KEY",
    "STT_KEY",
    "ModelRegistry",
    "bind_model",
    "default_registry",
    "get_model",
    "Settings",
    "settings",
]
