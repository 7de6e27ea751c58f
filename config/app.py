from __future__ import annotations  # Configuration schema for external model routing

from pathlib import Path
from typing import Dict, Iterable, Optional

from pydantic import BaseModel, Field


class LlmRoute(BaseModel):  # Chat-completion endpoint configuration
    name: str
    base_url: str
    endpoint: str
    model: str
    timeout_s: float = Field(ge=0.1)
    max_retries: int = Field(default=2, ge=0)
    api_key_env: str | None = None
    response_format: str | None = None
    extra_headers: Dict[str, str] = Field(default_factory=dict)
    sequential: bool = False
    enforce_json: bool = True


class SttRoute(BaseModel):  # Speech-to-text endpoint configuration
    base_url: str = "https://api.deepgram.com"
    endpoint: str = "/v1/listen"
    model: str = "nova-2"
    language: str = "en"
    timeout_s: float = Field(default=30.0, ge=0.1)
    api_key_env: str | None = "DEEPGRAM_API_KEY"


class AppConfig(BaseModel):  # Application configuration root
    llm_routes: Dict[str, LlmRoute]
    registry: Dict[str, str]
    stt: Optional[SttRoute] = None


def load_config(path: Path) -> AppConfig:  # Load configuration from disk
    data = path.read_text(encoding="utf-8")
    return AppConfig.model_validate_json(data)


def resolve_registry(cfg: AppConfig, targets: Iterable[str]) -> Dict[str, LlmRoute]:  # Map task names to routes
    resolved: Dict[str, LlmRoute] = {}
    for target in targets:
        if target not in cfg.registry:
            raise KeyError(f"Registry entry missing for '{target}'")
        route_id = cfg.registry[target]
        if route_id not in cfg.llm_routes:
            raise KeyError(f"Route '{route_id}' missing for '{target}'")
        resolved[target] = cfg.llm_routes[route_id]
    return resolved
