from __future__ import annotations  # Speech-to-text provider gateway

import logging
import os
from typing import Any, Optional

import httpx

from agents.types import Transcription, WordTiming
from config import SttRoute

from .llm_gateway import HttpClient, LlmGatewayError

logger = logging.getLogger(__name__)


def transcribe_audio(
    audio: bytes,
    *,
    cfg: SttRoute,
    mime_type: str = "audio/wav",
    client: Optional[HttpClient] = None,
) -> Transcription:
    """Send one recorded turn to the STT route and parse the first alternative."""

    params = f"model={cfg.model}&language={cfg.language}&punctuate=true&smart_format=true"
    url = f"{cfg.base_url}{cfg.endpoint}?{params}"
    headers = {"Content-Type": mime_type}
    if cfg.api_key_env:
        api_key = os.getenv(cfg.api_key_env)
        if api_key:
            headers["Authorization"] = f"Token {api_key}"
    logger.info("STT request start model=%s bytes=%d", cfg.model, len(audio))
    try:
        if client is not None:
            response = client.post(url, content=audio, headers=headers, timeout=cfg.timeout_s)  # type: ignore[call-arg]
        else:
            with httpx.Client(timeout=cfg.timeout_s) as http_client:
                response = http_client.post(url, content=audio, headers=headers)
    except httpx.HTTPError as exc:
        logger.error("STT transport failure: %s", exc)
        raise LlmGatewayError("STT transport failed") from exc
    if response.status_code >= 400:
        logger.error("STT error status: %s", response.status_code)
        raise LlmGatewayError(f"STT returned status {response.status_code}")
    try:
        data = response.json()
    except ValueError as exc:
        raise LlmGatewayError("STT payload was not JSON") from exc
    return _parse_listen_response(data)


def _parse_listen_response(data: Any) -> Transcription:
    try:
        alternative = data["results"]["channels"][0]["alternatives"][0]
    except (KeyError, IndexError, TypeError) as exc:
        raise LlmGatewayError("STT response missing alternatives") from exc
    words = [
        WordTiming(word=str(item.get("word", "")), start=float(item.get("start", 0.0)), end=float(item.get("end", 0.0)))
        for item in alternative.get("words") or []
    ]
    return Transcription(
        transcript=str(alternative.get("transcript") or ""),
        words=words,
        confidence=float(alternative.get("confidence") or 0.0),
    )


__all__ = ["transcribe_audio"]
