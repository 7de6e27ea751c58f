import json

import pytest

from agents.types import ScoringJudgment
from config import LlmRoute, SttRoute
from llm_gateway import LlmGatewayError, call, transcribe_audio
from llm_gateway.llm_gateway import _strip_code_fences
from llm_gateway.speech import _parse_listen_response

DIMENSIONS = {"specificity": 6, "relevance": 7, "impact": 5}


class Response:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload

    def json(self):
        if self._payload is None:
            raise ValueError("no body")
        return self._payload

    @property
    def text(self):
        return json.dumps(self._payload)


class Client:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def post(self, url, **kwargs):
        self.requests.append({"url": url, **kwargs})
        return self.responses.pop(0)


def _chat(content):
    return Response(payload={"choices": [{"message": {"content": content}}]})


def _route(**overrides):
    data = {
        "name": "test",
        "base_url": "http://llm",
        "endpoint": "/v1/chat/completions",
        "model": "m",
        "timeout_s": 1,
        "max_retries": 1,
        "response_format": "json_object",
    }
    data.update(overrides)
    return LlmRoute(**data)


def test_call_validates_schema_and_sends_options():
    client = Client(_chat(json.dumps({"score": 72, "strengths": ["Clear"], **DIMENSIONS})))
    result = call("Score this", ScoringJudgment, cfg=_route(), client=client, options={"temperature": 0.3})
    assert isinstance(result, ScoringJudgment)
    assert result.score == 72
    request = client.requests[0]
    assert request["url"] == "http://llm/v1/chat/completions"
    assert request["json"]["temperature"] == 0.3
    assert request["json"]["response_format"] == {"type": "json_object"}
    assert request["json"]["messages"][0]["role"] == "system"


def test_invalid_output_is_retried_with_hint():
    client = Client(_chat("not json"), _chat(json.dumps({"score": 55, **DIMENSIONS})))
    result = call("Score this", ScoringJudgment, cfg=_route(), client=client)
    assert result.score == 55
    retry_messages = client.requests[1]["json"]["messages"]
    assert "failed validation" in retry_messages[-1]["content"]


def test_validation_failure_after_retries():
    client = Client(_chat("nope"), _chat("still nope"))
    with pytest.raises(LlmGatewayError):
        call("Score this", ScoringJudgment, cfg=_route(), client=client)


def test_error_status_raises():
    client = Client(Response(status_code=503, payload={}))
    with pytest.raises(LlmGatewayError):
        call("Score this", ScoringJudgment, cfg=_route(), client=client)
    assert len(client.requests) == 1


def test_code_fences_are_stripped():
    fenced = '```json\n{"score": 90, "specificity": 6, "relevance": 7, "impact": 5}\n```'
    assert _strip_code_fences(fenced).startswith('{"score": 90')
    client = Client(_chat(fenced))
    assert call("x", ScoringJudgment, cfg=_route(), client=client).score == 90


def test_stt_parses_first_alternative():
    payload = {
        "results": {
            "channels": [
                {
                    "alternatives": [
                        {
                            "transcript": "Hello there",
                            "confidence": 0.91,
                            "words": [
                                {"word": "hello", "start": 0.1, "end": 0.4},
                                {"word": "there", "start": 0.5, "end": 0.8},
                            ],
                        }
                    ]
                }
            ]
        }
    }
    client = Client(Response(payload=payload))
    result = transcribe_audio(b"RIFF", cfg=SttRoute(api_key_env=None), mime_type="audio/webm", client=client)
    assert result.transcript == "Hello there"
    assert [word.word for word in result.words] == ["hello", "there"]
    assert client.requests[0]["headers"]["Content-Type"] == "audio/webm"
    assert client.requests[0]["content"] == b"RIFF"


def test_stt_missing_alternatives():
    with pytest.raises(LlmGatewayError):
        _parse_listen_response({"results": {"channels": []}})


def test_stt_error_status():
    client = Client(Response(status_code=401, payload={}))
    with pytest.raises(LlmGatewayError):
        transcribe_audio(b"RIFF", cfg=SttRoute(api_key_env=None), client=client)
