from __future__ import annotations

from typing import Any, Dict, List, Tuple

import pytest

from llm_gateway.catalog import ProviderCatalog
from llm_gateway.llm import ProviderClientSet
from llm_gateway.mapping import ParameterMapper
from llm_gateway.models import ProviderResult
from llm_gateway.pipeline import DispatchPipeline
from llm_gateway.safety import SafetyGate

NO_JSON = object()


class FakeResponse:
    """Just enough of ``requests.Response`` for the clients and the safety gate."""

    def __init__(self, status_code: int = 200, payload: Any = None, reason: str = "OK"):
        self.status_code = status_code
        self._payload = payload
        self.reason = reason

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self):
        if self._payload is NO_JSON:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._payload


class RecordingPost:
    """Stand-in for ``requests.post`` that answers from a queue and keeps every call."""

    def __init__(self, *responses: Any):
        self.responses = list(responses)
        self.calls: List[Tuple[str, Dict[str, Any]]] = []

    def __call__(self, url: str, **kwargs: Any):
        self.calls.append((url, kwargs))
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response


class StubClient:
    def __init__(self, provider: str, content: str = "hello there", error: Exception | None = None):
        self.provider = provider
        self.content = content
        self.error = error
        self.payloads: List[Dict[str, Any]] = []

    def chat(self, payload):
        self.payloads.append(payload)
        if self.error is not None:
            raise self.error
        return ProviderResult(
            content=self.content,
            model=payload.get("model", ""),
            finish_reason="stop",
            usage={"prompt_tokens": 3, "completion_tokens": 2, "total_tokens": 5},
        )


class RecordingAuditSink:
    def __init__(self):
        self.events: List[Tuple[str, Dict[str, Any]]] = []

    def record(self, event_type, fields):
        self.events.append((event_type, dict(fields)))

    def of_type(self, event_type: str) -> List[Dict[str, Any]]:
        return [f for t, f in self.events if t == event_type]


def openai_completion(content: str = "hi!", model: str = "gpt-3.5-turbo-0125") -> Dict[str, Any]:
    return {
        "id": "chatcmpl-1",
        "model": model,
        "choices": [{"index": 0, "message": {"role": "assistant", "content": content}, "finish_reason": "stop"}],
        "usage": {"prompt_tokens": 8, "completion_tokens": 3, "total_tokens": 11},
    }


def gemini_completion(text: str = "hi from gemini") -> Dict[str, Any]:
    return {
        "candidates": [{"content": {"role": "model", "parts": [{"text": text}]}, "finishReason": "STOP"}],
        "usageMetadata": {"promptTokenCount": 4, "candidatesTokenCount": 5, "totalTokenCount": 9},
    }


@pytest.fixture
def catalog():
    return ProviderCatalog()


@pytest.fixture
def audit():
    return RecordingAuditSink()


@pytest.fixture
def stub_clients():
    return {name: StubClient(name) for name in ("openai", "gemini", "groq")}


@pytest.fixture
def make_pipeline(catalog, audit, stub_clients):
    def _make(safety: SafetyGate | None = None, clients=None):
        client_set = ProviderClientSet((clients or stub_clients).values())
        return DispatchPipeline(
            catalog,
            ParameterMapper(catalog),
            client_set,
            safety or SafetyGate(api_key=None),
            audit,
        )

    return _make
