import pytest

from conftest import FakeResponse, RecordingPost, StubClient
from llm_gateway import safety as safety_mod
from llm_gateway.errors import AuthenticationError, ErrorKind, ProviderHttpError
from llm_gateway.llm import GeminiClient
from llm_gateway.models import Blocked, Failure, Message, Success, UnifiedChatRequest
from llm_gateway.pipeline import DispatchPipeline, prompt_preview
from llm_gateway.safety import SafetyGate
from llm_gateway.settings import GatewaySettings


def _hi(provider="openai", model="gpt-3.5-turbo", **extra):
    return {"provider": provider, "model": model, "messages": [{"role": "user", "content": "hi"}], **extra}


def test_openai_success_with_safety_skipped(make_pipeline, stub_clients, audit):
    outcome = make_pipeline().dispatch_body(_hi())

    assert isinstance(outcome, Success)
    assert stub_clients["openai"].payloads == [
        {
            "model": "gpt-3.5-turbo",
            "messages": [{"role": "user", "content": "hi"}],
            "temperature": 0.7,
            "max_tokens": 1000,
            "frequency_penalty": 0,
            "presence_penalty": 0,
        }
    ]
    body = outcome.to_dict()
    assert body["status"] == "success"
    assert body["response"] == {
        "content": "hello there",
        "model": "gpt-3.5-turbo",
        "provider": "openai",
        "finish_reason": "stop",
    }
    assert body["usage"]["total_tokens"] == 5
    assert body["safety_checks"]["prompt"]["safe"] is True
    assert "skipped" in body["safety_checks"]["response"]["reason"]
    assert body["request_id"] == outcome.request_id

    stages = [e["stage"] for e in audit.of_type("dispatch")]
    assert stages == ["validated", "mapped", "provider_completed", "completed"]
    assert {e["requestId"] for _, e in audit.events} == {outcome.request_id}
    assert [e["type"] for e in audit.of_type("safety")] == ["prompt", "response"]


def test_gemini_system_prompt_mapping(make_pipeline, stub_clients):
    outcome = make_pipeline().dispatch_body(_hi("gemini", "gemini-2.5-flash", system_prompt="be terse"))

    assert isinstance(outcome, Success)
    payload = stub_clients["gemini"].payloads[0]
    assert payload["systemInstruction"]["parts"][0]["text"] == "be terse"
    assert payload["contents"] == [{"role": "user", "parts": [{"text": "hi"}]}]
    assert payload["model"] == "models/gemini-2.5-flash"


def test_last_message_from_assistant_is_rejected(make_pipeline, stub_clients, audit):
    body = _hi()
    body["messages"].append({"role": "assistant", "content": "hello"})
    outcome = make_pipeline().dispatch_body(body, request_id="req-1")

    assert isinstance(outcome, Failure)
    assert outcome.kind is ErrorKind.VALIDATION
    assert outcome.http_status == 400
    assert outcome.to_dict() == {
        "status": "error",
        "message": "Invalid message format: last message must be from user",
        "reason": "validation_error",
        "request_id": "req-1",
    }
    assert all(not c.payloads for c in stub_clients.values())
    assert audit.of_type("safety") == []
    assert audit.of_type("errors")[0]["requestId"] == "req-1"


def test_empty_messages_rejected(make_pipeline):
    outcome = make_pipeline().dispatch(UnifiedChatRequest(provider="openai", model="m", messages=[]))
    assert isinstance(outcome, Failure)
    assert outcome.kind is ErrorKind.VALIDATION


@pytest.mark.parametrize(
    "body",
    [
        {"model": "gpt-4", "messages": [{"role": "user", "content": "hi"}]},
        {"provider": "openai", "model": "gpt-4", "messages": "hi"},
        {"provider": "openai", "model": "gpt-4", "messages": [{"role": "tool", "content": "hi"}]},
        _hi(temperature=3),
        _hi(max_output_tokens=0),
        ["not", "an", "object"],
    ],
)
def test_malformed_bodies_become_validation_failures(make_pipeline, body):
    outcome = make_pipeline().dispatch_body(body)
    assert isinstance(outcome, Failure)
    assert outcome.kind is ErrorKind.VALIDATION
    assert outcome.message.startswith("Invalid request format")


def test_unknown_provider_fails_after_prompt_check(make_pipeline, audit):
    outcome = make_pipeline().dispatch_body(_hi("anthropic", "claude-3"))
    assert isinstance(outcome, Failure)
    assert outcome.kind is ErrorKind.UNSUPPORTED_PROVIDER
    assert outcome.message == "Unsupported provider: anthropic"
    assert [e["type"] for e in audit.of_type("safety")] == ["prompt"]


def test_provider_http_401_becomes_error_outcome(make_pipeline, stub_clients):
    stub_clients["openai"].error = ProviderHttpError("openai", 401, "Incorrect API key provided")
    outcome = make_pipeline().dispatch_body(_hi())

    assert isinstance(outcome, Failure)
    assert outcome.kind is ErrorKind.PROVIDER
    body = outcome.to_dict()
    assert body["status"] == "error"
    assert "openai" in body["message"]
    assert "API error" in body["message"]
    assert body["request_id"]


def test_missing_backend_key_is_configuration_error(make_pipeline, stub_clients):
    stub_clients["groq"].error = AuthenticationError("groq")
    outcome = make_pipeline().dispatch_body(_hi("groq", "llama-3.1-8b-instant"))
    assert isinstance(outcome, Failure)
    assert outcome.kind is ErrorKind.AUTHENTICATION
    assert outcome.http_status == 500


def test_unexpected_exception_never_escapes(make_pipeline, stub_clients):
    stub_clients["openai"].error = KeyError("surprise")
    outcome = make_pipeline().dispatch_body(_hi())
    assert isinstance(outcome, Failure)
    assert outcome.kind is ErrorKind.INTERNAL


def test_unsafe_prompt_short_circuits(monkeypatch, make_pipeline, stub_clients, audit):
    classifier = RecordingPost(FakeResponse(200, [{"label": "unsafe", "score": 0.92}]))
    monkeypatch.setattr(safety_mod.requests, "post", classifier)
    outcome = make_pipeline(safety=SafetyGate(api_key="hf")).dispatch_body(_hi())

    assert isinstance(outcome, Blocked)
    assert outcome.stage == "prompt"
    assert outcome.verdict.confidence == pytest.approx(0.92)
    assert sum(len(c.payloads) for c in stub_clients.values()) == 0
    assert len(classifier.calls) == 1
    body = outcome.to_dict()
    assert body["status"] == "blocked"
    assert body["confidence"] == pytest.approx(0.92)
    assert audit.of_type("prompts") == []


def test_unsafe_response_blocked_after_provider_call(monkeypatch, make_pipeline, stub_clients):
    classifier = RecordingPost(
        FakeResponse(200, [{"label": "safe", "score": 0.99}]),
        FakeResponse(200, [{"label": "unsafe", "score": 0.7}]),
    )
    monkeypatch.setattr(safety_mod.requests, "post", classifier)
    outcome = make_pipeline(safety=SafetyGate(api_key="hf")).dispatch_body(_hi())

    assert isinstance(outcome, Blocked)
    assert outcome.stage == "response"
    assert len(stub_clients["openai"].payloads) == 1
    assert outcome.to_dict()["message"] == "Response blocked by safety guardrails"


def test_classifier_outage_blocks_prompt(monkeypatch, make_pipeline, stub_clients):
    monkeypatch.setattr(safety_mod.requests, "post", RecordingPost(FakeResponse(502, None, reason="Bad Gateway")))
    outcome = make_pipeline(safety=SafetyGate(api_key="hf")).dispatch_body(_hi())
    assert isinstance(outcome, Blocked)
    assert outcome.verdict.error
    assert not stub_clients["openai"].payloads


def test_prompt_audit_is_truncated(make_pipeline, audit):
    long_prompt = "x" * 750
    make_pipeline().dispatch_body(
        {"provider": "openai", "model": "gpt-4", "messages": [{"role": "user", "content": long_prompt}]}
    )
    event = audit.of_type("prompts")[0]
    assert event["promptLength"] == 750
    assert event["prompt"] == "x" * 500 + "..."
    assert prompt_preview("short") == "short"


def test_failing_audit_sink_does_not_break_dispatch(make_pipeline, audit):
    def explode(event_type, fields):
        raise OSError("disk full")

    audit.record = explode
    assert isinstance(make_pipeline().dispatch_body(_hi()), Success)


def test_request_messages_are_immutable():
    msg = Message(role="user", content="hi")
    with pytest.raises(Exception):
        msg.content = "changed"


def test_from_settings_wires_real_collaborators():
    pipeline = DispatchPipeline.from_settings(GatewaySettings(hf_api_key="hf", safety_enabled=False))
    assert pipeline.safety.enabled is False
    assert sorted(pipeline.clients.providers()) == ["gemini", "groq", "openai"]
    assert isinstance(pipeline.clients.get("gemini"), GeminiClient)


def test_stub_client_is_called_once_per_dispatch(make_pipeline):
    client = StubClient("openai", content="only once")
    pipeline = make_pipeline(clients={"openai": client})
    outcome = pipeline.dispatch_body(_hi())
    assert outcome.result.content == "only once"
    assert len(client.payloads) == 1
