"""Request, result and outcome types passed between the gateway components.

Inbound data is validated with pydantic; everything produced by the gateway
itself is a frozen dataclass scoped to a single dispatch.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from .errors import ErrorKind, ValidationError

Role = Literal["system", "user", "assistant"]
Stage = Literal["prompt", "response"]


class Message(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Role
    content: str


class GenerationSettings(BaseModel):
    """Only explicitly-set values; defaults are filled in by the mapper."""

    model_config = ConfigDict(frozen=True)

    temperature: Optional[float] = Field(default=None, ge=0, le=2)
    max_output_tokens: Optional[int] = Field(default=None, gt=0)
    frequency_penalty: Optional[float] = None
    presence_penalty: Optional[float] = None
    system_prompt: Optional[str] = None
    seed: Optional[int] = None
    stop_sequences: Optional[List[str]] = None


SETTING_KEYS = tuple(GenerationSettings.model_fields)


class UnifiedChatRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    provider: str
    model: str
    messages: List[Message]
    settings: GenerationSettings = Field(default_factory=GenerationSettings)

    @classmethod
    def from_body(cls, body: Any) -> "UnifiedChatRequest":
        """Build a request from the flat inbound JSON shape.

        Generation settings sit next to ``provider``/``model``/``messages`` on
        the wire; ``null`` values count as not set.
        """
        if not isinstance(body, dict):
            raise ValidationError("Invalid request format: body must be a JSON object")
        settings = {k: body[k] for k in SETTING_KEYS if body.get(k) is not None}
        try:
            return cls(
                provider=body.get("provider"),
                model=body.get("model"),
                messages=body.get("messages"),
                settings=GenerationSettings(**settings),
            )
        except PydanticValidationError as exc:
            raise ValidationError(f"Invalid request format: {_summarize(exc)}") from exc


def _summarize(exc: PydanticValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts)


# Backend-shaped request body produced by the mapper.
ProviderPayload = Dict[str, Any]


@dataclass(frozen=True)
class ProviderResult:
    content: str
    model: str
    finish_reason: Optional[str] = None
    # subset of prompt_tokens / completion_tokens / total_tokens
    usage: Dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class SafetyVerdict:
    safe: bool
    reason: str
    confidence: Optional[float] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"safe": self.safe, "reason": self.reason}
        if self.confidence is not None:
            data["confidence"] = self.confidence
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass(frozen=True)
class Success:
    provider: str
    result: ProviderResult
    prompt_verdict: SafetyVerdict
    response_verdict: SafetyVerdict
    request_id: str

    status = "success"
    http_status = 200

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "response": {
                "content": self.result.content,
                "model": self.result.model,
                "provider": self.provider,
                "finish_reason": self.result.finish_reason,
            },
            "usage": dict(self.result.usage),
            "safety_checks": {
                "prompt": {"safe": self.prompt_verdict.safe, "reason": self.prompt_verdict.reason},
                "response": {"safe": self.response_verdict.safe, "reason": self.response_verdict.reason},
            },
            "request_id": self.request_id,
        }


@dataclass(frozen=True)
class Blocked:
    stage: Stage
    verdict: SafetyVerdict
    request_id: str

    status = "blocked"
    http_status = 400

    def to_dict(self) -> Dict[str, Any]:
        subject = "Request" if self.stage == "prompt" else "Response"
        data: Dict[str, Any] = {
            "status": self.status,
            "message": f"{subject} blocked by safety guardrails",
            "reason": self.verdict.reason,
            "stage": self.stage,
            "request_id": self.request_id,
        }
        if self.verdict.confidence is not None:
            data["confidence"] = self.verdict.confidence
        return data


_FAILURE_STATUS = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.UNSUPPORTED_PROVIDER: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.AUTHENTICATION: 500,
    ErrorKind.PROVIDER: 502,
    ErrorKind.INTERNAL: 500,
}


@dataclass(frozen=True)
class Failure:
    kind: ErrorKind
    message: str
    request_id: str

    status = "error"

    @property
    def http_status(self) -> int:
        return _FAILURE_STATUS[self.kind]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "message": self.message,
            "reason": self.kind.value,
            "request_id": self.request_id,
        }


PipelineOutcome = Union[Success, Blocked, Failure]
