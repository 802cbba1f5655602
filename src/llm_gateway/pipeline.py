"""Dispatch pipeline: one complete, audited execution of a unified chat request.

Sequence per dispatch::

    validate -> check prompt -> log prompt -> map -> call provider
             -> check response -> assemble outcome

A failed or blocked stage short-circuits the rest. Nothing raised below this
boundary reaches the caller: every outcome is a Success, Blocked or Failure.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Optional

from .audit import AuditSink, NullAuditSink
from .catalog import ProviderCatalog
from .errors import ErrorKind, GatewayError, ValidationError
from .llm import ProviderClientSet, build_client_set
from .mapping import ParameterMapper
from .models import Blocked, Failure, PipelineOutcome, SafetyVerdict, Success, UnifiedChatRequest
from .safety import SafetyGate
from .settings import GatewaySettings

logger = logging.getLogger(__name__)

PROMPT_PREVIEW_CHARS = 500


def new_request_id() -> str:
    return uuid.uuid4().hex[:12]


def prompt_preview(prompt: str, limit: int = PROMPT_PREVIEW_CHARS) -> str:
    return prompt[:limit] + ("..." if len(prompt) > limit else "")


def validate_request(request: UnifiedChatRequest) -> str:
    """Return the prompt to check, or raise ValidationError."""
    if not request.messages:
        raise ValidationError("Invalid message format: messages cannot be empty")
    last = request.messages[-1]
    if last.role != "user":
        raise ValidationError("Invalid message format: last message must be from user")
    return last.content


class DispatchPipeline:
    def __init__(
        self,
        catalog: ProviderCatalog,
        mapper: ParameterMapper,
        clients: ProviderClientSet,
        safety: SafetyGate,
        audit: Optional[AuditSink] = None,
    ):
        self.catalog = catalog
        self.mapper = mapper
        self.clients = clients
        self.safety = safety
        self.audit = audit or NullAuditSink()

    @classmethod
    def from_settings(cls, settings: GatewaySettings, audit: Optional[AuditSink] = None, catalog: Optional[ProviderCatalog] = None) -> "DispatchPipeline":
        catalog = catalog or ProviderCatalog()
        safety = SafetyGate(
            api_key=settings.hf_api_key,
            base_url=settings.hf_inference_url,
            prompt_model=settings.prompt_guard_model,
            response_model=settings.response_guard_model,
            timeout=settings.safety_timeout,
            enabled=settings.safety_enabled,
        )
        return cls(catalog, ParameterMapper(catalog), build_client_set(settings), safety, audit)

    def dispatch(self, request: UnifiedChatRequest, request_id: Optional[str] = None) -> PipelineOutcome:
        request_id = request_id or new_request_id()
        try:
            return self._run(request, request_id)
        except GatewayError as exc:
            return self._fail(exc.kind, str(exc), request, request_id, exc)
        except Exception as exc:  # noqa: BLE001
            logger.exception("[%s] unexpected pipeline error", request_id)
            return self._fail(ErrorKind.INTERNAL, f"Chat request failed: {exc}", request, request_id, exc)

    def dispatch_body(self, body: Any, request_id: Optional[str] = None) -> PipelineOutcome:
        """Parse the flat inbound JSON shape, then dispatch it."""
        request_id = request_id or new_request_id()
        try:
            request = UnifiedChatRequest.from_body(body)
        except ValidationError as exc:
            return self._fail(exc.kind, str(exc), None, request_id, exc)
        return self.dispatch(request, request_id)

    def _run(self, request: UnifiedChatRequest, request_id: str) -> PipelineOutcome:
        provider, model = request.provider, request.model

        prompt = validate_request(request)
        self._stage(request_id, "validated", provider=provider, model=model, messageCount=len(request.messages))

        prompt_verdict = self.safety.check_prompt(prompt)
        self._safety_event(request_id, "prompt", prompt, prompt_verdict)
        if not prompt_verdict.safe:
            logger.warning("[%s] prompt blocked: %s", request_id, prompt_verdict.reason)
            self._stage(request_id, "blocked", check="prompt")
            return Blocked(stage="prompt", verdict=prompt_verdict, request_id=request_id)

        self._emit(
            "prompts",
            message="Prompt logged",
            requestId=request_id,
            provider=provider,
            model=model,
            prompt=prompt_preview(prompt),
            promptLength=len(prompt),
        )

        logger.info("[%s] mapping parameters for %s", request_id, provider)
        payload = self.mapper.map(provider, request)
        self._stage(request_id, "mapped", provider=provider, style=self.catalog.style_for(provider).value)

        logger.info("[%s] calling %s with model %s", request_id, provider, model)
        result = self.clients.call(provider, payload)
        self._stage(
            request_id,
            "provider_completed",
            provider=provider,
            model=result.model,
            finishReason=result.finish_reason,
            usage=result.usage or None,
        )

        response_verdict = self.safety.check_response(result.content)
        self._safety_event(request_id, "response", result.content, response_verdict)
        if not response_verdict.safe:
            logger.warning("[%s] response blocked: %s", request_id, response_verdict.reason)
            self._stage(request_id, "blocked", check="response")
            return Blocked(stage="response", verdict=response_verdict, request_id=request_id)

        self._stage(request_id, "completed", provider=provider)
        logger.info("[%s] request completed successfully", request_id)
        return Success(
            provider=provider,
            result=result,
            prompt_verdict=prompt_verdict,
            response_verdict=response_verdict,
            request_id=request_id,
        )

    def _fail(
        self,
        kind: ErrorKind,
        message: str,
        request: Any,
        request_id: str,
        exc: BaseException,
    ) -> Failure:
        provider = getattr(request, "provider", None)
        model = getattr(request, "model", None)
        logger.error("[%s] chat request failed (%s): %s", request_id, kind.value, message)
        self._emit(
            "errors",
            level="ERROR",
            message=message,
            requestId=request_id,
            kind=kind.value,
            errorType=type(exc).__name__,
            provider=provider,
            model=model,
        )
        self._stage(request_id, "failed", kind=kind.value)
        return Failure(kind=kind, message=message, request_id=request_id)

    def _safety_event(self, request_id: str, check: str, content: str, verdict: SafetyVerdict) -> None:
        self._emit(
            "safety",
            message=f"Safety check: {check}",
            requestId=request_id,
            type=check,
            safe=verdict.safe,
            reason=verdict.reason,
            confidence=verdict.confidence,
            error=verdict.error,
            contentLength=len(content),
        )

    def _stage(self, request_id: str, name: str, **fields: Any) -> None:
        self._emit("dispatch", message=f"Stage: {name}", requestId=request_id, stage=name, **fields)

    def _emit(self, event_type: str, **fields: Any) -> None:
        try:
            self.audit.record(event_type, fields)
        except Exception as exc:  # noqa: BLE001
            logger.error("Audit sink failed for %s event: %s", event_type, exc)
