"""Translate a unified chat request into the body a specific backend expects."""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

from .catalog import ProviderCatalog, ProviderStyle
from .models import GenerationSettings, Message, ProviderPayload, UnifiedChatRequest

DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_OUTPUT_TOKENS = 1000
DEFAULT_FREQUENCY_PENALTY = 0
DEFAULT_PRESENCE_PENALTY = 0


def _or_default(value: Any, default: Any) -> Any:
    # explicit zero is a real value
    return default if value is None else value


def _format_openai_messages(messages: List[Message], system_prompt: Optional[str]) -> List[Dict[str, str]]:
    formatted: List[Dict[str, str]] = []
    if system_prompt:
        formatted.append({"role": "system", "content": system_prompt})
    formatted.extend({"role": m.role, "content": m.content} for m in messages)
    return formatted


def _format_gemini_contents(messages: List[Message]) -> List[Dict[str, Any]]:
    # Gemini only knows "user" and "model"; system text goes in systemInstruction.
    return [
        {"role": "model" if m.role == "assistant" else "user", "parts": [{"text": m.content}]}
        for m in messages
    ]


def map_openai_style(request: UnifiedChatRequest) -> ProviderPayload:
    """Body for OpenAI-compatible ``/chat/completions`` endpoints (OpenAI, Groq)."""
    s: GenerationSettings = request.settings
    mapped: ProviderPayload = {
        "model": request.model,
        "messages": _format_openai_messages(request.messages, s.system_prompt),
        "temperature": _or_default(s.temperature, DEFAULT_TEMPERATURE),
        "max_tokens": _or_default(s.max_output_tokens, DEFAULT_MAX_OUTPUT_TOKENS),
        "frequency_penalty": _or_default(s.frequency_penalty, DEFAULT_FREQUENCY_PENALTY),
        "presence_penalty": _or_default(s.presence_penalty, DEFAULT_PRESENCE_PENALTY),
    }
    if s.seed is not None:
        mapped["seed"] = s.seed
    if s.stop_sequences:
        mapped["stop"] = list(s.stop_sequences)
    return mapped


def map_gemini_style(request: UnifiedChatRequest) -> ProviderPayload:
    """Body for Gemini ``generateContent``."""
    s: GenerationSettings = request.settings
    generation_config: Dict[str, Any] = {
        "temperature": _or_default(s.temperature, DEFAULT_TEMPERATURE),
        "maxOutputTokens": _or_default(s.max_output_tokens, DEFAULT_MAX_OUTPUT_TOKENS),
        "frequencyPenalty": _or_default(s.frequency_penalty, DEFAULT_FREQUENCY_PENALTY),
        "presencePenalty": _or_default(s.presence_penalty, DEFAULT_PRESENCE_PENALTY),
        "candidateCount": 1,
    }
    if s.stop_sequences:
        generation_config["stopSequences"] = list(s.stop_sequences)

    mapped: ProviderPayload = {
        "model": f"models/{request.model}",
        "contents": _format_gemini_contents(request.messages),
        "generationConfig": generation_config,
    }
    if s.system_prompt:
        mapped["systemInstruction"] = {"parts": [{"text": s.system_prompt}]}
    return mapped


STYLE_MAPPERS: Dict[ProviderStyle, Callable[[UnifiedChatRequest], ProviderPayload]] = {
    ProviderStyle.OPENAI: map_openai_style,
    ProviderStyle.GEMINI: map_gemini_style,
}


class ParameterMapper:
    """Single translation boundary between the unified request and provider bodies."""

    def __init__(self, catalog: ProviderCatalog):
        self.catalog = catalog

    def map(self, provider: str, request: UnifiedChatRequest) -> ProviderPayload:
        style = self.catalog.style_for(provider)
        return STYLE_MAPPERS[style](request)
