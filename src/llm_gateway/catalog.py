"""Static provider/model catalog.

Read-only and process-wide: built once at import, never mutated. Besides the
data the UI lists, each provider carries the wire ``style`` the mapper and the
client set key off, so provider identity is resolved in exactly one place.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .errors import ProviderNotFoundError, UnsupportedProviderError


class ProviderStyle(str, Enum):
    OPENAI = "openai"
    GEMINI = "gemini"


@dataclass(frozen=True)
class ModelInfo:
    id: str
    name: str
    context_window: Optional[int] = None
    description: Optional[str] = None
    supported_parameters: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"id": self.id, "name": self.name}
        if self.context_window is not None:
            data["contextWindow"] = self.context_window
        if self.description:
            data["description"] = self.description
        if self.supported_parameters:
            data["supportedParameters"] = list(self.supported_parameters)
        return data


@dataclass(frozen=True)
class ProviderInfo:
    id: str
    name: str
    style: ProviderStyle
    description: str = ""
    models: Tuple[ModelInfo, ...] = ()
    supported_parameters: Tuple[str, ...] = field(default=())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "models": [m.to_dict() for m in self.models],
        }


_OPENAI_PARAMS = ("temperature", "maxTokens", "topP", "frequencyPenalty", "presencePenalty", "seed", "stop")
_GEMINI_MODEL_PARAMS = ("temperature", "maxTokens", "topP")

DEFAULT_PROVIDERS: Tuple[ProviderInfo, ...] = (
    ProviderInfo(
        id="openai",
        name="OpenAI",
        style=ProviderStyle.OPENAI,
        description="OpenAI's GPT models for conversational AI",
        models=(
            ModelInfo("gpt-3.5-turbo", "GPT-3.5 Turbo", 16385),
            ModelInfo("gpt-4", "GPT-4", 8192),
            ModelInfo("gpt-4-turbo", "GPT-4 Turbo", 128000),
        ),
        supported_parameters=_OPENAI_PARAMS,
    ),
    ProviderInfo(
        id="gemini",
        name="Google Gemini",
        style=ProviderStyle.GEMINI,
        description="Google's multimodal AI model",
        models=(
            ModelInfo(
                "gemini-2.5-pro",
                "Gemini 2.5 Pro",
                1048576,
                "Most capable Gemini model with thinking capabilities",
                _GEMINI_MODEL_PARAMS,
            ),
            ModelInfo(
                "gemini-2.5-flash",
                "Gemini 2.5 Flash",
                1048576,
                "Fast and efficient Gemini model",
                _GEMINI_MODEL_PARAMS,
            ),
            ModelInfo(
                "gemini-2.0-flash-001",
                "Gemini 2.0 Flash",
                1048576,
                "Latest Gemini 2.0 Flash model",
                _GEMINI_MODEL_PARAMS,
            ),
        ),
        supported_parameters=("temperature", "maxTokens", "topP", "topK"),
    ),
    ProviderInfo(
        id="groq",
        name="Groq",
        style=ProviderStyle.OPENAI,
        description="Fast inference with Llama and Mixtral models",
        models=(
            ModelInfo("llama-3.3-70b-versatile", "Llama 3.3 70B Versatile", 131072),
            ModelInfo("llama-3.1-8b-instant", "Llama 3.1 8B Instant", 131072),
            ModelInfo("llama3-groq-70b-8192-tool-use-preview", "Llama 3 Groq 70B Tool Use", 8192),
        ),
        supported_parameters=_OPENAI_PARAMS,
    ),
)


class ProviderCatalog:
    def __init__(self, providers: Iterable[ProviderInfo] = DEFAULT_PROVIDERS):
        self._providers: Dict[str, ProviderInfo] = {p.id: p for p in providers}

    def __contains__(self, provider_id: object) -> bool:
        return provider_id in self._providers

    def ids(self) -> List[str]:
        return list(self._providers)

    def list_providers(self) -> List[Dict[str, Any]]:
        return [p.to_dict() for p in self._providers.values()]

    def get_provider(self, provider_id: str) -> ProviderInfo:
        try:
            return self._providers[provider_id]
        except KeyError:
            raise ProviderNotFoundError(provider_id) from None

    def style_for(self, provider_id: str) -> ProviderStyle:
        info = self._providers.get(provider_id)
        if info is None:
            raise UnsupportedProviderError(provider_id)
        return info.style
