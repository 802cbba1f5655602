"""Factory helpers for provider clients."""

from __future__ import annotations

from typing import Dict, Iterable, List

from ..errors import UnsupportedProviderError
from ..models import ProviderPayload, ProviderResult
from ..settings import GatewaySettings
from .base import LLMClient
from .gemini_client import GeminiClient
from .groq_client import GroqClient
from .openai_client import OpenAIClient

__all__ = [
    "LLMClient",
    "OpenAIClient",
    "GeminiClient",
    "GroqClient",
    "ProviderClientSet",
    "build_client_set",
]


class ProviderClientSet:
    """Lookup table from provider id to the client that calls it."""

    def __init__(self, clients: Iterable[LLMClient]):
        self._clients: Dict[str, LLMClient] = {c.provider: c for c in clients}

    def __contains__(self, provider: object) -> bool:
        return provider in self._clients

    def providers(self) -> List[str]:
        return list(self._clients)

    def get(self, provider: str) -> LLMClient:
        client = self._clients.get(provider)
        if client is None:
            raise UnsupportedProviderError(provider)
        return client

    def call(self, provider: str, payload: ProviderPayload) -> ProviderResult:
        return self.get(provider).chat(payload)


def build_client_set(settings: GatewaySettings) -> ProviderClientSet:
    """Instantiate one client per backend from settings.

    Clients are built even without a key; a missing key only fails when the
    client is actually called.
    """
    timeout = settings.provider_timeout
    return ProviderClientSet(
        [
            OpenAIClient(api_key=settings.openai_api_key, base_url=settings.openai_base_url, timeout=timeout),
            GeminiClient(api_key=settings.gemini_api_key, base_url=settings.gemini_base_url, timeout=timeout),
            GroqClient(api_key=settings.groq_api_key, base_url=settings.groq_base_url, timeout=timeout),
        ]
    )
