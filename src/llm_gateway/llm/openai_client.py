from __future__ import annotations

from typing import Any, Dict

from ..models import ProviderPayload, ProviderResult
from .base import DEFAULT_TIMEOUT, LLMClient, pick_usage

_USAGE_KEYS = {
    "prompt_tokens": "prompt_tokens",
    "completion_tokens": "completion_tokens",
    "total_tokens": "total_tokens",
}


class OpenAIClient(LLMClient):
    """Client for the OpenAI-compatible Chat Completion endpoint.

    Plain ``requests`` rather than the ``openai`` SDK. Any backend that speaks
    the OpenAI REST shape (Groq, for one) reuses this class with a different
    ``base_url``.
    """

    provider = "openai"

    def __init__(
        self,
        api_key: str | None,
        base_url: str = "https://api.openai.com/v1",
        timeout: float = DEFAULT_TIMEOUT,
    ):
        super().__init__(api_key=api_key, base_url=base_url, timeout=timeout)

    def endpoint(self, payload: ProviderPayload) -> str:
        return f"{self.base_url}/chat/completions"

    def headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def parse(self, data: Dict[str, Any], payload: ProviderPayload) -> ProviderResult:
        choice = data["choices"][0]
        content = choice["message"]["content"]
        if not isinstance(content, str):
            raise TypeError("choices[0].message.content is not a string")
        return ProviderResult(
            content=content,
            model=data.get("model") or payload.get("model", ""),
            finish_reason=choice.get("finish_reason"),
            usage=pick_usage(data.get("usage"), _USAGE_KEYS),
        )
