"""Google Gemini client over the ``generateContent`` REST endpoint.

The model name goes in the URL path and the API key travels as the ``key``
query parameter instead of an auth header.
"""

from __future__ import annotations

from typing import Any, Dict

from ..models import ProviderPayload, ProviderResult
from .base import DEFAULT_TIMEOUT, LLMClient, pick_usage

_USAGE_KEYS = {
    "promptTokenCount": "prompt_tokens",
    "candidatesTokenCount": "completion_tokens",
    "totalTokenCount": "total_tokens",
}


def _bare_model(name: str) -> str:
    return name[len("models/"):] if name.startswith("models/") else name


class GeminiClient(LLMClient):
    provider = "gemini"

    def __init__(
        self,
        api_key: str | None,
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float = DEFAULT_TIMEOUT,
    ):
        super().__init__(api_key=api_key, base_url=base_url, timeout=timeout)

    def endpoint(self, payload: ProviderPayload) -> str:
        return f"{self.base_url}/models/{_bare_model(payload['model'])}:generateContent"

    def query_params(self) -> Dict[str, str]:
        return {"key": self.api_key or ""}

    def body(self, payload: ProviderPayload) -> ProviderPayload:
        # model is already in the path
        return {k: v for k, v in payload.items() if k != "model"}

    def parse(self, data: Dict[str, Any], payload: ProviderPayload) -> ProviderResult:
        candidate = data["candidates"][0]
        text = candidate["content"]["parts"][0]["text"]
        if not isinstance(text, str):
            raise TypeError("candidates[0].content.parts[0].text is not a string")
        return ProviderResult(
            content=text,
            model=_bare_model(payload["model"]),
            finish_reason=candidate.get("finishReason"),
            usage=pick_usage(data.get("usageMetadata"), _USAGE_KEYS),
        )
