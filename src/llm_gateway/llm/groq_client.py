"""Groq client, reusing the OpenAI-compatible chat completion format."""

from __future__ import annotations

from .base import DEFAULT_TIMEOUT
from .openai_client import OpenAIClient


class GroqClient(OpenAIClient):
    provider = "groq"

    def __init__(
        self,
        api_key: str | None,
        base_url: str = "https://api.groq.com/openai/v1",
        timeout: float = DEFAULT_TIMEOUT,
    ):
        super().__init__(api_key=api_key, base_url=base_url, timeout=timeout)
