"""Common interface for all provider clients.

A client owns everything backend-specific about one outbound call: endpoint
construction, authentication, and parsing of the success envelope into a
:class:`~llm_gateway.models.ProviderResult`. Failures always surface as one of
the gateway errors below, so callers never branch on the provider.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import requests

from ..errors import AuthenticationError, ProviderHttpError, TransportError
from ..models import ProviderPayload, ProviderResult

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0


class LLMClient(ABC):
    """Abstract base class for provider clients."""

    provider: str = ""

    def __init__(self, api_key: str | None, base_url: str, timeout: float = DEFAULT_TIMEOUT):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    @abstractmethod
    def endpoint(self, payload: ProviderPayload) -> str:
        """Full URL for this payload."""

    @abstractmethod
    def parse(self, data: Dict[str, Any], payload: ProviderPayload) -> ProviderResult:
        """Turn the backend's success envelope into a ProviderResult."""

    def headers(self) -> Dict[str, str]:
        return {"Content-Type": "application/json"}

    def query_params(self) -> Optional[Dict[str, str]]:
        return None

    def body(self, payload: ProviderPayload) -> ProviderPayload:
        return payload

    def chat(self, payload: ProviderPayload) -> ProviderResult:
        if not self.api_key:
            raise AuthenticationError(self.provider)

        url = self.endpoint(payload)
        logger.debug("[%s] POST %s model=%s", self.provider, url, payload.get("model"))
        try:
            resp = requests.post(
                url,
                json=self.body(payload),
                headers=self.headers(),
                params=self.query_params(),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            detail = self._redact(str(exc))
            logger.error("[%s] request failed: %s", self.provider, detail)
            raise TransportError(self.provider, detail) from None

        if not resp.ok:
            detail = self._redact(_error_detail(resp))
            logger.error("[%s] API error %s: %s", self.provider, resp.status_code, detail)
            raise ProviderHttpError(self.provider, resp.status_code, detail)

        try:
            return self.parse(resp.json(), payload)
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            logger.error("[%s] unexpected response body: %r", self.provider, exc)
            raise ProviderHttpError(
                self.provider, resp.status_code, f"malformed response ({exc.__class__.__name__}: {exc})"
            ) from exc

    def _redact(self, text: str) -> str:
        # requests puts the full URL (query string included) in its messages
        if self.api_key:
            return text.replace(self.api_key, "***")
        return text


def _error_detail(resp: requests.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        data = None
    if isinstance(data, dict):
        err = data.get("error")
        if isinstance(err, dict) and err.get("message"):
            return str(err["message"])
        if isinstance(err, str) and err:
            return err
    return resp.reason or f"HTTP {resp.status_code}"


def pick_usage(raw: Any, mapping: Dict[str, str]) -> Dict[str, int]:
    """Copy the integer token counts present in ``raw`` under the unified keys."""
    if not isinstance(raw, dict):
        return {}
    usage: Dict[str, int] = {}
    for source_key, target_key in mapping.items():
        value = raw.get(source_key)
        if isinstance(value, int):
            usage[target_key] = value
    return usage
