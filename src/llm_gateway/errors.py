"""Error taxonomy shared by the mapper, the provider clients and the pipeline."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    VALIDATION = "validation_error"
    UNSUPPORTED_PROVIDER = "unsupported_provider"
    NOT_FOUND = "not_found"
    AUTHENTICATION = "authentication_error"
    PROVIDER = "provider_error"
    INTERNAL = "internal_error"


class GatewayError(RuntimeError):
    """Base error for every failure the gateway knows how to report."""

    kind = ErrorKind.INTERNAL
    http_status = 500


class ValidationError(GatewayError):
    """Raised when a unified request (or saved chat) is malformed."""

    kind = ErrorKind.VALIDATION
    http_status = 400


class UnsupportedProviderError(GatewayError):
    kind = ErrorKind.UNSUPPORTED_PROVIDER
    http_status = 400

    def __init__(self, provider: str):
        super().__init__(f"Unsupported provider: {provider}")
        self.provider = provider


class ProviderNotFoundError(UnsupportedProviderError):
    """Catalog lookup miss."""

    http_status = 404


class AuthenticationError(GatewayError):
    """Backend credential is not configured; surfaced as a server config error."""

    kind = ErrorKind.AUTHENTICATION
    http_status = 500

    def __init__(self, provider: str):
        super().__init__(f"{provider} API key not configured")
        self.provider = provider


class ProviderError(GatewayError):
    """Base for failures of the outbound provider call."""

    kind = ErrorKind.PROVIDER
    http_status = 502

    def __init__(self, provider: str, message: str):
        super().__init__(message)
        self.provider = provider


class ProviderHttpError(ProviderError):
    def __init__(self, provider: str, status: int | None, detail: str):
        super().__init__(provider, f"{provider} API error: {detail}")
        self.status = status
        self.detail = detail


class TransportError(ProviderError):
    """Network failure or timeout. Never retried."""

    def __init__(self, provider: str, detail: str):
        super().__init__(provider, f"{provider} request failed: {detail}")
        self.detail = detail


class SafetyCheckError(GatewayError):
    """Classifier unreachable or returned something unusable.

    Only raised inside the safety gate, which turns it into a blocking verdict.
    """


class ChatNotFoundError(GatewayError):
    kind = ErrorKind.NOT_FOUND
    http_status = 404

    def __init__(self, chat_id: str):
        super().__init__(f"Chat not found: {chat_id}")
        self.chat_id = chat_id
