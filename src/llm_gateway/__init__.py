"""Provider-agnostic LLM chat gateway with safety guardrails and audit logging."""

__version__ = "0.1.0"
