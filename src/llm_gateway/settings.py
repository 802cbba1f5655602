from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from dotenv import load_dotenv

_TRUTHY = {"1", "true", "yes", "on"}


def _flag(value: Optional[str], default: bool) -> bool:
    if value is None or not value.strip():
        return default
    return value.strip().lower() in _TRUTHY


@dataclass(frozen=True)
class GatewaySettings:
    """Process configuration, read once at startup from the environment / ``.env``.

    ``response_guard_model`` defaults to Llama Guard, a generative guard; the
    safety gate reads its ``safe`` / ``unsafe`` verdict line. Any other
    ``RESPONSE_GUARD_MODEL`` must answer either that way or as a
    ``{label, score}`` text classifier, otherwise every response is blocked.
    """

    openai_api_key: Optional[str] = None
    gemini_api_key: Optional[str] = None
    groq_api_key: Optional[str] = None
    hf_api_key: Optional[str] = None

    openai_base_url: str = "https://api.openai.com/v1"
    groq_base_url: str = "https://api.groq.com/openai/v1"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    hf_inference_url: str = "https://api-inference.huggingface.co"
    prompt_guard_model: str = "meta-llama/Llama-Prompt-Guard-2-86M"
    response_guard_model: str = "meta-llama/Llama-Guard-3-8B"

    safety_enabled: bool = True
    provider_timeout: float = 60.0
    safety_timeout: float = 10.0

    log_dir: str = "logs"
    chats_dir: str = os.path.join("data", "chats")
    log_level: str = "INFO"
    port: int = 3000

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None, dotenv_path: Optional[str] = ".env") -> "GatewaySettings":
        if env is None:
            if dotenv_path:
                load_dotenv(dotenv_path, override=False)
            env = os.environ
        defaults = cls()
        return cls(
            openai_api_key=env.get("OPENAI_API_KEY") or None,
            gemini_api_key=env.get("GEMINI_API_KEY") or None,
            groq_api_key=env.get("GROQ_API_KEY") or None,
            hf_api_key=env.get("HF_API_KEY") or None,
            openai_base_url=env.get("OPENAI_BASE_URL", defaults.openai_base_url),
            groq_base_url=env.get("GROQ_BASE_URL", defaults.groq_base_url),
            gemini_base_url=env.get("GEMINI_BASE_URL", defaults.gemini_base_url),
            hf_inference_url=env.get("HF_INFERENCE_URL", defaults.hf_inference_url),
            prompt_guard_model=env.get("PROMPT_GUARD_MODEL", defaults.prompt_guard_model),
            response_guard_model=env.get("RESPONSE_GUARD_MODEL", defaults.response_guard_model),
            safety_enabled=_flag(env.get("SAFETY_ENABLED"), defaults.safety_enabled),
            provider_timeout=float(env.get("PROVIDER_TIMEOUT", defaults.provider_timeout)),
            safety_timeout=float(env.get("SAFETY_TIMEOUT", defaults.safety_timeout)),
            log_dir=env.get("LOG_DIR", defaults.log_dir),
            chats_dir=env.get("CHATS_DIR", defaults.chats_dir),
            log_level=env.get("LOG_LEVEL", defaults.log_level).upper(),
            port=int(env.get("PORT", defaults.port)),
        )

    def api_keys_configured(self) -> Dict[str, bool]:
        return {
            "openai": bool(self.openai_api_key),
            "gemini": bool(self.gemini_api_key),
            "groq": bool(self.groq_api_key),
            "huggingface": bool(self.hf_api_key),
        }

    def to_dict(self) -> Dict[str, Any]:
        """Safe-to-log view: credentials are reported only as configured or not."""
        return {
            "api_keys_configured": self.api_keys_configured(),
            "safety_enabled": self.safety_enabled,
            "provider_timeout": self.provider_timeout,
            "safety_timeout": self.safety_timeout,
            "log_dir": self.log_dir,
            "chats_dir": self.chats_dir,
            "log_level": self.log_level,
            "port": self.port,
        }
