"""Safety guardrails around a provider call.

Both checks call a Hugging Face hosted guard classifier. When the classifier
cannot be reached or answers with something unusable the content is treated
as unsafe; only a missing credential (an explicit opt-out) lets content
through unchecked.
"""

from __future__ import annotations

import logging
from numbers import Real
from typing import Any, Dict

import requests

from .errors import SafetyCheckError
from .models import SafetyVerdict

logger = logging.getLogger(__name__)

PROMPT_GUARD_MODEL = "meta-llama/Llama-Prompt-Guard-2-86M"
RESPONSE_GUARD_MODEL = "meta-llama/Llama-Guard-3-8B"

REASON_DISABLED = "Safety check disabled"
REASON_SKIPPED = "Safety check skipped - no credential"


class SafetyGate:
    def __init__(
        self,
        api_key: str | None,
        base_url: str = "https://api-inference.huggingface.co",
        prompt_model: str = PROMPT_GUARD_MODEL,
        response_model: str = RESPONSE_GUARD_MODEL,
        timeout: float = 10.0,
        enabled: bool = True,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.prompt_model = prompt_model
        self.response_model = response_model
        self.timeout = timeout
        self.enabled = enabled

    def check_prompt(self, text: str) -> SafetyVerdict:
        return self._check("Prompt", self.prompt_model, text)

    def check_response(self, text: str) -> SafetyVerdict:
        return self._check("Response", self.response_model, text)

    def _check(self, subject: str, model: str, text: str) -> SafetyVerdict:
        if not self.enabled:
            return SafetyVerdict(safe=True, reason=REASON_DISABLED)
        if not self.api_key:
            logger.warning("HF_API_KEY not configured, skipping %s safety check", subject.lower())
            return SafetyVerdict(safe=True, reason=REASON_SKIPPED)

        blocked = f"{subject} blocked by Safety Guardrails"
        try:
            top = self._classify(model, text)
        except SafetyCheckError as exc:
            logger.error("%s safety check failed: %s", subject, exc)
            return SafetyVerdict(safe=False, reason=blocked, error=str(exc))

        if "unsafe" in top["label"].lower():
            return SafetyVerdict(safe=False, reason=blocked, confidence=top["score"])
        return SafetyVerdict(safe=True, reason=f"{subject} passed safety check")

    def _classify(self, model: str, text: str) -> Dict[str, Any]:
        try:
            resp = requests.post(
                f"{self.base_url}/models/{model}",
                json={"inputs": text, "options": {"wait_for_model": True}},
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise SafetyCheckError(f"classifier request failed: {exc}") from exc

        if not resp.ok:
            raise SafetyCheckError(f"classifier returned HTTP {resp.status_code}: {resp.reason}")
        try:
            data = resp.json()
        except ValueError as exc:
            raise SafetyCheckError("classifier returned a non-JSON body") from exc
        return top_label(data)


def top_label(data: Any) -> Dict[str, Any]:
    """Highest-scoring ``{label, score}`` entry of a guard model response.

    Classifiers answer ``[{label, score}, ...]`` or, for batched inputs,
    ``[[{label, score}, ...]]``. Generative guards such as Llama Guard answer
    ``[{generated_text}]`` whose first line is ``safe`` or ``unsafe``; that
    line becomes the label, with no score.
    """
    entries = data
    if isinstance(entries, list) and entries and isinstance(entries[0], list):
        entries = entries[0]
    if not isinstance(entries, list) or not entries:
        raise SafetyCheckError("malformed classifier response: expected a non-empty list")

    first = entries[0]
    if isinstance(first, dict) and "label" not in first and isinstance(first.get("generated_text"), str):
        verdict = first["generated_text"].strip().splitlines()
        if not verdict:
            raise SafetyCheckError("malformed guard response: empty generated text")
        return {"label": verdict[0].strip(), "score": None}

    best: Dict[str, Any] | None = None
    for entry in entries:
        if not isinstance(entry, dict) or not isinstance(entry.get("label"), str):
            raise SafetyCheckError("malformed classifier response: entry without a label")
        score = entry.get("score") or 0
        if isinstance(score, bool) or not isinstance(score, Real):
            raise SafetyCheckError("malformed classifier response: non-numeric score")
        if best is None or score > best["score"]:
            best = {"label": entry["label"], "score": float(score)}
    return best
