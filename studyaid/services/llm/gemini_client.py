from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from studyaid.services.errors import ProviderError, QuotaExhaustedError

logger = logging.getLogger(__name__)

_QUOTA_RE = re.compile(r"quota|insufficient|exceed|\brate\b|rate[-_ ]?limit", re.IGNORECASE)


def is_quota_shaped(status_code: int | None, message: str | None, status_text: str | None = None) -> bool:
    """
    429, RESOURCE_EXHAUSTED, or a message that reads like a quota / rate limit.
    """
    if status_code == 429:
        return True
    if (status_text or "").upper() == "RESOURCE_EXHAUSTED":
        return True
    return bool(_QUOTA_RE.search(message or ""))


def text_part(text: str) -> Dict[str, Any]:
    return {"text": text}


def image_part(data_b64: str, mime_type: str) -> Dict[str, Any]:
    return {"inline_data": {"data": data_b64, "mime_type": mime_type}}


@dataclass
class GeminiResult:
    text: str
    model: str
    status_code: int


class GeminiClient:
    """
    Minimal client for the generateContent REST endpoint.

    The API key is passed per call so one client can serve every key/model
    candidate of a fallback chain.
    """

    def __init__(
        self,
        base_url: str,
        timeout_s: float = 90.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s
        self._transport = transport

    def generate(
        self,
        *,
        api_key: str,
        model: str,
        parts: List[Dict[str, Any]],
        temperature: float = 0.7,
        max_output_tokens: int = 4000,
        thinking_budget: Optional[int] = None,
        timeout_s: Optional[float] = None,
        allow_empty: bool = False,
    ) -> GeminiResult:
        if not api_key:
            raise ProviderError("Gemini API key not configured")

        url = f"{self.base_url}/models/{model}:generateContent"
        payload: Dict[str, Any] = {
            "contents": [{"parts": parts}],
            "generationConfig": {
                "temperature": temperature,
                "maxOutputTokens": max_output_tokens,
            },
        }
        if thinking_budget is not None:
            payload["generationConfig"]["thinkingConfig"] = {"thinkingBudget": thinking_budget}

        timeout = httpx.Timeout(timeout_s or self.timeout_s, connect=10.0)
        try:
            with httpx.Client(timeout=timeout, transport=self._transport) as client:
                r = client.post(url, json=payload, headers={"x-goog-api-key": api_key})
        except httpx.TimeoutException as e:
            raise ProviderError(f"Gemini request timed out ({model})", context={"model": model}) from e
        except httpx.HTTPError as e:
            raise ProviderError(f"Gemini request failed ({model}): {e}", context={"model": model}) from e

        try:
            data = r.json()
        except ValueError:
            data = {}

        if r.status_code >= 400:
            err = data.get("error") if isinstance(data, dict) else None
            err = err if isinstance(err, dict) else {}
            message = err.get("message") or r.text[:300] or "Unknown error"
            ctx = {"model": model, "provider_status_text": err.get("status")}
            if is_quota_shaped(r.status_code, message, err.get("status")):
                raise QuotaExhaustedError(message, provider_status=r.status_code, context=ctx)
            raise ProviderError(message, provider_status=r.status_code, context=ctx)

        text = _candidate_text(data)
        if not text and not allow_empty:
            logger.debug("Gemini empty response from %s: %s", model, str(data)[:500])
            raise ProviderError(
                f"Gemini returned no text ({model})",
                provider_status=r.status_code,
                context={"model": model},
            )
        return GeminiResult(text=text, model=model, status_code=r.status_code)


def _candidate_text(data: Any) -> str:
    if not isinstance(data, dict):
        return ""
    candidates = data.get("candidates") or []
    if not candidates or not isinstance(candidates[0], dict):
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    # 2.5 models may interleave thought parts; keep only answer text
    texts = [p.get("text") or "" for p in parts if isinstance(p, dict) and not p.get("thought")]
    return "".join(texts).strip()
