from __future__ import annotations

import logging
from typing import Optional

import httpx

from studyaid.core.config import Settings
from studyaid.services.errors import InputError, ProviderError, QuotaExhaustedError

logger = logging.getLogger(__name__)

WHISPER_URL = "https://api.cloudflare.com/client/v4/accounts/{account_id}/ai/run/@cf/openai/whisper"
VOICE_LIMIT_MESSAGE = "Daily voice limit reached — please try again tomorrow."


def transcribe_audio(
    audio: bytes,
    settings: Settings,
    transport: Optional[httpx.BaseTransport] = None,
) -> str:
    """
    Hosted Whisper speech-to-text. Quota-shaped failures (429 or a body
    mentioning quota/limit) become QuotaExhaustedError.
    """
    if not settings.cloudflare_account_id or not settings.cloudflare_api_token:
        raise ProviderError("Cloudflare credentials not configured", code="STT_ERROR")
    if not audio:
        raise InputError("No audio provided")

    logger.info("Received audio blob of size: %d", len(audio))
    url = WHISPER_URL.format(account_id=settings.cloudflare_account_id)
    headers = {"Authorization": f"Bearer {settings.cloudflare_api_token}"}

    try:
        with httpx.Client(timeout=httpx.Timeout(settings.llm_timeout_sec, connect=10.0), transport=transport) as client:
            r = client.post(url, json={"audio": list(audio)}, headers=headers)
    except httpx.HTTPError as e:
        raise ProviderError(f"Cloudflare request failed: {e}", code="STT_ERROR") from e

    if r.status_code >= 400:
        body = r.text or ""
        logger.error("Cloudflare API error: %s %s", r.status_code, body[:300])
        if r.status_code == 429 or "quota" in body or "limit" in body:
            raise QuotaExhaustedError(VOICE_LIMIT_MESSAGE, provider_status=r.status_code)
        raise ProviderError(f"Cloudflare API error: {r.status_code} {body[:300]}", code="STT_ERROR", provider_status=r.status_code)

    data = r.json() or {}
    result = data.get("result") if isinstance(data.get("result"), dict) else data
    return (result.get("text") or "").strip()
