from __future__ import annotations

import logging
from typing import Optional

from studyaid.services.deadline import Deadline
from studyaid.services.errors import InputError, ProviderError
from studyaid.services.llm.gemini_client import image_part, text_part
from studyaid.services.llm.prompts import EXTRACT_TEXT_PROMPT, NO_TEXT_SENTINEL
from studyaid.services.providers import Providers

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_MIME = "image/jpeg"


def extract_text(
    providers: Providers,
    image_b64: Optional[str],
    mime_type: Optional[str] = None,
    deadline: Optional[Deadline] = None,
) -> str:
    """
    Single vision call, no retry. Returns the extracted text or the
    "No text detected in the image." sentinel.
    """
    if not image_b64:
        raise InputError("No image provided")

    s = providers.settings
    timeout = deadline.bound(s.llm_timeout_sec, stage="extract") if deadline else s.llm_timeout_sec

    logger.info("Processing image for text extraction (mime=%s)", mime_type or DEFAULT_IMAGE_MIME)
    try:
        result = providers.llm.generate(
            api_key=s.gemini_api_key or "",
            model=s.gemini_vision_model,
            parts=[text_part(EXTRACT_TEXT_PROMPT), image_part(image_b64, mime_type or DEFAULT_IMAGE_MIME)],
            temperature=0.0,
            max_output_tokens=s.gemini_max_output_tokens,
            timeout_s=timeout,
            allow_empty=True,
        )
    except ProviderError as e:
        logger.error("Text extraction failed: %s", e.message)
        raise

    text = result.text.strip()
    logger.info("Text extraction completed (%d chars)", len(text))
    return text or NO_TEXT_SENTINEL
