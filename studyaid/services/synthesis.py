from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, Field, ValidationError

from studyaid.services.deadline import Deadline
from studyaid.services.errors import OutputValidationError
from studyaid.services.fallback import Candidate, FallbackOutcome, build_synthesis_candidates, run_with_fallback
from studyaid.services.json_extract import extract_json_object
from studyaid.services.llm.gemini_client import image_part, text_part
from studyaid.services.llm.prompts import (
    IMAGES_ONLY_BLOCK,
    NOTES_BLOCK_TEMPLATE,
    RESEARCH_BLOCK_TEMPLATE,
    STUDY_MATERIALS_PROMPT,
)
from studyaid.services.providers import Providers

logger = logging.getLogger(__name__)

SYNTHESIS_TEMPERATURE = 0.7


@dataclass(frozen=True)
class NoteImage:
    data: str  # base64
    mime_type: str


class Flashcard(BaseModel):
    front: str = Field(min_length=1)
    back: str = Field(min_length=1)


class QAPair(BaseModel):
    question: str = Field(min_length=1)
    answer: str = Field(min_length=1)


class StudyMaterials(BaseModel):
    summary: str = Field(min_length=1)
    keyPoints: List[str] = Field(min_length=1)
    flashcards: List[Flashcard] = Field(min_length=1)
    qa: List[QAPair] = Field(min_length=1)


# ----------------------------
# Request building
# ----------------------------

def build_prompt(content: Optional[str], research_context: str = "") -> str:
    content = (content or "").strip()
    notes_block = NOTES_BLOCK_TEMPLATE.format(content=content) if content else IMAGES_ONLY_BLOCK
    research_block = RESEARCH_BLOCK_TEMPLATE.format(context=research_context) if research_context else ""
    return STUDY_MATERIALS_PROMPT.format(notes_block=notes_block, research_block=research_block)


def build_parts(
    content: Optional[str],
    images: Sequence[NoteImage] = (),
    research_context: str = "",
) -> List[Dict[str, Any]]:
    parts = [text_part(build_prompt(content, research_context))]
    for img in images:
        parts.append(image_part(img.data, img.mime_type))
    return parts


# ----------------------------
# Parsing
# ----------------------------

def parse_study_materials(text: str) -> StudyMaterials:
    """
    Raises ParseError when no JSON object is found and OutputValidationError
    when the object lacks summary/keyPoints/flashcards/qa or they are malformed.
    """
    payload = extract_json_object(text)
    try:
        return StudyMaterials.model_validate(payload)
    except ValidationError as e:
        fields = sorted({str(err["loc"][0]) for err in e.errors() if err.get("loc")})
        raise OutputValidationError(
            f"Study materials response has missing or invalid fields: {', '.join(fields) or 'unknown'}",
            context={"fields": fields},
        ) from e


# ----------------------------
# Public API
# ----------------------------

def synthesize(
    providers: Providers,
    *,
    content: Optional[str],
    images: Sequence[NoteImage] = (),
    research_context: str = "",
    deadline: Deadline,
    candidates: Optional[List[Candidate]] = None,
) -> Tuple[StudyMaterials, FallbackOutcome]:
    """
    One generation request (text + images + research) run through the
    key/model fallback chain. Each attempt only counts as a success once the
    response parses into complete StudyMaterials.
    """
    s = providers.settings
    parts = build_parts(content, images, research_context)
    if images:
        logger.info("Including %d image(s) in synthesis", len(images))

    def _attempt(c: Candidate) -> StudyMaterials:
        result = providers.llm.generate(
            api_key=c.api_key,
            model=c.model,
            parts=parts,
            temperature=SYNTHESIS_TEMPERATURE,
            max_output_tokens=s.gemini_max_output_tokens,
            timeout_s=deadline.bound(s.llm_timeout_sec, stage="synthesis"),
        )
        logger.debug("Synthesis raw response (%s): %s", c.model, result.text[:500])
        return parse_study_materials(result.text)

    chain = candidates if candidates is not None else build_synthesis_candidates(s)
    outcome = run_with_fallback(chain, _attempt, label="synthesis")
    materials = outcome.value
    logger.info(
        "Generated study materials: summary=%d chars, key_points=%d, flashcards=%d, qa=%d (model=%s)",
        len(materials.summary),
        len(materials.keyPoints),
        len(materials.flashcards),
        len(materials.qa),
        outcome.candidate.model,
    )
    return materials, outcome
