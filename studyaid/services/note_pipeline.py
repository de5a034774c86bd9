from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from studyaid.models.note import Note
from studyaid.services import notes as notes_service
from studyaid.services.deadline import Deadline
from studyaid.services.errors import ForbiddenError, InputError, PersistenceError, StudyAidError
from studyaid.services.fallback import Attempt
from studyaid.services.providers import Providers
from studyaid.services.research import ResearchResult, enrich
from studyaid.services.synthesis import NoteImage, synthesize

logger = logging.getLogger(__name__)


@dataclass
class ProcessNoteResult:
    note: Note
    enhanced_with_internet: bool
    research: Optional[ResearchResult] = None
    attempts: List[Attempt] = field(default_factory=list)


def coerce_images(raw: Optional[Sequence[Any]]) -> List[NoteImage]:
    out: List[NoteImage] = []
    for i, img in enumerate(raw or []):
        if isinstance(img, NoteImage):
            out.append(img)
            continue
        data = img.get("data") if isinstance(img, dict) else getattr(img, "data", None)
        mime = (img.get("mimeType") or img.get("mime_type")) if isinstance(img, dict) else getattr(img, "mimeType", None)
        if not data or not mime:
            raise InputError(f"Image #{i + 1} needs both data and mimeType")
        out.append(NoteImage(data=data, mime_type=mime))
    return out


def validate_request(note_id: Optional[str], content: Optional[str], images: Sequence[NoteImage]) -> None:
    """Checked before any provider (or the store) is touched."""
    if not note_id or (not (content or "").strip() and not images):
        raise InputError("Note ID and either content or images are required")


def process_note(
    db: Session,
    providers: Providers,
    *,
    note_id: Optional[str],
    content: Optional[str] = None,
    images: Optional[Sequence[Any]] = None,
    enhance_with_internet: bool = False,
    user_id: Optional[str] = None,
) -> ProcessNoteResult:
    """
    pending -> processing -> completed | error

    When `user_id` is given the note must belong to it; nothing is touched otherwise.
    Any fatal failure moves the note to `error` before the exception leaves
    this function, so a note never stays in `processing`.
    """
    imgs = coerce_images(images)
    validate_request(note_id, content, imgs)

    note = notes_service.get_note(db, note_id)
    if user_id is not None and note.user_id != user_id:
        raise ForbiddenError("Note belongs to another user")

    s = providers.settings
    deadline = Deadline(s.pipeline_timeout_sec)

    logger.info(
        "Processing note %s: content_length=%d images=%d enhance=%s",
        note_id,
        len(content or ""),
        len(imgs),
        enhance_with_internet,
    )
    notes_service.set_processing(db, note_id)

    research: Optional[ResearchResult] = None
    try:
        context = ""
        if enhance_with_internet:
            logger.info("Enhancing note %s with internet research", note_id)
            research = enrich(providers, content or "", deadline)
            context = research.context

        materials, outcome = synthesize(
            providers,
            content=content,
            images=imgs,
            research_context=context,
            deadline=deadline,
        )

        try:
            note = notes_service.set_completed(
                db,
                note_id,
                summary=materials.summary,
                key_points=list(materials.keyPoints),
                flashcards=[fc.model_dump() for fc in materials.flashcards],
                qa=[p.model_dump() for p in materials.qa],
            )
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError(f"Failed to save study materials: {e}") from e

    except StudyAidError as e:
        _mark_error(db, note_id, e.message)
        raise
    except Exception as e:
        _mark_error(db, note_id, str(e) or e.__class__.__name__)
        raise

    logger.info("Successfully processed note %s", note_id)
    return ProcessNoteResult(
        note=note,
        enhanced_with_internet=bool(enhance_with_internet and context),
        research=research,
        attempts=outcome.attempts,
    )


def _mark_error(db: Session, note_id: str, message: str) -> None:
    try:
        notes_service.set_error(db, note_id, message)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to update note %s status to error", note_id)
