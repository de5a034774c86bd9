from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from studyaid.db.session import SessionLocal
from studyaid.services.errors import StudyAidError
from studyaid.services.jobs import merge_job_payload, set_job_status
from studyaid.services.note_pipeline import process_note
from studyaid.services.providers import get_providers
from studyaid.services.quizzes import generate_quiz
from studyaid.worker.celery_app import celery_app

logger = logging.getLogger(__name__)


def _fail(db: Session, job_id: int, e: Exception) -> None:
    msg = e.message if isinstance(e, StudyAidError) else (str(e) or e.__class__.__name__)
    patch = {"progress": {"stage": "failed"}}
    if isinstance(e, StudyAidError):
        patch["code"] = e.code
        if e.context.get("attempts"):
            patch["attempts"] = e.context["attempts"]
    db.rollback()
    merge_job_payload(db, job_id, patch)
    set_job_status(db, job_id, "failed", error=msg)


@celery_app.task(name="notes.process")
def process_note_task(
    job_id: int,
    note_id: str,
    content: str | None = None,
    images: list[dict] | None = None,
    enhance_with_internet: bool = False,
) -> dict:
    db: Session = SessionLocal()
    try:
        set_job_status(db, job_id, "running")
        merge_job_payload(db, job_id, {"note_id": note_id, "progress": {"stage": "process"}})

        result = process_note(
            db,
            get_providers(),
            note_id=note_id,
            content=content,
            images=images,
            enhance_with_internet=enhance_with_internet,
        )

        merge_job_payload(
            db,
            job_id,
            {
                "progress": {"stage": "done"},
                "enhanced_with_internet": result.enhanced_with_internet,
                "research": result.research.as_dict() if result.research else None,
                "attempts": [a.as_dict() for a in result.attempts],
            },
        )
        set_job_status(db, job_id, "done")
        return {"ok": True, "job_id": job_id, "note_id": note_id}
    except Exception as e:
        logger.error("notes.process failed for job %s: %s", job_id, e)
        _fail(db, job_id, e)
        raise
    finally:
        db.close()


@celery_app.task(name="quizzes.generate")
def generate_quiz_task(
    job_id: int,
    user_id: str,
    title: str,
    topic: str,
    description: str | None = None,
) -> dict:
    db: Session = SessionLocal()
    try:
        set_job_status(db, job_id, "running")
        quiz = generate_quiz(
            db,
            get_providers(),
            title=title,
            topic=topic,
            user_id=user_id,
            description=description,
        )
        merge_job_payload(db, job_id, {"quiz_id": quiz.id, "progress": {"stage": "done"}})
        set_job_status(db, job_id, "done")
        return {"ok": True, "job_id": job_id, "quiz_id": quiz.id}
    except Exception as e:
        logger.error("quizzes.generate failed for job %s: %s", job_id, e)
        _fail(db, job_id, e)
        raise
    finally:
        db.close()
