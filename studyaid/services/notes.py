import json
from typing import Any

from sqlalchemy.orm import Session

from studyaid.models.note import Note
from studyaid.services.errors import NotFoundError


def _loads(s: str | None):
    if not s:
        return None
    try:
        return json.loads(s)
    except ValueError:
        return None


def create_note(
    db: Session,
    *,
    user_id: str,
    content: str | None,
    title: str | None = None,
    note_id: str | None = None,
) -> Note:
    note = Note(
        user_id=user_id,
        title=title,
        original_content=content or "",
        processing_status="pending",
    )
    if note_id:
        note.id = note_id
    db.add(note)
    db.commit()
    db.refresh(note)
    return note


def get_note(db: Session, note_id: str) -> Note:
    note = db.query(Note).filter(Note.id == note_id).first()
    if not note:
        raise NotFoundError("Note not found", context={"note_id": note_id})
    return note


def list_notes(db: Session, user_id: str, limit: int = 50, offset: int = 0) -> list[Note]:
    return (
        db.query(Note)
        .filter(Note.user_id == user_id)
        .order_by(Note.created_at.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )


def set_processing(db: Session, note_id: str) -> Note:
    note = db.query(Note).filter(Note.id == note_id).one()
    note.processing_status = "processing"
    note.error = None
    db.commit()
    db.refresh(note)
    return note


def set_completed(
    db: Session,
    note_id: str,
    *,
    summary: str,
    key_points: list[str],
    flashcards: list[dict],
    qa: list[dict],
) -> Note:
    """All generated fields land in the same commit as the status change."""
    note = db.query(Note).filter(Note.id == note_id).one()
    note.summary = summary
    note.key_points_json = json.dumps(key_points, ensure_ascii=False)
    note.flashcards_json = json.dumps(flashcards, ensure_ascii=False)
    note.qa_json = json.dumps(qa, ensure_ascii=False)
    note.processing_status = "completed"
    note.error = None
    db.commit()
    db.refresh(note)
    return note


def set_error(db: Session, note_id: str, error: str) -> Note:
    """Terminal failure. Generated fields are left as they were."""
    note = db.query(Note).filter(Note.id == note_id).one()
    note.processing_status = "error"
    note.error = error
    db.commit()
    db.refresh(note)
    return note


def note_to_dict(note: Note) -> dict[str, Any]:
    return {
        "id": note.id,
        "user_id": note.user_id,
        "title": note.title,
        "original_content": note.original_content,
        "processing_status": note.processing_status,
        "summary": note.summary,
        "key_points": _loads(note.key_points_json),
        "generated_flashcards": _loads(note.flashcards_json),
        "generated_qa": _loads(note.qa_json),
        "error": note.error,
        "created_at": note.created_at.isoformat() if note.created_at else None,
        "updated_at": note.updated_at.isoformat() if note.updated_at else None,
    }
