from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from studyaid.api.deps import get_current_user_id
from studyaid.db.session import get_db
from studyaid.services.errors import ForbiddenError
from studyaid.services.jobs import create_job
from studyaid.services.note_pipeline import coerce_images, validate_request
from studyaid.services.notes import create_note, get_note, list_notes, note_to_dict
from studyaid.worker.tasks import process_note_task

router = APIRouter(prefix="/notes", tags=["notes"])


class NoteCreateRequest(BaseModel):
    content: str | None = None
    title: str | None = None


class NoteResponse(BaseModel):
    ok: bool
    note: dict


class NoteListResponse(BaseModel):
    ok: bool
    count: int
    items: list[dict]


class ImageIn(BaseModel):
    data: str
    mimeType: str


class NoteProcessRequest(BaseModel):
    content: str | None = None  # defaults to the stored note text
    images: list[ImageIn] = Field(default_factory=list)
    enhanceWithInternet: bool = False


class NoteProcessResponse(BaseModel):
    ok: bool
    note_id: str
    job_id: int
    task_id: str


def _own_note(db: Session, note_id: str, user_id: str):
    note = get_note(db, note_id)
    if note.user_id != user_id:
        raise ForbiddenError("Note belongs to another user")
    return note


@router.post("", response_model=NoteResponse)
def create(
    req: NoteCreateRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> NoteResponse:
    note = create_note(db, user_id=user_id, content=req.content, title=req.title)
    return NoteResponse(ok=True, note=note_to_dict(note))


@router.get("", response_model=NoteListResponse)
def list_(
    limit: int = 50,
    offset: int = 0,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> NoteListResponse:
    rows = list_notes(db, user_id, limit=min(max(limit, 1), 200), offset=max(offset, 0))
    return NoteListResponse(ok=True, count=len(rows), items=[note_to_dict(n) for n in rows])


@router.get("/{note_id}", response_model=NoteResponse)
def get(
    note_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> NoteResponse:
    return NoteResponse(ok=True, note=note_to_dict(_own_note(db, note_id, user_id)))


@router.post("/{note_id}/process", response_model=NoteProcessResponse)
def process(
    note_id: str,
    req: NoteProcessRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> NoteProcessResponse:
    note = _own_note(db, note_id, user_id)
    content = req.content if req.content is not None else note.original_content
    images = [img.model_dump() for img in req.images]
    validate_request(note_id, content, coerce_images(images))

    job = create_job(db, "process_note", {"note_id": note_id, "enhance_with_internet": req.enhanceWithInternet})
    async_result = process_note_task.delay(job.id, note_id, content, images, req.enhanceWithInternet)
    return NoteProcessResponse(ok=True, note_id=note_id, job_id=job.id, task_id=async_result.id)
