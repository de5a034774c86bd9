from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from studyaid.api.deps import get_current_user_id
from studyaid.db.session import get_db
from studyaid.services.errors import InputError
from studyaid.services.jobs import create_job
from studyaid.services.quizzes import get_quiz, list_public_quizzes, quiz_to_dict, set_quiz_visibility
from studyaid.worker.tasks import generate_quiz_task

router = APIRouter(prefix="/quizzes", tags=["quizzes"])


class QuizListResponse(BaseModel):
    ok: bool
    count: int
    items: list[dict]


class QuizResponse(BaseModel):
    ok: bool
    quiz: dict


class QuizVisibilityRequest(BaseModel):
    is_public: bool


class QuizGenerateRequest(BaseModel):
    title: str | None = None
    description: str | None = None
    topic: str | None = None


class QuizGenerateResponse(BaseModel):
    ok: bool
    job_id: int
    task_id: str


@router.get("", response_model=QuizListResponse)
def list_public(limit: int = 50, offset: int = 0, db: Session = Depends(get_db)) -> QuizListResponse:
    rows = list_public_quizzes(db, limit=min(max(limit, 1), 200), offset=max(offset, 0))
    return QuizListResponse(
        ok=True,
        count=len(rows),
        items=[quiz_to_dict(q, include_questions=False) for q in rows],
    )


@router.post("/generate", response_model=QuizGenerateResponse)
def enqueue_generation(
    req: QuizGenerateRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> QuizGenerateResponse:
    title = (req.title or "").strip()
    topic = (req.topic or "").strip()
    if not title or not topic:
        raise InputError("Title and topic are required")

    job = create_job(db, "generate_quiz", {"title": title, "topic": topic})
    async_result = generate_quiz_task.delay(job.id, user_id, title, topic, req.description)
    return QuizGenerateResponse(ok=True, job_id=job.id, task_id=async_result.id)


@router.get("/{quiz_id}", response_model=QuizResponse)
def get(quiz_id: str, db: Session = Depends(get_db)) -> QuizResponse:
    return QuizResponse(ok=True, quiz=quiz_to_dict(get_quiz(db, quiz_id)))


@router.patch("/{quiz_id}", response_model=QuizResponse)
def set_visibility(
    quiz_id: str,
    req: QuizVisibilityRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> QuizResponse:
    quiz = set_quiz_visibility(db, quiz_id, user_id, req.is_public)
    return QuizResponse(ok=True, quiz=quiz_to_dict(quiz))
