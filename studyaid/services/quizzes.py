from __future__ import annotations

import logging
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field, ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from studyaid.models.quiz import Quiz, QuizQuestion
from studyaid.services.deadline import Deadline
from studyaid.services.errors import (
    ForbiddenError,
    InputError,
    NotFoundError,
    OutputValidationError,
    PersistenceError,
)
from studyaid.services.json_extract import extract_json_object
from studyaid.services.llm.gemini_client import text_part
from studyaid.services.llm.prompts import QUIZ_PROMPT_TEMPLATE
from studyaid.services.providers import Providers

logger = logging.getLogger(__name__)

QUESTIONS_PER_QUIZ = 10
QUIZ_TEMPERATURE = 0.7


class GeneratedQuestion(BaseModel):
    question_text: str = Field(min_length=1)
    option_a: str = Field(min_length=1)
    option_b: str = Field(min_length=1)
    option_c: str = Field(min_length=1)
    option_d: str = Field(min_length=1)
    correct_answer: Literal["A", "B", "C", "D"]


class GeneratedQuiz(BaseModel):
    questions: List[GeneratedQuestion]


# ----------------------------
# Parsing / validation
# ----------------------------

def parse_quiz(text: str) -> List[GeneratedQuestion]:
    """
    Exactly 10 well-formed questions or an error. Nothing is coerced:
    a lowercase or out-of-range answer letter rejects the whole quiz.
    """
    payload = extract_json_object(text)
    try:
        quiz = GeneratedQuiz.model_validate(payload)
    except ValidationError as e:
        raise OutputValidationError(
            "AI generated invalid quiz structure",
            context={"errors": [err.get("msg") for err in e.errors()][:10]},
        ) from e

    if len(quiz.questions) != QUESTIONS_PER_QUIZ:
        raise OutputValidationError(
            f"AI generated invalid quiz structure: expected {QUESTIONS_PER_QUIZ} questions, got {len(quiz.questions)}",
            context={"count": len(quiz.questions)},
        )
    return quiz.questions


# ----------------------------
# Persistence gateway
# ----------------------------

def create_quiz_header(
    db: Session,
    *,
    title: str,
    description: Optional[str],
    creator_id: str,
    is_public: bool = True,
) -> Quiz:
    quiz = Quiz(title=title, description=description or None, creator_id=creator_id, is_public=is_public)
    db.add(quiz)
    db.commit()
    db.refresh(quiz)
    return quiz


def insert_quiz_questions(db: Session, quiz_id: str, questions: List[GeneratedQuestion]) -> None:
    for number, q in enumerate(questions, start=1):
        db.add(
            QuizQuestion(
                quiz_id=quiz_id,
                question_number=number,
                question_text=q.question_text,
                option_a=q.option_a,
                option_b=q.option_b,
                option_c=q.option_c,
                option_d=q.option_d,
                correct_answer=q.correct_answer,
            )
        )
    db.commit()


def delete_quiz(db: Session, quiz_id: str) -> None:
    db.query(QuizQuestion).filter(QuizQuestion.quiz_id == quiz_id).delete()
    db.query(Quiz).filter(Quiz.id == quiz_id).delete()
    db.commit()


def get_quiz(db: Session, quiz_id: str) -> Quiz:
    quiz = db.query(Quiz).filter(Quiz.id == quiz_id).first()
    if not quiz:
        raise NotFoundError("Quiz not found", context={"quiz_id": quiz_id})
    return quiz


def list_public_quizzes(db: Session, limit: int = 50, offset: int = 0) -> List[Quiz]:
    return (
        db.query(Quiz)
        .filter(Quiz.is_public.is_(True))
        .order_by(Quiz.created_at.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )


def set_quiz_visibility(db: Session, quiz_id: str, user_id: str, is_public: bool) -> Quiz:
    quiz = get_quiz(db, quiz_id)
    if quiz.creator_id != user_id:
        raise ForbiddenError("Only the quiz creator can change its visibility")
    quiz.is_public = is_public
    db.commit()
    db.refresh(quiz)
    return quiz


def quiz_to_dict(quiz: Quiz, include_questions: bool = True) -> dict[str, Any]:
    out: dict[str, Any] = {
        "id": quiz.id,
        "title": quiz.title,
        "description": quiz.description,
        "creator_id": quiz.creator_id,
        "is_public": quiz.is_public,
        "created_at": quiz.created_at.isoformat() if quiz.created_at else None,
    }
    if include_questions:
        out["questions"] = [
            {
                "question_number": q.question_number,
                "question_text": q.question_text,
                "option_a": q.option_a,
                "option_b": q.option_b,
                "option_c": q.option_c,
                "option_d": q.option_d,
                "correct_answer": q.correct_answer,
            }
            for q in quiz.questions
        ]
    return out


# ----------------------------
# Main entrypoint
# ----------------------------

def generate_quiz(
    db: Session,
    providers: Providers,
    *,
    title: Optional[str],
    topic: Optional[str],
    user_id: str,
    description: Optional[str] = None,
) -> Quiz:
    """
    Single LLM call, no fallback chain. The header is written only after all
    10 questions validate; if the question rows then fail, the header is
    deleted again so no empty quiz is left behind.
    """
    title = (title or "").strip()
    topic = (topic or "").strip()
    if not title or not topic:
        raise InputError("Title and topic are required")

    s = providers.settings
    deadline = Deadline(s.pipeline_timeout_sec)

    logger.info("Generating quiz for topic: %s", topic)
    result = providers.llm.generate(
        api_key=s.gemini_api_key or "",
        model=s.gemini_quiz_model,
        parts=[text_part(QUIZ_PROMPT_TEMPLATE.format(topic=topic))],
        temperature=QUIZ_TEMPERATURE,
        max_output_tokens=s.gemini_max_output_tokens,
        timeout_s=deadline.bound(s.llm_timeout_sec, stage="quiz"),
    )
    logger.debug("Quiz raw response: %s", result.text[:500])
    questions = parse_quiz(result.text)

    try:
        quiz = create_quiz_header(db, title=title, description=description, creator_id=user_id)
    except SQLAlchemyError as e:
        db.rollback()
        raise PersistenceError("Failed to create quiz") from e
    logger.info("Quiz created: %s", quiz.id)

    try:
        insert_quiz_questions(db, quiz.id, questions)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Error creating questions for quiz %s: %s", quiz.id, e)
        delete_quiz(db, quiz.id)
        raise PersistenceError("Failed to create quiz questions", context={"quiz_id": quiz.id}) from e

    db.refresh(quiz)
    logger.info("Quiz questions created successfully for quiz %s", quiz.id)
    return quiz
