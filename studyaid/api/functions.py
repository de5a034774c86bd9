from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from studyaid.api.deps import get_current_user_id, providers_dep
from studyaid.db.session import get_db
from studyaid.services import wikipedia
from studyaid.services.errors import QuotaExhaustedError, StudyAidError
from studyaid.services.extraction import extract_text
from studyaid.services.note_pipeline import process_note
from studyaid.services.notes import note_to_dict
from studyaid.services.providers import Providers
from studyaid.services.quizzes import generate_quiz
from studyaid.services.transcribe import transcribe_audio

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/functions", tags=["functions"])


class ImageIn(BaseModel):
    data: str
    mimeType: str


class ProcessNotesRequest(BaseModel):
    noteId: str | None = None
    content: str | None = None
    images: list[ImageIn] = Field(default_factory=list)
    enhanceWithInternet: bool = False


class ProcessNotesResponse(BaseModel):
    success: bool
    note: dict
    enhancedWithInternet: bool


class ExtractTextRequest(BaseModel):
    image: str | None = None
    mimeType: str | None = None


class ExtractTextResponse(BaseModel):
    success: bool
    extractedText: str


class GenerateQuizRequest(BaseModel):
    title: str | None = None
    description: str | None = None
    topic: str | None = None


class GenerateQuizResponse(BaseModel):
    success: bool
    quiz_id: str
    message: str


class WikipediaRequest(BaseModel):
    action: str | None = None
    query: str | None = None
    title: str | None = None


@router.post("/process-notes", response_model=ProcessNotesResponse)
def process_notes(
    req: ProcessNotesRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    providers: Providers = Depends(providers_dep),
) -> ProcessNotesResponse:
    result = process_note(
        db,
        providers,
        note_id=req.noteId,
        content=req.content,
        images=[img.model_dump() for img in req.images],
        enhance_with_internet=req.enhanceWithInternet,
        user_id=user_id,
    )
    return ProcessNotesResponse(
        success=True,
        note=note_to_dict(result.note),
        enhancedWithInternet=result.enhanced_with_internet,
    )


@router.post("/extract-text", response_model=ExtractTextResponse)
def extract_text_endpoint(
    req: ExtractTextRequest,
    providers: Providers = Depends(providers_dep),
) -> ExtractTextResponse:
    text = extract_text(providers, req.image, req.mimeType)
    return ExtractTextResponse(success=True, extractedText=text)


@router.post("/generate-quiz", response_model=GenerateQuizResponse)
def generate_quiz_endpoint(
    req: GenerateQuizRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    providers: Providers = Depends(providers_dep),
) -> GenerateQuizResponse:
    quiz = generate_quiz(
        db,
        providers,
        title=req.title,
        description=req.description,
        topic=req.topic,
        user_id=user_id,
    )
    return GenerateQuizResponse(success=True, quiz_id=quiz.id, message="Quiz generated successfully")


@router.post("/wikipedia-search")
def wikipedia_search(req: WikipediaRequest):
    if req.action == "search":
        return wikipedia.search(req.query or "")
    if req.action == "summary":
        return wikipedia.summary(req.title or "")
    return JSONResponse(status_code=400, content={"error": "Invalid action"})


@router.post("/transcribe-audio")
async def transcribe_audio_endpoint(request: Request, providers: Providers = Depends(providers_dep)):
    audio = await request.body()
    try:
        text = transcribe_audio(audio, providers.settings)
    except QuotaExhaustedError as e:
        return JSONResponse(status_code=429, content={"error": e.message, "isQuotaError": True})
    except StudyAidError as e:
        logger.error("Error in transcribe-audio: %s", e.message)
        return JSONResponse(status_code=e.status_code, content={"error": e.message, "isQuotaError": False})
    return {"text": text}
