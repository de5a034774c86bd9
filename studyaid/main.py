import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.orm import Session

from studyaid.api.functions import router as functions_router
from studyaid.api.jobs import router as jobs_router
from studyaid.api.notes import router as notes_router
from studyaid.api.quizzes import router as quizzes_router
from studyaid.core.logging import configure_logging
from studyaid.db.session import get_db
from studyaid.services.errors import StudyAidError

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="StudyAid API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)


@app.exception_handler(StudyAidError)
async def studyaid_error_handler(request: Request, exc: StudyAidError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: [%s] %s", request.method, request.url.path, exc.code, exc.message)
    else:
        logger.info("%s %s rejected: [%s] %s", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


app.include_router(functions_router)
app.include_router(notes_router)
app.include_router(quizzes_router)
app.include_router(jobs_router)


class HealthResponse(BaseModel):
    ok: bool
    service: str
    version: str
    db_ok: bool


@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    db_ok = False
    db: Session | None = None
    try:
        db = next(get_db())
        db.execute(text("SELECT 1"))
        db_ok = True
    except Exception:
        logger.exception("Health check: database unreachable")
    finally:
        if db is not None:
            db.close()

    return HealthResponse(ok=True, service="api", version=app.version, db_ok=db_ok)
