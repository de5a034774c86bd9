from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from studyaid.db.session import get_db
from studyaid.services.jobs import get_job, get_job_payload

router = APIRouter(prefix="/jobs", tags=["jobs"])


class JobGetResponse(BaseModel):
    ok: bool
    job_id: int
    job_type: str
    status: str
    error: str | None
    payload: dict


@router.get("/{job_id}", response_model=JobGetResponse)
def get(job_id: int, db: Session = Depends(get_db)) -> JobGetResponse:
    job = get_job(db, job_id)
    return JobGetResponse(
        ok=True,
        job_id=job.id,
        job_type=job.job_type,
        status=job.status,
        error=job.error,
        payload=get_job_payload(job),
    )
