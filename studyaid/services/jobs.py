import json
from typing import Any

from sqlalchemy.orm import Session

from studyaid.models.job import Job
from studyaid.services.errors import NotFoundError


def create_job(db: Session, job_type: str, payload: dict) -> Job:
    job = Job(
        job_type=job_type,
        status="queued",
        payload_json=json.dumps(payload or {}, ensure_ascii=False),
    )
    db.add(job)
    db.commit()
    db.refresh(job)
    return job


def get_job(db: Session, job_id: int) -> Job:
    job = db.query(Job).filter(Job.id == job_id).first()
    if not job:
        raise NotFoundError("Job not found", context={"job_id": job_id})
    return job


def set_job_status(db: Session, job_id: int, status: str, error: str | None = None) -> Job:
    job = db.query(Job).filter(Job.id == job_id).one()
    job.status = status
    job.error = error
    db.commit()
    db.refresh(job)
    return job


def get_job_payload(job: Job) -> dict[str, Any]:
    try:
        base = json.loads(job.payload_json or "{}")
    except ValueError:
        return {}
    return base if isinstance(base, dict) else {}


def merge_job_payload(db: Session, job_id: int, patch: dict[str, Any]) -> Job:
    """
    Merge a patch into payload_json: existing keys are kept, keys present in
    the patch overwrite.
    """
    job = db.query(Job).filter(Job.id == job_id).one()
    base = get_job_payload(job)
    base.update(patch or {})
    job.payload_json = json.dumps(base, ensure_ascii=False)
    db.commit()
    db.refresh(job)
    return job
