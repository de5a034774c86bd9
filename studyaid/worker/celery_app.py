import os

from celery import Celery

from studyaid.core.celery_settings import is_test_env
from studyaid.core.logging import configure_logging


def _env(name: str, default: str | None = None) -> str | None:
    v = os.getenv(name)
    return v if v and v.strip() else default


BROKER_URL = _env("CELERY_BROKER_URL") or _env("REDIS_URL") or "redis://localhost:6379/0"
RESULT_BACKEND = _env("CELERY_RESULT_BACKEND") or BROKER_URL

celery_app = Celery(
    "studyaid",
    broker=BROKER_URL,
    backend=RESULT_BACKEND,
    include=["studyaid.worker.tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    task_track_started=True,
    result_extended=True,
    enable_utc=True,
    timezone="UTC",
)

if is_test_env():
    # run in-process; nothing is sent to the broker and no result is stored
    celery_app.conf.update(
        task_always_eager=True,
        task_eager_propagates=False,
        task_store_eager_result=False,
    )

configure_logging()

__all__ = ["celery_app"]
