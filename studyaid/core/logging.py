import logging
import sys

from studyaid.core.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str | None = None) -> None:
    """
    Configure root logging once for the API process and the worker.
    basicConfig is a no-op if handlers already exist (e.g. under pytest).
    """
    logging.basicConfig(
        level=(level or settings.log_level or "INFO").upper(),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    # httpx logs every request line at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
