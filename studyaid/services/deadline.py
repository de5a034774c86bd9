from __future__ import annotations

import time
from typing import Callable

from studyaid.services.errors import PipelineTimeoutError


class Deadline:
    """
    End-to-end time budget for one pipeline run.

    Every outbound call asks `bound(per_call)` for its timeout, so no single call
    can outlive the pipeline and a note cannot stay in `processing` forever.
    """

    def __init__(self, seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self.seconds = float(seconds)
        self._expires_at = clock() + self.seconds

    def remaining(self) -> float:
        return max(0.0, self._expires_at - self._clock())

    def expired(self) -> bool:
        return self.remaining() <= 0.0

    def bound(self, per_call: float, *, stage: str = "pipeline") -> float:
        left = self.remaining()
        if left <= 0.0:
            raise PipelineTimeoutError(
                f"Pipeline timed out after {self.seconds:.0f}s (during {stage})",
                context={"stage": stage},
            )
        return min(float(per_call), left)
