from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

from studyaid.core.config import Settings
from studyaid.services.errors import ProviderError, QuotaExhaustedError, StudyAidError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Candidate:
    key_slot: str  # primary | secondary (never log the key itself)
    api_key: str = field(repr=False)
    model: str


@dataclass
class Attempt:
    key_slot: str
    model: str
    ok: bool
    code: Optional[str] = None
    message: Optional[str] = None
    provider_status: Optional[int] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "key_slot": self.key_slot,
            "model": self.model,
            "ok": self.ok,
            "code": self.code,
            "message": self.message,
            "provider_status": self.provider_status,
        }


@dataclass
class FallbackOutcome(Generic[T]):
    value: T
    candidate: Candidate
    attempts: List[Attempt]
    state: str = "succeeded"


def build_synthesis_candidates(settings: Settings) -> List[Candidate]:
    """
    Ordered escalation chain for study-material synthesis:
      1. primary key   + primary model
      2. secondary key + primary model          (only when a secondary key exists)
      3. fallback model on the secondary key if present, else the primary key
      4. light model under the same key rule as 3

    Steps 2-4 are only reached after quota-shaped failures; any other error
    stops the chain, so the secondary key is always preferred once present.
    """
    primary = settings.gemini_api_key
    secondary = settings.gemini_api_key_secondary
    if not primary:
        return []

    out = [Candidate("primary", primary, settings.gemini_primary_model)]
    if secondary:
        out.append(Candidate("secondary", secondary, settings.gemini_primary_model))

    slot, key = ("secondary", secondary) if secondary else ("primary", primary)
    out.append(Candidate(slot, key, settings.gemini_fallback_model))
    out.append(Candidate(slot, key, settings.gemini_light_model))
    return out


def build_key_rotation(settings: Settings, model: str) -> List[Candidate]:
    """Same model, primary then secondary key. Used for the cheap enrichment call."""
    out: List[Candidate] = []
    if settings.gemini_api_key:
        out.append(Candidate("primary", settings.gemini_api_key, model))
    if settings.gemini_api_key_secondary:
        out.append(Candidate("secondary", settings.gemini_api_key_secondary, model))
    return out


def run_with_fallback(
    candidates: List[Candidate],
    attempt: Callable[[Candidate], T],
    *,
    label: str = "synthesis",
) -> FallbackOutcome[T]:
    """
    Consume candidates strictly in order, one at a time.

    States: trying -> succeeded (first attempt that returns)
                   -> raised    (first non-quota error, re-raised as is)
                   -> exhausted (every candidate failed quota-shaped; raises
                                 QuotaExhaustedError carrying the first error)
    """
    if not candidates:
        raise ProviderError("Gemini API key not configured")

    attempts: List[Attempt] = []
    first_quota: Optional[QuotaExhaustedError] = None

    for i, c in enumerate(candidates, start=1):
        logger.info("%s attempt %d/%d: key=%s model=%s", label, i, len(candidates), c.key_slot, c.model)
        try:
            value = attempt(c)
        except QuotaExhaustedError as e:
            attempts.append(Attempt(c.key_slot, c.model, False, e.code, e.message, e.provider_status))
            logger.warning("%s quota-shaped failure on key=%s model=%s: %s", label, c.key_slot, c.model, e.message)
            if first_quota is None:
                first_quota = e
            continue
        except StudyAidError as e:
            attempts.append(Attempt(c.key_slot, c.model, False, e.code, e.message, e.provider_status))
            logger.error("%s failed on key=%s model=%s (%s): %s", label, c.key_slot, c.model, e.code, e.message)
            e.context.setdefault("attempts", [a.as_dict() for a in attempts])
            raise

        attempts.append(Attempt(c.key_slot, c.model, True))
        return FallbackOutcome(value=value, candidate=c, attempts=attempts)

    if first_quota is None:
        raise ProviderError("Gemini fallback chain ended without an attempt")

    logger.error("%s exhausted %d candidates on quota errors", label, len(candidates))
    raise QuotaExhaustedError(
        f"Gemini error: {first_quota.message}",
        provider_status=first_quota.provider_status,
        context={"attempts": [a.as_dict() for a in attempts]},
    )
