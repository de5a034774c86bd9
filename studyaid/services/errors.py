"""
Exception hierarchy for the study-aid pipelines.

Every error carries:
- code: machine-readable string (e.g. "GEMINI_QUOTA")
- status_code: HTTP status the API answers with
- provider_status: upstream HTTP status when the failure came from a provider
- context: optional structured metadata
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class StudyAidError(Exception):
    """Base exception for all study-aid domain errors."""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        provider_status: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.provider_status = provider_status
        self.context = context or {}
        super().__init__(message)

    def to_payload(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"success": False, "error": self.message, "code": self.code}
        if self.provider_status is not None:
            out["provider_status"] = self.provider_status
        return out


class InputError(StudyAidError):
    """Request rejected before any provider was called."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="INVALID_INPUT", status_code=400, context=context)


class AuthError(StudyAidError):
    def __init__(self, message: str = "Invalid authentication"):
        super().__init__(message, code="UNAUTHORIZED", status_code=401)


class ForbiddenError(StudyAidError):
    def __init__(self, message: str = "Forbidden"):
        super().__init__(message, code="FORBIDDEN", status_code=403)


class NotFoundError(StudyAidError):
    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="NOT_FOUND", status_code=404, context=context)


class ProviderError(StudyAidError):
    """The LLM, search or speech provider call itself failed (network, auth, bad request)."""

    def __init__(
        self,
        message: str,
        code: str = "GEMINI_ERROR",
        provider_status: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
        status_code: int = 502,
    ):
        super().__init__(
            message,
            code=code,
            status_code=status_code,
            provider_status=provider_status,
            context=context,
        )


class QuotaExhaustedError(ProviderError):
    """Quota/rate-limit shaped provider failure. Retry later."""

    def __init__(
        self,
        message: str,
        provider_status: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message,
            code="GEMINI_QUOTA",
            provider_status=provider_status,
            context=context,
            status_code=429,
        )


class PipelineTimeoutError(ProviderError):
    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="PIPELINE_TIMEOUT", context=context, status_code=504)


class ParseError(StudyAidError):
    """Provider answered, but the text holds no parseable JSON object."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="PARSE_ERROR", status_code=422, context=context)


class OutputValidationError(StudyAidError):
    """Parsed JSON has the wrong shape, cardinality or enum values."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="INVALID_OUTPUT", status_code=422, context=context)


class PersistenceError(StudyAidError):
    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="PERSISTENCE_ERROR", status_code=500, context=context)
