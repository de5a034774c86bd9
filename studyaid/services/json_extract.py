from __future__ import annotations

import json
import re
from typing import Any

from studyaid.services.errors import ParseError

_FENCED_RE = re.compile(r"```(?:json|JSON)?\s*\n?(.*?)```", re.DOTALL)


def _fenced_block(text: str) -> str | None:
    for m in _FENCED_RE.finditer(text):
        body = m.group(1).strip()
        if body.startswith("{"):
            return body
    return None


def _brace_slice(text: str) -> str | None:
    start = text.find("{")
    end = text.rfind("}")
    if start >= 0 and end > start:
        return text[start : end + 1]
    return None


def extract_json_object(text: str | None) -> dict[str, Any]:
    """
    Best-effort extraction of a JSON object from free-form model output.

    Order:
      1. a fenced ```json block whose body is an object
      2. the slice between the first "{" and the last "}"
      3. the whole text
    The first candidate that parses to a dict wins. Raises ParseError otherwise.
    """
    text = (text or "").strip()
    if not text:
        raise ParseError("Empty response from model")

    candidates: list[str] = []
    for c in (_fenced_block(text), _brace_slice(text), text):
        if c and c not in candidates:
            candidates.append(c)

    last_err: Exception | None = None
    for c in candidates:
        try:
            payload = json.loads(c)
        except json.JSONDecodeError as e:
            last_err = e
            continue
        if isinstance(payload, dict):
            return payload

    raise ParseError(
        "Model response did not contain a JSON object",
        context={"detail": str(last_err) if last_err else "not an object", "head": text[:200]},
    )
