from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from studyaid.services.errors import InputError, ProviderError

logger = logging.getLogger(__name__)

SEARCH_URL = "https://en.wikipedia.org/w/api.php"
SUMMARY_URL = "https://en.wikipedia.org/api/rest_v1/page/summary/{title}"
USER_AGENT = "studyaid-api/0.1 (wikipedia widget)"


def _get(url: str, params: Optional[Dict[str, Any]], transport: Optional[httpx.BaseTransport]) -> Dict[str, Any]:
    try:
        with httpx.Client(timeout=httpx.Timeout(15.0), transport=transport, headers={"User-Agent": USER_AGENT}) as client:
            r = client.get(url, params=params)
            r.raise_for_status()
            return r.json()
    except httpx.HTTPStatusError as e:
        raise ProviderError(
            f"Wikipedia error: {e.response.status_code}",
            code="WIKIPEDIA_ERROR",
            provider_status=e.response.status_code,
        ) from e
    except httpx.HTTPError as e:
        raise ProviderError(f"Wikipedia request failed: {e}", code="WIKIPEDIA_ERROR") from e


def search(query: str, transport: Optional[httpx.BaseTransport] = None) -> Dict[str, Any]:
    query = (query or "").strip()
    if not query:
        raise InputError("query is required for action=search")
    logger.info("Searching Wikipedia for: %s", query)
    params = {"action": "query", "list": "search", "srsearch": query, "format": "json", "origin": "*"}
    return _get(SEARCH_URL, params, transport)


def summary(title: str, transport: Optional[httpx.BaseTransport] = None) -> Dict[str, Any]:
    title = (title or "").strip()
    if not title:
        raise InputError("title is required for action=summary")
    logger.info("Fetching Wikipedia summary for: %s", title)
    return _get(SUMMARY_URL.format(title=quote(title.replace(" ", "_"), safe="")), None, transport)
