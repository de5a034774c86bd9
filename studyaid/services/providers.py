from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Optional, Protocol

from tavily import TavilyClient

from studyaid.core.config import Settings, settings as default_settings
from studyaid.services.llm.gemini_client import GeminiClient


class SearchClient(Protocol):
    def search(self, query: str, **kwargs: Any) -> dict: ...


@dataclass(frozen=True)
class Providers:
    """Outbound collaborators for one process, built once from Settings."""

    settings: Settings
    llm: GeminiClient
    search: Optional[SearchClient] = None


def build_providers(settings: Settings = default_settings) -> Providers:
    search = TavilyClient(api_key=settings.tavily_api_key) if settings.tavily_api_key else None
    return Providers(
        settings=settings,
        llm=GeminiClient(settings.gemini_base_url, timeout_s=settings.llm_timeout_sec),
        search=search,
    )


@lru_cache(maxsize=1)
def get_providers() -> Providers:
    return build_providers()
