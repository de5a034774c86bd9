from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import List, Optional

from studyaid.services.deadline import Deadline
from studyaid.services.errors import StudyAidError
from studyaid.services.fallback import build_key_rotation, run_with_fallback
from studyaid.services.llm.gemini_client import text_part
from studyaid.services.llm.prompts import TOPICS_PROMPT_TEMPLATE
from studyaid.services.providers import Providers, SearchClient

logger = logging.getLogger(__name__)

MAX_TOPICS = 2
TOPICS_TEMPERATURE = 0.3
TOPICS_MAX_OUTPUT_TOKENS = 150


@dataclass
class TopicOutcome:
    topic: str
    answer: Optional[str] = None
    skipped: Optional[str] = None  # reason when the topic contributed nothing

    @property
    def contributed(self) -> bool:
        return bool(self.answer)


@dataclass
class ResearchResult:
    topics: List[str] = field(default_factory=list)
    outcomes: List[TopicOutcome] = field(default_factory=list)
    error: Optional[str] = None  # set when topic extraction itself failed

    @property
    def context(self) -> str:
        return "".join(
            f'\n\n## Research on "{o.topic}":\n{o.answer}' for o in self.outcomes if o.contributed
        )

    def as_dict(self) -> dict:
        return {
            "topics": self.topics,
            "error": self.error,
            "outcomes": [{"topic": o.topic, "contributed": o.contributed, "skipped": o.skipped} for o in self.outcomes],
        }


def parse_topics(text: str) -> List[str]:
    return [line.strip() for line in (text or "").split("\n") if line.strip()]


def extract_topics(providers: Providers, content: str, deadline: Deadline) -> List[str]:
    s = providers.settings
    prompt = TOPICS_PROMPT_TEMPLATE.format(content=content)

    def _attempt(c):
        return providers.llm.generate(
            api_key=c.api_key,
            model=c.model,
            parts=[text_part(prompt)],
            temperature=TOPICS_TEMPERATURE,
            max_output_tokens=TOPICS_MAX_OUTPUT_TOKENS,
            # topic lists are short; flash models would otherwise spend the budget thinking
            thinking_budget=0 if "flash" in c.model else None,
            timeout_s=deadline.bound(s.llm_timeout_sec, stage="topics"),
        )

    outcome = run_with_fallback(build_key_rotation(s, s.gemini_topic_model), _attempt, label="topics")
    return parse_topics(outcome.value.text)[:MAX_TOPICS]


def search_topic(search: SearchClient, topic: str, deadline: Deadline, timeout_sec: float) -> TopicOutcome:
    """
    One search per topic. Never raises: any failure becomes a skipped outcome
    so the sibling topic still contributes.
    """
    try:
        timeout = deadline.bound(timeout_sec, stage="search")
        resp = search.search(
            query=topic,
            search_depth="basic",
            include_answer=True,
            include_raw_content=False,
            max_results=3,
            timeout=max(1, int(timeout)),
        )
    except Exception as e:
        logger.warning("Search failed for topic %r: %s", topic, e)
        return TopicOutcome(topic=topic, skipped=f"search_error: {e}")

    answer = (resp or {}).get("answer") if isinstance(resp, dict) else None
    if not answer or not str(answer).strip():
        return TopicOutcome(topic=topic, skipped="no_answer")
    return TopicOutcome(topic=topic, answer=str(answer).strip())


def enrich(providers: Providers, content: str, deadline: Deadline) -> ResearchResult:
    """
    Best-effort research context for the notes. Never raises.
    """
    if providers.search is None:
        return ResearchResult(error="search provider not configured")
    if not (content or "").strip():
        return ResearchResult(error="no text to research")

    try:
        topics = extract_topics(providers, content, deadline)
    except StudyAidError as e:
        logger.warning("Internet enhancement skipped, topic extraction failed: %s", e.message)
        return ResearchResult(error=e.message)

    if not topics:
        return ResearchResult(error="no topics extracted")

    result = ResearchResult(topics=topics)
    search_timeout = providers.settings.search_timeout_sec

    pool = ThreadPoolExecutor(max_workers=len(topics), thread_name_prefix="research")
    try:
        futures: List[Future] = [
            pool.submit(search_topic, providers.search, t, deadline, search_timeout) for t in topics
        ]
        wait(futures, timeout=deadline.remaining())
        for t, f in zip(topics, futures):
            if f.done():
                result.outcomes.append(f.result())
            else:
                f.cancel()
                result.outcomes.append(TopicOutcome(topic=t, skipped="timeout"))
    finally:
        pool.shutdown(wait=False, cancel_futures=True)

    for o in result.outcomes:
        logger.info("Research topic %r: %s", o.topic, "ok" if o.contributed else o.skipped)
    return result
