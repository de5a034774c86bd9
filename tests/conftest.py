import json
import os

# must be set before anything under studyaid is imported
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["LOG_LEVEL"] = "WARNING"
for _name in (
    "GEMINI_API_KEY",
    "GEMINI_API_KEY_SECONDARY",
    "TAVILY_API_KEY",
    "SUPABASE_URL",
    "SUPABASE_ANON_KEY",
    "CLOUDFLARE_ACCOUNT_ID",
    "CLOUDFLARE_API_TOKEN",
):
    os.environ.pop(_name, None)

import httpx  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from studyaid.api.deps import get_current_user_id, providers_dep  # noqa: E402
from studyaid.core.config import Settings  # noqa: E402
from studyaid.db.base import Base  # noqa: E402
from studyaid.db.session import SessionLocal, engine  # noqa: E402
from studyaid.main import app  # noqa: E402
from studyaid.services.llm.gemini_client import GeminiClient  # noqa: E402
from studyaid.services.providers import Providers  # noqa: E402

MATERIALS = {
    "summary": (
        "Photosynthesis turns light energy into chemical energy stored in glucose. "
        "It runs in two stages inside the chloroplast and releases oxygen as a by-product."
    ),
    "keyPoints": [
        "Happens in chloroplasts",
        "Releases oxygen",
        "Chlorophyll absorbs red and blue light",
        "Light reactions make ATP and NADPH",
        "The Calvin cycle fixes carbon dioxide",
        "Glucose stores the captured energy",
    ],
    "flashcards": [
        {"front": "Where does photosynthesis happen?", "back": "In the chloroplasts"},
        {"front": "Main pigment?", "back": "Chlorophyll"},
        {"front": "Gas taken in?", "back": "Carbon dioxide"},
        {"front": "Gas released?", "back": "Oxygen"},
        {"front": "Products of the light reactions?", "back": "ATP and NADPH"},
        {"front": "Where do the light reactions run?", "back": "Thylakoid membranes"},
        {"front": "Where does the Calvin cycle run?", "back": "The stroma"},
        {"front": "Enzyme that fixes CO2?", "back": "RuBisCO"},
        {"front": "Sugar produced?", "back": "Glucose"},
    ],
    "qa": [
        {"question": "Which gas is released?", "answer": "Oxygen"},
        {"question": "Why are leaves green?", "answer": "Chlorophyll reflects green light"},
        {"question": "What powers the Calvin cycle?", "answer": "ATP and NADPH from the light reactions"},
        {"question": "Where is water split?", "answer": "In photosystem II"},
        {"question": "What is the overall input?", "answer": "Carbon dioxide, water and light"},
        {"question": "What limits the rate in dim light?", "answer": "Light intensity"},
        {"question": "What happens to the glucose?", "answer": "It is used for respiration or stored as starch"},
    ],
}


class FakeGemini:
    """
    Scripted generateContent endpoint. Each request pops the next queued
    response; every request is recorded as {key, model, body}.
    """

    def __init__(self):
        self.calls = []
        self.queue = []

    def ok(self, text):
        self.queue.append(
            httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": text}]}}]})
        )
        return self

    def error(self, status, message, status_text=None):
        err = {"code": status, "message": message}
        if status_text:
            err["status"] = status_text
        self.queue.append(httpx.Response(status, json={"error": err}))
        return self

    def quota(self, n=1):
        for _ in range(n):
            self.error(429, "Resource has been exhausted (e.g. check quota).", "RESOURCE_EXHAUSTED")
        return self

    def handler(self, request: httpx.Request) -> httpx.Response:
        model = request.url.path.rsplit("/", 1)[-1].split(":")[0]
        self.calls.append(
            {
                "key": request.headers.get("x-goog-api-key"),
                "model": model,
                "body": json.loads(request.content),
            }
        )
        assert self.queue, f"unexpected LLM call to {model}"
        return self.queue.pop(0)

    def prompt(self, i=-1):
        return self.calls[i]["body"]["contents"][0]["parts"][0]["text"]


class FakeSearch:
    def __init__(self, answers=None):
        self.answers = answers or {}
        self.queries = []

    def search(self, query, **kwargs):
        self.queries.append(query)
        answer = self.answers.get(query)
        if isinstance(answer, Exception):
            raise answer
        return {"query": query, "answer": answer, "results": []}


@pytest.fixture()
def gemini():
    return FakeGemini()


@pytest.fixture()
def materials_text():
    return json.dumps(MATERIALS)


@pytest.fixture()
def quiz_text():
    def _make(n=10, answer="B"):
        questions = [
            {
                "question_text": f"Question {i}?",
                "option_a": "first",
                "option_b": "second",
                "option_c": "third",
                "option_d": "fourth",
                "correct_answer": answer,
            }
            for i in range(1, n + 1)
        ]
        return "Here is your quiz:\n" + json.dumps({"questions": questions})

    return _make


@pytest.fixture()
def make_settings():
    def _make(**overrides):
        base = dict(
            gemini_api_key="key-primary",
            gemini_api_key_secondary=None,
            gemini_base_url="https://llm.test/v1beta",
            tavily_api_key=None,
            supabase_url="https://auth.test",
            supabase_anon_key="anon-key",
            pipeline_timeout_sec=60.0,
        )
        base.update(overrides)
        return Settings(**base)

    return _make


@pytest.fixture()
def make_providers(gemini, make_settings):
    def _make(search=None, **overrides):
        settings = make_settings(**overrides)
        llm = GeminiClient(settings.gemini_base_url, transport=httpx.MockTransport(gemini.handler))
        return Providers(settings=settings, llm=llm, search=search)

    return _make


@pytest.fixture()
def providers(make_providers):
    return make_providers()


@pytest.fixture()
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client(db, providers, monkeypatch):
    monkeypatch.setattr("studyaid.worker.tasks.get_providers", lambda: providers)
    app.dependency_overrides[providers_dep] = lambda: providers
    app.dependency_overrides[get_current_user_id] = lambda: "user-1"
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
