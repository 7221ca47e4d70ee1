"""Shared pytest fixtures for integration and unit tests.

Usage in new test files:
    def test_something(client, fake_provider):
        fake_provider.responses.append(json.dumps(PACKAGE_JSON))
        resp = client.post("/api/v1/content/process", json={"url": URL}, headers=USER)
        ...
"""

from __future__ import annotations

import json
from collections.abc import Callable
from datetime import datetime, timezone

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import contentflow.models  # noqa: F401  -- ensure models registered with Base.metadata
from contentflow.db.base import Base
from contentflow.db.session import get_db
from contentflow.main import app
from contentflow.routes.content import get_extractor, get_fetcher, get_orchestrator
from contentflow.services.extractor import ContentExtractor
from contentflow.services.fetcher import PageFetcher
from contentflow.services.llm.models import Provider, TokenUsage
from contentflow.services.llm.orchestrator import GenerationOrchestrator
from contentflow.services.llm.providers import Completion
from contentflow.services.submission_store import SqlSubmissionStore

ARTICLE_URL = "https://blog.example.com/posts/async-python"

ARTICLE_BODY = " ".join(
    f"Paragraph {i} explains how asyncio schedules coroutines on one event loop."
    for i in range(40)
)

ARTICLE_HTML = f"""
<!DOCTYPE html>
<html>
<head><title>Async Python in Practice</title></head>
<body>
<nav>Home | Blog | About</nav>
<article>
<h1>Async Python in Practice</h1>
<p>{ARTICLE_BODY}</p>
</article>
<footer>Copyright footer</footer>
<script>trackVisit();</script>
</body>
</html>
"""

PACKAGE_JSON = {
    "twitter": "\U0001f9f5 1/3 Async Python explained...",
    "linkedin": "Async Python is easier than you think. #python",
    "newsletter": "• Event loops\n• Coroutines\n• Tasks",
    "video": "Hook: Ever waited on I/O? Here is the fix.",
}

USER_HEADERS = {"X-User-Id": "user-123"}


class FakeProvider:
    """ProviderClient double that replays scripted responses.

    Each entry in ``responses`` is either a string (returned as the
    completion text) or an exception instance (raised). Calls are recorded.
    """

    def __init__(self, responses: list | None = None) -> None:
        self.responses: list = list(responses or [])
        self.calls: list[dict] = []

    async def complete(self, model, messages, temperature, max_tokens) -> Completion:
        self.calls.append(
            {
                "model": model,
                "messages": messages,
                "temperature": temperature,
                "max_tokens": max_tokens,
            }
        )
        if not self.responses:
            raise RuntimeError(f"No scripted response for {model}")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return Completion(
            content=response,
            usage=TokenUsage(prompt_tokens=1200, completion_tokens=400),
        )


class SleepRecorder:
    """Async stand-in for asyncio.sleep that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def fixed_clock() -> datetime:
    return datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


# ------------------------------------------------------------------
# Database fixtures
# ------------------------------------------------------------------


@pytest.fixture()
def db_engine():
    """Create an in-memory SQLite engine shared across connections."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def db_session(db_engine) -> Session:
    """Yield a SQLAlchemy session bound to the shared in-memory engine."""
    TestingSessionLocal = sessionmaker(
        autocommit=False, autoflush=False, bind=db_engine
    )
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture()
def store(db_session) -> SqlSubmissionStore:
    return SqlSubmissionStore(db_session)


# ------------------------------------------------------------------
# Generation fixtures
# ------------------------------------------------------------------


@pytest.fixture()
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture()
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture()
def orchestrator(fake_provider, sleep_recorder) -> GenerationOrchestrator:
    """Orchestrator with every provider routed to one fake and no real sleeps."""
    return GenerationOrchestrator(
        {
            Provider.ANTHROPIC: fake_provider,
            Provider.OPENAI: fake_provider,
            Provider.GEMINI: fake_provider,
        },
        sleep=sleep_recorder,
        clock=fixed_clock,
    )


# ------------------------------------------------------------------
# HTTP fixtures
# ------------------------------------------------------------------


@pytest.fixture()
def page_routes() -> dict[str, httpx.Response]:
    """URL -> canned response served by the mock transport. Unknown URLs 404."""
    return {ARTICLE_URL: httpx.Response(200, text=ARTICLE_HTML)}


@pytest.fixture()
def fetcher(page_routes) -> PageFetcher:
    def _handler(request: httpx.Request) -> httpx.Response:
        response = page_routes.get(str(request.url))
        if response is None:
            return httpx.Response(404, text="Not Found")
        return response

    return PageFetcher(transport=httpx.MockTransport(_handler))


@pytest.fixture()
def client(db_engine, fetcher, orchestrator):
    """TestClient with overridden DB, fetcher and orchestrator dependencies."""
    from contentflow.core.config import settings

    original_env = settings.service_env
    object.__setattr__(settings, "service_env", "test")

    TestingSessionLocal = sessionmaker(
        autocommit=False, autoflush=False, bind=db_engine
    )

    def _override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_fetcher] = lambda: fetcher
    app.dependency_overrides[get_extractor] = lambda: ContentExtractor()
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    with TestClient(app) as tc:
        yield tc
    app.dependency_overrides.clear()
    object.__setattr__(settings, "service_env", original_env)


@pytest.fixture()
def package_response() -> Callable[..., str]:
    """Return a helper that renders PACKAGE_JSON (with overrides) as model text."""

    def _render(**overrides) -> str:
        return json.dumps({**PACKAGE_JSON, **overrides})

    return _render
