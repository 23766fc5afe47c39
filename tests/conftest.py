"""Shared test fixtures for the speechlab_dubber test suite.

WHY: Client, poller, and orchestrator tests all need a scripted stand-in
for the SpeechLab API and a clock they can advance without sleeping.
Centralizing them here keeps every test module on the same fake.

HOW: FakeSpeechLabAPI is an httpx.MockTransport handler that records
every request and answers each endpoint from a per-endpoint queue, falling
back to a happy-path default. FakeClock is a callable clock with an async
sleep that advances time instantly.

RULES:
- The real SpeechLab API is never called
- Each test gets its own fake API and its own TokenSession
- Queue entries are httpx.Response objects or callables taking the request
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import httpx
import pytest

from speechlab_dubber.api.client import (
    CREATE_PROJECT_PATH,
    LOGIN_PATH,
    PROJECTS_PATH,
    SHARING_LINK_PATH,
    SpeechLabClient,
)
from speechlab_dubber.api.models import Credentials
from speechlab_dubber.api.session import TokenSession
from speechlab_dubber.config import DubbingSettings

TEST_BASE_URL = "https://api.speechlab.test"
TEST_EMAIL = "dubber@example.com"
TEST_PASSWORD = "hunter2"
PROJECT_ID = "proj-123"
SHARING_LINK = "https://translate.speechlab.ai/share/abc123"


def make_project(status: str | None = "COMPLETE", project_id: str = PROJECT_ID) -> dict[str, Any]:
    """Build a project dict shaped like GET /v1/projects results."""
    job: dict[str, Any] = {
        "name": "Space recap",
        "sourceLanguage": "en",
        "targetLanguage": "es_la",
    }
    if status is not None:
        job["status"] = status
    return {
        "id": project_id,
        "job": job,
        "translations": [
            {
                "id": "tr-1",
                "language": "es_la",
                "dub": [
                    {
                        "id": "dub-1",
                        "language": "es_la",
                        "voiceMatchingMode": "source",
                        "medias": [
                            {"_id": "m-1", "uri": "s3://bucket/a.mp3", "category": "audio",
                             "contentTYpe": "audio/mpeg", "format": "mp3", "operationType": "dub"},
                            {"_id": "m-2", "uri": "s3://bucket/a.srt", "category": "subtitle",
                             "contentTYpe": "text/plain", "format": "srt", "operationType": "dub"},
                        ],
                    }
                ],
            }
        ],
    }


def projects_page(*projects: dict[str, Any]) -> httpx.Response:
    return httpx.Response(200, json={"results": list(projects), "totalResults": len(projects)})


class FakeSpeechLabAPI:
    """Scripted SpeechLab backend for httpx.MockTransport."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.queues: dict[str, list[Any]] = {
            LOGIN_PATH: [],
            CREATE_PROJECT_PATH: [],
            PROJECTS_PATH: [],
            SHARING_LINK_PATH: [],
        }
        self._tokens_issued = 0

    # -- scripting -------------------------------------------------------

    def queue(self, path: str, *responses: Any) -> None:
        self.queues[path].extend(responses)

    def queue_statuses(self, *statuses: str | None) -> None:
        """Queue one lookup response per status; None means no match."""
        for status in statuses:
            if status is None:
                self.queue(PROJECTS_PATH, projects_page())
            else:
                self.queue(PROJECTS_PATH, projects_page(make_project(status)))

    # -- inspection ------------------------------------------------------

    def calls(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    @property
    def login_calls(self) -> int:
        return len(self.calls(LOGIN_PATH))

    # -- transport -------------------------------------------------------

    def _default(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == LOGIN_PATH:
            self._tokens_issued += 1
            token = "token-{}".format(self._tokens_issued)
            return httpx.Response(200, json={"tokens": {"accessToken": {"jwtToken": token}}})
        if path == CREATE_PROJECT_PATH:
            return httpx.Response(200, json={"projectId": PROJECT_ID})
        if path == PROJECTS_PATH:
            return projects_page(make_project("COMPLETE"))
        if path == SHARING_LINK_PATH:
            return httpx.Response(200, json={"link": SHARING_LINK})
        return httpx.Response(404, json={"message": "not found"})

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.queues.get(request.url.path)
        if queue:
            item = queue.pop(0)
            if callable(item):
                return item(request)
            return item
        return self._default(request)


class FakeClock:
    """Monotonic clock whose sleep() advances time instantly."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_api() -> FakeSpeechLabAPI:
    return FakeSpeechLabAPI()


@pytest.fixture
def session() -> TokenSession:
    return TokenSession()


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(email=TEST_EMAIL, password=TEST_PASSWORD)


@pytest.fixture
def make_client(fake_api, session, credentials) -> Callable[..., SpeechLabClient]:
    """Factory for SpeechLabClient wired to the fake API and test session."""

    def _make(**kwargs: Any) -> SpeechLabClient:
        kwargs.setdefault("session", session)
        kwargs.setdefault("base_url", TEST_BASE_URL)
        kwargs.setdefault("transport", httpx.MockTransport(fake_api.handler))
        return SpeechLabClient(credentials, **kwargs)

    return _make


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> DubbingSettings:
    return DubbingSettings(
        email=TEST_EMAIL,
        password=TEST_PASSWORD,
        max_wait_time_minutes=60,
        check_interval_seconds=30,
    )
