"""Orchestrator: one "dub this audio" call over the SpeechLab API.

WHY: Hosts (CLI, chat bots, plugins) want a single awaitable that takes an
audio URL and a target language and returns a sharing link, or one
descriptive error. This module sequences submit → poll → link and owns
input validation and error reporting for the whole flow.

HOW: dub_audio() validates inputs before touching the network, opens a
SpeechLabClient (unless one is injected), creates the project, waits on
it with CompletionPoller, then generates the sharing link. Each stage
runs inside _stage(), which tags any SpeechLabError with the stage name.

RULES:
- Validation order: credentials, options, audio_url, target_language
- ValidationError is raised before any request is sent
- FAILED → RemoteJobFailed, and no link is requested
- TIMED_OUT → DubbingTimeoutError
- No partial success: a link failure fails the whole call
- The result's target_language is the caller's code, not the API code
- Error types are preserved; only their stage attribute is set
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Iterator, Mapping
from contextlib import asynccontextmanager, contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, AsyncIterator

from speechlab_dubber.api.client import SpeechLabClient
from speechlab_dubber.api.models import Credentials, DubbingResult
from speechlab_dubber.config import DubbingSettings
from speechlab_dubber.core.poller import CompletionPoller, PollState
from speechlab_dubber.errors import (
    DubbingTimeoutError,
    RemoteJobFailed,
    SpeechLabError,
    ValidationError,
)

logger = logging.getLogger(__name__)

CONNECTION_TEST_ID = "connection-test"

MISSING_CREDENTIALS = (
    "Missing required credentials. Please set SPEECHLAB_EMAIL and SPEECHLAB_PASSWORD"
)
MISSING_OPTIONS = "Missing required dubbing options"
MISSING_AUDIO_URL = "Missing required audioUrl parameter"
MISSING_TARGET_LANGUAGE = "Missing required targetLanguage parameter"


@dataclass
class DubbingRequest:
    """Validated caller options for one dubbing run."""

    audio_url: str
    target_language: str
    project_name: str
    third_party_id: str

    @classmethod
    def from_options(cls, options: Any, now: float | None = None) -> DubbingRequest:
        """Validate raw options and fill in the generated defaults.

        WHY: Hosts pass loosely-typed dicts, often with the camelCase
        keys used by JavaScript hosts.

        HOW: Accepts snake_case or camelCase keys. A missing project name
        becomes "SpeechLab Dub <ISO timestamp>"; a missing third-party ID
        becomes "speechlab-<epoch ms>-<target>".

        RULES:
        - options must be a mapping, else ValidationError
        - audio_url and target_language must be non-empty
        """
        if not isinstance(options, Mapping):
            raise ValidationError(MISSING_OPTIONS)

        audio_url = _option(options, "audio_url", "audioUrl")
        if not audio_url:
            raise ValidationError(MISSING_AUDIO_URL)
        target_language = _option(options, "target_language", "targetLanguage")
        if not target_language:
            raise ValidationError(MISSING_TARGET_LANGUAGE)

        now = time.time() if now is None else now
        project_name = _option(options, "project_name", "projectName") or (
            "SpeechLab Dub " + datetime.fromtimestamp(now, tz=timezone.utc).isoformat()
        )
        third_party_id = _option(options, "third_party_id", "thirdPartyId") or (
            f"speechlab-{int(now * 1000)}-{target_language}"
        )
        return cls(
            audio_url=audio_url,
            target_language=target_language,
            project_name=project_name,
            third_party_id=third_party_id,
        )


def _option(options: Mapping, *keys: str) -> str | None:
    for key in keys:
        value = options.get(key)
        if value:
            return str(value)
    return None


def _credentials(settings: DubbingSettings) -> Credentials:
    credentials = Credentials(email=settings.email, password=settings.password)
    if not credentials.is_complete():
        raise ValidationError(MISSING_CREDENTIALS)
    return credentials


@contextmanager
def _stage(name: str) -> Iterator[None]:
    try:
        yield
    except SpeechLabError as exc:
        exc.stage = name
        logger.error("Dubbing failed during %s: %s", name, exc.message)
        raise


@asynccontextmanager
async def _open_client(
    settings: DubbingSettings,
    credentials: Credentials,
    client: SpeechLabClient | None,
) -> AsyncIterator[SpeechLabClient]:
    if client is not None:
        yield client
        return
    async with SpeechLabClient(
        credentials,
        unit_type=settings.unit_type,
        voice_matching_mode=settings.voice_matching_mode,
    ) as owned:
        yield owned


async def dub_audio(
    options: Any,
    settings: DubbingSettings,
    *,
    client: SpeechLabClient | None = None,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    on_status: Callable[[str], None] | None = None,
) -> DubbingResult:
    """Dub an audio file and return the sharing link for the result.

    Args:
        options: Mapping with audio_url/audioUrl, target_language/targetLanguage,
            and optional project_name/projectName, third_party_id/thirdPartyId.
        settings: Credentials, source language, and wait limits.
        client: An already-entered SpeechLabClient; one is created when omitted.
        clock: Monotonic clock for the poller deadline.
        sleep: Coroutine used between polls.
        on_status: Optional callback for human-readable progress lines.

    Returns:
        DubbingResult for the completed project.
    """
    credentials = _credentials(settings)
    request = DubbingRequest.from_options(options)
    logger.info(
        "Dubbing %s into %s (source language %s)",
        request.audio_url,
        request.target_language,
        settings.source_language,
    )

    async with _open_client(settings, credentials, client) as api:
        with _stage("submit"):
            project_id = await api.create_dubbing_project(
                audio_url=request.audio_url,
                project_name=request.project_name,
                target_language=request.target_language,
                third_party_id=request.third_party_id,
                source_language=settings.source_language,
            )
        if on_status:
            on_status(f"Created dubbing project {project_id}")

        with _stage("poll"):
            poller = CompletionPoller(
                api.get_project_by_third_party_id,
                max_wait_s=settings.max_wait_s,
                check_interval_s=settings.check_interval_s,
                clock=clock,
                sleep=sleep,
                on_status=on_status,
            )
            outcome = await poller.wait(request.third_party_id)
            if outcome.state is PollState.FAILED:
                raise RemoteJobFailed(
                    f"Project {project_id} failed to process", project_id=project_id
                )
            if outcome.state is PollState.TIMED_OUT:
                raise DubbingTimeoutError(
                    f"Project {project_id} did not complete within "
                    f"{settings.max_wait_time_minutes} minutes"
                )

        completed = outcome.project

        with _stage("link"):
            sharing_link = await api.generate_sharing_link(project_id)

    return DubbingResult(
        project_id=project_id,
        status=completed.status if completed else "COMPLETE",
        target_language=request.target_language,
        sharing_link=sharing_link,
        project_details=completed.raw if completed else {},
    )


async def check_connection(
    settings: DubbingSettings,
    *,
    client: SpeechLabClient | None = None,
) -> bool:
    """Verify credentials and API reachability with one lookup.

    RULES:
    - Missing credentials raise ValidationError without a request
    - A lookup miss counts as success
    - Any SpeechLabError from the lookup propagates
    """
    credentials = _credentials(settings)
    async with _open_client(settings, credentials, client) as api:
        await api.get_project_by_third_party_id(CONNECTION_TEST_ID)
    logger.info("API connection test successful")
    return True
