"""Error taxonomy for the SpeechLab dubbing client.

WHY: Callers need typed exceptions to tell bad input apart from bad
credentials, remote failures, and timeouts, and to know which stage of
the dubbing flow failed.

HOW: Every error derives from SpeechLabError. Where a builtin exception
already names the concept (ValueError, LookupError, TimeoutError), the
subclass also inherits from it so generic handlers still work.

RULES:
- stage is None until the orchestrator tags the error ("submit", "poll", "link")
- Low-level httpx errors are chained via ``raise ... from exc``
- ValidationError is always raised before any network call
"""

from __future__ import annotations


class SpeechLabError(Exception):
    """Base class for every failure raised by this package."""

    def __init__(self, message: str, stage: str | None = None) -> None:
        self.message = message
        self.stage = stage
        super().__init__(message)

    def __str__(self) -> str:
        if self.stage:
            return f"[{self.stage}] {self.message}"
        return self.message


class ValidationError(SpeechLabError, ValueError):
    """Caller input is missing or malformed; no request was sent."""


class AuthenticationError(SpeechLabError):
    """Login never yielded a usable token."""


class AuthorizationRetryExhausted(SpeechLabError):
    """The server rejected the token twice in a row (HTTP 401).

    WHY: One rejection usually means an expired token and is retried
    after re-login. A second rejection means the fresh token is also
    refused, so retrying again would only loop.
    """


class SubmissionError(SpeechLabError):
    """Creating the dubbing project failed for a non-authorization reason."""


class ProjectLookupError(SpeechLabError, LookupError):
    """Looking up a project by third-party ID failed (not a plain miss)."""


class LinkGenerationError(SpeechLabError):
    """The sharing-link call failed or returned no link."""


class DubbingTimeoutError(SpeechLabError, TimeoutError):
    """The project did not reach a terminal status before the deadline."""


class RemoteJobFailed(SpeechLabError):
    """SpeechLab reported the dubbing project as FAILED. Never retried."""

    def __init__(self, message: str, project_id: str | None = None, stage: str | None = None) -> None:
        self.project_id = project_id
        super().__init__(message, stage=stage)
