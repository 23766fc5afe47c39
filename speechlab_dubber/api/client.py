"""Async HTTP client for the SpeechLab dubbing API.

WHY: The dubbing flow needs to log in, create a dubbing project, look the
project up while SpeechLab processes it, and generate a sharing link.
This module encapsulates those calls, and the token handling they all
share, behind a single client class so callers (orchestrator, CLI,
tests) don't need to know HTTP details.

HOW: Uses httpx.AsyncClient for non-blocking HTTP. The SpeechLabClient is
an async context manager. Enter it to open the connection pool, exit to
close it. Each authenticated call goes through _authorized(), which
implements the two-attempt retry-on-401 policy on top of TokenSession.

RULES:
- Always use the async context manager (async with SpeechLabClient(...) as client:)
- At most two attempts per call; the second only after a 401 on the first
- A 401 invalidates the shared cached token before the retry
- Each call raises its own error class for non-authorization failures
- A second 401 raises AuthorizationRetryExhausted
- A lookup with zero matches returns None, not an error
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import httpx

from speechlab_dubber.api.models import Credentials, DubJobRequest, Project, ProjectsPage
from speechlab_dubber.api.session import TokenSession, default_session
from speechlab_dubber.api.transport import (
    build_http_client,
    describe_error,
    is_authorization_rejection,
    log_api_error,
)
from speechlab_dubber.config import (
    DEFAULT_UNIT_TYPE,
    DEFAULT_VOICE_MATCHING_MODE,
    REQUEST_TIMEOUT_S,
)
from speechlab_dubber.errors import (
    AuthenticationError,
    AuthorizationRetryExhausted,
    LinkGenerationError,
    ProjectLookupError,
    SpeechLabError,
    SubmissionError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_MAX_ATTEMPTS = 2

LOGIN_PATH = "/v1/auth/login"
CREATE_PROJECT_PATH = "/v1/projects/createProjectAndDub"
PROJECTS_PATH = "/v1/projects"
SHARING_LINK_PATH = "/v1/collaborations/generateSharingLink"

# ValueError covers both JSONDecodeError and UnicodeDecodeError from resp.json()
_HTTP_ERRORS = (httpx.HTTPError, httpx.InvalidURL, ValueError)

# Raised by handle() when a 2xx body has the wrong shape
_BODY_SHAPE_ERRORS = (AttributeError, TypeError, ValueError)


class SpeechLabClient:
    """Async client for the SpeechLab dubbing API.

    WHY: Provides a clean, typed interface for the dubbing workflow:
    login → create project → look up project → generate link. Handles
    token caching, 401 retries, and error wrapping.

    HOW: Wraps httpx.AsyncClient configured with the base URL, JSON
    headers, and a fixed 30s timeout. Credentials are held for the
    lifetime of the client; the token lives in a TokenSession that may
    be shared with other clients.

    RULES:
    - Use as: async with SpeechLabClient(credentials) as client: ...
    - session defaults to the process-wide default_session
    - transport is for tests (httpx.MockTransport)
    """

    def __init__(
        self,
        credentials: Credentials,
        session: TokenSession | None = None,
        base_url: str | None = None,
        timeout: float = REQUEST_TIMEOUT_S,
        unit_type: str = DEFAULT_UNIT_TYPE,
        voice_matching_mode: str = DEFAULT_VOICE_MATCHING_MODE,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._credentials = credentials
        self._session = session if session is not None else default_session
        self._base_url = base_url
        self._timeout = timeout
        self._unit_type = unit_type
        self._voice_matching_mode = voice_matching_mode
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> SpeechLabClient:
        self._client = build_http_client(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def session(self) -> TokenSession:
        return self._session

    def _ensure_client(self) -> httpx.AsyncClient:
        """Return the active httpx client, raising if not in context manager."""
        if self._client is None:
            raise RuntimeError(
                "SpeechLabClient must be used as an async context manager: "
                "async with SpeechLabClient(credentials) as client: ..."
            )
        return self._client

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    async def get_token(self) -> str:
        """Return the cached token, logging in first if there is none."""
        return await self._session.get_token(self._login)

    def invalidate_token(self) -> None:
        self._session.invalidate()

    async def _login(self) -> str:
        """Exchange the account credentials for a JWT.

        RULES:
        - Raises AuthenticationError on transport failure, non-2xx,
          non-JSON body, or a body without tokens.accessToken.jwtToken
        """
        client = self._ensure_client()
        payload = {
            "email": self._credentials.email,
            "password": self._credentials.password,
        }
        try:
            resp = await client.post(LOGIN_PATH, json=payload)
            resp.raise_for_status()
            data = resp.json()
        except _HTTP_ERRORS as exc:
            log_api_error(exc, "authentication")
            raise AuthenticationError(
                f"Authentication failed: {describe_error(exc)}"
            ) from exc

        token = _dig(data, "tokens", "accessToken", "jwtToken")
        if not token or not isinstance(token, str):
            logger.error("Authentication succeeded but token not found in response.")
            raise AuthenticationError("Authentication response did not contain a token")

        logger.info("Successfully authenticated and obtained token.")
        return token

    async def _authorized(
        self,
        send: Callable[[httpx.AsyncClient, dict[str, str]], Awaitable[httpx.Response]],
        handle: Callable[[Any], T],
        error_cls: type[SpeechLabError],
        context: str,
    ) -> T:
        """Run one authenticated call under the retry-on-401 policy.

        WHY: Tokens expire silently. The first 401 most likely means the
        cached token is stale, so one fresh login is worth a retry; a
        second 401 means the account itself is refused.

        HOW: Up to two attempts. Each attempt gets a token from the
        session, sends the request with a Bearer header, raises for
        status, decodes JSON, and hands the body to handle(). A 401 on
        the first attempt invalidates the session and loops once more.

        RULES:
        - Token failures are raised as error_cls, chained to AuthenticationError
        - Second 401 → AuthorizationRetryExhausted
        - Any other transport/parse failure → error_cls
        - A 2xx body handle() cannot digest → error_cls
        - SpeechLabErrors raised by handle() propagate unchanged

        Args:
            send: Issues the request given the httpx client and auth headers.
            handle: Turns the decoded JSON body into the call's result.
            error_cls: Taxonomy error for this call's non-auth failures.
            context: Human-readable description used in logs and messages.
        """
        client = self._ensure_client()

        for attempt in range(1, _MAX_ATTEMPTS + 1):
            try:
                token = await self.get_token()
            except AuthenticationError as exc:
                logger.error(
                    "Cannot perform %s (attempt %d): failed to get authentication token.",
                    context,
                    attempt,
                )
                raise error_cls(f"Could not authenticate for {context}: {exc}") from exc

            try:
                resp = await send(client, {"Authorization": f"Bearer {token}"})
                resp.raise_for_status()
                data = resp.json()
            except _HTTP_ERRORS as exc:
                if is_authorization_rejection(exc):
                    if attempt < _MAX_ATTEMPTS:
                        logger.warning(
                            "Received 401 Unauthorized on attempt %d for %s. "
                            "Invalidating token and retrying...",
                            attempt,
                            context,
                        )
                        self.invalidate_token()
                        continue
                    log_api_error(exc, f"{context} (attempt {attempt})")
                    raise AuthorizationRetryExhausted(
                        f"Authorization rejected twice during {context}"
                    ) from exc
                log_api_error(exc, f"{context} (attempt {attempt})")
                raise error_cls(f"{context} failed: {describe_error(exc)}") from exc

            try:
                return handle(data)
            except SpeechLabError:
                raise
            except _BODY_SHAPE_ERRORS as exc:
                log_api_error(exc, f"{context} (attempt {attempt})")
                raise error_cls(
                    f"{context} returned an unexpected response body: {describe_error(exc)}"
                ) from exc

        # Unreachable: the loop either returns or raises
        raise error_cls(f"{context} failed after {_MAX_ATTEMPTS} attempts")

    # ------------------------------------------------------------------
    # Job Submitter
    # ------------------------------------------------------------------

    async def create_dubbing_project(
        self,
        audio_url: str,
        project_name: str,
        target_language: str,
        third_party_id: str,
        source_language: str = "en",
    ) -> str:
        """Create a dubbing project and return its project ID.

        WHY: SpeechLab dubs asynchronously. Creating the project starts the
        remote job; the caller later finds it again by third_party_id.

        HOW: Builds a DubJobRequest (name truncation, es → es_la) and
        POSTs it to /v1/projects/createProjectAndDub.

        RULES:
        - Raises SubmissionError when the token cannot be obtained, the
          call fails for a non-401 reason, or projectId is missing
        - Raises AuthorizationRetryExhausted on two consecutive 401s

        Args:
            audio_url: Publicly reachable URL of the source audio.
            project_name: Desired project name (cut to 100 characters).
            target_language: Caller's target language code, e.g. "es".
            third_party_id: Correlation id used for later lookups.
            source_language: Language spoken in the source audio.

        Returns:
            The projectId assigned by SpeechLab.
        """
        request = DubJobRequest.build(
            audio_url=audio_url,
            project_name=project_name,
            target_language=target_language,
            third_party_id=third_party_id,
            source_language=source_language,
            unit_type=self._unit_type,
            voice_matching_mode=self._voice_matching_mode,
        )
        payload = request.to_payload()
        logger.info(
            "Creating dubbing project: name=%r source=%s target=%s (api %s) thirdPartyID=%s",
            request.name,
            source_language,
            target_language,
            request.target_language,
            third_party_id,
        )
        logger.debug("Create project payload: %s", payload)

        def _handle(data: Any) -> str:
            project_id = data.get("projectId") if isinstance(data, dict) else None
            if not project_id:
                logger.error("Project creation succeeded but projectId not found in response.")
                raise SubmissionError("Project creation response did not contain a projectId")
            logger.info(
                "Successfully created project %s (thirdPartyID: %s)", project_id, third_party_id
            )
            return str(project_id)

        return await self._authorized(
            lambda client, headers: client.post(CREATE_PROJECT_PATH, json=payload, headers=headers),
            _handle,
            SubmissionError,
            f"project creation for {request.name!r} (thirdPartyID: {third_party_id})",
        )

    # ------------------------------------------------------------------
    # Job Status Fetcher
    # ------------------------------------------------------------------

    async def get_project_by_third_party_id(self, third_party_id: str) -> Project | None:
        """Look up the project created with the given third-party ID.

        WHY: The create call only returns an ID; status has to be read
        from the project listing, filtered by our correlation id.

        HOW: GETs /v1/projects with thirdPartyIDs=<id> and expand=true,
        parses the page, and returns the first result.

        RULES:
        - Returns None when no project matches (normal early in polling)
        - The first result wins if the backend returns several
        - Raises ProjectLookupError for token or non-401 failures
        - Raises AuthorizationRetryExhausted on two consecutive 401s
        """
        params = {
            "sortBy": "createdAt:asc",
            "limit": 10,
            "page": 1,
            "expand": "true",
            "thirdPartyIDs": third_party_id,
        }
        logger.debug("Fetching project status for thirdPartyID: %s", third_party_id)

        def _handle(data: Any) -> Project | None:
            page = ProjectsPage.from_dict(data if isinstance(data, dict) else {})
            if not page.results:
                logger.warning("No projects found matching thirdPartyID: %s", third_party_id)
                if page.total_results is not None:
                    logger.info("API reported %s total results for this query.", page.total_results)
                return None
            project = page.results[0]
            logger.info(
                "Found project %s for thirdPartyID %s: status=%s name=%r source=%s target=%s",
                project.id,
                third_party_id,
                project.status,
                project.name or "Unknown",
                project.source_language or "Unknown",
                project.target_language or "Unknown",
            )
            logger.debug(
                "Found %d media objects in first translation's first dub.", project.media_count
            )
            return project

        return await self._authorized(
            lambda client, headers: client.get(PROJECTS_PATH, params=params, headers=headers),
            _handle,
            ProjectLookupError,
            f"project lookup for thirdPartyID {third_party_id}",
        )

    # ------------------------------------------------------------------
    # Link Generator
    # ------------------------------------------------------------------

    async def generate_sharing_link(self, project_id: str) -> str:
        """Generate a shareable link for a project.

        RULES:
        - Raises LinkGenerationError when no link comes back or the call
          fails for a non-401 reason
        - Raises AuthorizationRetryExhausted on two consecutive 401s
        """
        payload = {"projectId": project_id}
        logger.info("Generating sharing link for project %s", project_id)

        def _handle(data: Any) -> str:
            link = data.get("link") if isinstance(data, dict) else None
            if not link:
                logger.error("Link generation succeeded but link not found in response.")
                raise LinkGenerationError(
                    f"Sharing link response for project {project_id} did not contain a link"
                )
            logger.info("Successfully generated sharing link: %s", link)
            return str(link)

        return await self._authorized(
            lambda client, headers: client.post(SHARING_LINK_PATH, json=payload, headers=headers),
            _handle,
            LinkGenerationError,
            f"sharing link generation for project {project_id}",
        )


def _dig(data: Any, *keys: str) -> Any:
    """Walk nested dicts, returning None as soon as a key is missing."""
    for key in keys:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data
