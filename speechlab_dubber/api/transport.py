"""HTTP transport setup and error classification for SpeechLab calls.

WHY: Every SpeechLab call shares the same base URL, JSON headers, and
timeout, and every failure needs to be logged the same way before it is
turned into a typed SpeechLabError. Keeping both here stops the client
methods from repeating them.

HOW: build_http_client() creates the configured httpx.AsyncClient.
classify_error() sorts an exception into one of four kinds, and
log_api_error() logs it with that kind plus status and body when the
server responded.

RULES:
- "response": the server answered with an error status (httpx.HTTPStatusError)
- "no_response": timeout or connection failure (httpx.TransportError)
- "request_setup": the request could not be built (bad URL, protocol)
- "invalid_body": the server answered 2xx with a body that is not UTF-8
  JSON or does not have the expected shape
- is_authorization_rejection() is true only for HTTP 401
"""

from __future__ import annotations

import logging

import httpx

from speechlab_dubber.config import REQUEST_TIMEOUT_S, SPEECHLAB_BASE_URL

logger = logging.getLogger(__name__)

UNAUTHORIZED = 401

JSON_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}

_BODY_LOG_LIMIT = 500


def build_http_client(
    base_url: str | None = None,
    timeout: float = REQUEST_TIMEOUT_S,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create the shared httpx.AsyncClient for SpeechLab calls.

    The transport argument exists so tests can plug in httpx.MockTransport.
    """
    return httpx.AsyncClient(
        base_url=(base_url or SPEECHLAB_BASE_URL).rstrip("/"),
        headers=JSON_HEADERS,
        timeout=httpx.Timeout(timeout),
        transport=transport,
    )


def is_authorization_rejection(exc: BaseException) -> bool:
    return (
        isinstance(exc, httpx.HTTPStatusError)
        and exc.response.status_code == UNAUTHORIZED
    )


def classify_error(exc: BaseException) -> str:
    if isinstance(exc, httpx.HTTPStatusError):
        return "response"
    if isinstance(exc, (httpx.InvalidURL, httpx.UnsupportedProtocol, httpx.LocalProtocolError)):
        return "request_setup"
    if isinstance(exc, httpx.TransportError):
        return "no_response"
    if isinstance(exc, (ValueError, TypeError, AttributeError)):
        return "invalid_body"
    return "request_setup"


def log_api_error(exc: BaseException, context: str) -> str:
    """Log an API failure with its classification and return the kind."""
    kind = classify_error(exc)
    if kind == "response":
        response = exc.response  # type: ignore[attr-defined]
        logger.error(
            "API error during %s: status %s, body %s",
            context,
            response.status_code,
            response.text[:_BODY_LOG_LIMIT],
        )
    elif kind == "no_response":
        logger.error("No response received during %s: %s", context, exc)
    elif kind == "invalid_body":
        logger.error("Response during %s had an invalid body: %s", context, exc)
    else:
        logger.error("Error setting up request during %s: %s", context, exc)
    return kind


def describe_error(exc: BaseException) -> str:
    """Short human-readable summary used in SpeechLabError messages."""
    if isinstance(exc, httpx.HTTPStatusError):
        return f"HTTP {exc.response.status_code}"
    return f"{type(exc).__name__}: {exc}"
