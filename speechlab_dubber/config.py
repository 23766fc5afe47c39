"""Configuration constants, language normalization, and .env loading.

WHY: Centralizes all configurable values so they are easy to find,
update, and override. The language normalization rule and API defaults
are plain data structures, not buried in the client, so both humans
and coding agents can modify them confidently.

HOW: python-dotenv loads the .env file on import. Constants are defined
as module-level dicts and strings. DubbingSettings gathers the
per-invocation settings from explicit overrides or the environment.

RULES:
- LANGUAGE_MAP rewrites caller codes to SpeechLab codes ("es" → "es_la")
- Unmapped language codes pass through unchanged
- Credentials are loaded from .env via python-dotenv, never hardcoded
- Explicit overrides win over environment variables
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Mapping

from dotenv import load_dotenv

from speechlab_dubber.errors import ValidationError

# Load .env from the project root (where the script is run from)
load_dotenv()

# ---------------------------------------------------------------------------
# Language normalization: caller code → SpeechLab API code
# ---------------------------------------------------------------------------

LANGUAGE_MAP: dict[str, str] = {
    "es": "es_la",
}


def normalize_language(code: str) -> str:
    """Map a caller language code to the code SpeechLab expects.

    WHY: SpeechLab dubs generic Spanish as Latin American Spanish and
    rejects a bare "es" target/accent.

    HOW: Direct lookup in LANGUAGE_MAP with the input as fallback.

    RULES:
    - "es" → "es_la"
    - Every other code is returned unchanged
    """
    return LANGUAGE_MAP.get(code, code)


# ---------------------------------------------------------------------------
# API configuration defaults
# ---------------------------------------------------------------------------

SPEECHLAB_BASE_URL = os.getenv("SPEECHLAB_BASE_URL", "https://translate-api.speechlab.ai")
REQUEST_TIMEOUT_S = 30.0
PROJECT_NAME_MAX_CHARS = 100
DEFAULT_SOURCE_LANGUAGE = "en"
DEFAULT_UNIT_TYPE = "whiteGlove"
DEFAULT_VOICE_MATCHING_MODE = "source"
DEFAULT_MAX_WAIT_TIME_MINUTES = 60
DEFAULT_CHECK_INTERVAL_SECONDS = 30

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class DubbingSettings:
    """Externally supplied settings for one dubbing invocation.

    WHY: The host application owns account credentials and wait limits;
    the orchestrator only consumes them. A frozen dataclass keeps them
    typed and immutable for the duration of a call.

    HOW: Built directly, or via from_env() which reads SPEECHLAB_* keys.

    RULES:
    - email/password may be empty here; the orchestrator rejects that
    - max_wait_time_minutes and check_interval_seconds are positive
      integers, checked on every construction path
    - password is excluded from repr
    """

    email: str = ""
    password: str = ""
    source_language: str = DEFAULT_SOURCE_LANGUAGE
    unit_type: str = DEFAULT_UNIT_TYPE
    voice_matching_mode: str = DEFAULT_VOICE_MATCHING_MODE
    max_wait_time_minutes: int = DEFAULT_MAX_WAIT_TIME_MINUTES
    check_interval_seconds: int = DEFAULT_CHECK_INTERVAL_SECONDS
    debug: bool = False

    def __post_init__(self) -> None:
        for name in ("max_wait_time_minutes", "check_interval_seconds"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValidationError(f"{name} must be an integer, got {value!r}")
            if value <= 0:
                raise ValidationError(f"{name} must be positive, got {value}")

    def __repr__(self) -> str:
        return (
            f"DubbingSettings(email={self.email!r}, password='***', "
            f"source_language={self.source_language!r}, "
            f"max_wait_time_minutes={self.max_wait_time_minutes}, "
            f"check_interval_seconds={self.check_interval_seconds})"
        )

    @property
    def max_wait_s(self) -> float:
        return float(self.max_wait_time_minutes * 60)

    @property
    def check_interval_s(self) -> float:
        return float(self.check_interval_seconds)

    @classmethod
    def from_env(cls, overrides: Mapping[str, Any] | None = None) -> DubbingSettings:
        """Build settings from explicit overrides and the environment.

        WHY: Hosts pass some settings directly (e.g. from their own config
        store) and leave the rest to .env.

        HOW: Each SPEECHLAB_* key is looked up in overrides first, then in
        os.environ, then falls back to the default.

        RULES:
        - Empty strings count as unset
        - Non-integer wait/interval values raise ValidationError
        """
        overrides = overrides or {}

        def _get(key: str, default: str = "") -> str:
            value = overrides.get(key)
            if value is None or str(value).strip() == "":
                value = os.getenv(key, "")
            value = str(value).strip()
            return value or default

        return cls(
            email=_get("SPEECHLAB_EMAIL"),
            password=_get("SPEECHLAB_PASSWORD"),
            source_language=_get("SPEECHLAB_SOURCE_LANGUAGE", DEFAULT_SOURCE_LANGUAGE),
            unit_type=_get("SPEECHLAB_UNIT_TYPE", DEFAULT_UNIT_TYPE),
            voice_matching_mode=_get(
                "SPEECHLAB_VOICE_MATCHING_MODE", DEFAULT_VOICE_MATCHING_MODE
            ),
            max_wait_time_minutes=_parse_int(
                "SPEECHLAB_MAX_WAIT_TIME_MINUTES",
                _get("SPEECHLAB_MAX_WAIT_TIME_MINUTES", str(DEFAULT_MAX_WAIT_TIME_MINUTES)),
            ),
            check_interval_seconds=_parse_int(
                "SPEECHLAB_CHECK_INTERVAL_SECONDS",
                _get("SPEECHLAB_CHECK_INTERVAL_SECONDS", str(DEFAULT_CHECK_INTERVAL_SECONDS)),
            ),
            debug=_get("SPEECHLAB_DEBUG", "false").lower() in _TRUE_VALUES,
        )


def _parse_int(key: str, raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{key} must be an integer, got {raw!r}") from None
